#!/usr/bin/env python3
"""
Settings Loader Module

This module loads and merges settings from different hierarchical levels:
1. Engine defaults (built in)
2. Settings file (RENTCYCLE_SETTINGS_PATH or an explicit path)
3. Location settings (per PG location, e.g. its rent_cycle_type)
4. Tenant settings (per tenant overrides, e.g. a MIDMONTH anchor day)

Empty values at a higher level never override a lower level.
"""

import os
import json
import logging
from copy import deepcopy
from typing import Dict, Any, Optional

from rentcycle.utils.helpers import load_json

# Configure logging
logger = logging.getLogger(__name__)

# Constants
SETTINGS_PATH_ENV = 'RENTCYCLE_SETTINGS_PATH'
DEFAULT_SETTINGS_PATH = os.path.join('Data', 'Settings', 'rentcycle_settings.json')

DEFAULT_SETTINGS: Dict[str, Any] = {
    "settings": {
        "rent_cycle_type": "CALENDAR",
        "anchor_day": "",
        "reports_path": os.path.join('Output', 'Reports'),
        "log_file": "",
        "log_level": "INFO"
    },
    "locations": {}
}


def deep_merge(dict1: Dict[str, Any], dict2: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with dict2 values overriding dict1 values when both exist.

    Args:
        dict1: Base dictionary
        dict2: Dictionary to merge on top of dict1

    Returns:
        New dictionary with merged values
    """
    result = deepcopy(dict1)

    for key, value in dict2.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            result[key] = deep_merge(result[key], value)
        else:
            # Only override if the value is not empty/None
            if value is not None and value != "":
                result[key] = deepcopy(value)

    return result


def settings_path(path: Optional[str] = None) -> str:
    """Resolve the settings file path from the argument, environment, or default."""
    return path or os.environ.get(SETTINGS_PATH_ENV, DEFAULT_SETTINGS_PATH)


def load_engine_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the settings file merged over the built-in defaults.

    Args:
        path: Optional settings file path

    Returns:
        Dictionary with "settings" and "locations" keys
    """
    file_path = settings_path(path)

    if not os.path.exists(file_path):
        logger.info(f"No settings file at {file_path}, using defaults")
        return deepcopy(DEFAULT_SETTINGS)

    try:
        loaded = load_json(file_path)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.warning(f"Could not load settings from {file_path}. Using defaults.")
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(loaded, dict):
        logger.warning(f"Settings file {file_path} is not a JSON object. Using defaults.")
        return deepcopy(DEFAULT_SETTINGS)

    logger.info(f"Loaded settings from {file_path}")
    return deep_merge(DEFAULT_SETTINGS, loaded)


def load_location_settings(engine_settings: Dict[str, Any], location_id: Optional[Any]) -> Dict[str, Any]:
    """Get the settings block for a PG location.

    Args:
        engine_settings: Result of load_engine_settings
        location_id: PG location identifier

    Returns:
        Location settings dictionary, or an empty dict if not configured
    """
    if location_id is None:
        return {}

    locations = engine_settings.get("locations", {})
    location = locations.get(str(location_id))

    if location is None:
        logger.debug(f"No settings configured for location {location_id}")
        return {}

    return location


def merge_settings(
    engine_settings: Dict[str, Any],
    location_id: Optional[Any] = None,
    tenant_settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Merge engine, location and tenant settings.

    Args:
        engine_settings: Result of load_engine_settings
        location_id: Optional PG location identifier
        tenant_settings: Optional tenant-level overrides

    Returns:
        Flat dictionary of effective settings
    """
    result = deepcopy(engine_settings.get("settings", {}))

    location = load_location_settings(engine_settings, location_id)
    result = deep_merge(result, location.get("settings", location))

    if tenant_settings:
        result = deep_merge(result, tenant_settings)
        logger.debug(f"Applied tenant overrides: {sorted(tenant_settings)}")

    result["rent_cycle_type"] = str(result.get("rent_cycle_type") or "CALENDAR").upper()
    return result


def load_settings(
    location_id: Optional[Any] = None,
    tenant_settings: Optional[Dict[str, Any]] = None,
    path: Optional[str] = None
) -> Dict[str, Any]:
    """Main function to load effective settings for a reconciliation.

    Args:
        location_id: Optional PG location identifier
        tenant_settings: Optional tenant-level overrides
        path: Optional settings file path

    Returns:
        Flat dictionary of effective settings
    """
    merged = merge_settings(load_engine_settings(path), location_id, tenant_settings)
    logger.debug(f"Loaded settings for location {location_id}: {merged}")
    return merged
