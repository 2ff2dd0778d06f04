#!/usr/bin/env python3
"""
Report Generator Module

This module turns reconciliation results into JSON-safe data and writes
JSON and CSV reports for the presentation layer and for batch review.
"""

import os
import csv
import json
import logging
import datetime
import dataclasses
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, List, Optional

from rentcycle.models import Gap, RentCyclePolicy
from rentcycle.cycle_calendar import get_cycle_info
from rentcycle.utils.helpers import format_currency

# Configure logging
logger = logging.getLogger(__name__)

# Path for output reports
REPORTS_PATH = os.path.join('Output', 'Reports')

GAP_COLUMNS = [
    'tenant_id', 'gap_id', 'cycle_id', 'cycle_start', 'cycle_end', 'cycle_label', 'status',
    'expected_due', 'total_paid', 'remaining_due', 'days_missing', 'priority',
    'recommended', 'remaining_display'
]


def serialize(value: Any) -> Any:
    """
    Convert engine values into JSON-safe structures.

    Decimals become strings so no precision is lost, dates become ISO strings,
    enums become their values and dataclasses become dictionaries. A Gap also
    carries its derived gap_id.
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Gap):
        data = {f.name: serialize(getattr(value, f.name)) for f in dataclasses.fields(value)}
        data['gap_id'] = value.gap_id
        return data
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: serialize(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def generate_gap_rows(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flatten a reconciliation result into one row per gap.

    Args:
        result: Result of reconciliation.reconcile_tenancy

    Returns:
        List of row dictionaries keyed by GAP_COLUMNS
    """
    recommended = result.get('recommended_gap')
    policy = result.get('policy', RentCyclePolicy.CALENDAR)
    rows = []

    for gap in result.get('gaps', []):
        rows.append({
            'tenant_id': result.get('tenant_id'),
            'gap_id': gap.gap_id,
            'cycle_id': gap.cycle_id if gap.cycle_id is not None else '',
            'cycle_start': gap.cycle.start.isoformat(),
            'cycle_end': gap.cycle.end.isoformat(),
            'cycle_label': get_cycle_info(policy, gap.cycle)['label'],
            'status': gap.status.value,
            'expected_due': str(gap.expected_due),
            'total_paid': str(gap.total_paid),
            'remaining_due': str(gap.remaining_due),
            'days_missing': gap.days_missing,
            'priority': '' if gap.priority is None else gap.priority,
            'recommended': recommended is not None and gap.gap_id == recommended.gap_id,
            'remaining_display': f"Due {format_currency(gap.remaining_due)} • {gap.days_missing}d"
        })

    return rows


def _default_path(output_dir: str, prefix: str, extension: str) -> str:
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return os.path.join(output_dir, f"{prefix}_{timestamp}.{extension}")


def generate_csv_report(
    results: List[Dict[str, Any]],
    output_path: Optional[str] = None,
    output_dir: str = REPORTS_PATH
) -> str:
    """
    Generate a CSV report with one row per gap.

    Args:
        results: Reconciliation results
        output_path: Optional output path for the CSV file
        output_dir: Directory for the default file name

    Returns:
        Path to the generated CSV file, or "" if writing failed
    """
    if not output_path:
        output_path = _default_path(output_dir, 'rent_gaps', 'csv')

    os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

    report_rows = []
    for result in results:
        report_rows.extend(generate_gap_rows(result))

    try:
        with open(output_path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=GAP_COLUMNS)
            writer.writeheader()

            for row in report_rows:
                writer.writerow({col: row.get(col, '') for col in GAP_COLUMNS})

        logger.info(f"Generated CSV report with {len(report_rows)} rows: {output_path}")
        return output_path
    except OSError as e:
        logger.error(f"Error generating CSV report: {str(e)}")
        return ""


def generate_json_report(
    results: List[Dict[str, Any]],
    output_path: Optional[str] = None,
    output_dir: str = REPORTS_PATH
) -> str:
    """
    Generate a detailed JSON report.

    Args:
        results: Reconciliation results
        output_path: Optional output path for the JSON file
        output_dir: Directory for the default file name

    Returns:
        Path to the generated JSON file, or "" if writing failed
    """
    if not output_path:
        output_path = _default_path(output_dir, 'rent_reconciliation', 'json')

    os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(serialize(results), f, indent=2, ensure_ascii=False)

        logger.info(f"Generated detailed JSON report with {len(results)} entries: {output_path}")
        return output_path
    except OSError as e:
        logger.error(f"Error generating JSON report: {str(e)}")
        return ""


def generate_reports(results: List[Dict[str, Any]], output_dir: str = REPORTS_PATH) -> Dict[str, str]:
    """
    Generate the CSV and JSON reports for a batch of reconciliations.

    Args:
        results: Reconciliation results
        output_dir: Directory to write into

    Returns:
        Dictionary with 'csv_report_path' and 'json_report_path'
    """
    return {
        'csv_report_path': generate_csv_report(results, output_dir=output_dir),
        'json_report_path': generate_json_report(results, output_dir=output_dir)
    }
