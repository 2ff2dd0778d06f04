#!/usr/bin/env python3
"""
Helper utilities for the rent-cycle reconciliation engine.

This module contains the money and date primitives shared by every engine
component: two-place decimal rounding, the settlement tolerance, day counting
and currency formatting.
"""

import json
import logging
import calendar
import datetime
from decimal import Decimal, Context, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional, Union

# Configure logging
logger = logging.getLogger(__name__)

MONEY_QUANTIZE = Decimal('0.01')  # Round to 2 decimal places
SETTLE_TOLERANCE = Decimal('0.01')  # Absorbs rounding drift when comparing dues
ZERO = Decimal('0')

# Local context so the engine never touches the global decimal context
MONEY_CONTEXT = Context(prec=28, rounding=ROUND_HALF_UP)


def load_json(file_path: str) -> Any:
    """
    Load a JSON file and return its contents.

    Args:
        file_path: Path to the JSON file

    Returns:
        Parsed JSON contents

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        raise
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in file: {file_path}")
        raise


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert a numeric value to Decimal without float artefacts.

    Floats go through str() so 0.1 becomes Decimal('0.1') rather than its
    binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(amount: Union[Decimal, int, float, str]) -> Decimal:
    """
    Round a money amount half-up to 2 decimal places.

    Args:
        amount: Amount to round

    Returns:
        Decimal rounded to 2 decimal places
    """
    return to_decimal(amount).quantize(MONEY_QUANTIZE, rounding=ROUND_HALF_UP)


def per_day_amount(price: Decimal, basis_days: int, days: int) -> Decimal:
    """
    Price for `days` out of `basis_days`, unrounded.

    Divides first and multiplies second, matching how the prorated amounts are
    quoted to tenants.
    """
    daily = MONEY_CONTEXT.divide(to_decimal(price), Decimal(basis_days))
    return MONEY_CONTEXT.multiply(daily, Decimal(days))


def is_finite_amount(value: Any) -> bool:
    """Check that a value is a finite Decimal."""
    return isinstance(value, Decimal) and value.is_finite()


def days_in_month(day: datetime.date) -> int:
    """Number of days in the month of the given date."""
    return calendar.monthrange(day.year, day.month)[1]


def days_between(start: datetime.date, end: datetime.date) -> int:
    """
    Inclusive day count between two dates.

    Args:
        start: First day
        end: Last day

    Returns:
        (end - start) + 1 days; zero or negative when end precedes start
    """
    return (end - start).days + 1


def clamp_days(days: int, upper: int) -> int:
    """Clamp a day count into [1, upper]."""
    if upper < 1:
        return 1
    return max(1, min(days, upper))


def format_currency(amount: Optional[Union[Decimal, float, int, str]], symbol: str = "₹") -> str:
    """
    Format a number as currency.

    Args:
        amount: Amount to format
        symbol: Currency symbol prefix

    Returns:
        Formatted currency string
    """
    try:
        if amount is None or amount == "":
            return f"{symbol}0.00"
        return f"{symbol}{round2(amount):,.2f}"
    except (ValueError, TypeError, InvalidOperation):
        logger.error(f"Invalid currency amount: {amount}")
        return f"{symbol}0.00"
