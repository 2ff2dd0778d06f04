#!/usr/bin/env python3
"""
Collection Validation Module

Checks an amount a user is about to collect against the engine's own
expected and remaining due before it is handed to the payment ledger.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Tuple, Union

from rentcycle.models import Gap, PaymentStatus, RentCycle
from rentcycle.exceptions import CollectionRejectedError
from rentcycle.calculations.payment_status import resolve
from rentcycle.utils.helpers import ZERO, round2, to_decimal

# Configure logging
logger = logging.getLogger(__name__)


def _as_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    try:
        value = to_decimal(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise CollectionRejectedError(f"Amount {amount!r} is not a number")

    if not value.is_finite():
        raise CollectionRejectedError(f"Amount {amount!r} is not a finite number")
    return value


def validate_collection(
    amount: Union[Decimal, int, float, str],
    expected_due: Decimal,
    already_paid: Decimal = ZERO
) -> Tuple[PaymentStatus, Decimal]:
    """
    Validate a collection against a cycle's dues.

    Args:
        amount: Amount the user wants to collect
        expected_due: Expected due for the cycle
        already_paid: Amount already applied to the cycle

    Returns:
        Tuple of (status, remaining_due) the cycle will have after the payment

    Raises:
        CollectionRejectedError: If the amount is not positive or exceeds the
            remaining due
    """
    value = _as_amount(amount)

    if value <= ZERO:
        raise CollectionRejectedError("Amount paid is required")

    expected = to_decimal(expected_due)
    if expected <= ZERO:
        raise CollectionRejectedError("Expected amount for this cycle could not be calculated")

    _, remaining = resolve(expected, to_decimal(already_paid))

    if value > remaining:
        logger.info(f"Rejected collection of {value}: remaining due is {remaining}")
        raise CollectionRejectedError(f"Amount paid cannot exceed {round2(remaining)}")

    return resolve(expected, to_decimal(already_paid) + value)


def validate_gap_collection(
    gap: Gap,
    amount: Union[Decimal, int, float, str]
) -> Tuple[PaymentStatus, Decimal]:
    """Validate a collection against a selected gap."""
    return validate_collection(amount, gap.expected_due, gap.total_paid)


def validate_cycle_collection(
    cycle: RentCycle,
    amount: Union[Decimal, int, float, str]
) -> Tuple[PaymentStatus, Decimal]:
    """Validate a collection against a suggested cycle with nothing paid yet."""
    return validate_collection(amount, cycle.expected_due, ZERO)
