#!/usr/bin/env python3
"""
Payment Status Module

This module derives a cycle's settlement status from the amount expected and
the cumulative amount paid against it. A cycle moves NO_PAYMENT -> PARTIAL ->
PAID as payments accrue; voiding a payment is handled by recomputing from the
updated payment list, never by a reverse transition.
"""

import logging
from decimal import Decimal
from typing import Optional, Tuple

from rentcycle.models import PaymentStatus
from rentcycle.utils.helpers import ZERO, SETTLE_TOLERANCE, round2, to_decimal

# Configure logging
logger = logging.getLogger(__name__)


def resolve(
    expected_due: Optional[Decimal],
    total_paid: Decimal
) -> Tuple[PaymentStatus, Decimal]:
    """
    Resolve the settlement status of a cycle.

    Args:
        expected_due: Amount expected for the cycle, or None when unknown
        total_paid: Sum of payments applied to the cycle

    Returns:
        Tuple of (status, remaining_due). NO_PAYMENT is returned when the
        expected amount is unknown or zero.
    """
    paid = to_decimal(total_paid)

    if expected_due is None or to_decimal(expected_due) <= ZERO:
        return PaymentStatus.NO_PAYMENT, ZERO

    expected = to_decimal(expected_due)
    remaining = round2(max(ZERO, expected - paid))

    if paid >= expected - SETTLE_TOLERANCE:
        return PaymentStatus.PAID, remaining

    if paid > ZERO:
        return PaymentStatus.PARTIAL, remaining

    return PaymentStatus.PENDING, remaining


def overpaid_amount(expected_due: Optional[Decimal], total_paid: Decimal) -> Decimal:
    """
    Amount paid beyond what the cycle expects.

    Overpayment is reported rather than rejected; the collection layer is
    what prevents it going forward.
    """
    if expected_due is None:
        return ZERO

    excess = to_decimal(total_paid) - to_decimal(expected_due)
    if excess > SETTLE_TOLERANCE:
        return round2(excess)
    return ZERO


def is_unsettled(status: PaymentStatus) -> bool:
    """Statuses that surface as gaps."""
    return status in (PaymentStatus.PARTIAL, PaymentStatus.PENDING)
