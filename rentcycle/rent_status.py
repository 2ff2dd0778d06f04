#!/usr/bin/env python3
"""
Rent Status Module

Builds the per-tenancy RentStatusSummary shown in pending-due banners. The
presentation layer only formats these numbers; it never re-derives them.
"""

import logging
from typing import Sequence

from rentcycle.models import Gap, Payment, PaymentStatus, RentStatusSummary
from rentcycle.utils.helpers import ZERO, round2, is_finite_amount

# Configure logging
logger = logging.getLogger(__name__)

LABEL_PAID = "RENT PAID"
LABEL_PARTIAL = "RENT PARTIAL"
LABEL_PARTIAL_PENDING = "RENT PARTIAL + PENDING"
LABEL_NOT_PAID = "RENT NOT PAID"
LABEL_PENDING = "RENT PENDING"


def status_label(pending_due, partial_due, payment_status: PaymentStatus) -> str:
    """
    Get the overall rent label.

    Args:
        pending_due: Total remaining on cycles with no payment
        partial_due: Total remaining on partially paid cycles
        payment_status: Overall payment status

    Returns:
        Label string
    """
    rent_due = pending_due + partial_due

    if rent_due <= ZERO:
        return LABEL_PAID

    if partial_due > ZERO:
        return LABEL_PARTIAL_PENDING if pending_due > ZERO else LABEL_PARTIAL

    if payment_status == PaymentStatus.NO_PAYMENT:
        return LABEL_NOT_PAID

    return LABEL_PENDING


def summarize(gaps: Sequence[Gap], payments: Sequence[Payment]) -> RentStatusSummary:
    """
    Aggregate gaps into a RentStatusSummary.

    Args:
        gaps: Gaps detected for the tenancy
        payments: Payment history, used to tell "never paid" from "behind"

    Returns:
        RentStatusSummary
    """
    pending_due = round2(sum((g.remaining_due for g in gaps if g.status == PaymentStatus.PENDING), ZERO))
    partial_due = round2(sum((g.remaining_due for g in gaps if g.status == PaymentStatus.PARTIAL), ZERO))

    has_payments = any(
        is_finite_amount(p.amount_paid) and p.amount_paid > ZERO for p in payments
    )

    if not has_payments:
        payment_status = PaymentStatus.NO_PAYMENT
    elif pending_due > ZERO:
        payment_status = PaymentStatus.PENDING
    elif partial_due > ZERO:
        payment_status = PaymentStatus.PARTIAL
    else:
        payment_status = PaymentStatus.PAID

    summary = RentStatusSummary(
        pending_due=pending_due,
        partial_due=partial_due,
        rent_due=pending_due + partial_due,
        pending_months=len(gaps),
        payment_status=payment_status,
        label=status_label(pending_due, partial_due, payment_status)
    )

    logger.debug(f"Rent status: {summary.label}, pending={pending_due}, partial={partial_due}")
    return summary
