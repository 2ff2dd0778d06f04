#!/usr/bin/env python3
"""
Gap Detector Module

This module walks every completed rent cycle of a tenancy, applies the
payment history to it and reports the cycles that are not fully settled.

Payments are matched to cycles by cycle_id when the id is one of the
tenancy's known cycles, otherwise by the payment's own start/end dates. A
payment that cannot be placed (bad amount, no period, period before the
tenancy started) is left out of every sum and reported as a warning so one
bad record never hides the rest of the tenant's dues.
"""

import logging
import datetime
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from rentcycle.models import (
    CycleStatement,
    Gap,
    Payment,
    RentCycle,
    TenancyContext,
    ReconciliationWarning,
    WarningKind,
)
from rentcycle.cycle_calendar import completed_cycles, join_cycle, tenancy_cycle_containing
from rentcycle.calculations.proration import blended_due
from rentcycle.calculations.payment_status import resolve, overpaid_amount, is_unsettled
from rentcycle.utils.helpers import ZERO, is_finite_amount

# Configure logging
logger = logging.getLogger(__name__)


def _inconsistent(
    warnings: List[ReconciliationWarning],
    payment: Payment,
    message: str
) -> None:
    logger.warning(message)
    warnings.append(
        ReconciliationWarning(WarningKind.INCONSISTENT_PAYMENT, message, payment.payment_id)
    )


def payment_period_start(tenancy: TenancyContext, payment: Payment) -> Optional[datetime.date]:
    """
    Get the date used to place a payment in a cycle.

    A cycle_id that matches a known cycle wins. An unknown cycle_id (the cycle
    row was removed or regenerated by a backend correction) falls back to the
    payment's own start_date, then end_date.
    """
    known = tenancy.known_cycle(payment.cycle_id)
    if known is not None:
        return known.start

    if payment.cycle_id is not None:
        logger.debug(
            f"Payment {payment.payment_id} references unknown cycle {payment.cycle_id}, "
            f"falling back to its own dates"
        )

    return payment.start_date or payment.end_date


def assign_payments(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Dict[datetime.date, List[Payment]]:
    """
    Group payments by the start date of the tenancy cycle they settle.

    Args:
        tenancy: Tenancy context
        payments: Payment history
        warnings: Optional list collecting INCONSISTENT_PAYMENT warnings

    Returns:
        Dictionary mapping cycle start date to the payments applied to it
    """
    if warnings is None:
        warnings = []

    assigned: Dict[datetime.date, List[Payment]] = defaultdict(list)

    if not tenancy.join_date:
        return assigned

    first_start = join_cycle(tenancy).start

    for payment in payments:
        if not is_finite_amount(payment.amount_paid):
            _inconsistent(warnings, payment, f"Payment {payment.payment_id} has a non-numeric amount, excluded")
            continue

        if payment.amount_paid < ZERO:
            _inconsistent(
                warnings, payment,
                f"Payment {payment.payment_id} has negative amount {payment.amount_paid}, excluded"
            )
            continue

        period_start = payment_period_start(tenancy, payment)
        if period_start is None:
            _inconsistent(warnings, payment, f"Payment {payment.payment_id} has no cycle or period, excluded")
            continue

        cycle = tenancy_cycle_containing(tenancy, period_start)
        if cycle.start < first_start:
            _inconsistent(
                warnings, payment,
                f"Payment {payment.payment_id} is for {period_start}, before the tenancy started "
                f"on {tenancy.join_date}, excluded"
            )
            continue

        assigned[cycle.start].append(payment)

    return assigned


def statement_for_cycle(
    tenancy: TenancyContext,
    cycle: RentCycle,
    cycle_payments: Sequence[Payment],
    warnings: Optional[List[ReconciliationWarning]] = None
) -> CycleStatement:
    """
    Build the ledger row for one cycle.

    Args:
        tenancy: Tenancy context
        cycle: Cycle with expected_due not yet set
        cycle_payments: Payments assigned to this cycle
        warnings: Optional list collecting warnings

    Returns:
        CycleStatement carrying the priced cycle, totals and status
    """
    expected = blended_due(tenancy, cycle, warnings)
    priced = RentCycle(
        start=cycle.start,
        end=cycle.end,
        expected_due=expected,
        cycle_id=tenancy.cycle_id_for(cycle.start, cycle.end)
    )

    total_paid = sum((p.amount_paid for p in cycle_payments), ZERO)
    status, remaining = resolve(expected, total_paid)
    overpaid = overpaid_amount(expected, total_paid)

    if overpaid > ZERO:
        message = (
            f"Cycle {cycle.start} to {cycle.end} is overpaid by {overpaid} "
            f"(expected {expected}, paid {total_paid})"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(ReconciliationWarning(WarningKind.INCONSISTENT_PAYMENT, message))

    return CycleStatement(
        cycle=priced,
        total_paid=total_paid,
        status=status,
        remaining_due=remaining,
        overpaid=overpaid,
        payment_count=len(cycle_payments)
    )


def build_cycle_ledger(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    as_of: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> List[CycleStatement]:
    """
    Build a statement for every completed cycle of a tenancy.

    Cycles run from the join cycle up to, but not including, the cycle
    containing as_of.

    Args:
        tenancy: Tenancy context
        payments: Payment history
        as_of: Reconciliation date
        warnings: Optional list collecting warnings

    Returns:
        List of CycleStatement in date order; empty when the join date is
        missing or after as_of
    """
    if not tenancy.join_date:
        logger.warning(f"Tenant {tenancy.tenant_id} has no join date, nothing to reconcile")
        return []

    if tenancy.join_date > as_of:
        logger.info(f"Tenant {tenancy.tenant_id} joins on {tenancy.join_date}, after {as_of}; no dues yet")
        return []

    assigned = assign_payments(tenancy, payments, warnings)

    return [
        statement_for_cycle(tenancy, cycle, assigned.get(cycle.start, []), warnings)
        for cycle in completed_cycles(tenancy, as_of)
    ]


def gap_from_statement(statement: CycleStatement) -> Gap:
    """Convert an unsettled cycle statement into a Gap."""
    return Gap(
        cycle=statement.cycle,
        expected_due=statement.cycle.expected_due,
        total_paid=statement.total_paid,
        remaining_due=statement.remaining_due,
        days_missing=statement.cycle.days,
        status=statement.status,
        cycle_id=statement.cycle.cycle_id
    )


def gaps_from_ledger(ledger: Sequence[CycleStatement]) -> List[Gap]:
    """Gaps for the PARTIAL and PENDING statements of a ledger, in ledger order."""
    return [gap_from_statement(s) for s in ledger if is_unsettled(s.status)]


def detect_gaps(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    as_of: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> List[Gap]:
    """
    Detect the unsettled cycles of a tenancy.

    Args:
        tenancy: Tenancy context
        payments: Payment history
        as_of: Reconciliation date
        warnings: Optional list collecting warnings

    Returns:
        List of Gap for PARTIAL and PENDING cycles, oldest first.
        days_missing is the cycle's length in days.
    """
    ledger = build_cycle_ledger(tenancy, payments, as_of, warnings)
    gaps = gaps_from_ledger(ledger)

    total_remaining = sum((g.remaining_due for g in gaps), ZERO)
    logger.info(
        f"Tenant {tenancy.tenant_id}: {len(ledger)} completed cycles, {len(gaps)} gaps, "
        f"remaining {total_remaining} as of {as_of}"
    )
    return gaps


def ledger_totals(ledger: Sequence[CycleStatement]) -> Tuple[Decimal, Decimal]:
    """Sum of expected dues and of payments across a ledger."""
    expected = sum((s.cycle.expected_due for s in ledger), ZERO)
    paid = sum((s.total_paid for s in ledger), ZERO)
    return expected, paid
