#!/usr/bin/env python3
"""
Next Cycle Suggester Module

When a tenant has no gaps, the next payment goes to the cycle right after the
latest fully settled one. Payments made in advance push that cycle forward,
so the scan runs through the later of the reconciliation date and the last
cycle that has a payment.
"""

import logging
import datetime
from typing import List, Optional, Sequence, Tuple

from rentcycle.models import Payment, RentCycle, TenancyContext, ReconciliationWarning
from rentcycle.exceptions import InvalidTenancyError
from rentcycle.cycle_calendar import join_cycle, next_cycle, tenancy_cycles
from rentcycle.calculations.proration import blended_due
from rentcycle.gap_detector import assign_payments, statement_for_cycle, detect_gaps

# Configure logging
logger = logging.getLogger(__name__)


def price_cycle(
    tenancy: TenancyContext,
    cycle: RentCycle,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> RentCycle:
    """Attach the expected due and any known cycle_id to a bare cycle."""
    return RentCycle(
        start=cycle.start,
        end=cycle.end,
        expected_due=blended_due(tenancy, cycle, warnings),
        cycle_id=tenancy.cycle_id_for(cycle.start, cycle.end)
    )


def last_settled_cycle(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    as_of: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Optional[RentCycle]:
    """
    Find the most recent fully paid cycle.

    Args:
        tenancy: Tenancy context
        payments: Payment history
        as_of: Reconciliation date
        warnings: Optional list collecting warnings

    Returns:
        The latest PAID cycle, or None if nothing is settled yet
    """
    assigned = assign_payments(tenancy, payments, warnings)

    horizon = as_of
    if assigned:
        horizon = max(horizon, max(assigned))

    settled = None
    for cycle in tenancy_cycles(tenancy, horizon):
        statement = statement_for_cycle(tenancy, cycle, assigned.get(cycle.start, []))
        if statement.is_settled:
            settled = statement.cycle

    return settled


def suggest_next(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    as_of: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Tuple[RentCycle, Optional[int]]:
    """
    Suggest the cycle a fresh, non-backdated payment should settle.

    Args:
        tenancy: Tenancy context
        payments: Payment history
        as_of: Reconciliation date
        warnings: Optional list collecting ARITHMETIC_EDGE warnings raised while
            pricing the suggested cycle

    Returns:
        Tuple of (cycle with expected_due, cycle_id hint or None)

    Raises:
        InvalidTenancyError: If the tenancy has no join date
    """
    if not tenancy.join_date:
        raise InvalidTenancyError("Join date is required to suggest a rent cycle", tenancy.tenant_id)

    if detect_gaps(tenancy, payments, as_of):
        logger.warning(
            f"Tenant {tenancy.tenant_id} still has unsettled cycles; suggesting the next cycle anyway"
        )

    # Payment record warnings belong to the ledger pass over the same history
    settled = last_settled_cycle(tenancy, payments, as_of)

    if settled is None:
        candidate = join_cycle(tenancy)
    else:
        candidate = next_cycle(tenancy.policy, settled, tenancy.effective_anchor_day)

    suggestion = price_cycle(tenancy, candidate, warnings)
    logger.info(
        f"Tenant {tenancy.tenant_id}: next cycle {suggestion.start} to {suggestion.end}, "
        f"expected {suggestion.expected_due}, cycle_id {suggestion.cycle_id}"
    )
    return suggestion, suggestion.cycle_id
