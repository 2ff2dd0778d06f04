#!/usr/bin/env python3
"""
Transfer Difference Module

When a tenant moves to a different bed partway through a cycle, the rest of
that cycle is billed at the new bed's price. This module calculates the
incremental amount owed (or, for a downgrade, the reduction) for the
remainder of the cycle.
"""

import logging
import datetime
from decimal import Decimal
from typing import List, Optional

from rentcycle.models import (
    RentCycle,
    TenancyContext,
    TransferDifference,
    ReconciliationWarning,
    WarningKind,
)
from rentcycle.cycle_calendar import tenancy_cycle_containing
from rentcycle.calculations.proration import is_prorated_cycle
from rentcycle.utils.helpers import (
    ZERO,
    round2,
    to_decimal,
    per_day_amount,
    days_between,
    days_in_month,
    clamp_days
)

# Configure logging
logger = logging.getLogger(__name__)


def transfer_difference(
    cycle: RentCycle,
    old_price: Decimal,
    new_price: Decimal,
    transfer_date: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None,
    basis_days: Optional[int] = None
) -> TransferDifference:
    """
    Calculate the difference owed for the remainder of a cycle after a transfer.

    Args:
        cycle: Cycle in which the transfer takes effect
        old_price: Full-cycle price of the bed being left
        new_price: Full-cycle price of the new bed
        transfer_date: First day at the new bed
        warnings: Optional list collecting ARITHMETIC_EDGE warnings
        basis_days: Days the full-cycle price is spread over. Defaults to the
            cycle length; a prorated join cycle uses its month length

    Returns:
        TransferDifference with the signed difference and a non-negative
        amount_due. A negative difference (downgrade) is reported as is;
        whether it is refunded is decided outside the engine.
    """
    cycle_days = cycle.days
    if basis_days is None:
        basis_days = cycle_days
    remainder_days = clamp_days(days_between(transfer_date, cycle.end), cycle_days)

    if not cycle.contains(transfer_date):
        message = (
            f"Transfer date {transfer_date} is outside cycle {cycle.start} to {cycle.end}, "
            f"remainder clamped to {remainder_days} days"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(ReconciliationWarning(WarningKind.ARITHMETIC_EDGE, message))

    expected_new = round2(per_day_amount(to_decimal(new_price), basis_days, remainder_days))
    expected_old = round2(per_day_amount(to_decimal(old_price), basis_days, remainder_days))
    difference = expected_new - expected_old

    logger.debug(
        f"Transfer on {transfer_date}: {remainder_days}/{basis_days} days, "
        f"new={expected_new}, old={expected_old}, difference={difference}"
    )

    return TransferDifference(
        cycle=cycle,
        transfer_date=transfer_date,
        remainder_days=remainder_days,
        expected_at_new_price=expected_new,
        expected_at_old_price=expected_old,
        difference=difference,
        amount_due=max(ZERO, difference)
    )


def transfer_differences(
    tenancy: TenancyContext,
    as_of: datetime.date,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> List[TransferDifference]:
    """
    Calculate transfer differences for every mid-cycle allocation change.

    Args:
        tenancy: Tenancy context with allocation history
        as_of: Reconciliation date; transfers after it are ignored
        warnings: Optional list collecting ARITHMETIC_EDGE warnings

    Returns:
        List of TransferDifference, oldest transfer first. Transfers that take
        effect on a cycle's first day are skipped since the whole cycle is
        billed at the new price. Inside a prorated join cycle the remainder is
        priced per day of the month, as the cycle's expected due is.
    """
    results = []

    if not tenancy.join_date:
        return results

    allocations = sorted(tenancy.allocations, key=lambda a: a.effective_from)

    for previous, current in zip(allocations, allocations[1:]):
        transfer_date = current.effective_from

        if transfer_date > as_of or transfer_date <= tenancy.join_date:
            continue

        cycle = tenancy_cycle_containing(tenancy, transfer_date)
        if transfer_date == cycle.start:
            continue

        if previous.bed_price == current.bed_price:
            logger.debug(f"Transfer on {transfer_date} keeps price {current.bed_price}, no difference")
            continue

        basis_days = cycle.days
        if is_prorated_cycle(cycle, tenancy.join_date, tenancy.policy):
            basis_days = days_in_month(cycle.start)

        results.append(
            transfer_difference(
                cycle, previous.bed_price, current.bed_price, transfer_date, warnings, basis_days
            )
        )

    logger.info(f"Found {len(results)} mid-cycle transfers for tenant {tenancy.tenant_id}")
    return results
