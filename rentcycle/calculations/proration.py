#!/usr/bin/env python3
"""
Proration Module

This module calculates the expected rent for a cycle. The join-month cycle of
a CALENDAR tenancy that starts after the 1st is prorated by day count; cycles
that span a bed transfer are blended by the number of days spent at each
allocation's price.
"""

import logging
import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from rentcycle.models import (
    RentCycle,
    RentCyclePolicy,
    TenancyContext,
    ReconciliationWarning,
    WarningKind,
)
from rentcycle.utils.helpers import (
    ZERO,
    round2,
    to_decimal,
    per_day_amount,
    days_in_month,
    days_between,
    clamp_days,
)

# Configure logging
logger = logging.getLogger(__name__)


def is_prorated_cycle(
    cycle: RentCycle,
    join_date: Optional[datetime.date],
    policy: RentCyclePolicy = RentCyclePolicy.CALENDAR
) -> bool:
    """
    Check whether a cycle is a prorated join-month cycle.

    Only CALENDAR cycles are prorated; MIDMONTH cycles always start on the
    tenant's anchor day.
    """
    if policy != RentCyclePolicy.CALENDAR or not join_date:
        return False

    is_join_month = (
        cycle.start.year == join_date.year and cycle.start.month == join_date.month
    )
    return is_join_month and join_date.day > 1


def prorated_due(
    cycle: RentCycle,
    join_date: Optional[datetime.date],
    full_cycle_price: Decimal,
    policy: RentCyclePolicy = RentCyclePolicy.CALENDAR,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Decimal:
    """
    Calculate the expected rent for a cycle.

    Args:
        cycle: Rent cycle
        join_date: Tenant join date
        full_cycle_price: Full price of one cycle
        policy: Rent cycle policy
        warnings: Optional list collecting ARITHMETIC_EDGE warnings

    Returns:
        price / days_in_month * days_stayed rounded half-up to 2 places for a
        prorated join cycle, otherwise full_cycle_price unchanged
    """
    price = to_decimal(full_cycle_price)

    if not is_prorated_cycle(cycle, join_date, policy):
        return price

    month_days = days_in_month(cycle.start)
    days_stayed = clamp_days(cycle.days, month_days)

    if days_stayed != cycle.days:
        message = (
            f"Cycle {cycle.start} to {cycle.end} has {cycle.days} days, "
            f"clamped to {days_stayed} for proration"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(ReconciliationWarning(WarningKind.ARITHMETIC_EDGE, message))

    amount = round2(per_day_amount(price, month_days, days_stayed))
    logger.debug(f"Prorated {price} over {days_stayed}/{month_days} days: {amount}")
    return amount


def price_segments(
    tenancy: TenancyContext,
    cycle: RentCycle
) -> List[Tuple[Decimal, int]]:
    """
    Split a cycle into runs of days billed at the same price.

    Args:
        tenancy: Tenancy context with allocation history
        cycle: Rent cycle

    Returns:
        List of (price, day_count) tuples in date order; consecutive days at
        equal prices are merged
    """
    segments: List[Tuple[Decimal, int]] = []
    day = cycle.start
    one_day = datetime.timedelta(days=1)

    while day <= cycle.end:
        allocation = tenancy.allocation_on(day)

        if allocation is None:
            price = tenancy.bed_price
            run_end = cycle.end
            # Stop the fallback run where the next allocation begins
            for candidate in tenancy.allocations:
                if day < candidate.effective_from <= run_end:
                    run_end = candidate.effective_from - one_day
        else:
            price = allocation.bed_price
            run_end = cycle.end
            if allocation.effective_to is not None and allocation.effective_to < run_end:
                run_end = allocation.effective_to

        run_days = days_between(day, run_end)
        if segments and segments[-1][0] == price:
            segments[-1] = (price, segments[-1][1] + run_days)
        else:
            segments.append((price, run_days))

        day = run_end + one_day

    return segments


def blended_due(
    tenancy: TenancyContext,
    cycle: RentCycle,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Decimal:
    """
    Calculate a cycle's expected due from the tenancy's allocation history.

    With one active price this is prorated_due. When a transfer changes the
    price inside the cycle, each price is weighted by its day count over the
    basis (month length for a prorated join cycle, cycle length otherwise).

    Args:
        tenancy: Tenancy context
        cycle: Rent cycle
        warnings: Optional list collecting ARITHMETIC_EDGE warnings

    Returns:
        Expected due rounded to 2 decimal places
    """
    segments = price_segments(tenancy, cycle)

    if len(segments) <= 1:
        price = segments[0][0] if segments else tenancy.bed_price
        return round2(prorated_due(cycle, tenancy.join_date, price, tenancy.policy, warnings))

    if is_prorated_cycle(cycle, tenancy.join_date, tenancy.policy):
        basis_days = days_in_month(cycle.start)
    else:
        basis_days = cycle.days

    total = ZERO
    for price, day_count in segments:
        total += per_day_amount(price, basis_days, day_count)

    amount = round2(total)
    logger.debug(
        f"Blended {len(segments)} allocation prices over cycle {cycle.start} to {cycle.end}: {amount}"
    )
    return amount
