#!/usr/bin/env python3
"""
Cycle Calendar Module

This module turns dates into rent-cycle boundaries for the two cycle policies:

- CALENDAR: the 1st through the last day of a month.
- MIDMONTH: from the tenancy's anchor day through the day before the anchor
  in the following month.

Cycles are identified by the month their end falls in. In a MIDMONTH cycle the
end is the day before the anchor, clamped to the month length, so an anchor on
the 29th-31st lands on the last day of short months (a cycle starting
2024-01-31 ends 2024-02-29) and the next cycle begins the following day.
"""

import logging
import datetime
from typing import Iterator, Optional, Tuple

from dateutil.relativedelta import relativedelta

from rentcycle.models import RentCycle, RentCyclePolicy, TenancyContext
from rentcycle.utils.helpers import days_in_month

# Configure logging
logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)


def resolve_anchor_day(
    policy: RentCyclePolicy,
    anchor_day: Optional[int],
    fallback: datetime.date
) -> int:
    """
    Get the anchor day-of-month used for cycle boundaries.

    Args:
        policy: Rent cycle policy
        anchor_day: Configured anchor day (MIDMONTH only)
        fallback: Date whose day is used when no anchor is configured

    Returns:
        Anchor day between 1 and 31
    """
    if policy == RentCyclePolicy.CALENDAR:
        return 1

    if anchor_day is None:
        return fallback.day

    if not 1 <= anchor_day <= 31:
        logger.warning(f"Anchor day {anchor_day} out of range, using {fallback.day}")
        return fallback.day

    return anchor_day


def cycle_end_in_month(year: int, month: int, anchor_day: int) -> datetime.date:
    """
    Get the end of the cycle that finishes in the given month.

    Args:
        year: Year
        month: Month (1-12)
        anchor_day: Anchor day-of-month

    Returns:
        The day before the anchor, clamped to the month length; the last day
        of the month for anchor 1
    """
    last_day = days_in_month(datetime.date(year, month, 1))

    if anchor_day <= 1:
        return datetime.date(year, month, last_day)

    return datetime.date(year, month, min(anchor_day - 1, last_day))


def cycle_containing(
    policy: RentCyclePolicy,
    any_date: datetime.date,
    anchor_day: Optional[int] = None
) -> Tuple[datetime.date, datetime.date]:
    """
    Compute the start and end of the rent cycle containing a date.

    Args:
        policy: Rent cycle policy
        any_date: Any date inside the wanted cycle
        anchor_day: Anchor day-of-month for MIDMONTH (defaults to any_date.day)

    Returns:
        Tuple of (start, end), both inclusive
    """
    anchor = resolve_anchor_day(policy, anchor_day, any_date)

    end = cycle_end_in_month(any_date.year, any_date.month, anchor)
    if any_date > end:
        following = datetime.date(any_date.year, any_date.month, 1) + relativedelta(months=1)
        end = cycle_end_in_month(following.year, following.month, anchor)

    preceding = datetime.date(end.year, end.month, 1) - relativedelta(months=1)
    start = cycle_end_in_month(preceding.year, preceding.month, anchor) + ONE_DAY

    return start, end


def _fallback_anchor(policy: RentCyclePolicy, cycle: RentCycle) -> int:
    """Anchor to step from when the caller did not pass one."""
    if policy == RentCyclePolicy.MIDMONTH:
        logger.warning(
            f"No anchor day given for MIDMONTH cycle {cycle.start} to {cycle.end}, "
            f"stepping with anchor {cycle.start.day}"
        )
    return cycle.start.day


def next_cycle(
    policy: RentCyclePolicy,
    cycle: RentCycle,
    anchor_day: Optional[int] = None
) -> RentCycle:
    """
    Step forward exactly one cycle.

    For MIDMONTH without an explicit anchor the start day of `cycle` is used
    and a warning is logged, since a cycle shifted by a short month starts on
    a different day than its anchor. Pass the tenancy anchor whenever it is known.
    """
    if anchor_day is None:
        anchor_day = _fallback_anchor(policy, cycle)

    start = cycle.end + ONE_DAY
    _, end = cycle_containing(policy, start, anchor_day)
    return RentCycle(start=start, end=end)


def previous_cycle(
    policy: RentCyclePolicy,
    cycle: RentCycle,
    anchor_day: Optional[int] = None
) -> RentCycle:
    """Step back exactly one cycle."""
    if anchor_day is None:
        anchor_day = _fallback_anchor(policy, cycle)

    end = cycle.start - ONE_DAY
    start, _ = cycle_containing(policy, end, anchor_day)
    return RentCycle(start=start, end=end)


def iter_cycles(
    policy: RentCyclePolicy,
    first_start: datetime.date,
    until: datetime.date,
    anchor_day: Optional[int] = None
) -> Iterator[RentCycle]:
    """
    Generate contiguous cycles from first_start through the cycle containing until.

    The first cycle runs from first_start to the end of the cycle containing
    it, so a mid-cycle join produces a shortened first cycle.

    Args:
        policy: Rent cycle policy
        first_start: Start of the first cycle
        until: Last date that must be covered
        anchor_day: Anchor day-of-month for MIDMONTH

    Yields:
        RentCycle objects with expected_due left at zero
    """
    anchor = resolve_anchor_day(policy, anchor_day, first_start)
    _, end = cycle_containing(policy, first_start, anchor)
    cycle = RentCycle(start=first_start, end=end)

    while cycle.start <= until:
        yield cycle
        cycle = next_cycle(policy, cycle, anchor)


def tenancy_cycle_containing(tenancy: TenancyContext, day: datetime.date) -> RentCycle:
    """
    Get the tenancy's cycle containing a date.

    Same as cycle_containing, except that the join cycle starts on the join
    date rather than on the natural cycle start.
    """
    start, end = cycle_containing(tenancy.policy, day, tenancy.effective_anchor_day)

    if tenancy.join_date and start < tenancy.join_date <= end:
        start = tenancy.join_date

    return RentCycle(start=start, end=end)


def join_cycle(tenancy: TenancyContext) -> RentCycle:
    """The first cycle of a tenancy."""
    return tenancy_cycle_containing(tenancy, tenancy.join_date)


def tenancy_cycles(tenancy: TenancyContext, until: datetime.date) -> Iterator[RentCycle]:
    """Generate the tenancy's cycles from the join cycle through the cycle containing until."""
    if not tenancy.join_date:
        return iter(())

    return iter_cycles(
        tenancy.policy,
        tenancy.join_date,
        until,
        tenancy.effective_anchor_day
    )


def completed_cycles(tenancy: TenancyContext, as_of: datetime.date) -> Iterator[RentCycle]:
    """Generate the tenancy's cycles that end before the cycle containing as_of."""
    for cycle in tenancy_cycles(tenancy, as_of):
        if cycle.contains(as_of):
            break
        yield cycle


def get_cycle_info(policy: RentCyclePolicy, cycle: RentCycle) -> dict:
    """
    Get display information about a cycle.

    Args:
        policy: Rent cycle policy
        cycle: Rent cycle

    Returns:
        Dictionary with start, end, day count and a label ("January 2024" for
        CALENDAR, "15 Jan 2024 - 14 Feb 2024" for MIDMONTH)
    """
    if policy == RentCyclePolicy.CALENDAR:
        label = cycle.start.strftime("%B %Y")
    else:
        label = f"{cycle.start.strftime('%d %b %Y')} - {cycle.end.strftime('%d %b %Y')}"

    return {
        'start': cycle.start,
        'end': cycle.end,
        'days': cycle.days,
        'days_in_month': days_in_month(cycle.start),
        'label': label
    }


if __name__ == "__main__":
    # Example usage
    import sys

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    start_date = datetime.date(2024, 1, 31)
    until_date = datetime.date(2024, 6, 30)

    if len(sys.argv) > 1:
        start_date = datetime.date.fromisoformat(sys.argv[1])

    if len(sys.argv) > 2:
        until_date = datetime.date.fromisoformat(sys.argv[2])

    for policy in RentCyclePolicy:
        print(f"\n{policy.value} cycles from {start_date} to {until_date}:")
        for cycle in iter_cycles(policy, start_date, until_date, start_date.day):
            info = get_cycle_info(policy, cycle)
            print(f"- {info['label']} ({info['days']} days)")
