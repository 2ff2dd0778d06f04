#!/usr/bin/env python3
"""
Gap Prioritizer Module

Orders gaps for collection. An externally supplied numeric priority wins
(lower first); without one, the oldest cycle comes first. The first gap after
ordering is the one recommended to the user.
"""

import math
import logging
import dataclasses
from typing import List, Mapping, Optional, Sequence, Union

from rentcycle.models import Gap

# Configure logging
logger = logging.getLogger(__name__)


def priority_key(gap: Gap) -> float:
    """
    Sort key for a gap's priority.

    Missing, NaN or infinite priorities sort last.
    """
    priority = gap.priority
    if priority is None:
        return math.inf

    try:
        value = float(priority)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric priority {priority!r} for gap {gap.gap_id}")
        return math.inf

    if not math.isfinite(value):
        return math.inf
    return value


def prioritize(gaps: Sequence[Gap]) -> List[Gap]:
    """
    Order gaps by priority, then by cycle start.

    Args:
        gaps: Gaps in any order

    Returns:
        New list sorted by (priority ascending, cycle.start ascending).
        sorted() is stable, so gaps with equal keys keep their input order.
    """
    return sorted(gaps, key=lambda g: (priority_key(g), g.cycle.start))


def apply_priorities(
    gaps: Sequence[Gap],
    hints: Optional[Mapping[Union[str, int], float]] = None
) -> List[Gap]:
    """
    Attach external priority hints to gaps.

    Args:
        gaps: Gaps as detected
        hints: Mapping keyed by gap_id ("YYYY-MM-DD_YYYY-MM-DD") or cycle_id

    Returns:
        List of gaps with priority set where a hint matched; the input is not
        modified
    """
    if not hints:
        return list(gaps)

    result = []
    for gap in gaps:
        hint = hints.get(gap.gap_id)
        if hint is None and gap.cycle_id is not None:
            hint = hints.get(gap.cycle_id)
        if hint is None and gap.cycle_id is not None:
            hint = hints.get(str(gap.cycle_id))

        result.append(dataclasses.replace(gap, priority=hint) if hint is not None else gap)

    matched = sum(1 for g in result if g.priority is not None)
    logger.debug(f"Applied {matched} priority hints to {len(result)} gaps")
    return result


def recommended_gap(gaps: Sequence[Gap]) -> Optional[Gap]:
    """The gap to suggest first, or None when there are no gaps."""
    ordered = prioritize(gaps)
    return ordered[0] if ordered else None
