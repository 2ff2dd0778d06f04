#!/usr/bin/env python3
"""
Data Model Module

Typed snapshots consumed and produced by the reconciliation engine. Records
coming from the backend are converted into these types by
rentcycle.ingestion before any engine function sees them.
"""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from rentcycle.utils.helpers import ZERO, days_between


class RentCyclePolicy(str, Enum):
    CALENDAR = "CALENDAR"
    MIDMONTH = "MIDMONTH"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    PENDING = "PENDING"
    NO_PAYMENT = "NO_PAYMENT"


class WarningKind(str, Enum):
    INCONSISTENT_PAYMENT = "INCONSISTENT_PAYMENT"
    ARITHMETIC_EDGE = "ARITHMETIC_EDGE"


@dataclass(frozen=True)
class RentCycle:
    """One billing period, inclusive on both ends."""

    start: datetime.date
    end: datetime.date
    expected_due: Decimal = ZERO
    cycle_id: Optional[int] = None

    @property
    def days(self) -> int:
        return days_between(self.start, self.end)

    def contains(self, day: datetime.date) -> bool:
        return self.start <= day <= self.end

    def same_period(self, other: "RentCycle") -> bool:
        return self.start == other.start and self.end == other.end


@dataclass(frozen=True)
class BedAllocation:
    """A bed assignment and the price snapshot taken when it started."""

    effective_from: datetime.date
    bed_price: Decimal
    effective_to: Optional[datetime.date] = None
    bed_id: Optional[int] = None

    @property
    def is_current(self) -> bool:
        return self.effective_to is None

    def covers(self, day: datetime.date) -> bool:
        if day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to


@dataclass(frozen=True)
class TenancyContext:
    """
    Everything the engine needs to know about one tenancy.

    `allocations` are ordered by effective_from. `known_cycles` are the cycle
    rows the backend has already created, carrying their ids so payments
    recorded against a cycle_id can be matched and new payments can be
    pointed at an existing row.
    """

    tenant_id: Optional[int]
    join_date: Optional[datetime.date]
    policy: RentCyclePolicy
    bed_price: Decimal
    allocations: Tuple[BedAllocation, ...] = ()
    anchor_day: Optional[int] = None
    known_cycles: Tuple[RentCycle, ...] = ()

    @property
    def effective_anchor_day(self) -> int:
        if self.policy == RentCyclePolicy.CALENDAR:
            return 1
        if self.anchor_day:
            return self.anchor_day
        return self.join_date.day if self.join_date else 1

    def allocation_on(self, day: datetime.date) -> Optional[BedAllocation]:
        for allocation in self.allocations:
            if allocation.covers(day):
                return allocation
        return None

    def price_on(self, day: datetime.date) -> Decimal:
        allocation = self.allocation_on(day)
        return allocation.bed_price if allocation else self.bed_price

    def known_cycle(self, cycle_id: Optional[int]) -> Optional[RentCycle]:
        if cycle_id is None:
            return None
        for cycle in self.known_cycles:
            if cycle.cycle_id == cycle_id:
                return cycle
        return None

    def cycle_id_for(self, start: datetime.date, end: datetime.date) -> Optional[int]:
        for cycle in self.known_cycles:
            if cycle.start == start and cycle.end == end:
                return cycle.cycle_id
        return None


@dataclass(frozen=True)
class Payment:
    amount_paid: Decimal
    payment_date: Optional[datetime.date]
    cycle_id: Optional[int] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    status: Optional[PaymentStatus] = None
    payment_id: Optional[int] = None


@dataclass(frozen=True)
class Gap:
    """An unsettled cycle. Derived on every pass, never stored."""

    cycle: RentCycle
    expected_due: Decimal
    total_paid: Decimal
    remaining_due: Decimal
    days_missing: int
    status: PaymentStatus
    priority: Optional[float] = None
    cycle_id: Optional[int] = None

    @property
    def gap_id(self) -> str:
        return f"{self.cycle.start.isoformat()}_{self.cycle.end.isoformat()}"


@dataclass(frozen=True)
class CycleStatement:
    cycle: RentCycle
    total_paid: Decimal
    status: PaymentStatus
    remaining_due: Decimal
    overpaid: Decimal = ZERO
    payment_count: int = 0

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.PAID


@dataclass(frozen=True)
class RentStatusSummary:
    pending_due: Decimal
    partial_due: Decimal
    rent_due: Decimal
    pending_months: int
    payment_status: PaymentStatus
    label: str


@dataclass(frozen=True)
class ReconciliationWarning:
    kind: WarningKind
    message: str
    payment_id: Optional[int] = None


@dataclass(frozen=True)
class TransferDifference:
    cycle: RentCycle
    transfer_date: datetime.date
    remainder_days: int
    expected_at_new_price: Decimal
    expected_at_old_price: Decimal
    difference: Decimal
    amount_due: Decimal = field(default=ZERO)

    @property
    def is_downgrade(self) -> bool:
        return self.difference < ZERO
