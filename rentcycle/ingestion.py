#!/usr/bin/env python3
"""
Ingestion Module

Converts tenant and payment records as returned by the backend API (loosely
typed dictionaries) into the typed models the engine accepts.

Dates follow one policy: ISO-8601 calendar dates only, either YYYY-MM-DD or a
full ISO timestamp whose date part is used. Locale formats such as 03/04/2024
are rejected instead of guessed, since the day and month cannot be told apart.
"""

import re
import logging
import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dateutil.parser import isoparse

from rentcycle.models import (
    BedAllocation,
    Payment,
    PaymentStatus,
    RentCycle,
    RentCyclePolicy,
    TenancyContext,
    ReconciliationWarning,
    WarningKind,
)
from rentcycle.exceptions import InvalidTenancyError, InconsistentPaymentError
from rentcycle.utils.helpers import ZERO, round2, to_decimal

# Configure logging
logger = logging.getLogger(__name__)

ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}(?:$|[T ])')


def parse_date(value: Any) -> Optional[datetime.date]:
    """
    Parse a date under the ISO-only policy.

    Args:
        value: date, datetime, ISO string, or empty value

    Returns:
        datetime.date, or None for an empty value

    Raises:
        ValueError: If the value is not an ISO-8601 date
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime.datetime):
        return value.date()

    if isinstance(value, datetime.date):
        return value

    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    text = value.strip()
    if not ISO_DATE_PREFIX.match(text):
        raise ValueError(f"Date is not ISO-8601 (YYYY-MM-DD): {value!r}")

    return isoparse(text).date()


def parse_money(value: Any) -> Decimal:
    """
    Parse a money amount.

    Args:
        value: Number or numeric string

    Returns:
        Decimal rounded to 2 places

    Raises:
        ValueError: If the value is missing, not numeric, NaN or infinite
    """
    if value is None or value == "" or isinstance(value, bool):
        raise ValueError(f"Missing amount: {value!r}")

    try:
        amount = to_decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Amount is not numeric: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Amount is not finite: {value!r}")

    return round2(amount)


def parse_policy(value: Any) -> RentCyclePolicy:
    """Parse a rent cycle policy name, rejecting unknown values."""
    name = str(value or "").strip().upper()
    if name not in RentCyclePolicy.__members__:
        raise ValueError(f"Unrecognized rent cycle type: {value!r}")
    return RentCyclePolicy[name]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _nested(record: Dict[str, Any], *path: str) -> Any:
    current: Any = record
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def parse_allocation(record: Dict[str, Any]) -> BedAllocation:
    """
    Parse a bed allocation record.

    Accepts bed_price_snapshot or bed_price for the price.

    Raises:
        ValueError: If a date or the price is invalid
    """
    effective_from = parse_date(record.get('effective_from'))
    if effective_from is None:
        raise ValueError("Allocation has no effective_from date")

    price = record.get('bed_price_snapshot')
    if price is None or price == "":
        price = record.get('bed_price')

    return BedAllocation(
        effective_from=effective_from,
        effective_to=parse_date(record.get('effective_to')),
        bed_price=parse_money(price),
        bed_id=_optional_int(record.get('bed_id'))
    )


def parse_known_cycle(record: Dict[str, Any]) -> Optional[RentCycle]:
    """Parse a backend cycle row (tenant_rent_cycles), or None if incomplete."""
    cycle_id = _optional_int(record.get('cycle_id', record.get('s_no')))
    try:
        start = parse_date(record.get('cycle_start', record.get('start_date')))
        end = parse_date(record.get('cycle_end', record.get('end_date')))
    except ValueError as e:
        logger.warning(f"Skipping cycle row {cycle_id}: {e}")
        return None

    if cycle_id is None or start is None or end is None or end < start:
        logger.warning(f"Skipping incomplete cycle row: {record}")
        return None

    return RentCycle(start=start, end=end, cycle_id=cycle_id)


def check_allocations(allocations: Sequence[BedAllocation], tenant_id: Optional[int]) -> None:
    """Log allocation histories that overlap or have no single current allocation."""
    for previous, current in zip(allocations, allocations[1:]):
        if previous.effective_to is None or previous.effective_to >= current.effective_from:
            logger.warning(
                f"Tenant {tenant_id}: allocation from {previous.effective_from} overlaps "
                f"allocation from {current.effective_from}"
            )

    open_count = sum(1 for a in allocations if a.is_current)
    if allocations and open_count != 1:
        logger.warning(f"Tenant {tenant_id}: expected one current allocation, found {open_count}")


def parse_tenancy(record: Dict[str, Any], settings: Optional[Dict[str, Any]] = None) -> TenancyContext:
    """
    Build a TenancyContext from a tenant record.

    Args:
        record: Tenant record as returned by the backend
        settings: Effective settings (see settings_loader.load_settings); the
            location's rent_cycle_type and anchor_day apply when the record
            does not carry them

    Returns:
        TenancyContext

    Raises:
        InvalidTenancyError: If the join date is missing or not ISO, the rent
            cycle type is unrecognized, or no bed price can be determined
    """
    settings = settings or {}
    tenant_id = _optional_int(record.get('s_no', record.get('tenant_id')))

    try:
        join_date = parse_date(record.get('check_in_date', record.get('join_date')))
    except ValueError as e:
        raise InvalidTenancyError(f"Tenant {tenant_id}: {e}", tenant_id)

    if join_date is None:
        raise InvalidTenancyError(f"Tenant {tenant_id} has no join date", tenant_id)

    policy_value = (
        record.get('rent_cycle_type')
        or _nested(record, 'pg_locations', 'rent_cycle_type')
        or settings.get('rent_cycle_type')
    )
    try:
        policy = parse_policy(policy_value)
    except ValueError as e:
        raise InvalidTenancyError(f"Tenant {tenant_id}: {e}", tenant_id)

    allocations: List[BedAllocation] = []
    for allocation_record in record.get('allocations') or record.get('bed_allocations') or []:
        try:
            allocations.append(parse_allocation(allocation_record))
        except ValueError as e:
            raise InvalidTenancyError(f"Tenant {tenant_id}: invalid allocation: {e}", tenant_id)
    allocations.sort(key=lambda a: a.effective_from)
    check_allocations(allocations, tenant_id)

    price_value = record.get('bed_price')
    if price_value is None or price_value == "":
        price_value = record.get('rent_price')
    if price_value is None or price_value == "":
        price_value = _nested(record, 'beds', 'bed_price')

    if price_value is None or price_value == "":
        current = [a for a in allocations if a.is_current]
        if not current:
            raise InvalidTenancyError(f"Tenant {tenant_id} has no bed price", tenant_id)
        bed_price = current[-1].bed_price
    else:
        try:
            bed_price = parse_money(price_value)
        except ValueError as e:
            raise InvalidTenancyError(f"Tenant {tenant_id}: invalid bed price: {e}", tenant_id)

    anchor_day = _optional_int(record.get('anchor_day')) or _optional_int(settings.get('anchor_day'))

    known_cycles = []
    for cycle_record in record.get('tenant_rent_cycles') or []:
        cycle = parse_known_cycle(cycle_record)
        if cycle is not None:
            known_cycles.append(cycle)

    tenancy = TenancyContext(
        tenant_id=tenant_id,
        join_date=join_date,
        policy=policy,
        bed_price=bed_price,
        allocations=tuple(allocations),
        anchor_day=anchor_day,
        known_cycles=tuple(known_cycles)
    )

    logger.debug(
        f"Parsed tenant {tenant_id}: joined {join_date}, {policy.value}, price {bed_price}, "
        f"{len(allocations)} allocations, {len(known_cycles)} known cycles"
    )
    return tenancy


def parse_payment(record: Dict[str, Any]) -> Payment:
    """
    Build a Payment from a payment record.

    The cycle period comes from start_date/end_date or the nested
    tenant_rent_cycles.cycle_start/cycle_end.

    Raises:
        InconsistentPaymentError: If the amount or a date is invalid, or the
            amount is negative
    """
    payment_id = _optional_int(record.get('s_no', record.get('payment_id')))

    try:
        amount = parse_money(record.get('amount_paid'))
        payment_date = parse_date(record.get('payment_date'))
        start_date = parse_date(
            record.get('start_date') or _nested(record, 'tenant_rent_cycles', 'cycle_start')
        )
        end_date = parse_date(
            record.get('end_date') or _nested(record, 'tenant_rent_cycles', 'cycle_end')
        )
    except ValueError as e:
        raise InconsistentPaymentError(f"Payment {payment_id}: {e}", payment_id)

    if amount < ZERO:
        raise InconsistentPaymentError(f"Payment {payment_id} has negative amount {amount}", payment_id)

    status = None
    raw_status = str(record.get('status') or "").strip().upper()
    if raw_status in PaymentStatus.__members__:
        status = PaymentStatus[raw_status]

    return Payment(
        amount_paid=amount,
        payment_date=payment_date,
        cycle_id=_optional_int(record.get('cycle_id')),
        start_date=start_date,
        end_date=end_date,
        status=status,
        payment_id=payment_id
    )


def parse_payments(
    records: Sequence[Dict[str, Any]]
) -> Tuple[List[Payment], List[ReconciliationWarning]]:
    """
    Parse a payment list, turning bad records into warnings.

    Args:
        records: Payment records as returned by the backend

    Returns:
        Tuple of (payments, warnings); records that fail to parse appear only
        in warnings
    """
    payments = []
    warnings = []

    for record in records:
        try:
            payments.append(parse_payment(record))
        except InconsistentPaymentError as e:
            logger.warning(str(e))
            warnings.append(
                ReconciliationWarning(WarningKind.INCONSISTENT_PAYMENT, str(e), e.payment_id)
            )

    logger.info(f"Parsed {len(payments)} payments, {len(warnings)} rejected")
    return payments, warnings
