#!/usr/bin/env python3
"""
Tests for the ingestion module.

These tests validate conversion of backend tenant and payment records into
engine models, including the ISO-only date policy.
"""

import os
import unittest
import datetime
from decimal import Decimal

# Add the parent directory to the path so we can import the module
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rentcycle.models import PaymentStatus, RentCyclePolicy, WarningKind
from rentcycle.exceptions import InvalidTenancyError, InconsistentPaymentError
from rentcycle.ingestion import (
    parse_date,
    parse_money,
    parse_policy,
    parse_tenancy,
    parse_payment,
    parse_payments
)

D = datetime.date


class TestParsing(unittest.TestCase):
    """Test cases for the scalar parsers."""

    def test_parse_date_iso(self):
        self.assertEqual(parse_date("2024-01-15"), D(2024, 1, 15))
        self.assertEqual(parse_date("2024-01-15T10:30:00.000Z"), D(2024, 1, 15))
        self.assertEqual(parse_date(datetime.datetime(2024, 1, 15, 9, 0)), D(2024, 1, 15))
        self.assertIsNone(parse_date(None))
        self.assertIsNone(parse_date(""))

    def test_parse_date_rejects_locale_formats(self):
        for value in ("03/04/2024", "15-01-2024", "Jan 15 2024", 20240115):
            with self.assertRaises(ValueError):
                parse_date(value)

    def test_parse_money(self):
        self.assertEqual(parse_money("4935.475"), Decimal('4935.48'))
        self.assertEqual(parse_money(9000), Decimal('9000.00'))
        self.assertEqual(parse_money(0.1), Decimal('0.10'))

        for value in (None, "", "abc", "NaN", "Infinity", True):
            with self.assertRaises(ValueError):
                parse_money(value)

    def test_parse_policy(self):
        self.assertEqual(parse_policy("midmonth"), RentCyclePolicy.MIDMONTH)
        self.assertEqual(parse_policy(" CALENDAR "), RentCyclePolicy.CALENDAR)
        with self.assertRaises(ValueError):
            parse_policy("WEEKLY")


class TestParseTenancy(unittest.TestCase):
    """Test cases for tenant records."""

    def setUp(self):
        self.record = {
            "s_no": 12,
            "check_in_date": "2024-01-15T00:00:00.000Z",
            "pg_id": 7,
            "pg_locations": {"rent_cycle_type": "CALENDAR"},
            "beds": {"bed_price": "9000.00"},
            "tenant_rent_cycles": [
                {"s_no": 101, "cycle_start": "2024-01-15", "cycle_end": "2024-01-31"},
                {"s_no": 102, "cycle_start": "bad", "cycle_end": "2024-02-29"}
            ]
        }

    def test_backend_record(self):
        tenancy = parse_tenancy(self.record)

        self.assertEqual(tenancy.tenant_id, 12)
        self.assertEqual(tenancy.join_date, D(2024, 1, 15))
        self.assertEqual(tenancy.policy, RentCyclePolicy.CALENDAR)
        self.assertEqual(tenancy.bed_price, Decimal('9000'))
        self.assertEqual(len(tenancy.known_cycles), 1)
        self.assertEqual(tenancy.known_cycle(101).end, D(2024, 1, 31))

    def test_policy_from_settings(self):
        del self.record["pg_locations"]

        tenancy = parse_tenancy(self.record, {"rent_cycle_type": "MIDMONTH", "anchor_day": 10})

        self.assertEqual(tenancy.policy, RentCyclePolicy.MIDMONTH)
        self.assertEqual(tenancy.anchor_day, 10)
        self.assertEqual(tenancy.effective_anchor_day, 10)

    def test_price_from_current_allocation(self):
        del self.record["beds"]
        self.record["allocations"] = [
            {"effective_from": "2024-03-16", "bed_price_snapshot": 9500, "bed_id": 4},
            {"effective_from": "2024-01-15", "effective_to": "2024-03-15", "bed_price_snapshot": 6000},
        ]

        tenancy = parse_tenancy(self.record)

        self.assertEqual(tenancy.bed_price, Decimal('9500'))
        self.assertEqual([a.effective_from for a in tenancy.allocations], [D(2024, 1, 15), D(2024, 3, 16)])
        self.assertEqual(tenancy.price_on(D(2024, 2, 1)), Decimal('6000'))

    def test_invalid_records(self):
        cases = [
            {"check_in_date": None},
            {"check_in_date": "15/01/2024"},
            {"pg_locations": {"rent_cycle_type": "WEEKLY"}},
            {"beds": None},
            {"beds": {"bed_price": "free"}},
        ]

        for changes in cases:
            record = dict(self.record)
            record.update(changes)
            with self.assertRaises(InvalidTenancyError) as ctx:
                parse_tenancy(record)
            self.assertEqual(ctx.exception.tenant_id, 12)


class TestParsePayments(unittest.TestCase):
    """Test cases for payment records."""

    def test_backend_payment(self):
        payment = parse_payment({
            "s_no": 501,
            "amount_paid": "2000.00",
            "payment_date": "2024-01-20",
            "cycle_id": 101,
            "status": "partial",
            "tenant_rent_cycles": {"cycle_start": "2024-01-15", "cycle_end": "2024-01-31"}
        })

        self.assertEqual(payment.payment_id, 501)
        self.assertEqual(payment.amount_paid, Decimal('2000'))
        self.assertEqual(payment.cycle_id, 101)
        self.assertEqual(payment.start_date, D(2024, 1, 15))
        self.assertEqual(payment.end_date, D(2024, 1, 31))
        self.assertEqual(payment.status, PaymentStatus.PARTIAL)

    def test_invalid_payment(self):
        with self.assertRaises(InconsistentPaymentError) as ctx:
            parse_payment({"s_no": 9, "amount_paid": "-5", "start_date": "2024-01-15"})
        self.assertEqual(ctx.exception.payment_id, 9)

    def test_parse_payments_collects_warnings(self):
        payments, warnings = parse_payments([
            {"s_no": 1, "amount_paid": 9000, "start_date": "2024-02-01", "end_date": "2024-02-29"},
            {"s_no": 2, "amount_paid": "abc", "start_date": "2024-02-01"},
            {"s_no": 3, "amount_paid": 100, "start_date": "02/01/2024"},
        ])

        self.assertEqual([p.payment_id for p in payments], [1])
        self.assertEqual([w.payment_id for w in warnings], [2, 3])
        self.assertTrue(all(w.kind == WarningKind.INCONSISTENT_PAYMENT for w in warnings))


if __name__ == '__main__':
    unittest.main()
