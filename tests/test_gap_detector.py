#!/usr/bin/env python3
"""
Tests for the gap_detector module.

These tests validate how payments are matched to cycles and which cycles are
reported as unsettled.
"""

import os
import unittest
import datetime
from decimal import Decimal

# Add the parent directory to the path so we can import the module
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rentcycle.models import (
    BedAllocation,
    Payment,
    PaymentStatus,
    RentCycle,
    RentCyclePolicy,
    TenancyContext,
    WarningKind
)
from rentcycle.gap_detector import (
    assign_payments,
    build_cycle_ledger,
    detect_gaps,
    ledger_totals
)

D = datetime.date


def make_tenancy(join_date=D(2024, 1, 15), policy=RentCyclePolicy.CALENDAR, bed_price=Decimal('9000'), **kwargs):
    return TenancyContext(
        tenant_id=12,
        join_date=join_date,
        policy=policy,
        bed_price=bed_price,
        **kwargs
    )


def make_payment(amount, start=None, end=None, cycle_id=None, payment_id=1):
    return Payment(
        amount_paid=Decimal(amount),
        payment_date=start,
        cycle_id=cycle_id,
        start_date=start,
        end_date=end,
        payment_id=payment_id
    )


class TestGapDetector(unittest.TestCase):
    """Test cases for the gap_detector module."""

    def test_mid_month_join_without_payments(self):
        """A January join with nothing paid leaves one prorated gap."""
        gaps = detect_gaps(make_tenancy(), [], D(2024, 2, 5))

        self.assertEqual(len(gaps), 1)
        gap = gaps[0]
        self.assertEqual(gap.cycle.start, D(2024, 1, 15))
        self.assertEqual(gap.cycle.end, D(2024, 1, 31))
        self.assertEqual(gap.expected_due, Decimal('4935.48'))
        self.assertEqual(gap.remaining_due, Decimal('4935.48'))
        self.assertEqual(gap.days_missing, 17)
        self.assertEqual(gap.status, PaymentStatus.PENDING)
        self.assertEqual(gap.gap_id, "2024-01-15_2024-01-31")

    def test_current_cycle_is_not_a_gap(self):
        """The cycle containing as_of is still running."""
        self.assertEqual(detect_gaps(make_tenancy(), [], D(2024, 1, 31)), [])

    def test_future_join(self):
        """A tenancy that has not started has no gaps."""
        self.assertEqual(detect_gaps(make_tenancy(join_date=D(2024, 3, 1)), [], D(2024, 2, 5)), [])

    def test_missing_join_date(self):
        self.assertEqual(detect_gaps(make_tenancy(join_date=None), [], D(2024, 2, 5)), [])

    def test_partial_and_paid_cycles(self):
        """Paid cycles drop out and partial ones keep their remainder."""
        payments = [
            make_payment('2000', D(2024, 1, 15), D(2024, 1, 31), payment_id=1),
            make_payment('9000', D(2024, 2, 1), D(2024, 2, 29), payment_id=2),
        ]

        gaps = detect_gaps(make_tenancy(), payments, D(2024, 4, 10))

        self.assertEqual([g.cycle.start for g in gaps], [D(2024, 1, 15), D(2024, 3, 1)])
        self.assertEqual(gaps[0].status, PaymentStatus.PARTIAL)
        self.assertEqual(gaps[0].total_paid, Decimal('2000'))
        self.assertEqual(gaps[0].remaining_due, Decimal('2935.48'))
        self.assertEqual(gaps[1].status, PaymentStatus.PENDING)
        self.assertEqual(gaps[1].remaining_due, Decimal('9000'))

    def test_payments_are_summed_per_cycle(self):
        payments = [
            make_payment('4000', D(2024, 1, 15), D(2024, 1, 31), payment_id=1),
            make_payment('935.48', D(2024, 1, 15), D(2024, 1, 31), payment_id=2),
        ]

        self.assertEqual(detect_gaps(make_tenancy(), payments, D(2024, 2, 5)), [])

    def test_match_by_known_cycle_id(self):
        """A payment with a known cycle_id lands on that cycle."""
        tenancy = make_tenancy(known_cycles=(RentCycle(D(2024, 1, 15), D(2024, 1, 31), cycle_id=101),))
        payments = [make_payment('2000', cycle_id=101)]

        gaps = detect_gaps(tenancy, payments, D(2024, 2, 5))

        self.assertEqual(len(gaps), 1)
        self.assertEqual(gaps[0].cycle_id, 101)
        self.assertEqual(gaps[0].total_paid, Decimal('2000'))

    def test_unknown_cycle_id_falls_back_to_dates(self):
        """A stale cycle_id falls back to the payment's own period."""
        payments = [make_payment('4935.48', D(2024, 1, 15), D(2024, 1, 31), cycle_id=999)]

        self.assertEqual(detect_gaps(make_tenancy(), payments, D(2024, 2, 5)), [])

    def test_period_start_before_join_in_join_month(self):
        """A period starting before the join date inside the join month maps to the join cycle."""
        payments = [make_payment('4935.48', D(2024, 1, 1), D(2024, 1, 31))]

        self.assertEqual(detect_gaps(make_tenancy(), payments, D(2024, 2, 5)), [])

    def test_bad_payments_are_excluded_with_warnings(self):
        """Unusable payments are left out of every sum and reported."""
        payments = [
            Payment(Decimal('NaN'), D(2024, 1, 20), start_date=D(2024, 1, 15), payment_id=1),
            make_payment('-100', D(2024, 1, 15), D(2024, 1, 31), payment_id=2),
            make_payment('500', payment_id=3),
            make_payment('500', D(2023, 12, 1), D(2023, 12, 31), payment_id=4),
            make_payment('1000', D(2024, 1, 15), D(2024, 1, 31), payment_id=5),
        ]
        warnings = []

        gaps = detect_gaps(make_tenancy(), payments, D(2024, 2, 5), warnings)

        self.assertEqual(len(gaps), 1)
        self.assertEqual(gaps[0].total_paid, Decimal('1000'))
        self.assertEqual([w.payment_id for w in warnings], [1, 2, 3, 4])
        self.assertTrue(all(w.kind == WarningKind.INCONSISTENT_PAYMENT for w in warnings))

    def test_overpayment_is_reported(self):
        """An overpaid cycle is settled and produces a warning."""
        payments = [make_payment('5000', D(2024, 1, 15), D(2024, 1, 31))]
        warnings = []

        gaps = detect_gaps(make_tenancy(), payments, D(2024, 2, 5), warnings)

        self.assertEqual(gaps, [])
        self.assertEqual(len(warnings), 1)
        self.assertIn("overpaid by 64.52", warnings[0].message)

    def test_idempotent(self):
        """Detecting twice on the same snapshot gives the same gaps."""
        tenancy = make_tenancy()
        payments = [make_payment('2000', D(2024, 1, 15), D(2024, 1, 31))]

        first = detect_gaps(tenancy, payments, D(2024, 6, 1))
        second = detect_gaps(tenancy, payments, D(2024, 6, 1))

        self.assertEqual(first, second)
        self.assertEqual(len(first), 5)

    def test_midmonth_anchor_31(self):
        """MIDMONTH cycles anchored on the 31st follow short months."""
        tenancy = make_tenancy(join_date=D(2024, 1, 31), policy=RentCyclePolicy.MIDMONTH)

        gaps = detect_gaps(tenancy, [], D(2024, 4, 5))

        self.assertEqual(
            [(g.cycle.start, g.cycle.end) for g in gaps],
            [(D(2024, 1, 31), D(2024, 2, 29)), (D(2024, 3, 1), D(2024, 3, 30))]
        )
        self.assertEqual([g.expected_due for g in gaps], [Decimal('9000'), Decimal('9000')])
        self.assertEqual([g.days_missing for g in gaps], [30, 30])

    def test_transfer_cycle_is_blended(self):
        """A cycle with a bed transfer expects the blended amount."""
        tenancy = make_tenancy(
            join_date=D(2024, 3, 1),
            allocations=(
                BedAllocation(D(2024, 3, 1), Decimal('6000'), effective_to=D(2024, 3, 15)),
                BedAllocation(D(2024, 3, 16), Decimal('9000')),
            )
        )

        gaps = detect_gaps(tenancy, [], D(2024, 4, 2))

        self.assertEqual(len(gaps), 1)
        self.assertEqual(gaps[0].expected_due, Decimal('7548.39'))

    def test_ledger_and_totals(self):
        """The ledger covers every completed cycle, settled or not."""
        payments = [make_payment('9000', D(2024, 2, 1), D(2024, 2, 29))]
        ledger = build_cycle_ledger(make_tenancy(), payments, D(2024, 3, 5))

        self.assertEqual(len(ledger), 2)
        self.assertFalse(ledger[0].is_settled)
        self.assertTrue(ledger[1].is_settled)
        self.assertEqual(ledger[1].payment_count, 1)

        expected, paid = ledger_totals(ledger)
        self.assertEqual(expected, Decimal('13935.48'))
        self.assertEqual(paid, Decimal('9000'))

    def test_assign_payments(self):
        payments = [
            make_payment('100', D(2024, 2, 10), None, payment_id=1),
            make_payment('200', None, D(2024, 2, 29), payment_id=2),
        ]

        assigned = assign_payments(make_tenancy(), payments)

        self.assertEqual(list(assigned), [D(2024, 2, 1)])
        self.assertEqual([p.payment_id for p in assigned[D(2024, 2, 1)]], [1, 2])


if __name__ == '__main__':
    unittest.main()
