#!/usr/bin/env python3
"""
Tests for the gap_prioritizer and rent_status modules.
"""

import os
import math
import random
import unittest
import datetime
from decimal import Decimal

# Add the parent directory to the path so we can import the module
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rentcycle.models import Gap, Payment, PaymentStatus, RentCycle
from rentcycle.gap_prioritizer import prioritize, apply_priorities, recommended_gap, priority_key
from rentcycle.rent_status import (
    LABEL_NOT_PAID,
    LABEL_PAID,
    LABEL_PARTIAL,
    LABEL_PARTIAL_PENDING,
    LABEL_PENDING,
    status_label,
    summarize
)

D = datetime.date


def make_gap(month, remaining='9000', status=PaymentStatus.PENDING, priority=None, cycle_id=None):
    start = D(2024, month, 1)
    end = D(2024, month + 1, 1) - datetime.timedelta(days=1)
    return Gap(
        cycle=RentCycle(start, end, Decimal('9000'), cycle_id),
        expected_due=Decimal('9000'),
        total_paid=Decimal('9000') - Decimal(remaining),
        remaining_due=Decimal(remaining),
        days_missing=(end - start).days + 1,
        status=status,
        priority=priority,
        cycle_id=cycle_id
    )


class TestGapPrioritizer(unittest.TestCase):
    """Test cases for the gap_prioritizer module."""

    def test_oldest_first_without_priorities(self):
        gaps = [make_gap(3), make_gap(1), make_gap(2)]

        ordered = prioritize(gaps)

        self.assertEqual([g.cycle.start.month for g in ordered], [1, 2, 3])
        self.assertEqual(recommended_gap(gaps).cycle.start, D(2024, 1, 1))

    def test_priority_wins_over_date(self):
        gaps = [make_gap(1), make_gap(2, priority=1), make_gap(3, priority=0.5)]

        ordered = prioritize(gaps)

        self.assertEqual([g.cycle.start.month for g in ordered], [3, 2, 1])

    def test_invalid_priorities_sort_last(self):
        gaps = [make_gap(1, priority=float('nan')), make_gap(2, priority=math.inf), make_gap(3, priority=2)]

        ordered = prioritize(gaps)

        self.assertEqual([g.cycle.start.month for g in ordered], [3, 1, 2])
        self.assertEqual(priority_key(gaps[0]), math.inf)

    def test_stable_for_any_input_order(self):
        """Shuffled input always gives the same order."""
        gaps = [make_gap(m, priority=(m % 3) or None) for m in range(1, 12)]
        expected = prioritize(gaps)
        rng = random.Random(42)

        for _ in range(20):
            shuffled = list(gaps)
            rng.shuffle(shuffled)
            self.assertEqual(prioritize(shuffled), expected)

    def test_equal_keys_keep_input_order(self):
        """Gaps with equal priority and start date keep their input order."""
        first = make_gap(1, '2000', PaymentStatus.PARTIAL)
        second = make_gap(1, '9000')
        rng = random.Random(7)

        for _ in range(10):
            gaps = [first, second]
            rng.shuffle(gaps)
            self.assertEqual(prioritize(gaps), gaps)

    def test_empty(self):
        self.assertEqual(prioritize([]), [])
        self.assertIsNone(recommended_gap([]))

    def test_apply_priorities(self):
        """Hints match by gap_id, cycle_id, or cycle_id as a string."""
        gaps = [make_gap(1), make_gap(2, cycle_id=20), make_gap(3, cycle_id=30)]
        hints = {
            "2024-01-01_2024-01-31": 3,
            20: 2,
            "30": 1
        }

        with_hints = apply_priorities(gaps, hints)

        self.assertEqual([g.priority for g in with_hints], [3, 2, 1])
        self.assertIsNone(gaps[0].priority)
        self.assertEqual([g.cycle.start.month for g in prioritize(with_hints)], [3, 2, 1])

    def test_apply_no_priorities(self):
        gaps = [make_gap(1)]
        self.assertEqual(apply_priorities(gaps, None), gaps)


class TestRentStatus(unittest.TestCase):
    """Test cases for the rent_status module."""

    def test_status_labels(self):
        zero = Decimal('0')
        self.assertEqual(status_label(zero, zero, PaymentStatus.PAID), LABEL_PAID)
        self.assertEqual(status_label(zero, Decimal('10'), PaymentStatus.PARTIAL), LABEL_PARTIAL)
        self.assertEqual(status_label(Decimal('5'), Decimal('10'), PaymentStatus.PENDING), LABEL_PARTIAL_PENDING)
        self.assertEqual(status_label(Decimal('5'), zero, PaymentStatus.NO_PAYMENT), LABEL_NOT_PAID)
        self.assertEqual(status_label(Decimal('5'), zero, PaymentStatus.PENDING), LABEL_PENDING)

    def test_summarize_never_paid(self):
        summary = summarize([make_gap(1, '4935.48')], [])

        self.assertEqual(summary.pending_due, Decimal('4935.48'))
        self.assertEqual(summary.partial_due, Decimal('0'))
        self.assertEqual(summary.rent_due, Decimal('4935.48'))
        self.assertEqual(summary.pending_months, 1)
        self.assertEqual(summary.payment_status, PaymentStatus.NO_PAYMENT)
        self.assertEqual(summary.label, LABEL_NOT_PAID)

    def test_summarize_partial_and_pending(self):
        gaps = [
            make_gap(1, '2000', PaymentStatus.PARTIAL),
            make_gap(2, '9000', PaymentStatus.PENDING),
        ]
        payments = [Payment(Decimal('7000'), D(2024, 1, 5), start_date=D(2024, 1, 1))]

        summary = summarize(gaps, payments)

        self.assertEqual(summary.pending_due, Decimal('9000'))
        self.assertEqual(summary.partial_due, Decimal('2000'))
        self.assertEqual(summary.rent_due, Decimal('11000'))
        self.assertEqual(summary.pending_months, 2)
        self.assertEqual(summary.payment_status, PaymentStatus.PENDING)
        self.assertEqual(summary.label, LABEL_PARTIAL_PENDING)

    def test_summarize_all_paid(self):
        payments = [Payment(Decimal('9000'), D(2024, 1, 5), start_date=D(2024, 1, 1))]

        summary = summarize([], payments)

        self.assertEqual(summary.rent_due, Decimal('0'))
        self.assertEqual(summary.payment_status, PaymentStatus.PAID)
        self.assertEqual(summary.label, LABEL_PAID)


if __name__ == '__main__':
    unittest.main()
