#!/usr/bin/env python3
"""
Exceptions raised by the rent-cycle reconciliation engine.
"""

from typing import Optional


class RentCycleError(Exception):
    """Base class for engine errors."""


class InvalidTenancyError(RentCycleError):
    """Tenancy data cannot be reconciled (missing join date, unknown policy)."""

    def __init__(self, message: str, tenant_id: Optional[int] = None):
        super().__init__(message)
        self.tenant_id = tenant_id


class InconsistentPaymentError(RentCycleError):
    """A single payment record cannot be used in the sums."""

    def __init__(self, message: str, payment_id: Optional[int] = None):
        super().__init__(message)
        self.payment_id = payment_id


class CollectionRejectedError(RentCycleError):
    """A collection amount was rejected before reaching the payment ledger."""

    def __init__(self, message: str, field: str = "amount_paid"):
        super().__init__(message)
        self.field = field
