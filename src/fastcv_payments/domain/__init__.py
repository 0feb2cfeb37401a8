"""Domain layer - money, payments and their rules."""

from fastcv_payments.domain.exceptions import ErrorKind, PaymentError
from fastcv_payments.domain.models import (
    ALLOWED_TRANSITIONS,
    Page,
    Payment,
    PaymentMethod,
    PaymentStatus,
    transition_path,
)
from fastcv_payments.domain.money import Money


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ErrorKind",
    "Money",
    "Page",
    "Payment",
    "PaymentError",
    "PaymentMethod",
    "PaymentStatus",
    "transition_path",
]
