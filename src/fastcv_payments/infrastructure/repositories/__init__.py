"""Repository implementations."""

from fastcv_payments.infrastructure.repositories.payment import PaymentRepository


__all__ = [
    "PaymentRepository",
]
