from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    INVALID_AMOUNT = "INVALID_AMOUNT"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONCURRENT_UPDATE = "CONCURRENT_UPDATE"
    INVALID_INPUT = "INVALID_INPUT"


class PaymentError(Exception):
    """Single error type for the payment core, discriminated by ``kind``."""

    def __init__(self, kind: ErrorKind, message: str, details: dict[str, Any] | None = None) -> None:
        self.kind = kind
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"PaymentError(kind={self.kind.value}, message={self.message!r})"

    @classmethod
    def invalid_amount(cls, value: object, reason: str) -> "PaymentError":
        return cls(
            ErrorKind.INVALID_AMOUNT,
            f"Invalid amount {value!r}: {reason}",
            {"value": str(value), "reason": reason},
        )

    @classmethod
    def currency_mismatch(cls, expected: str, actual: str) -> "PaymentError":
        return cls(
            ErrorKind.CURRENCY_MISMATCH,
            f"Currency mismatch: expected {expected}, got {actual}",
            {"expected": expected, "actual": actual},
        )

    @classmethod
    def division_by_zero(cls) -> "PaymentError":
        return cls(ErrorKind.DIVISION_BY_ZERO, "Cannot divide money by zero")

    @classmethod
    def unsupported_provider(cls, payment_method: str, reason: str = "no provider registered") -> "PaymentError":
        return cls(
            ErrorKind.UNSUPPORTED_PROVIDER,
            f"Unsupported payment provider for method {payment_method!r}: {reason}",
            {"payment_method": payment_method},
        )

    @classmethod
    def provider_error(cls, provider: str, operation: str, reason: str) -> "PaymentError":
        return cls(
            ErrorKind.PROVIDER_ERROR,
            f"Provider {provider} failed to {operation}: {reason}",
            {"provider": provider, "operation": operation, "reason": reason},
        )

    @classmethod
    def not_found(cls, entity: str, entity_id: str) -> "PaymentError":
        return cls(
            ErrorKind.NOT_FOUND,
            f"{entity} {entity_id} not found",
            {"entity": entity, "id": entity_id},
        )

    @classmethod
    def invalid_transition(cls, payment_id: str, current: str, requested: str) -> "PaymentError":
        return cls(
            ErrorKind.INVALID_TRANSITION,
            f"Payment {payment_id} cannot move from {current} to {requested}",
            {"payment_id": payment_id, "current": current, "requested": requested},
        )

    @classmethod
    def concurrent_update(cls, entity: str, entity_id: str) -> "PaymentError":
        return cls(
            ErrorKind.CONCURRENT_UPDATE,
            f"Optimistic lock failed for {entity} {entity_id}",
            {"entity": entity, "id": entity_id},
        )

    @classmethod
    def invalid_input(cls, message: str, **details: Any) -> "PaymentError":
        return cls(ErrorKind.INVALID_INPUT, message, details)
