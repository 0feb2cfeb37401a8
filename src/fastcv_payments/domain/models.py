import math
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from ulid import ULID

from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.money import Money


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

    @classmethod
    def parse(cls, value: "PaymentStatus | str") -> "PaymentStatus":
        if isinstance(value, PaymentStatus):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise PaymentError.invalid_input(f"Unknown payment status {value!r}", status=str(value)) from e

    @property
    def is_final(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PROCESSING, PaymentStatus.FAILED}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def transition_path(current: PaymentStatus, target: PaymentStatus) -> list[PaymentStatus] | None:
    """Shortest sequence of legal steps from ``current`` to ``target``.

    Returns an empty list when already there and None when unreachable.
    """
    previous: dict[PaymentStatus, PaymentStatus] = {current: current}
    queue = deque([current])
    while queue:
        status = queue.popleft()
        if status == target:
            path: list[PaymentStatus] = []
            while status != current:
                path.append(status)
                status = previous[status]
            return path[::-1]
        for nxt in ALLOWED_TRANSITIONS[status]:
            if nxt not in previous:
                previous[nxt] = status
                queue.append(nxt)
    return None


class PaymentMethod(Enum):
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"

    @classmethod
    def parse(cls, value: "PaymentMethod | str") -> "PaymentMethod":
        """Exact lookup by value; unknown methods never fall back to a default."""
        if isinstance(value, PaymentMethod):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise PaymentError.unsupported_provider(str(value), "unknown payment method") from e


@dataclass
class Payment:
    id: str
    owner_id: str
    amount_cents: int
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    provider: str | None = None
    transaction_id: str | None = None
    status_reason: str | None = None
    version: int = 1
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # Provider data the payer needs (Pix QR code); not persisted.
    checkout: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        owner_id: str,
        amount: Money,
        payment_method: PaymentMethod,
    ) -> "Payment":
        return cls(
            id=str(ULID()),
            owner_id=owner_id,
            amount_cents=amount.minor_units,
            currency=amount.currency,
            payment_method=payment_method,
            status=PaymentStatus.PENDING,
        )

    @property
    def amount(self) -> Money:
        return Money(self.amount_cents, self.currency)


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
