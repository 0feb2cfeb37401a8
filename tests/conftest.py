"""Shared pytest fixtures for payment service tests."""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from fastcv_payments.application.providers import (
    ProviderReference,
    ProviderRegistry,
    ProviderStatus,
)
from fastcv_payments.application.unit_of_work import UnitOfWork
from fastcv_payments.domain.models import Payment, PaymentMethod, PaymentStatus
from fastcv_payments.domain.money import Money


class FakeProvider:
    """In-memory provider strategy recording every call."""

    name = "fake"

    def __init__(
        self,
        reference: str = "fake-ref-001",
        reported_status: PaymentStatus = PaymentStatus.PENDING,
        error: Exception | None = None,
    ) -> None:
        self.reference = reference
        self.reported_status = reported_status
        self.error = error
        self.initiated: list[tuple[Money, Mapping[str, Any]]] = []
        self.checked: list[str] = []

    async def initiate(self, amount: Money, metadata: Mapping[str, Any]) -> ProviderReference:
        if self.error:
            raise self.error
        self.initiated.append((amount, metadata))
        return ProviderReference(
            provider=self.name,
            reference=self.reference,
            raw_status="created",
            payload={"qr_code": "000201fake"},
        )

    async def check_status(self, reference: str) -> ProviderStatus:
        if self.error:
            raise self.error
        self.checked.append(reference)
        return ProviderStatus(
            provider=self.name,
            reference=reference,
            raw_status=self.reported_status.value.upper(),
            status=self.reported_status,
        )


class SimulatingFakeProvider(FakeProvider):
    name = "fake-sandbox"

    async def simulate(self, reference: str) -> ProviderStatus:
        return ProviderStatus(
            provider=self.name,
            reference=reference,
            raw_status="PAID",
            status=PaymentStatus.PAID,
        )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def registry(fake_provider: FakeProvider) -> ProviderRegistry:
    """Registry with the fake provider behind Pix only."""
    return ProviderRegistry({PaymentMethod.PIX: lambda: fake_provider})


@pytest.fixture
def mock_payment_repository() -> AsyncMock:
    """Create mock PaymentRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.get_by_transaction_id = AsyncMock(return_value=None)
    repo.add = AsyncMock(return_value=None)
    repo.update_status = AsyncMock(return_value=None)
    repo.list_by_owner = AsyncMock(return_value=[])
    repo.list_paginated = AsyncMock(return_value=([], 0))
    return repo


@pytest.fixture
def mock_uow(mock_payment_repository: AsyncMock) -> AsyncMock:
    """Create mock Unit of Work around the payment repository."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.payments = mock_payment_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    # Configure async context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


def create_payment(
    payment_id: str = "01HPAYMENT0000000000000001",
    owner_id: str = "curriculum-001",
    amount_cents: int = 1990,
    currency: str = "BRL",
    payment_method: PaymentMethod = PaymentMethod.PIX,
    status: PaymentStatus = PaymentStatus.PENDING,
    transaction_id: str | None = "fake-ref-001",
    version: int = 1,
) -> Payment:
    """Helper to create Payment with custom values."""
    return Payment(
        id=payment_id,
        owner_id=owner_id,
        amount_cents=amount_cents,
        currency=currency,
        payment_method=payment_method,
        status=status,
        provider="fake",
        transaction_id=transaction_id,
        version=version,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )


def advanced(payment: Payment, status: PaymentStatus, reason: str | None = None) -> Payment:
    """Copy of ``payment`` as the repository returns it after a status write."""
    return Payment(
        id=payment.id,
        owner_id=payment.owner_id,
        amount_cents=payment.amount_cents,
        currency=payment.currency,
        payment_method=payment.payment_method,
        status=status,
        provider=payment.provider,
        transaction_id=payment.transaction_id,
        status_reason=reason,
        version=payment.version + 1,
        created_at=payment.created_at,
        updated_at=datetime.now(UTC),
    )
