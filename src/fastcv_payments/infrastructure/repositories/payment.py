from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Row, text
from sqlalchemy.ext.asyncio import AsyncSession

from fastcv_payments.domain.models import Payment, PaymentMethod, PaymentStatus


_COLUMNS = """
    id, owner_id, amount_cents, currency, payment_method, provider,
    transaction_id, status, status_reason, version, created_at, updated_at
"""


def _to_payment(row: Row[Any]) -> Payment:
    return Payment(
        id=row.id,
        owner_id=row.owner_id,
        amount_cents=row.amount_cents,
        currency=row.currency,
        payment_method=PaymentMethod(row.payment_method),
        provider=row.provider,
        transaction_id=row.transaction_id,
        status=PaymentStatus(row.status),
        status_reason=row.status_reason,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class PaymentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, payment_id: str) -> Payment | None:
        result = await self._session.execute(
            text(f"SELECT {_COLUMNS} FROM payments WHERE id = :id"),
            {"id": payment_id},
        )
        row = result.fetchone()
        return _to_payment(row) if row else None

    async def get_by_transaction_id(self, transaction_id: str) -> Payment | None:
        result = await self._session.execute(
            text(f"SELECT {_COLUMNS} FROM payments WHERE transaction_id = :transaction_id"),
            {"transaction_id": transaction_id},
        )
        row = result.fetchone()
        return _to_payment(row) if row else None

    async def add(self, payment: Payment) -> None:
        await self._session.execute(
            text("""
                INSERT INTO payments
                    (id, owner_id, amount_cents, currency, payment_method, provider,
                     transaction_id, status, status_reason, version, created_at, updated_at)
                VALUES
                    (:id, :owner_id, :amount_cents, :currency, :payment_method, :provider,
                     :transaction_id, :status, :status_reason, :version, :created_at, :updated_at)
            """),
            {
                "id": payment.id,
                "owner_id": payment.owner_id,
                "amount_cents": payment.amount_cents,
                "currency": payment.currency,
                "payment_method": payment.payment_method.value,
                "provider": payment.provider,
                "transaction_id": payment.transaction_id,
                "status": payment.status.value,
                "status_reason": payment.status_reason,
                "version": payment.version,
                "created_at": payment.created_at,
                "updated_at": payment.updated_at,
            },
        )

    async def update_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        reason: str | None,
        expected_version: int,
    ) -> Payment | None:
        """Conditional write; returns None when the row changed since it was read."""
        result = await self._session.execute(
            text(f"""
                UPDATE payments
                SET status = :status,
                    status_reason = :status_reason,
                    version = version + 1,
                    updated_at = :updated_at
                WHERE id = :id AND version = :expected_version
                RETURNING {_COLUMNS}
            """),
            {
                "id": payment_id,
                "status": status.value,
                "status_reason": reason,
                "expected_version": expected_version,
                "updated_at": datetime.now(UTC),
            },
        )
        row = result.fetchone()
        return _to_payment(row) if row else None

    async def list_by_owner(self, owner_id: str) -> list[Payment]:
        result = await self._session.execute(
            text(f"""
                SELECT {_COLUMNS}
                FROM payments
                WHERE owner_id = :owner_id
                ORDER BY created_at DESC
            """),
            {"owner_id": owner_id},
        )
        return [_to_payment(row) for row in result.fetchall()]

    async def list_paginated(self, page: int, limit: int) -> tuple[list[Payment], int]:
        total = await self._session.scalar(text("SELECT count(*) FROM payments"))
        result = await self._session.execute(
            text(f"""
                SELECT {_COLUMNS}
                FROM payments
                ORDER BY created_at DESC
                LIMIT :limit OFFSET :offset
            """),
            {"limit": limit, "offset": (page - 1) * limit},
        )
        return [_to_payment(row) for row in result.fetchall()], int(total or 0)
