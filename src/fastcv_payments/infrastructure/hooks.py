"""Status hooks run by the workflow after each committed status change."""

import structlog

from fastcv_payments.domain.models import Payment, PaymentStatus
from fastcv_payments.infrastructure.metrics import (
    PAYMENT_STATUS_TRANSITIONS_TOTAL,
    PAYMENTS_CREATED_TOTAL,
)


logger = structlog.get_logger("fastcv_payments.audit")


async def audit_log_hook(payment: Payment, previous: PaymentStatus | None) -> None:
    logger.info(
        "payment_status_changed",
        payment_id=payment.id,
        owner_id=payment.owner_id,
        transaction_id=payment.transaction_id,
        previous_status=previous.value if previous else None,
        status=payment.status.value,
        reason=payment.status_reason,
        amount_cents=payment.amount_cents,
        currency=payment.currency,
    )


async def metrics_hook(payment: Payment, previous: PaymentStatus | None) -> None:
    if previous is None:
        PAYMENTS_CREATED_TOTAL.labels(
            payment_method=payment.payment_method.value,
            currency=payment.currency,
        ).inc()
        return
    PAYMENT_STATUS_TRANSITIONS_TOTAL.labels(
        from_status=previous.value,
        to_status=payment.status.value,
    ).inc()


DEFAULT_HOOKS = (audit_log_hook, metrics_hook)
