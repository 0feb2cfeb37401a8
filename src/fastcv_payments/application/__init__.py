"""Application layer - payment workflow and provider dispatch."""

from fastcv_payments.application.providers import (
    ProviderReference,
    ProviderRegistry,
    ProviderStatus,
    ProviderStrategy,
    SupportsSimulation,
)
from fastcv_payments.application.services import (
    CreatePaymentCommand,
    PaymentWorkflow,
    StatusHook,
)
from fastcv_payments.application.unit_of_work import UnitOfWork


__all__ = [
    "CreatePaymentCommand",
    "PaymentWorkflow",
    "ProviderReference",
    "ProviderRegistry",
    "ProviderStatus",
    "ProviderStrategy",
    "StatusHook",
    "SupportsSimulation",
    "UnitOfWork",
]
