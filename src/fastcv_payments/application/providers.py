from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable

from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.models import PaymentMethod, PaymentStatus
from fastcv_payments.domain.money import Money


@dataclass(frozen=True)
class ProviderReference:
    """Result of a successful ``initiate`` call."""

    provider: str
    reference: str
    raw_status: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderStatus:
    provider: str
    reference: str
    raw_status: str
    status: PaymentStatus


class ProviderStrategy(Protocol):
    name: str

    async def initiate(self, amount: Money, metadata: Mapping[str, Any]) -> ProviderReference: ...

    async def check_status(self, reference: str) -> ProviderStatus: ...


@runtime_checkable
class SupportsSimulation(Protocol):
    async def simulate(self, reference: str) -> ProviderStatus: ...


StrategyFactory: TypeAlias = Callable[[], ProviderStrategy]


class ProviderRegistry:
    """Maps each payment method to the factory of its provider strategy.

    A fresh strategy is built for every lookup. There is no default entry: an
    unregistered method is always an error.
    """

    def __init__(self, factories: Mapping[PaymentMethod, StrategyFactory] | None = None) -> None:
        self._factories: dict[PaymentMethod, StrategyFactory] = dict(factories or {})

    def register(self, method: PaymentMethod, factory: StrategyFactory) -> None:
        self._factories[method] = factory

    def supports(self, method: PaymentMethod | str) -> bool:
        try:
            return PaymentMethod.parse(method) in self._factories
        except PaymentError:
            return False

    @property
    def methods(self) -> list[PaymentMethod]:
        return list(self._factories)

    def strategy_for(self, method: PaymentMethod | str) -> ProviderStrategy:
        payment_method = PaymentMethod.parse(method)
        factory = self._factories.get(payment_method)
        if factory is None:
            raise PaymentError.unsupported_provider(payment_method.value)
        return factory()
