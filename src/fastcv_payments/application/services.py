from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, TypeAlias

import structlog

from fastcv_payments.application.providers import (
    ProviderRegistry,
    ProviderStatus,
    ProviderStrategy,
    SupportsSimulation,
)
from fastcv_payments.application.unit_of_work import UnitOfWork
from fastcv_payments.domain.exceptions import ErrorKind, PaymentError
from fastcv_payments.domain.models import (
    Page,
    Payment,
    PaymentMethod,
    PaymentStatus,
    transition_path,
)
from fastcv_payments.domain.money import Money


logger = structlog.get_logger()

StatusHook: TypeAlias = Callable[[Payment, PaymentStatus | None], Awaitable[None]]


@dataclass
class CreatePaymentCommand:
    owner_id: str
    amount: str | int | float | Decimal
    payment_method: str
    currency: str = "BRL"
    metadata: Mapping[str, Any] = field(default_factory=dict)


class PaymentWorkflow:
    """Creates payments through a provider strategy and drives their status."""

    def __init__(
        self,
        uow: UnitOfWork,
        providers: ProviderRegistry,
        hooks: Sequence[StatusHook] = (),
        max_page_size: int = 100,
    ) -> None:
        self.uow = uow
        self.providers = providers
        self.hooks = list(hooks)
        self.max_page_size = max_page_size

    async def create(self, cmd: CreatePaymentCommand) -> Payment:
        """Charge through the provider for the method, then persist as pending.

        Nothing is stored when the provider call fails. A provider reference may
        still exist upstream when persistence fails afterwards; that case is
        logged with the reference and re-raised.
        """
        amount = Money.create(cmd.amount, cmd.currency)
        if not amount.is_positive():
            raise PaymentError.invalid_amount(cmd.amount, "amount must be positive")

        strategy = self.providers.strategy_for(cmd.payment_method)
        payment = Payment.create(
            owner_id=cmd.owner_id,
            amount=amount,
            payment_method=PaymentMethod.parse(cmd.payment_method),
        )
        log = logger.bind(
            payment_id=payment.id,
            owner_id=cmd.owner_id,
            payment_method=payment.payment_method.value,
            provider=strategy.name,
            amount_cents=amount.minor_units,
            currency=amount.currency,
        )

        try:
            reference = await strategy.initiate(amount, cmd.metadata)
        except PaymentError as e:
            log.warning("provider_initiate_failed", error_kind=e.kind.value, error=e.message)
            if e.kind == ErrorKind.PROVIDER_ERROR:
                raise
            raise PaymentError.provider_error(strategy.name, "initiate payment", e.message) from e
        except Exception as e:
            log.warning("provider_initiate_failed", error=str(e))
            raise PaymentError.provider_error(strategy.name, "initiate payment", str(e)) from e

        payment.provider = reference.provider
        payment.transaction_id = reference.reference
        payment.checkout = dict(reference.payload)
        log.info("provider_initiated", transaction_id=reference.reference, provider_status=reference.raw_status)

        try:
            async with self.uow:
                await self.uow.payments.add(payment)
                await self.uow.commit()
        except Exception:
            log.error("payment_persist_failed", transaction_id=reference.reference, exc_info=True)
            raise

        log.info("payment_created", status=payment.status.value)
        await self._run_hooks(payment, None)
        return payment

    async def get_by_id(self, payment_id: str) -> Payment:
        async with self.uow:
            payment = await self.uow.payments.get(payment_id)
        if payment is None:
            raise PaymentError.not_found("Payment", payment_id)
        return payment

    async def update_status(
        self,
        payment_id: str,
        new_status: PaymentStatus | str,
        reason: str | None = None,
    ) -> Payment:
        target = PaymentStatus.parse(new_status)
        log = logger.bind(payment_id=payment_id, requested_status=target.value)

        async with self.uow:
            payment = await self.uow.payments.get(payment_id)
            if payment is None:
                raise PaymentError.not_found("Payment", payment_id)

            previous = payment.status
            if not previous.can_transition_to(target):
                log.info("status_transition_rejected", current_status=previous.value)
                raise PaymentError.invalid_transition(payment_id, previous.value, target.value)

            updated = await self.uow.payments.update_status(
                payment_id,
                target,
                reason,
                expected_version=payment.version,
            )
            if updated is None:
                log.warning("status_update_conflict", expected_version=payment.version)
                raise PaymentError.concurrent_update("Payment", payment_id)

            await self.uow.commit()

        log.info("payment_status_updated", previous_status=previous.value, reason=reason)
        await self._run_hooks(updated, previous)
        return updated

    async def refresh_status(self, payment_id: str) -> Payment:
        """Poll the provider and walk the payment to the status it reports."""
        payment = await self.get_by_id(payment_id)
        report = await self._check_with_provider(payment)
        return await self._apply_provider_report(payment, report)

    async def simulate(self, payment_id: str) -> Payment:
        """Confirm a sandbox payment on providers that support simulation."""
        payment = await self.get_by_id(payment_id)
        strategy = self.providers.strategy_for(payment.payment_method)
        if not isinstance(strategy, SupportsSimulation):
            raise PaymentError.unsupported_provider(
                payment.payment_method.value,
                f"{strategy.name} does not support simulation",
            )
        reference = self._require_reference(payment)

        try:
            report = await strategy.simulate(reference)
        except PaymentError:
            raise
        except Exception as e:
            raise PaymentError.provider_error(strategy.name, "simulate payment", str(e)) from e

        logger.info("payment_simulated", payment_id=payment_id, provider_status=report.raw_status)
        return await self._apply_provider_report(payment, report)

    async def list_by_owner(self, owner_id: str) -> list[Payment]:
        async with self.uow:
            payments = await self.uow.payments.list_by_owner(owner_id)
        if not payments:
            raise PaymentError.not_found("Payments for owner", owner_id)
        return payments

    async def list_paginated(self, page: int = 1, limit: int = 10) -> Page[Payment]:
        if page < 1 or limit < 1 or limit > self.max_page_size:
            raise PaymentError.invalid_input(
                f"Invalid pagination parameters: page={page}, limit={limit} (max {self.max_page_size})",
                page=page,
                limit=limit,
            )
        async with self.uow:
            items, total = await self.uow.payments.list_paginated(page, limit)
        if not items:
            raise PaymentError.not_found("Payments page", str(page))
        return Page(items=items, total=total, page=page, limit=limit)

    async def _check_with_provider(self, payment: Payment) -> ProviderStatus:
        strategy: ProviderStrategy = self.providers.strategy_for(payment.payment_method)
        reference = self._require_reference(payment)
        try:
            return await strategy.check_status(reference)
        except PaymentError:
            raise
        except Exception as e:
            raise PaymentError.provider_error(strategy.name, "check payment status", str(e)) from e

    async def _apply_provider_report(self, payment: Payment, report: ProviderStatus) -> Payment:
        path = transition_path(payment.status, report.status)
        if path is None:
            logger.warning(
                "out_of_order_provider_status",
                payment_id=payment.id,
                current_status=payment.status.value,
                provider_status=report.raw_status,
            )
            raise PaymentError.invalid_transition(payment.id, payment.status.value, report.status.value)

        reason = f"{report.provider} reported {report.raw_status}"
        for step in path:
            payment = await self.update_status(payment.id, step, reason)
        return payment

    @staticmethod
    def _require_reference(payment: Payment) -> str:
        if not payment.transaction_id:
            raise PaymentError.invalid_input(
                f"Payment {payment.id} has no provider reference",
                payment_id=payment.id,
            )
        return payment.transaction_id

    async def _run_hooks(self, payment: Payment, previous: PaymentStatus | None) -> None:
        for hook in self.hooks:
            try:
                await hook(payment, previous)
            except Exception:
                logger.error(
                    "status_hook_failed",
                    payment_id=payment.id,
                    hook=getattr(hook, "__name__", repr(hook)),
                    exc_info=True,
                )
