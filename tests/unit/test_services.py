"""Unit tests for PaymentWorkflow with mocked dependencies."""

from unittest.mock import AsyncMock

import pytest

from fastcv_payments.application.providers import ProviderRegistry
from fastcv_payments.application.services import CreatePaymentCommand, PaymentWorkflow
from fastcv_payments.domain.exceptions import ErrorKind, PaymentError
from fastcv_payments.domain.models import PaymentMethod, PaymentStatus
from fastcv_payments.domain.money import Money
from tests.conftest import FakeProvider, SimulatingFakeProvider, advanced, create_payment


@pytest.fixture
def workflow(mock_uow: AsyncMock, registry: ProviderRegistry) -> PaymentWorkflow:
    """Create PaymentWorkflow with mocked UoW and the fake Pix provider."""
    return PaymentWorkflow(mock_uow, registry, max_page_size=50)


class TestPaymentWorkflowCreate:
    """Tests for PaymentWorkflow.create."""

    @pytest.fixture
    def valid_command(self) -> CreatePaymentCommand:
        return CreatePaymentCommand(
            owner_id="curriculum-001",
            amount="19,90",
            payment_method="pix",
            metadata={"description": "CV analysis"},
        )

    @pytest.mark.asyncio
    async def test_create_payment_success(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
        fake_provider: FakeProvider,
        valid_command: CreatePaymentCommand,
    ) -> None:
        """Provider is charged, then the payment is stored as pending."""
        payment = await workflow.create(valid_command)

        assert payment.status == PaymentStatus.PENDING
        assert payment.amount_cents == 1990
        assert payment.currency == "BRL"
        assert payment.payment_method == PaymentMethod.PIX
        assert payment.provider == "fake"
        assert payment.transaction_id == "fake-ref-001"
        assert payment.checkout == {"qr_code": "000201fake"}
        assert fake_provider.initiated == [(Money(1990, "BRL"), {"description": "CV analysis"})]
        mock_uow.payments.add.assert_awaited_once_with(payment)
        mock_uow.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_unregistered_method(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
        fake_provider: FakeProvider,
    ) -> None:
        """A known method with no registered provider is rejected before any call."""
        cmd = CreatePaymentCommand(owner_id="o", amount="10", payment_method="credit_card")

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(cmd)

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PROVIDER
        assert fake_provider.initiated == []
        mock_uow.payments.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_unknown_method(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        cmd = CreatePaymentCommand(owner_id="o", amount="10", payment_method="bitcoin")

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(cmd)

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PROVIDER
        mock_uow.payments.add.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5.00", "0.001"])
    async def test_create_non_positive_amount(
        self,
        workflow: PaymentWorkflow,
        fake_provider: FakeProvider,
        amount: str,
    ) -> None:
        """Amounts that round to zero or below are invalid."""
        cmd = CreatePaymentCommand(owner_id="o", amount=amount, payment_method="pix")

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(cmd)

        assert exc_info.value.kind == ErrorKind.INVALID_AMOUNT
        assert fake_provider.initiated == []

    @pytest.mark.asyncio
    async def test_create_malformed_amount(self, workflow: PaymentWorkflow) -> None:
        cmd = CreatePaymentCommand(owner_id="o", amount="ten", payment_method="pix")

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(cmd)

        assert exc_info.value.kind == ErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_provider_failure_persists_nothing(
        self,
        mock_uow: AsyncMock,
        valid_command: CreatePaymentCommand,
    ) -> None:
        """Unexpected provider exceptions become PROVIDER_ERROR and nothing is stored."""
        provider = FakeProvider(error=RuntimeError("connection reset"))
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(valid_command)

        assert exc_info.value.kind == ErrorKind.PROVIDER_ERROR
        assert "connection reset" in exc_info.value.message
        mock_uow.payments.add.assert_not_called()
        mock_uow.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_rejection_is_provider_error(
        self,
        mock_uow: AsyncMock,
        valid_command: CreatePaymentCommand,
    ) -> None:
        """Errors raised by the strategy itself also surface as PROVIDER_ERROR."""
        provider = FakeProvider(error=PaymentError.invalid_input("Pix charges must be in BRL"))
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(valid_command)

        assert exc_info.value.kind == ErrorKind.PROVIDER_ERROR
        assert "must be in BRL" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, PaymentError)
        mock_uow.payments.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_is_not_rewrapped(
        self,
        mock_uow: AsyncMock,
        valid_command: CreatePaymentCommand,
    ) -> None:
        original = PaymentError.provider_error("fake", "initiate payment", "HTTP 503")
        provider = FakeProvider(error=original)
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))

        with pytest.raises(PaymentError) as exc_info:
            await workflow.create(valid_command)

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_persist_failure_is_reraised(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
        valid_command: CreatePaymentCommand,
    ) -> None:
        """A storage failure after the provider call surfaces unchanged."""
        hook = AsyncMock()
        workflow.hooks = [hook]
        mock_uow.payments.add.side_effect = RuntimeError("database unavailable")

        with pytest.raises(RuntimeError, match="database unavailable"):
            await workflow.create(valid_command)

        hook.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_runs_hooks_without_previous_status(
        self,
        workflow: PaymentWorkflow,
        valid_command: CreatePaymentCommand,
    ) -> None:
        hook = AsyncMock()
        workflow.hooks = [hook]

        payment = await workflow.create(valid_command)

        hook.assert_awaited_once_with(payment, None)

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_fail_create(
        self,
        workflow: PaymentWorkflow,
        valid_command: CreatePaymentCommand,
    ) -> None:
        """Hook errors are logged and the remaining hooks still run."""
        broken = AsyncMock(side_effect=RuntimeError("audit sink down"))
        healthy = AsyncMock()
        workflow.hooks = [broken, healthy]

        payment = await workflow.create(valid_command)

        assert payment.status == PaymentStatus.PENDING
        healthy.assert_awaited_once_with(payment, None)


class TestPaymentWorkflowQueries:
    """Tests for get_by_id and the list operations."""

    @pytest.mark.asyncio
    async def test_get_by_id_found(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        payment = create_payment()
        mock_uow.payments.get.return_value = payment

        assert await workflow.get_by_id(payment.id) is payment
        mock_uow.payments.get.assert_awaited_once_with(payment.id)

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, workflow: PaymentWorkflow) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.get_by_id("missing")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_by_owner(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        payments = [create_payment(payment_id="p2"), create_payment(payment_id="p1")]
        mock_uow.payments.list_by_owner.return_value = payments

        assert await workflow.list_by_owner("curriculum-001") == payments
        mock_uow.payments.list_by_owner.assert_awaited_once_with("curriculum-001")

    @pytest.mark.asyncio
    async def test_list_by_owner_empty_is_not_found(self, workflow: PaymentWorkflow) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.list_by_owner("nobody")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_paginated(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        items = [create_payment(payment_id=f"p{i}") for i in range(5)]
        mock_uow.payments.list_paginated.return_value = (items, 12)

        page = await workflow.list_paginated(page=2, limit=5)

        assert page.items == items
        assert page.total == 12
        assert page.total_pages == 3
        mock_uow.payments.list_paginated.assert_awaited_once_with(2, 5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (1, 51), (-1, -1)])
    async def test_list_paginated_invalid_parameters(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
        page: int,
        limit: int,
    ) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.list_paginated(page, limit)

        assert exc_info.value.kind == ErrorKind.INVALID_INPUT
        mock_uow.payments.list_paginated.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_paginated_empty_page_is_not_found(self, workflow: PaymentWorkflow) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.list_paginated(page=9, limit=10)
        assert exc_info.value.kind == ErrorKind.NOT_FOUND


class TestPaymentWorkflowUpdateStatus:
    """Tests for PaymentWorkflow.update_status."""

    @pytest.mark.asyncio
    async def test_update_status_success(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        """Legal transition is written with the version that was read."""
        payment = create_payment(status=PaymentStatus.PROCESSING, version=3)
        updated = advanced(payment, PaymentStatus.PAID, "confirmed")
        mock_uow.payments.get.return_value = payment
        mock_uow.payments.update_status.return_value = updated

        result = await workflow.update_status(payment.id, "paid", "confirmed")

        assert result is updated
        assert result.version == 4
        mock_uow.payments.update_status.assert_awaited_once_with(
            payment.id,
            PaymentStatus.PAID,
            "confirmed",
            expected_version=3,
        )
        mock_uow.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_status_runs_hooks_with_previous(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
    ) -> None:
        hook = AsyncMock()
        workflow.hooks = [hook]
        payment = create_payment(status=PaymentStatus.PENDING)
        updated = advanced(payment, PaymentStatus.PROCESSING)
        mock_uow.payments.get.return_value = payment
        mock_uow.payments.update_status.return_value = updated

        await workflow.update_status(payment.id, PaymentStatus.PROCESSING)

        hook.assert_awaited_once_with(updated, PaymentStatus.PENDING)

    @pytest.mark.asyncio
    async def test_update_status_not_found(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.update_status("missing", "paid")

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        mock_uow.payments.update_status.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (PaymentStatus.PAID, "pending"),
            (PaymentStatus.PENDING, "paid"),
            (PaymentStatus.FAILED, "processing"),
            (PaymentStatus.REFUNDED, "paid"),
            (PaymentStatus.PENDING, "pending"),
        ],
    )
    async def test_update_status_rejects_illegal_transition(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
        current: PaymentStatus,
        requested: str,
    ) -> None:
        """Illegal transitions leave the stored payment untouched."""
        hook = AsyncMock()
        workflow.hooks = [hook]
        mock_uow.payments.get.return_value = create_payment(status=current)

        with pytest.raises(PaymentError) as exc_info:
            await workflow.update_status("01HPAYMENT0000000000000001", requested)

        assert exc_info.value.kind == ErrorKind.INVALID_TRANSITION
        mock_uow.payments.update_status.assert_not_called()
        mock_uow.commit.assert_not_called()
        hook.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_status_unknown_status(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        with pytest.raises(PaymentError) as exc_info:
            await workflow.update_status("01HPAYMENT0000000000000001", "settled")

        assert exc_info.value.kind == ErrorKind.INVALID_INPUT
        mock_uow.payments.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_status_version_conflict(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        """A concurrent writer bumping the version makes the update fail."""
        mock_uow.payments.get.return_value = create_payment(status=PaymentStatus.PENDING, version=2)
        mock_uow.payments.update_status.return_value = None

        with pytest.raises(PaymentError) as exc_info:
            await workflow.update_status("01HPAYMENT0000000000000001", "failed", "expired")

        assert exc_info.value.kind == ErrorKind.CONCURRENT_UPDATE
        mock_uow.commit.assert_not_called()


class TestPaymentWorkflowProviderSync:
    """Tests for refresh_status and simulate."""

    @pytest.mark.asyncio
    async def test_refresh_walks_to_reported_status(
        self,
        mock_uow: AsyncMock,
    ) -> None:
        """A pending payment reported paid moves through processing first."""
        provider = FakeProvider(reported_status=PaymentStatus.PAID)
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))
        pending = create_payment(status=PaymentStatus.PENDING, version=1)
        processing = advanced(pending, PaymentStatus.PROCESSING, "fake reported PAID")
        paid = advanced(processing, PaymentStatus.PAID, "fake reported PAID")
        mock_uow.payments.get.side_effect = [pending, pending, processing]
        mock_uow.payments.update_status.side_effect = [processing, paid]

        result = await workflow.refresh_status(pending.id)

        assert result.status == PaymentStatus.PAID
        assert provider.checked == ["fake-ref-001"]
        calls = mock_uow.payments.update_status.await_args_list
        assert [c.args[1] for c in calls] == [PaymentStatus.PROCESSING, PaymentStatus.PAID]
        assert [c.kwargs["expected_version"] for c in calls] == [1, 2]
        assert all(c.args[2] == "fake reported PAID" for c in calls)

    @pytest.mark.asyncio
    async def test_refresh_with_unchanged_status(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
    ) -> None:
        payment = create_payment(status=PaymentStatus.PENDING)
        mock_uow.payments.get.return_value = payment

        result = await workflow.refresh_status(payment.id)

        assert result is payment
        mock_uow.payments.update_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_out_of_order_report(self, mock_uow: AsyncMock) -> None:
        """A provider report the state machine cannot reach is rejected."""
        provider = FakeProvider(reported_status=PaymentStatus.PENDING)
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))
        mock_uow.payments.get.return_value = create_payment(status=PaymentStatus.PAID)

        with pytest.raises(PaymentError) as exc_info:
            await workflow.refresh_status("01HPAYMENT0000000000000001")

        assert exc_info.value.kind == ErrorKind.INVALID_TRANSITION
        mock_uow.payments.update_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_without_reference(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        mock_uow.payments.get.return_value = create_payment(transaction_id=None)

        with pytest.raises(PaymentError) as exc_info:
            await workflow.refresh_status("01HPAYMENT0000000000000001")

        assert exc_info.value.kind == ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_refresh_provider_failure(self, mock_uow: AsyncMock) -> None:
        provider = FakeProvider(error=TimeoutError("read timeout"))
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))
        mock_uow.payments.get.return_value = create_payment()

        with pytest.raises(PaymentError) as exc_info:
            await workflow.refresh_status("01HPAYMENT0000000000000001")

        assert exc_info.value.kind == ErrorKind.PROVIDER_ERROR
        assert exc_info.value.details["operation"] == "check payment status"

    @pytest.mark.asyncio
    async def test_refresh_method_without_provider(self, workflow: PaymentWorkflow, mock_uow: AsyncMock) -> None:
        mock_uow.payments.get.return_value = create_payment(payment_method=PaymentMethod.PAYPAL)

        with pytest.raises(PaymentError) as exc_info:
            await workflow.refresh_status("01HPAYMENT0000000000000001")

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PROVIDER

    @pytest.mark.asyncio
    async def test_simulate_confirms_payment(self, mock_uow: AsyncMock) -> None:
        provider = SimulatingFakeProvider()
        workflow = PaymentWorkflow(mock_uow, ProviderRegistry({PaymentMethod.PIX: lambda: provider}))
        pending = create_payment(status=PaymentStatus.PENDING)
        processing = advanced(pending, PaymentStatus.PROCESSING)
        paid = advanced(processing, PaymentStatus.PAID)
        mock_uow.payments.get.side_effect = [pending, pending, processing]
        mock_uow.payments.update_status.side_effect = [processing, paid]

        result = await workflow.simulate(pending.id)

        assert result.status == PaymentStatus.PAID
        assert mock_uow.payments.update_status.await_count == 2

    @pytest.mark.asyncio
    async def test_simulate_unsupported_by_provider(
        self,
        workflow: PaymentWorkflow,
        mock_uow: AsyncMock,
    ) -> None:
        """Providers without a sandbox simulation are rejected."""
        mock_uow.payments.get.return_value = create_payment()

        with pytest.raises(PaymentError) as exc_info:
            await workflow.simulate("01HPAYMENT0000000000000001")

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PROVIDER
        assert "does not support simulation" in exc_info.value.message
