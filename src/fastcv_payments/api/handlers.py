from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from functools import wraps
from typing import TypeAlias, TypeVar

import grpc
import structlog
from google.protobuf import json_format, struct_pb2

from fastcv_payments.api.errors import status_code_for
from fastcv_payments.application.services import CreatePaymentCommand, PaymentWorkflow
from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.models import Page, Payment, PaymentStatus
from fastcv_payments.infrastructure.metrics import PAYMENT_DURATION_SECONDS
from fastcv_payments.proto.payment.v1 import payment_pb2, payment_pb2_grpc


logger = structlog.get_logger()

SERVICE_NAME = payment_pb2.DESCRIPTOR.services_by_name["PaymentService"].full_name

STATUS_MAP = {
    PaymentStatus.PENDING: payment_pb2.PAYMENT_STATUS_PENDING,
    PaymentStatus.PROCESSING: payment_pb2.PAYMENT_STATUS_PROCESSING,
    PaymentStatus.PAID: payment_pb2.PAYMENT_STATUS_PAID,
    PaymentStatus.FAILED: payment_pb2.PAYMENT_STATUS_FAILED,
    PaymentStatus.REFUNDED: payment_pb2.PAYMENT_STATUS_REFUNDED,
}
STATUS_FROM_PROTO = {value: status for status, value in STATUS_MAP.items()}

Req = TypeVar("Req")
Resp = TypeVar("Resp")

WorkflowFactory: TypeAlias = Callable[[], AbstractAsyncContextManager[PaymentWorkflow]]
_Rpc: TypeAlias = Callable[["PaymentServiceHandler", Req, grpc.aio.ServicerContext], Awaitable[Resp]]


def rpc(func: _Rpc[Req, Resp]) -> _Rpc[Req, Resp]:
    """Abort with the status code of any PaymentError the handler raises."""

    @wraps(func)
    async def wrapper(self: "PaymentServiceHandler", request: Req, context: grpc.aio.ServicerContext) -> Resp:
        log = logger.bind(method=func.__name__)
        log.info("request_received")
        try:
            return await func(self, request, context)
        except PaymentError as e:
            log.info("request_failed", error_kind=e.kind.value, error=e.message)
            await context.abort(status_code_for(e.kind), e.message)
            raise AssertionError("unreachable") from e

    return wrapper


async def require_fields(request: object, context: grpc.aio.ServicerContext, *fields: str) -> None:
    for name in fields:
        if not getattr(request, name):
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, f"{name} is required")


def payment_to_proto(payment: Payment) -> payment_pb2.Payment:
    amount = payment.amount
    checkout = struct_pb2.Struct()
    checkout.update(payment.checkout)
    return payment_pb2.Payment(
        payment_id=payment.id,
        owner_id=payment.owner_id,
        amount=str(amount.amount),
        amount_cents=payment.amount_cents,
        currency=payment.currency,
        formatted_amount=amount.format(),
        payment_method=payment.payment_method.value,
        provider=payment.provider or "",
        transaction_id=payment.transaction_id or "",
        status=STATUS_MAP[payment.status],
        status_reason=payment.status_reason or "",
        version=payment.version,
        created_at=payment.created_at.isoformat(),
        updated_at=payment.updated_at.isoformat(),
        checkout=checkout,
    )


def page_to_proto(page: Page[Payment]) -> payment_pb2.ListPaymentsResponse:
    return payment_pb2.ListPaymentsResponse(
        payments=[payment_to_proto(p) for p in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )


class PaymentServiceHandler(payment_pb2_grpc.PaymentServiceServicer):
    def __init__(self, workflow_factory: WorkflowFactory, default_currency: str = "BRL") -> None:
        self._workflow_factory = workflow_factory
        self._default_currency = default_currency

    @rpc
    async def CreatePayment(
        self,
        request: payment_pb2.CreatePaymentRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.CreatePaymentResponse:
        await require_fields(request, context, "owner_id", "amount", "payment_method")

        cmd = CreatePaymentCommand(
            owner_id=request.owner_id,
            amount=request.amount,
            payment_method=request.payment_method,
            currency=request.currency or self._default_currency,
            metadata=json_format.MessageToDict(request.metadata),
        )
        with PAYMENT_DURATION_SECONDS.time():
            async with self._workflow_factory() as workflow:
                payment = await workflow.create(cmd)
        return payment_pb2.CreatePaymentResponse(payment=payment_to_proto(payment))

    @rpc
    async def GetPayment(
        self,
        request: payment_pb2.GetPaymentRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.GetPaymentResponse:
        await require_fields(request, context, "payment_id")
        async with self._workflow_factory() as workflow:
            payment = await workflow.get_by_id(request.payment_id)
        return payment_pb2.GetPaymentResponse(payment=payment_to_proto(payment))

    @rpc
    async def UpdatePaymentStatus(
        self,
        request: payment_pb2.UpdatePaymentStatusRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.UpdatePaymentStatusResponse:
        await require_fields(request, context, "payment_id")
        target = STATUS_FROM_PROTO.get(request.status)
        if target is None:
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, "status is required")
            raise AssertionError("unreachable")

        async with self._workflow_factory() as workflow:
            payment = await workflow.update_status(request.payment_id, target, request.reason or None)
        return payment_pb2.UpdatePaymentStatusResponse(payment=payment_to_proto(payment))

    @rpc
    async def RefreshPaymentStatus(
        self,
        request: payment_pb2.RefreshPaymentStatusRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.RefreshPaymentStatusResponse:
        await require_fields(request, context, "payment_id")
        async with self._workflow_factory() as workflow:
            payment = await workflow.refresh_status(request.payment_id)
        return payment_pb2.RefreshPaymentStatusResponse(payment=payment_to_proto(payment))

    @rpc
    async def SimulatePayment(
        self,
        request: payment_pb2.SimulatePaymentRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.SimulatePaymentResponse:
        await require_fields(request, context, "payment_id")
        async with self._workflow_factory() as workflow:
            payment = await workflow.simulate(request.payment_id)
        return payment_pb2.SimulatePaymentResponse(payment=payment_to_proto(payment))

    @rpc
    async def ListPaymentsByOwner(
        self,
        request: payment_pb2.ListPaymentsByOwnerRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.ListPaymentsByOwnerResponse:
        await require_fields(request, context, "owner_id")
        async with self._workflow_factory() as workflow:
            payments = await workflow.list_by_owner(request.owner_id)
        return payment_pb2.ListPaymentsByOwnerResponse(payments=[payment_to_proto(p) for p in payments])

    @rpc
    async def ListPayments(
        self,
        request: payment_pb2.ListPaymentsRequest,
        context: grpc.aio.ServicerContext,
    ) -> payment_pb2.ListPaymentsResponse:
        page = request.page if request.HasField("page") else 1
        limit = request.limit if request.HasField("limit") else 10
        async with self._workflow_factory() as workflow:
            result = await workflow.list_paginated(page, limit)
        return page_to_proto(result)
