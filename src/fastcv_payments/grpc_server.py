from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import grpc
import structlog
from grpc_health.v1 import health, health_pb2, health_pb2_grpc
from grpc_reflection.v1alpha import reflection

from fastcv_payments.api.handlers import SERVICE_NAME, PaymentServiceHandler
from fastcv_payments.api.interceptors import MetricsInterceptor
from fastcv_payments.application.providers import ProviderRegistry
from fastcv_payments.application.services import PaymentWorkflow, StatusHook
from fastcv_payments.application.unit_of_work import UnitOfWork
from fastcv_payments.infrastructure.database import Database
from fastcv_payments.proto.payment.v1 import payment_pb2_grpc


logger = structlog.get_logger()


class GrpcServer:
    def __init__(
        self,
        database: Database,
        providers: ProviderRegistry,
        hooks: Sequence[StatusHook] = (),
        default_currency: str = "BRL",
        max_page_size: int = 100,
    ) -> None:
        self._database = database
        self._providers = providers
        self._hooks = list(hooks)
        self._default_currency = default_currency
        self._max_page_size = max_page_size
        self._server: grpc.aio.Server | None = None
        self._health_servicer = health.HealthServicer()

    @asynccontextmanager
    async def workflow(self) -> AsyncIterator[PaymentWorkflow]:
        """One session and unit of work per request."""
        async with self._database.session() as session:
            yield PaymentWorkflow(
                UnitOfWork(session),
                self._providers,
                hooks=self._hooks,
                max_page_size=self._max_page_size,
            )

    async def start(self, port: int = 50051) -> None:
        self._server = grpc.aio.server(
            interceptors=[MetricsInterceptor()],
            options=[
                ("grpc.max_send_message_length", 4 * 1024 * 1024),
                ("grpc.max_receive_message_length", 4 * 1024 * 1024),
            ],
        )

        handler = PaymentServiceHandler(self.workflow, default_currency=self._default_currency)
        payment_pb2_grpc.add_PaymentServiceServicer_to_server(handler, self._server)

        health_pb2_grpc.add_HealthServicer_to_server(self._health_servicer, self._server)

        service_names = (
            SERVICE_NAME,
            health_pb2.DESCRIPTOR.services_by_name["Health"].full_name,
            reflection.SERVICE_NAME,
        )
        reflection.enable_server_reflection(service_names, self._server)

        self._health_servicer.set("", health_pb2.HealthCheckResponse.SERVING)
        self._health_servicer.set(SERVICE_NAME, health_pb2.HealthCheckResponse.SERVING)

        listen_addr = f"[::]:{port}"
        self._server.add_insecure_port(listen_addr)

        await self._server.start()
        logger.info(
            "grpc_server_started",
            port=port,
            payment_methods=[m.value for m in self._providers.methods],
        )

    async def wait_for_termination(self) -> None:
        if self._server:
            await self._server.wait_for_termination()

    async def stop(self, grace: float = 10.0) -> None:
        if self._server:
            self._health_servicer.set("", health_pb2.HealthCheckResponse.NOT_SERVING)
            await self._server.stop(grace)
            logger.info("grpc_server_stopped")
