import asyncio
import signal
from typing import NoReturn

import structlog
from prometheus_client import start_http_server

from fastcv_payments.config import settings
from fastcv_payments.grpc_server import GrpcServer
from fastcv_payments.infrastructure.database import Database
from fastcv_payments.infrastructure.hooks import DEFAULT_HOOKS
from fastcv_payments.infrastructure.providers import build_provider_registry
from fastcv_payments.logging import configure_logging


logger = structlog.get_logger()


async def main() -> NoReturn:
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
    )

    logger.info(
        "starting_payment_service",
        grpc_port=settings.grpc_port,
        metrics_port=settings.metrics_port,
        log_level=settings.log_level,
        metrics_enabled=settings.metrics_enabled,
    )

    database = Database(settings.database_url)
    await database.ping()

    if settings.metrics_enabled:
        start_http_server(settings.metrics_port)
        logger.info("metrics_server_started", port=settings.metrics_port)

    server = GrpcServer(
        database=database,
        providers=build_provider_registry(settings),
        hooks=DEFAULT_HOOKS,
        default_currency=settings.default_currency,
        max_page_size=settings.pagination_max_limit,
    )

    loop = asyncio.get_running_loop()

    async def shutdown() -> None:
        logger.info("shutting_down")
        await server.stop()
        await database.close()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(shutdown()),
        )

    await server.start(port=settings.grpc_port)
    await server.wait_for_termination()

    raise SystemExit(0)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
