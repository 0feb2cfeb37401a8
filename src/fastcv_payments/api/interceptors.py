import time
from collections.abc import Awaitable, Callable
from typing import Any

import grpc
import structlog

from fastcv_payments.infrastructure.metrics import (
    GRPC_REQUEST_DURATION,
    GRPC_REQUESTS_TOTAL,
)


logger = structlog.get_logger()


def _status_name(context: grpc.aio.ServicerContext) -> str:
    code = context.code()
    if code is None:
        return "UNKNOWN"
    return getattr(code, "name", str(code))


class MetricsInterceptor(grpc.aio.ServerInterceptor):
    """Records Prometheus count and duration for each unary-unary call."""

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None or handler.unary_unary is None:
            return handler

        method = handler_call_details.method
        behavior = handler.unary_unary

        async def observed(request: Any, context: grpc.aio.ServicerContext) -> Any:
            start_time = time.perf_counter()
            status_code = "OK"
            try:
                return await behavior(request, context)
            except grpc.aio.AbortError:
                status_code = _status_name(context)
                raise
            except Exception:
                status_code = "UNKNOWN"
                logger.error("grpc_unhandled_error", method=method, exc_info=True)
                raise
            finally:
                duration = time.perf_counter() - start_time
                GRPC_REQUEST_DURATION.labels(method=method, status_code=status_code).observe(duration)
                GRPC_REQUESTS_TOTAL.labels(method=method, status_code=status_code).inc()

        return grpc.unary_unary_rpc_method_handler(
            observed,
            request_deserializer=handler.request_deserializer,
            response_serializer=handler.response_serializer,
        )
