import time
from typing import Any, ClassVar

import httpx
import structlog

from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.models import PaymentStatus
from fastcv_payments.infrastructure.metrics import (
    PROVIDER_REQUEST_DURATION,
    PROVIDER_REQUESTS_TOTAL,
)


logger = structlog.get_logger()


class HttpPaymentProvider:
    """Shared HTTP plumbing for provider strategies.

    Transport and HTTP failures are reported as ``PROVIDER_ERROR``. Nothing is
    retried here.
    """

    name = "http"
    status_map: ClassVar[dict[str, PaymentStatus]] = {}

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _auth(self) -> httpx.Auth | None:
        return None

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def map_status(self, raw_status: str) -> PaymentStatus:
        status = self.status_map.get(raw_status.lower())
        if status is None:
            raise PaymentError.provider_error(self.name, "map status", f"unknown provider status {raw_status!r}")
        return status

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        start = time.perf_counter()
        outcome = "error"
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                auth=self._auth(),
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
                response.raise_for_status()
                body = response.json()
            outcome = "success"
        except httpx.HTTPStatusError as e:
            logger.warning(
                "provider_http_error",
                provider=self.name,
                operation=operation,
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise PaymentError.provider_error(
                self.name, operation, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("provider_transport_error", provider=self.name, operation=operation, error=str(e))
            raise PaymentError.provider_error(self.name, operation, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise PaymentError.provider_error(self.name, operation, "invalid JSON response") from e
        finally:
            PROVIDER_REQUEST_DURATION.labels(provider=self.name, operation=operation).observe(
                time.perf_counter() - start
            )
            PROVIDER_REQUESTS_TOTAL.labels(provider=self.name, operation=operation, outcome=outcome).inc()

        if not isinstance(body, dict):
            raise PaymentError.provider_error(self.name, operation, "unexpected response shape")
        return body
