from collections.abc import Mapping
from typing import Any, ClassVar

import httpx

from fastcv_payments.application.providers import ProviderReference, ProviderStatus
from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.models import PaymentStatus
from fastcv_payments.domain.money import Money
from fastcv_payments.infrastructure.providers.base import HttpPaymentProvider


class AbacatePayPixProvider(HttpPaymentProvider):
    """Pix QR code charges through AbacatePay."""

    name = "abacatepay"
    status_map: ClassVar[dict[str, PaymentStatus]] = {
        "pending": PaymentStatus.PENDING,
        "paid": PaymentStatus.PAID,
        "expired": PaymentStatus.FAILED,
        "cancelled": PaymentStatus.FAILED,
        "refunded": PaymentStatus.REFUNDED,
    }

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        expires_in: int = 3600,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, api_key, timeout=timeout, transport=transport)
        self._expires_in = expires_in

    def _headers(self) -> dict[str, str]:
        return {**super()._headers(), "Authorization": f"Bearer {self._api_key}"}

    def _data(self, operation: str, body: dict[str, Any]) -> dict[str, Any]:
        if body.get("error"):
            raise PaymentError.provider_error(self.name, operation, str(body["error"]))
        data = body.get("data")
        if not isinstance(data, dict):
            raise PaymentError.provider_error(self.name, operation, "response has no data")
        return data

    async def initiate(self, amount: Money, metadata: Mapping[str, Any]) -> ProviderReference:
        if amount.currency != "BRL":
            raise PaymentError.invalid_input(
                f"Pix charges must be in BRL, got {amount.currency}",
                currency=amount.currency,
            )

        payload: dict[str, Any] = {
            "amount": amount.minor_units,
            "expiresIn": int(metadata.get("expires_in", self._expires_in)),
            "description": metadata.get("description", "FastCV analysis"),
        }
        if customer := metadata.get("customer"):
            payload["customer"] = dict(customer)
        if extra := metadata.get("metadata"):
            payload["metadata"] = dict(extra)

        body = await self._request("initiate payment", "POST", "/pixQrCode/create", json=payload)
        data = self._data("initiate payment", body)
        return ProviderReference(
            provider=self.name,
            reference=str(data["id"]),
            raw_status=str(data.get("status", "PENDING")),
            payload={key: data[key] for key in ("brCode", "brCodeBase64", "expiresAt") if key in data},
        )

    async def check_status(self, reference: str) -> ProviderStatus:
        body = await self._request("check payment status", "GET", "/pixQrCode/check", params={"id": reference})
        return self._status(reference, self._data("check payment status", body))

    async def simulate(self, reference: str) -> ProviderStatus:
        """Dev-mode only: marks the QR code as paid."""
        body = await self._request(
            "simulate payment",
            "POST",
            "/pixQrCode/simulate-payment",
            params={"id": reference},
            json={"metadata": {}},
        )
        return self._status(reference, self._data("simulate payment", body))

    def _status(self, reference: str, data: dict[str, Any]) -> ProviderStatus:
        raw_status = str(data.get("status", ""))
        return ProviderStatus(
            provider=self.name,
            reference=reference,
            raw_status=raw_status,
            status=self.map_status(raw_status),
        )
