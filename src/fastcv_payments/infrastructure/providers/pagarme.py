from collections.abc import Mapping
from typing import Any, ClassVar

import httpx
import structlog

from fastcv_payments.application.providers import ProviderReference, ProviderStatus
from fastcv_payments.domain.exceptions import PaymentError
from fastcv_payments.domain.models import PaymentStatus
from fastcv_payments.domain.money import Money
from fastcv_payments.infrastructure.providers.base import HttpPaymentProvider


logger = structlog.get_logger()


class PagarmeCardProvider(HttpPaymentProvider):
    """Credit card orders through the Pagar.me v5 API.

    The card must already be tokenized on the client side; ``metadata`` carries
    either ``card_token`` or ``card_id``, plus the Pagar.me ``customer`` (or
    ``customer_id``).
    """

    name = "pagarme"
    status_map: ClassVar[dict[str, PaymentStatus]] = {
        "pending": PaymentStatus.PENDING,
        "processing": PaymentStatus.PROCESSING,
        "paid": PaymentStatus.PAID,
        "failed": PaymentStatus.FAILED,
        "canceled": PaymentStatus.FAILED,
        "refunded": PaymentStatus.REFUNDED,
    }

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        statement_descriptor: str = "FASTCV",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, api_key, timeout=timeout, transport=transport)
        self._statement_descriptor = statement_descriptor

    def _auth(self) -> httpx.Auth | None:
        return httpx.BasicAuth(self._api_key, "")

    def _credit_card(self, metadata: Mapping[str, Any]) -> dict[str, Any]:
        card: dict[str, Any] = {
            "installments": int(metadata.get("installments", 1)),
            "statement_descriptor": self._statement_descriptor,
        }
        if token := metadata.get("card_token"):
            card["card_token"] = token
        elif card_id := metadata.get("card_id"):
            card["card_id"] = card_id
        else:
            raise PaymentError.invalid_input("Credit card payments need card_token or card_id")
        return card

    async def initiate(self, amount: Money, metadata: Mapping[str, Any]) -> ProviderReference:
        if amount.currency != "BRL":
            raise PaymentError.invalid_input(
                f"Pagar.me charges must be in BRL, got {amount.currency}",
                currency=amount.currency,
            )

        payload: dict[str, Any] = {
            "items": [
                {
                    "amount": amount.minor_units,
                    "description": metadata.get("description", "FastCV analysis"),
                    "quantity": 1,
                    "code": metadata.get("item_code", "cv-analysis"),
                }
            ],
            "payments": [
                {
                    "payment_method": "credit_card",
                    "amount": amount.minor_units,
                    "credit_card": self._credit_card(metadata),
                }
            ],
        }
        if customer_id := metadata.get("customer_id"):
            payload["customer_id"] = customer_id
        elif customer := metadata.get("customer"):
            payload["customer"] = dict(customer)
        if code := metadata.get("code"):
            payload["code"] = code

        body = await self._request("initiate payment", "POST", "/orders", json=payload)
        if "id" not in body:
            raise PaymentError.provider_error(self.name, "initiate payment", "response has no order id")
        order_id = str(body["id"])
        raw_status = str(body.get("status", "pending"))
        try:
            status = self.map_status(raw_status)
        except PaymentError:
            logger.error("provider_order_status_unknown", provider=self.name, order_id=order_id, raw_status=raw_status)
            raise
        if status == PaymentStatus.FAILED:
            logger.warning("provider_order_declined", provider=self.name, order_id=order_id, raw_status=raw_status)
            raise PaymentError.provider_error(self.name, "initiate payment", f"order {order_id} was {raw_status}")
        return ProviderReference(
            provider=self.name,
            reference=order_id,
            raw_status=raw_status,
            payload={"charges": body.get("charges", [])},
        )

    async def check_status(self, reference: str) -> ProviderStatus:
        body = await self._request("check payment status", "GET", f"/orders/{reference}")
        raw_status = str(body.get("status", ""))
        return ProviderStatus(
            provider=self.name,
            reference=reference,
            raw_status=raw_status,
            status=self.map_status(raw_status),
        )
