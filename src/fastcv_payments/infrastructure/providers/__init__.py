"""Payment provider strategies and the default method registry."""

from fastcv_payments.application.providers import ProviderRegistry
from fastcv_payments.config import Settings
from fastcv_payments.domain.models import PaymentMethod
from fastcv_payments.infrastructure.providers.abacatepay import AbacatePayPixProvider
from fastcv_payments.infrastructure.providers.pagarme import PagarmeCardProvider


def build_provider_registry(settings: Settings) -> ProviderRegistry:
    """Pix goes to AbacatePay, credit card to Pagar.me; nothing else is registered."""
    return ProviderRegistry(
        {
            PaymentMethod.PIX: lambda: AbacatePayPixProvider(
                base_url=settings.abacatepay_base_url,
                api_key=settings.abacatepay_api_key,
                timeout=settings.provider_timeout_seconds,
                expires_in=settings.abacatepay_pix_expires_in,
            ),
            PaymentMethod.CREDIT_CARD: lambda: PagarmeCardProvider(
                base_url=settings.pagarme_base_url,
                api_key=settings.pagarme_api_key,
                timeout=settings.provider_timeout_seconds,
            ),
        }
    )


__all__ = [
    "AbacatePayPixProvider",
    "PagarmeCardProvider",
    "build_provider_registry",
]
