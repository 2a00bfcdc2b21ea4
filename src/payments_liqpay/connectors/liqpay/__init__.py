"""LiqPay payment provider."""

from typing import Any, Callable, Mapping, Optional

from .api_client import API_URL, LiqPayApiClient
from .callback import CallbackHandler, CallbackPayload
from .codec import SignedEnvelope, decode, encode, sign, verify
from .config import CURRENCIES, LiqPayConfig, PayType, config_schema
from .provider import CHECKOUT_URL, LiqPayConnector
from .request_builder import (
    CLIENT_FIELDS,
    PERIODS,
    PRODUCT_FIELDS,
    PROVIDER_NAME,
    VERSION,
    RequestBuilder,
)
from .statuses import DEFAULT_STATUSES, make_status_table


def create_connector(config: Mapping[str, Any]) -> LiqPayConnector:
    """Factory used by the provider registry."""
    return LiqPayConnector(LiqPayConfig(**config))


def register(registry: Optional[Callable[[str, Callable[..., Any]], None]] = None) -> None:
    """Register the LiqPay factory under its provider name."""
    if registry is None:
        from .. import register_provider as registry
    registry(PROVIDER_NAME, create_connector)


__all__ = [
    "API_URL",
    "CHECKOUT_URL",
    "CLIENT_FIELDS",
    "CURRENCIES",
    "DEFAULT_STATUSES",
    "PERIODS",
    "PRODUCT_FIELDS",
    "PROVIDER_NAME",
    "VERSION",
    "CallbackHandler",
    "CallbackPayload",
    "LiqPayApiClient",
    "LiqPayConfig",
    "LiqPayConnector",
    "PayType",
    "RequestBuilder",
    "SignedEnvelope",
    "config_schema",
    "create_connector",
    "decode",
    "encode",
    "make_status_table",
    "register",
    "sign",
    "verify",
]
