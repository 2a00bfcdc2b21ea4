"""Payment provider connectors and the provider registry."""

import logging
from typing import Any, Callable, Dict, Mapping

from ..errors import ProviderNotFoundError
from .base import (
    Action,
    CallbackResult,
    Client,
    Invoice,
    InvoiceStatus,
    Order,
    OrderRef,
    Payment,
    PaymentProviderBase,
    Periodicity,
    Product,
    Subscription,
    TransactionManager,
    TransactionRegistrar,
    TransactionStatus,
    TransactionType,
)

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Mapping[str, Any]], PaymentProviderBase]

# Provider name -> factory taking the provider's settings
PROVIDERS: Dict[str, ProviderFactory] = {}


def register_provider(name: str, factory: ProviderFactory) -> None:
    if name in PROVIDERS:
        logger.info(f"Replacing payment provider factory for {name!r}")
    PROVIDERS[name] = factory


def create_provider(name: str, config: Mapping[str, Any]) -> PaymentProviderBase:
    """Instantiate the provider registered under ``name``.

    Raises:
        ProviderNotFoundError: If nothing is registered under ``name``.
    """
    factory = PROVIDERS.get(name)
    if factory is None:
        raise ProviderNotFoundError(name)
    return factory(config)


from . import liqpay  # noqa: E402

liqpay.register(register_provider)

from .liqpay import LiqPayConnector, LiqPayConfig  # noqa: E402

__all__ = [
    # Base classes and models
    "PaymentProviderBase",
    "Action",
    "CallbackResult",
    "Client",
    "Invoice",
    "InvoiceStatus",
    "Order",
    "OrderRef",
    "Payment",
    "Periodicity",
    "Product",
    "Subscription",
    "TransactionStatus",
    "TransactionType",
    # Collaborator interfaces
    "TransactionManager",
    "TransactionRegistrar",
    # Registry
    "PROVIDERS",
    "register_provider",
    "create_provider",
    # Connectors
    "LiqPayConnector",
    "LiqPayConfig",
]
