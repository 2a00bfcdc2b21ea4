"""Assembly of LiqPay checkout parameters for one-off payments and subscriptions."""

import logging
from datetime import datetime, timezone
from operator import attrgetter
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..base import (
    Client,
    Order,
    Payment,
    Periodicity,
    Product,
    TransactionRegistrar,
)
from ...errors import UnsupportedPeriodicityError
from .config import LiqPayConfig

logger = logging.getLogger(__name__)

VERSION = 3
PROVIDER_NAME = "liqpay"
SUBSCRIBE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ACTION_PAY = "pay"
ACTION_SUBSCRIBE = "subscribe"
ACTION_UNSUBSCRIBE = "unsubscribe"

# Only these host periodicities can be billed by LiqPay.
PERIODS: Mapping[Periodicity, str] = {
    Periodicity.MONTH: "month",
    Periodicity.YEAR: "year",
}

Accessor = Callable[[Any], Optional[str]]

# Output key -> accessor on the client / product model.
CLIENT_FIELDS: Tuple[Tuple[str, Accessor], ...] = (
    ("sender_first_name", attrgetter("first_name")),
    ("sender_last_name", attrgetter("last_name")),
    ("sender_city", attrgetter("city")),
    ("sender_address", attrgetter("address")),
    ("sender_postal_code", attrgetter("postal_code")),
)

PRODUCT_FIELDS: Tuple[Tuple[str, Accessor], ...] = (
    ("product_url", attrgetter("url")),
    ("product_category", attrgetter("category")),
    ("product_name", attrgetter("name")),
    ("product_description", attrgetter("description")),
)


def format_subscribe_start(start: datetime) -> str:
    """Render a subscription start instant in UTC; naive values are taken as UTC."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return start.astimezone(timezone.utc).strftime(SUBSCRIBE_DATE_FORMAT)


def _merge_present(params: Dict[str, Any], source: Any, table: Tuple[Tuple[str, Accessor], ...]) -> None:
    for key, accessor in table:
        value = accessor(source)
        if value is None or value == "":
            continue
        params[key] = value


class RequestBuilder:
    """Builds the checkout field map for an order."""

    def __init__(self, config: LiqPayConfig, callback_url: Optional[str] = None):
        self.config = config
        self.callback_url = callback_url or config.callback_url

    def build_fields(self, payment: Payment, periodicity: Optional[Periodicity] = None) -> Dict[str, Any]:
        """Return the checkout fields for ``payment`` without an ``order_id``.

        Args:
            payment: The payment to describe.
            periodicity: Overrides the subscription periodicity of the payment.

        Raises:
            UnsupportedPeriodicityError: If a subscription is not monthly or yearly.
        """
        params: Dict[str, Any] = {
            "version": VERSION,
            "public_key": self.config.public_key,
            "server_url": self.callback_url,
            "action": ACTION_PAY,
            "currency": payment.currency or self.config.currency,
            "amount": payment.amount,
            "description": payment.description,
        }

        if payment.subscription is not None:
            requested = periodicity or payment.subscription.periodicity
            if requested not in PERIODS:
                raise UnsupportedPeriodicityError(requested)
            params["action"] = ACTION_SUBSCRIBE
            params["subscribe"] = "1"
            params["subscribe_date_start"] = format_subscribe_start(payment.subscription.start)
            params["subscribe_periodicity"] = PERIODS[requested]

        if self.config.paytypes:
            params["paytypes"] = self.config.paytypes

        if self.config.sandbox:
            params["sandbox"] = 1

        client: Optional[Client] = payment.client
        if client is not None:
            if client.id:
                params["customer"] = client.id
            _merge_present(params, client, CLIENT_FIELDS)

        product: Optional[Product] = payment.product
        if product is not None:
            _merge_present(params, product, PRODUCT_FIELDS)

        params["result_url"] = payment.return_url
        return params

    async def build(
        self,
        order: Order,
        registrar: TransactionRegistrar,
        options: Optional[Mapping[str, Any]] = None,
        periodicity: Optional[Periodicity] = None,
    ) -> Dict[str, Any]:
        """Validate the order, register its transaction and return the full field map.

        Validation happens before registration, so a rejected order never
        leaves a transaction behind.
        """
        payment = order.payment
        params = self.build_fields(payment, periodicity)

        transaction = await registrar.make_transaction(
            order,
            payment,
            PROVIDER_NAME,
            options=options,
            is_subscription=payment.is_subscription,
        )
        # The transaction id, never the raw order id, is the correlation token.
        params["order_id"] = transaction.transaction_id

        logger.info(
            f"Built LiqPay {params['action']} request for order "
            f"{order.order_type}:{order.order_id} as transaction {transaction.transaction_id}"
        )
        return params
