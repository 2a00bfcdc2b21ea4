"""Signed server-to-server calls to the LiqPay API."""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..base import OrderRef, TransactionRegistrar, TransactionStatus
from ...errors import MalformedPayloadError, TransactionNotFoundError
from . import codec
from .config import LiqPayConfig
from .request_builder import ACTION_UNSUBSCRIBE, PROVIDER_NAME, VERSION

logger = logging.getLogger(__name__)

API_URL = "https://www.liqpay.ua/api/"
DEFAULT_TIMEOUT = 15.0

STATUS_UNSUBSCRIBED = "unsubscribed"


class LiqPayApiClient:
    """
    Thin client for the ``/api/request`` family of endpoints.

    Transport and decode errors are not caught or retried here; they reach
    the caller as ``httpx`` / ``json`` exceptions.
    """

    def __init__(
        self,
        config: LiqPayConfig,
        base_url: str = API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.config = config
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout, verify=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _base_params(self, action: str) -> Dict[str, Any]:
        return {
            "version": VERSION,
            "public_key": self.config.public_key,
            "action": action,
        }

    async def api(self, path: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """POST a signed envelope to ``<base_url><path>`` and return the JSON body.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response.
            httpx.TransportError: On connection problems or timeouts.
            json.JSONDecodeError: If the body is not JSON.
            MalformedPayloadError: If the JSON is not an object.
        """
        envelope = codec.encode(params, self.config.secret)
        url = self.base_url + path.lstrip("/")
        logger.info(f"LiqPay API call {params.get('action')} -> {url}")

        response = await self._http.post(url, data=envelope.as_form())
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise MalformedPayloadError("Unexpected LiqPay API response")
        return body

    async def status(self, order_id: str) -> Dict[str, Any]:
        """Ask LiqPay for the current state of a payment by its correlation id."""
        params = self._base_params("status")
        params["order_id"] = order_id
        return await self.api("request", params)

    async def unsubscribe(self, order: OrderRef, registrar: TransactionRegistrar) -> bool:
        """Cancel the subscription rooted at ``order``.

        Returns True without calling LiqPay when the root transaction is
        already canceled.

        Raises:
            TransactionNotFoundError: If the order has no root transaction.
        """
        transaction = await registrar.find_root_transaction(order, PROVIDER_NAME)
        if transaction is None:
            raise TransactionNotFoundError(
                f"No {PROVIDER_NAME} root transaction for order {order.order_type}:{order.order_id}"
            )

        if transaction.status == TransactionStatus.CANCELED.value:
            logger.info(f"Subscription {transaction.transaction_id} already canceled")
            return True

        params = self._base_params(ACTION_UNSUBSCRIBE)
        params["order_id"] = transaction.transaction_id
        result = await self.api("request", params)

        unsubscribed = result.get("status") == STATUS_UNSUBSCRIBED
        if not unsubscribed:
            logger.warning(
                f"LiqPay refused to unsubscribe {transaction.transaction_id}: "
                f"status={result.get('status')!r} err={result.get('err_description')!r}"
            )
        return unsubscribed
