import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from ..base import (
    Action,
    CallbackResult,
    Order,
    OrderRef,
    Payment,
    PaymentProviderBase,
    Periodicity,
    TransactionManager,
    TransactionRegistrar,
)
from . import codec
from .api_client import API_URL, LiqPayApiClient
from .callback import CallbackHandler
from .config import LiqPayConfig
from .request_builder import PROVIDER_NAME, RequestBuilder
from .statuses import DEFAULT_STATUSES, StatusTable

logger = logging.getLogger(__name__)

CHECKOUT_URL = API_URL + "3/checkout"

ParamsListener = Callable[[Dict[str, Any], Order], Optional[Dict[str, Any]]]
BeforeBuild = Callable[[Payment, "LiqPayConnector"], None]


class LiqPayConnector(PaymentProviderBase):
    """
    LiqPay provider: checkout actions, callback handling and unsubscribe.

    Holds only immutable configuration. Per-request collaborators (the
    transaction registrar and manager) are passed to each call.
    """

    def __init__(
        self,
        config: LiqPayConfig,
        statuses: StatusTable = DEFAULT_STATUSES,
        callback_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        api_url: str = API_URL,
    ):
        self.config = config
        self.builder = RequestBuilder(config, callback_url=callback_url)
        self.handler = CallbackHandler(config, statuses=statuses, provider_name=PROVIDER_NAME)
        self.client = LiqPayApiClient(config, base_url=api_url, http_client=http_client)
        self._params_listeners: List[ParamsListener] = []
        if not config.is_valid():
            logger.warning("LiqPayConnector created without both public and private keys")

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def add_params_listener(self, listener: ParamsListener) -> None:
        """Register a hook that may inspect or replace checkout params before signing.

        The first listener returning a non-None map wins.
        """
        self._params_listeners.append(listener)

    def _apply_params_listeners(self, params: Dict[str, Any], order: Order) -> Dict[str, Any]:
        for listener in self._params_listeners:
            replaced = listener(dict(params), order)
            if replaced is not None:
                return dict(replaced)
        return params

    async def create_payment(
        self,
        order: Order,
        registrar: TransactionRegistrar,
        before_build: Optional[BeforeBuild] = None,
        options: Optional[Mapping[str, Any]] = None,
        periodicity: Optional[Periodicity] = None,
    ) -> Action:
        """Build the signed checkout action for ``order``.

        Raises:
            UnsupportedPeriodicityError: Before any transaction is registered.
        """
        if before_build is not None:
            before_build(order.payment, self)

        params = await self.builder.build(order, registrar, options=options, periodicity=periodicity)
        params = self._apply_params_listeners(params, order)
        envelope = codec.encode(params, self.config.secret)

        return Action(
            provider=self.provider_name,
            url=CHECKOUT_URL,
            method=Action.METHOD_POST,
            data=envelope.as_form(),
        )

    async def callback(self, form: Mapping[str, Any], manager: TransactionManager) -> CallbackResult:
        """Authenticate a callback and pass its invoices to ``manager``.

        Raises:
            CallbackError: Subclasses for signature, version, key or payload problems.
        """
        result = self.handler.handle(form)
        for invoice in result.invoices:
            await manager.process(invoice)
        return result

    async def unsubscribe(self, order: OrderRef, registrar: TransactionRegistrar) -> bool:
        return await self.client.unsubscribe(order, registrar)

    async def api(self, path: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.client.api(path, params)

    async def aclose(self) -> None:
        await self.client.aclose()

    def is_valid(self) -> bool:
        return self.config.is_valid()

    def health_check(self) -> Dict[str, Any]:
        return {
            "ok": self.is_valid(),
            "provider": self.provider_name,
            "sandbox": self.config.sandbox,
            "currency": self.config.currency,
        }
