"""Authentication of LiqPay server callbacks and translation into invoices."""

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..base import CallbackResult, Invoice, InvoiceStatus, TransactionType
from ...errors import (
    CallbackError,
    InvalidPublicKeyError,
    InvalidSignatureError,
    InvalidVersionError,
    MalformedCallbackError,
    MalformedPayloadError,
)
from . import codec
from .config import LiqPayConfig
from .request_builder import ACTION_SUBSCRIBE, PROVIDER_NAME, VERSION
from .statuses import DEFAULT_STATUSES, StatusTable

logger = logging.getLogger(__name__)

STATUS_REVERSED = "reversed"


class CallbackPayload(BaseModel):
    """Decoded contents of a callback ``data`` field. Unknown keys are kept."""
    model_config = ConfigDict(extra="allow")

    version: int
    public_key: str
    action: str
    status: str
    payment_id: str
    order_id: str
    amount: Decimal = Decimal("0")
    refund_amount: Optional[Decimal] = None
    receiver_commission: Optional[Decimal] = None

    @field_validator("payment_id", "order_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        # LiqPay sends payment_id as a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class CallbackHandler:
    """
    Verifies a callback form body and maps it onto zero or one Invoice.

    The handler never deduplicates: repeated deliveries yield equal invoices
    and the transaction manager is expected to apply them idempotently.
    """

    def __init__(
        self,
        config: LiqPayConfig,
        statuses: StatusTable = DEFAULT_STATUSES,
        provider_name: str = PROVIDER_NAME,
    ):
        self.config = config
        self.statuses = statuses
        self.provider_name = provider_name

    def verify(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        """Check signature, version and public key and return the decoded fields.

        Raises:
            InvalidSignatureError: Missing fields or signature mismatch.
            MalformedCallbackError: ``data`` is not a valid payload.
            InvalidVersionError: Protocol version differs from ours.
            InvalidPublicKeyError: Payload is addressed to another merchant.
        """
        data = form.get("data")
        signature = form.get("signature")
        if not data or not signature:
            raise InvalidSignatureError("Callback is missing data or signature")
        if not codec.verify(data, signature, self.config.secret):
            raise InvalidSignatureError("Invalid signature")

        try:
            raw = codec.decode(data)
        except MalformedPayloadError as e:
            raise MalformedCallbackError(str(e)) from e

        if raw.get("version") != VERSION:
            raise InvalidVersionError(f"Invalid version: {raw.get('version')!r}")
        if raw.get("public_key") != self.config.public_key:
            raise InvalidPublicKeyError("Invalid public key")
        return raw

    @staticmethod
    def parse(raw: Mapping[str, Any]) -> CallbackPayload:
        try:
            return CallbackPayload.model_validate(raw)
        except ValidationError as e:
            raise MalformedCallbackError(f"Callback payload is incomplete: {e.error_count()} errors") from e

    def authenticate(self, form: Mapping[str, Any]) -> CallbackPayload:
        """Verify ``form`` and return the validated payload.

        Raises:
            CallbackError: See :meth:`verify`; MalformedCallbackError also for
                missing required fields.
        """
        return self.parse(self.verify(form))

    def to_invoice(self, payload: CallbackPayload) -> Optional[Invoice]:
        """Map an authenticated payload onto an Invoice, or None for unknown statuses."""
        status: Optional[InvoiceStatus] = self.statuses.get(payload.status)
        if status is None:
            return None

        if payload.action == ACTION_SUBSCRIBE:
            # a subscription state change, not a money movement
            return Invoice(
                provider=self.provider_name,
                payment_id=payload.payment_id,
                order_id=payload.order_id,
                type=TransactionType.SUBSCRIPTION,
                status=status,
                amount=Decimal("0"),
            )

        if payload.status == STATUS_REVERSED:
            amount = payload.refund_amount if payload.refund_amount is not None else payload.amount
            return Invoice(
                provider=self.provider_name,
                payment_id=payload.payment_id,
                order_id=payload.order_id,
                type=TransactionType.REFUND,
                status=status,
                amount=amount,
                commission=Decimal("0"),
            )

        return Invoice(
            provider=self.provider_name,
            payment_id=payload.payment_id,
            order_id=payload.order_id,
            type=TransactionType.PAYMENT,
            status=status,
            amount=payload.amount,
            commission=payload.receiver_commission or Decimal("0"),
        )

    def handle(self, form: Mapping[str, Any]) -> CallbackResult:
        """Authenticate ``form`` and interpret it.

        Rejections are logged at ERROR and re-raised; callers decide what to
        answer the gateway. A verified callback with a status outside the
        table is acknowledged without an invoice, whatever else it carries.
        """
        try:
            raw = self.verify(form)
            status = raw.get("status")
            if isinstance(status, str) and status not in self.statuses:
                action = raw.get("action")
                logger.info(
                    f"Ignoring LiqPay callback with unknown status {status!r} "
                    f"for order {raw.get('order_id')}"
                )
                return CallbackResult(
                    action=action if isinstance(action, str) else None,
                    status=status,
                    recognized=False,
                )
            payload = self.parse(raw)
        except CallbackError as e:
            logger.error(f"Rejected LiqPay callback ({e.reason}): {e}")
            raise

        invoice = self.to_invoice(payload)
        logger.info(
            f"LiqPay callback {payload.action}/{payload.status} for order {payload.order_id} "
            f"-> {invoice.type.value} {invoice.status.value}"
        )
        return CallbackResult(action=payload.action, status=payload.status, invoices=[invoice])
