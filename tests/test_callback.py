"""Tests for callback authentication and status mapping."""

import base64
import logging
from decimal import Decimal

import pytest

from payments_liqpay.connectors.base import InvoiceStatus, TransactionType
from payments_liqpay.connectors.liqpay import (
    DEFAULT_STATUSES,
    CallbackHandler,
    make_status_table,
    sign,
)
from payments_liqpay.errors import (
    CallbackError,
    InvalidPublicKeyError,
    InvalidSignatureError,
    InvalidVersionError,
    MalformedCallbackError,
)

from conftest import PRIVATE_KEY


@pytest.fixture
def handler(liqpay_config):
    return CallbackHandler(liqpay_config)


class TestAuthentication:
    """Tests for rejecting untrusted callbacks."""

    def test_tampered_signature_rejected(self, handler, callback_fields, sign_callback):
        form = sign_callback(callback_fields)
        form["signature"] = sign(form["data"], "not-the-key")

        with pytest.raises(InvalidSignatureError):
            handler.handle(form)

    def test_tampered_data_rejected(self, handler, callback_fields, sign_callback):
        form = sign_callback(callback_fields)
        forged = sign_callback(dict(callback_fields, amount=1.0))
        form["data"] = forged["data"]

        with pytest.raises(InvalidSignatureError):
            handler.handle(form)

    @pytest.mark.parametrize("missing", ["data", "signature"])
    def test_missing_field_rejected(self, handler, callback_fields, sign_callback, missing):
        form = sign_callback(callback_fields)
        del form[missing]

        with pytest.raises(InvalidSignatureError):
            handler.handle(form)

    def test_wrong_version_rejected(self, handler, callback_fields, sign_callback):
        callback_fields["version"] = 2
        with pytest.raises(InvalidVersionError):
            handler.handle(sign_callback(callback_fields))

    def test_string_version_rejected(self, handler, callback_fields, sign_callback):
        callback_fields["version"] = "3"
        with pytest.raises(InvalidVersionError):
            handler.handle(sign_callback(callback_fields))

    def test_foreign_public_key_rejected(self, handler, callback_fields, sign_callback):
        callback_fields["public_key"] = "someone-else"
        with pytest.raises(InvalidPublicKeyError):
            handler.handle(sign_callback(callback_fields))

    def test_signature_checked_before_version(self, handler, callback_fields, sign_callback):
        """Test that a forged payload with a bad version reports the signature."""
        callback_fields["version"] = 2
        form = sign_callback(callback_fields, private_key="attacker")
        with pytest.raises(InvalidSignatureError):
            handler.handle(form)

    def test_signed_garbage_is_malformed(self, handler):
        data = base64.b64encode(b"not json").decode()
        form = {"data": data, "signature": sign(data, PRIVATE_KEY)}
        with pytest.raises(MalformedCallbackError):
            handler.handle(form)

    def test_missing_required_field_is_malformed(self, handler, callback_fields, sign_callback):
        del callback_fields["payment_id"]
        with pytest.raises(MalformedCallbackError):
            handler.handle(sign_callback(callback_fields))

    def test_rejection_is_logged_at_error(self, handler, callback_fields, sign_callback, caplog):
        callback_fields["public_key"] = "someone-else"
        with caplog.at_level(logging.ERROR):
            with pytest.raises(CallbackError):
                handler.handle(sign_callback(callback_fields))
        assert "invalid_public_key" in caplog.text


class TestPaymentCallbacks:
    """Tests for one-off payment status mapping."""

    def test_success_produces_payment_invoice(self, handler, callback_fields, sign_callback):
        result = handler.handle(sign_callback(callback_fields))

        assert result.recognized
        assert len(result.invoices) == 1
        invoice = result.invoices[0]
        assert invoice.provider == "liqpay"
        assert invoice.payment_id == "1650000001"
        assert invoice.order_id == "tx-1"
        assert invoice.type == TransactionType.PAYMENT
        assert invoice.status == InvoiceStatus.SUCCESSFUL
        assert invoice.amount == Decimal("150.5")
        assert invoice.commission == Decimal("4.14")

    def test_missing_commission_is_zero(self, handler, callback_fields, sign_callback):
        del callback_fields["receiver_commission"]
        invoice = handler.handle(sign_callback(callback_fields)).invoices[0]
        assert invoice.commission == Decimal("0")

    @pytest.mark.parametrize("status,expected", [
        ("failure", InvoiceStatus.FAILURE),
        ("sandbox", InvoiceStatus.SUCCESSFUL),
        ("refund", InvoiceStatus.REFUND),
    ])
    def test_status_table(self, handler, callback_fields, sign_callback, status, expected):
        callback_fields["status"] = status
        invoice = handler.handle(sign_callback(callback_fields)).invoices[0]
        assert invoice.type == TransactionType.PAYMENT
        assert invoice.status == expected

    def test_reversed_produces_refund_without_commission(self, handler, callback_fields, sign_callback):
        callback_fields["status"] = "reversed"
        callback_fields["refund_amount"] = 50.25

        result = handler.handle(sign_callback(callback_fields))

        assert len(result.invoices) == 1
        invoice = result.invoices[0]
        assert invoice.type == TransactionType.REFUND
        assert invoice.status == InvoiceStatus.REFUND
        assert invoice.amount == Decimal("50.25")
        assert invoice.commission == Decimal("0")

    def test_reversed_without_refund_amount_uses_amount(self, handler, callback_fields, sign_callback):
        callback_fields["status"] = "reversed"
        invoice = handler.handle(sign_callback(callback_fields)).invoices[0]
        assert invoice.amount == Decimal("150.5")

    def test_unknown_status_is_acknowledged_noop(self, handler, callback_fields, sign_callback):
        callback_fields["status"] = "wait_secure"
        result = handler.handle(sign_callback(callback_fields))

        assert result.recognized is False
        assert result.invoices == []
        assert result.status == "wait_secure"

    def test_unknown_status_with_partial_payload_is_acknowledged(self, handler, callback_fields, sign_callback):
        """Test that an unknown status is a no-op even when required fields are absent."""
        callback_fields["status"] = "cash_wait"
        del callback_fields["payment_id"]

        result = handler.handle(sign_callback(callback_fields))

        assert result.recognized is False
        assert result.invoices == []
        assert result.action == "pay"

    def test_missing_status_is_malformed(self, handler, callback_fields, sign_callback):
        del callback_fields["status"]
        with pytest.raises(MalformedCallbackError):
            handler.handle(sign_callback(callback_fields))

    def test_unknown_status_still_requires_signature(self, handler, callback_fields, sign_callback):
        callback_fields["status"] = "cash_wait"
        with pytest.raises(InvalidSignatureError):
            handler.handle(sign_callback(callback_fields, private_key="forged"))

    def test_repeated_delivery_yields_equal_invoices(self, handler, callback_fields, sign_callback):
        form = sign_callback(callback_fields)
        assert handler.handle(form).invoices == handler.handle(form).invoices

    def test_extra_fields_are_tolerated(self, handler, callback_fields, sign_callback):
        callback_fields["sender_card_mask2"] = "4731**1234"
        assert len(handler.handle(sign_callback(callback_fields)).invoices) == 1


class TestSubscriptionCallbacks:
    """Tests for subscription lifecycle mapping."""

    @pytest.fixture
    def subscribe_fields(self, callback_fields):
        callback_fields.update(action="subscribe", status="subscribed")
        return callback_fields

    def test_subscribed_produces_single_subscription_invoice(self, handler, subscribe_fields, sign_callback):
        result = handler.handle(sign_callback(subscribe_fields))

        assert len(result.invoices) == 1
        invoice = result.invoices[0]
        assert invoice.type == TransactionType.SUBSCRIPTION
        assert invoice.status == InvoiceStatus.SUCCESSFUL
        assert invoice.amount == Decimal("0")
        assert invoice.commission == Decimal("0")

    def test_unsubscribed_is_canceled(self, handler, subscribe_fields, sign_callback):
        subscribe_fields["status"] = "unsubscribed"
        invoice = handler.handle(sign_callback(subscribe_fields)).invoices[0]
        assert invoice.type == TransactionType.SUBSCRIPTION
        assert invoice.status == InvoiceStatus.CANCELED

    def test_reversed_on_subscribe_is_still_subscription(self, handler, subscribe_fields, sign_callback):
        subscribe_fields["status"] = "reversed"
        invoice = handler.handle(sign_callback(subscribe_fields)).invoices[0]
        assert invoice.type == TransactionType.SUBSCRIPTION
        assert invoice.amount == Decimal("0")

    def test_recurring_charge_is_payment(self, handler, callback_fields, sign_callback):
        callback_fields["action"] = "regular"
        invoice = handler.handle(sign_callback(callback_fields)).invoices[0]
        assert invoice.type == TransactionType.PAYMENT


class TestStatusTable:
    """Tests for the injectable status table."""

    def test_default_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_STATUSES["hold_wait"] = InvoiceStatus.SUCCESSFUL

    def test_default_table_contents(self):
        assert dict(DEFAULT_STATUSES) == {
            "failure": InvoiceStatus.FAILURE,
            "success": InvoiceStatus.SUCCESSFUL,
            "sandbox": InvoiceStatus.SUCCESSFUL,
            "reversed": InvoiceStatus.REFUND,
            "refund": InvoiceStatus.REFUND,
            "subscribed": InvoiceStatus.SUCCESSFUL,
            "unsubscribed": InvoiceStatus.CANCELED,
        }

    def test_override_table(self, liqpay_config, callback_fields, sign_callback):
        statuses = make_status_table({"hold_wait": "successful"})
        handler = CallbackHandler(liqpay_config, statuses=statuses)
        callback_fields["status"] = "hold_wait"

        invoice = handler.handle(sign_callback(callback_fields)).invoices[0]

        assert invoice.status == InvoiceStatus.SUCCESSFUL
        assert "hold_wait" not in DEFAULT_STATUSES
