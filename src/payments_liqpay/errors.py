"""Exception types raised by the LiqPay provider."""


class PaymentProviderError(Exception):
    """Base class for all provider errors."""


class UnsupportedPeriodicityError(PaymentProviderError, ValueError):
    """Raised when a subscription uses a periodicity LiqPay cannot bill."""

    def __init__(self, periodicity):
        self.periodicity = periodicity
        super().__init__(
            f"LiqPay supports only month and year periodicity, got {periodicity!r}"
        )


class MalformedPayloadError(PaymentProviderError, ValueError):
    """Raised when a data blob is not base64-encoded JSON object."""


class CallbackError(PaymentProviderError):
    """Base class for rejected gateway callbacks. No invoice is produced."""

    reason = "invalid_callback"


class InvalidSignatureError(CallbackError):
    reason = "invalid_signature"


class InvalidVersionError(CallbackError):
    reason = "invalid_version"


class InvalidPublicKeyError(CallbackError):
    reason = "invalid_public_key"


class MalformedCallbackError(CallbackError):
    reason = "malformed_callback"


class TransactionNotFoundError(PaymentProviderError, LookupError):
    """Raised when no transaction matches an order or correlation id."""


class ProviderNotFoundError(PaymentProviderError, KeyError):
    """Raised when a provider name is not registered."""
