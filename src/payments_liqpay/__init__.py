# payments_liqpay package
__version__ = "0.1.0"

from .errors import (
    PaymentProviderError,
    UnsupportedPeriodicityError,
    CallbackError,
    InvalidSignatureError,
    InvalidVersionError,
    InvalidPublicKeyError,
    MalformedCallbackError,
    MalformedPayloadError,
    TransactionNotFoundError,
    ProviderNotFoundError,
)
from .connectors import (
    Action,
    CallbackResult,
    Client,
    Invoice,
    InvoiceStatus,
    Order,
    OrderRef,
    Payment,
    Periodicity,
    Product,
    Subscription,
    TransactionStatus,
    TransactionType,
    LiqPayConfig,
    LiqPayConnector,
    create_provider,
    register_provider,
)
from .database import (
    Transaction,
    TransactionRepository,
    init_db,
    close_db,
    get_db,
)
from .services import TransactionService
