from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional, Dict, Any, List, Mapping

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ..database.models import Transaction


class Periodicity(str, Enum):
    """Recurrence units a host may request for a subscription."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class TransactionType(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"
    SUBSCRIPTION = "subscription"


class TransactionStatus(str, Enum):
    """Lifecycle of a local transaction record."""
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILURE = "failure"
    REFUND = "refund"
    CANCELED = "canceled"


class InvoiceStatus(str, Enum):
    """Normalized outcome carried by an Invoice."""
    FAILURE = "failure"
    SUCCESSFUL = "successful"
    REFUND = "refund"
    CANCELED = "canceled"


# Canonical models
class Client(BaseModel):
    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None


class Product(BaseModel):
    url: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class Subscription(BaseModel):
    start: datetime  # naive values are treated as UTC
    periodicity: Periodicity


class Payment(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: Optional[str] = None  # falls back to the provider's configured currency
    description: str
    return_url: str
    client: Optional[Client] = None
    product: Optional[Product] = None
    subscription: Optional[Subscription] = None

    @property
    def is_subscription(self) -> bool:
        return self.subscription is not None


class OrderRef(BaseModel):
    """Identity of a host order: its type (model class) and key."""
    order_type: str
    order_id: str


class Order(OrderRef):
    payment: Payment


class Invoice(BaseModel):
    """Normalized payment-lifecycle event handed to a TransactionManager."""
    model_config = ConfigDict(frozen=True)

    provider: str
    payment_id: str
    order_id: str  # correlation token, i.e. the registered transaction id
    type: TransactionType
    status: InvoiceStatus
    amount: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")


class Action(BaseModel):
    """An HTTP action the host must perform (redirect or auto-submitted form)."""
    ACTION_OPEN: ClassVar[str] = "open"
    METHOD_POST: ClassVar[str] = "POST"

    provider: str
    type: str = ACTION_OPEN
    url: str
    method: str = METHOD_POST
    data: Dict[str, str]


class CallbackResult(BaseModel):
    action: Optional[str] = None
    status: Optional[str] = None
    recognized: bool = True
    invoices: List[Invoice] = []


class TransactionRegistrar(ABC):
    """Creates and looks up local transactions for provider correlation."""

    @abstractmethod
    async def make_transaction(
        self,
        order: OrderRef,
        payment: Payment,
        provider: str,
        options: Optional[Mapping[str, Any]] = None,
        is_subscription: bool = False,
    ) -> "Transaction":
        raise NotImplementedError

    @abstractmethod
    async def find_root_transaction(self, order: OrderRef, provider: str) -> Optional["Transaction"]:
        """Return the transaction with no parent for this order and provider."""
        raise NotImplementedError


class TransactionManager(ABC):
    """Applies invoices to local transactions. Must be idempotent."""

    @abstractmethod
    async def process(self, invoice: Invoice) -> Any:
        raise NotImplementedError


class PaymentProviderBase(ABC):
    """
    Minimal provider interface. Implementations should be side-effect free
    until the method registers a transaction or makes a network call.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def create_payment(self, order: Order, registrar: TransactionRegistrar, **kwargs) -> Action:
        """
        Build the signed checkout action for an order. Registers a transaction.
        """
        raise NotImplementedError

    @abstractmethod
    async def callback(self, form: Mapping[str, Any], manager: TransactionManager) -> CallbackResult:
        """
        Authenticate a provider callback and hand the resulting invoices to the manager.
        """
        raise NotImplementedError

    @abstractmethod
    async def unsubscribe(self, order: OrderRef, registrar: TransactionRegistrar) -> bool:
        raise NotImplementedError

    def is_valid(self) -> bool:
        return True

    def health_check(self) -> Dict[str, Any]:
        return {"ok": True}
