"""SQLAlchemy models for transaction persistence."""

import uuid
import json
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..connectors.base import TransactionStatus, TransactionType


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _new_transaction_id() -> str:
    return uuid.uuid4().hex


class Transaction(Base):
    """
    A local record correlating a host order with a provider.

    Root transactions (``parent_id`` is NULL) represent the order itself or
    a subscription; subscription charges and refunds hang off a root.
    """
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Opaque token sent to the provider as order_id
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, default=_new_transaction_id)
    parent_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("transactions.id"), nullable=True)

    order_type: Mapped[str] = mapped_column(String(255), nullable=False)
    order_id: Mapped[str] = mapped_column(String(255), nullable=False)
    driver: Mapped[str] = mapped_column(String(50), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False, default=TransactionType.PAYMENT.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TransactionStatus.PENDING.value)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    # Provider-issued payment id, set once a callback arrives
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    options_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_transactions_order", "order_type", "order_id", "driver"),
        Index("ix_transactions_status", "status"),
    )

    @property
    def options(self) -> Optional[Dict[str, Any]]:
        if self.options_json:
            return json.loads(self.options_json)
        return None

    @options.setter
    def options(self, value: Optional[Dict[str, Any]]) -> None:
        if value is not None:
            self.options_json = json.dumps(value)
        else:
            self.options_json = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "parent_id": self.parent_id,
            "order_type": self.order_type,
            "order_id": self.order_id,
            "driver": self.driver,
            "type": self.type,
            "status": self.status,
            "amount": str(self.amount) if self.amount is not None else None,
            "commission": str(self.commission) if self.commission is not None else None,
            "currency": self.currency,
            "external_id": self.external_id,
            "options": self.options,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProcessedInvoice(Base):
    """Ledger of applied invoices; a repeated delivery finds its row and is skipped."""
    __tablename__ = "processed_invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    driver: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_id: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("transactions.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("driver", "payment_id", "type", "status", name="uq_processed_invoices_key"),
    )
