"""Repository layer for transaction persistence operations."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Any, List, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..connectors.base import (
    Invoice,
    OrderRef,
    Payment,
    TransactionRegistrar,
    TransactionStatus,
    TransactionType,
)
from .models import Transaction, ProcessedInvoice

logger = logging.getLogger(__name__)


class TransactionRepository(TransactionRegistrar):
    """Repository for Transaction records; doubles as the provider's registrar."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session

    async def make_transaction(
        self,
        order: OrderRef,
        payment: Payment,
        provider: str,
        options: Optional[Mapping[str, Any]] = None,
        is_subscription: bool = False,
    ) -> Transaction:
        """Register a new root transaction for an order.

        Args:
            order: The host order being paid.
            payment: Payment the transaction is created for.
            provider: Provider name stored as the transaction driver.
            options: Optional host options kept with the record.
            is_subscription: Tag the transaction as a subscription root.

        Returns:
            Created Transaction with its ``transaction_id`` assigned.
        """
        transaction = Transaction(
            order_type=order.order_type,
            order_id=order.order_id,
            driver=provider,
            type=(TransactionType.SUBSCRIPTION if is_subscription else TransactionType.PAYMENT).value,
            status=TransactionStatus.PENDING.value,
            amount=payment.amount,
            currency=payment.currency,
        )
        if options:
            transaction.options = dict(options)

        self.session.add(transaction)
        await self.session.flush()

        logger.info(
            f"Registered {transaction.type} transaction {transaction.transaction_id} "
            f"for {order.order_type}:{order.order_id}"
        )
        return transaction

    async def create_child(
        self,
        parent: Transaction,
        type: TransactionType,
        status: TransactionStatus,
        amount: Decimal,
        commission: Decimal = Decimal("0"),
        external_id: Optional[str] = None,
    ) -> Transaction:
        """Create a charge or refund transaction under ``parent``."""
        child = Transaction(
            parent_id=parent.id,
            order_type=parent.order_type,
            order_id=parent.order_id,
            driver=parent.driver,
            type=type.value,
            status=status.value,
            amount=amount,
            commission=commission,
            currency=parent.currency,
            external_id=external_id,
        )
        self.session.add(child)
        await self.session.flush()
        return child

    async def find_root_transaction(self, order: OrderRef, provider: str) -> Optional[Transaction]:
        """Get the most recent root transaction for an order and provider.

        Args:
            order: The host order.
            provider: Provider name.

        Returns:
            Transaction if found, None otherwise.
        """
        result = await self.session.execute(
            select(Transaction)
            .where(
                Transaction.order_type == order.order_type,
                Transaction.order_id == order.order_id,
                Transaction.driver == provider,
                Transaction.parent_id.is_(None),
            )
            .order_by(Transaction.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_transaction_id(self, transaction_id: str, provider: Optional[str] = None) -> Optional[Transaction]:
        query = select(Transaction).where(Transaction.transaction_id == transaction_id)
        if provider is not None:
            query = query.where(Transaction.driver == provider)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_children(self, parent: Transaction) -> List[Transaction]:
        result = await self.session.execute(
            select(Transaction)
            .where(Transaction.parent_id == parent.id)
            .order_by(Transaction.created_at)
        )
        return list(result.scalars().all())

    async def find_child_by_external_id(
        self,
        parent: Transaction,
        external_id: str,
        type: TransactionType = TransactionType.PAYMENT,
    ) -> Optional[Transaction]:
        result = await self.session.execute(
            select(Transaction).where(
                Transaction.parent_id == parent.id,
                Transaction.external_id == external_id,
                Transaction.type == type.value,
            )
        )
        return result.scalars().first()

    async def update_status(
        self,
        transaction: Transaction,
        new_status: TransactionStatus,
        **fields: Any,
    ) -> Transaction:
        """Update a transaction's status and any extra columns given as keywords."""
        previous = transaction.status
        transaction.status = new_status.value
        for name, value in fields.items():
            setattr(transaction, name, value)
        transaction.updated_at = datetime.utcnow()

        await self.session.flush()
        logger.info(f"Transaction {transaction.transaction_id} status {previous} -> {new_status.value}")
        return transaction


class ProcessedInvoiceRepository:
    """Repository for the applied-invoice ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, invoice: Invoice) -> Optional[ProcessedInvoice]:
        result = await self.session.execute(
            select(ProcessedInvoice).where(
                ProcessedInvoice.driver == invoice.provider,
                ProcessedInvoice.payment_id == invoice.payment_id,
                ProcessedInvoice.type == invoice.type.value,
                ProcessedInvoice.status == invoice.status.value,
            )
        )
        return result.scalar_one_or_none()

    async def record(self, invoice: Invoice, transaction: Optional[Transaction]) -> ProcessedInvoice:
        entry = ProcessedInvoice(
            driver=invoice.provider,
            payment_id=invoice.payment_id,
            type=invoice.type.value,
            status=invoice.status.value,
            transaction_id=transaction.id if transaction is not None else None,
            amount=invoice.amount,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

