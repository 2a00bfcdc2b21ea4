"""Transaction manager that applies provider invoices to persisted transactions."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .connectors.base import (
    Invoice,
    InvoiceStatus,
    TransactionManager,
    TransactionStatus,
    TransactionType,
)
from .database import (
    Transaction,
    TransactionRepository,
    ProcessedInvoiceRepository,
)

logger = logging.getLogger(__name__)

# A late callback never moves a transaction out of these
SETTLED_STATUSES = frozenset({TransactionStatus.REFUND.value, TransactionStatus.CANCELED.value})


class TransactionService(TransactionManager):
    """
    Applies invoices to transactions, once per (provider, payment id, type, status).

    Callback order is not guaranteed by the gateway: a reversal may arrive
    before the success it reverses. Refunded and canceled records are
    therefore settled, and later invoices never move them back.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the service with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session
        self.transactions = TransactionRepository(session)
        self.ledger = ProcessedInvoiceRepository(session)

    async def process(self, invoice: Invoice) -> Optional[Transaction]:
        """Apply an invoice.

        Args:
            invoice: Normalized event produced from a provider callback.

        Returns:
            The transaction that was created or updated, or None when the
            invoice was already applied or matches no transaction.
        """
        if await self.ledger.find(invoice) is not None:
            logger.info(
                f"Invoice {invoice.provider}:{invoice.payment_id} "
                f"{invoice.type.value}/{invoice.status.value} already applied"
            )
            return None

        transaction = await self.transactions.get_by_transaction_id(invoice.order_id, invoice.provider)
        if transaction is None:
            logger.warning(
                f"No {invoice.provider} transaction {invoice.order_id} for payment {invoice.payment_id}"
            )
            return None

        if invoice.type == TransactionType.SUBSCRIPTION:
            target = await self._apply_subscription(transaction, invoice)
        elif invoice.type == TransactionType.REFUND:
            target = await self._apply_refund(transaction, invoice)
        elif self._is_subscription(transaction) and invoice.status == InvoiceStatus.CANCELED:
            # unsubscribe confirmations end the subscription, they are not charges
            target = await self._apply_subscription(transaction, invoice)
        else:
            target = await self._apply_payment(transaction, invoice)

        await self.ledger.record(invoice, target)
        return target

    @staticmethod
    def _is_subscription(transaction: Transaction) -> bool:
        return transaction.type == TransactionType.SUBSCRIPTION.value

    @staticmethod
    def _is_settled(transaction: Transaction) -> bool:
        return transaction.status in SETTLED_STATUSES

    def _resolve_status(self, transaction: Transaction, invoice: Invoice) -> TransactionStatus:
        """Return the status ``transaction`` should take; settled records keep theirs."""
        if self._is_settled(transaction):
            logger.info(
                f"Transaction {transaction.transaction_id} is {transaction.status}; "
                f"keeping it despite late {invoice.status.value} for payment {invoice.payment_id}"
            )
            return TransactionStatus(transaction.status)
        return TransactionStatus(invoice.status.value)

    async def _apply_subscription(self, root: Transaction, invoice: Invoice) -> Transaction:
        fields = {}
        if not root.external_id:
            fields["external_id"] = invoice.payment_id
        return await self.transactions.update_status(
            root, self._resolve_status(root, invoice), **fields
        )

    async def _apply_payment(self, transaction: Transaction, invoice: Invoice) -> Transaction:
        if not self._is_subscription(transaction):
            return await self.transactions.update_status(
                transaction,
                self._resolve_status(transaction, invoice),
                amount=invoice.amount,
                commission=invoice.commission,
                external_id=invoice.payment_id,
            )

        # A charge of a subscription becomes a child of the root
        charge = await self.transactions.find_child_by_external_id(transaction, invoice.payment_id)
        if charge is not None:
            return await self.transactions.update_status(
                charge,
                self._resolve_status(charge, invoice),
                amount=invoice.amount,
                commission=invoice.commission,
            )

        status = TransactionStatus(invoice.status.value)
        refund = await self.transactions.find_child_by_external_id(
            transaction, invoice.payment_id, TransactionType.REFUND
        )
        if refund is not None:
            # the reversal of this charge arrived first
            status = TransactionStatus.REFUND
        charge = await self.transactions.create_child(
            transaction,
            TransactionType.PAYMENT,
            status,
            amount=invoice.amount,
            commission=invoice.commission,
            external_id=invoice.payment_id,
        )
        logger.info(f"Recorded charge {invoice.payment_id} for subscription {transaction.transaction_id}")
        return charge

    async def _apply_refund(self, transaction: Transaction, invoice: Invoice) -> Transaction:
        refunded = transaction
        if self._is_subscription(transaction):
            refunded = await self.transactions.find_child_by_external_id(transaction, invoice.payment_id)

        if refunded is not None:
            await self.transactions.update_status(refunded, TransactionStatus.REFUND)
        else:
            logger.warning(
                f"Refund of unknown charge {invoice.payment_id} under {transaction.transaction_id}"
            )

        refund = await self.transactions.create_child(
            transaction,
            TransactionType.REFUND,
            TransactionStatus(invoice.status.value),
            amount=invoice.amount,
            commission=invoice.commission,
            external_id=invoice.payment_id,
        )
        logger.info(f"Recorded refund of {invoice.amount} for payment {invoice.payment_id}")
        return refund
