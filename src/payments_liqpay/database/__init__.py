"""Database module for transaction persistence."""

from .models import (
    Base,
    Transaction,
    ProcessedInvoice,
)
from .session import (
    get_db,
    get_database_url,
    init_db,
    close_db,
    create_async_engine,
    get_async_session_factory,
)
from .repository import (
    TransactionRepository,
    ProcessedInvoiceRepository,
)

__all__ = [
    # Models
    "Base",
    "Transaction",
    "ProcessedInvoice",
    # Session management
    "get_db",
    "get_database_url",
    "init_db",
    "close_db",
    "create_async_engine",
    "get_async_session_factory",
    # Repositories
    "TransactionRepository",
    "ProcessedInvoiceRepository",
]
