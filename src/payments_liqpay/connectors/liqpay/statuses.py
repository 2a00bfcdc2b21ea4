"""LiqPay status vocabulary mapped onto invoice statuses."""

from types import MappingProxyType
from typing import Mapping

from ..base import InvoiceStatus

StatusTable = Mapping[str, InvoiceStatus]

# Gateway status -> invoice status. ``unsubscribed`` is a cancellation, not a
# refund, and ``subscribed`` produces only the subscription invoice.
DEFAULT_STATUSES: StatusTable = MappingProxyType({
    "failure": InvoiceStatus.FAILURE,
    "success": InvoiceStatus.SUCCESSFUL,
    "sandbox": InvoiceStatus.SUCCESSFUL,
    "reversed": InvoiceStatus.REFUND,
    "refund": InvoiceStatus.REFUND,
    "subscribed": InvoiceStatus.SUCCESSFUL,
    "unsubscribed": InvoiceStatus.CANCELED,
})


def make_status_table(overrides: Mapping[str, InvoiceStatus], base: StatusTable = DEFAULT_STATUSES) -> StatusTable:
    """Return a new read-only table with ``overrides`` applied on top of ``base``."""
    merged = dict(base)
    merged.update({key: InvoiceStatus(value) for key, value in overrides.items()})
    return MappingProxyType(merged)
