"""
Shopkeeper Ledger

This module provides:
- Per-shopkeeper ledgers projected from raw shopkeeper and receipt records
- Partial and full payments against pending receipts
- Incremental updates from receipt-created notices
- A single-worker service that serializes every change to the store
"""

from .models import (
    LedgerStatus,
    PaymentStatus,
    RawShopkeeper,
    RawReceipt,
    PendingReceiptEntry,
    Ledger,
    ReceiptCreatedNotice,
    PaymentOutcome,
)
from .payments import apply_payment
from .projector import project_ledger
from .service import LedgerService
from .store import LedgerStore

__all__ = [
    "LedgerStatus",
    "PaymentStatus",
    "RawShopkeeper",
    "RawReceipt",
    "PendingReceiptEntry",
    "Ledger",
    "ReceiptCreatedNotice",
    "PaymentOutcome",
    "apply_payment",
    "project_ledger",
    "LedgerService",
    "LedgerStore",
]
