import logging
from typing import Any, Iterable, Optional
from uuid import uuid4

from . import money
from .errors import LedgerNotFoundError
from .models import (
    Ledger,
    LedgerStatus,
    LedgerSummary,
    PaymentOutcome,
    RawReceipt,
    RawShopkeeper,
    ReceiptCreatedNotice,
)
from .payments import apply_payment
from .projector import project_all

logger = logging.getLogger(__name__)

Contact = tuple[str, str]


def new_ledger_id() -> str:
    return str(uuid4())


class LedgerStore:
    """Live collection of ledgers keyed by an opaque id.

    External shopkeeper ids and (name, phone) pairs are mapped onto those
    ids so a ledger keeps its id across reloads. Not thread-safe; callers
    serialize access (see LedgerService).
    """

    def __init__(self, count_notice_orders: bool = False):
        self.count_notice_orders = count_notice_orders
        self._ledgers: dict[str, Ledger] = {}
        self._by_external_id: dict[int, str] = {}
        self._by_contact: dict[Contact, str] = {}

    def __len__(self) -> int:
        return len(self._ledgers)

    def replace_all(self, shopkeepers: Iterable[RawShopkeeper], receipts: Iterable[RawReceipt]) -> list[Ledger]:
        """Rebuild every ledger from raw records and swap them in at once."""
        used: set[str] = set()

        def key_for(shopkeeper: RawShopkeeper) -> str:
            key = None
            if shopkeeper.id is not None:
                key = self._by_external_id.get(shopkeeper.id)
            if key is None:
                key = self._by_contact.get((shopkeeper.name, shopkeeper.effective_phone))
                # only adopt ledgers not already tied to another external id
                if key is not None and self._ledgers[key].shopkeeper_id not in (None, shopkeeper.id):
                    key = None
            if key is None or key in used:
                key = new_ledger_id()
            used.add(key)
            return key

        ledgers = project_all(shopkeepers, receipts, key_for)

        by_id: dict[str, Ledger] = {}
        by_external_id: dict[int, str] = {}
        by_contact: dict[Contact, str] = {}
        for ledger in ledgers:
            by_id[ledger.id] = ledger
            if ledger.shopkeeper_id is not None:
                by_external_id.setdefault(ledger.shopkeeper_id, ledger.id)
            by_contact.setdefault((ledger.name, ledger.phone), ledger.id)

        self._ledgers, self._by_external_id, self._by_contact = by_id, by_external_id, by_contact
        logger.info("Ledger store reloaded with %d shopkeepers", len(by_id))
        return self.snapshot()

    def on_receipt_created(self, notice: ReceiptCreatedNotice) -> Ledger:
        entry = notice.to_entry()
        ledger = self.find_by_contact(notice.shopkeeper_name, notice.shopkeeper_phone)

        if ledger is not None:
            if ledger.find_entry(notice.receipt_number) is not None:
                logger.warning(
                    "Receipt %s already pending on ledger %s; notice ignored", notice.receipt_number, ledger.id
                )
                return ledger.model_copy(deep=True)
            if entry.pending_amount > 0:
                ledger.pending_receipts.append(entry)
                ledger.total_pending_amount = money.add(ledger.total_pending_amount, entry.pending_amount)
            if self.count_notice_orders:
                ledger.total_orders += 1
            logger.info("Receipt %s merged into ledger %s", notice.receipt_number, ledger.id)
            return ledger.model_copy(deep=True)

        pending = [entry] if entry.pending_amount > 0 else []
        ledger = Ledger(
            id=new_ledger_id(),
            name=notice.shopkeeper_name,
            phone=notice.shopkeeper_phone,
            balance=money.ZERO,
            total_orders=1,
            status=LedgerStatus.ACTIVE,
            pending_receipts=pending,
            total_pending_amount=money.total(e.pending_amount for e in pending),
        )
        self._ledgers[ledger.id] = ledger
        self._by_contact[(ledger.name, ledger.phone)] = ledger.id
        logger.info("Receipt %s created new ledger %s for %r", notice.receipt_number, ledger.id, ledger.name)
        return ledger.model_copy(deep=True)

    def apply_payment(self, ledger_id: str, receipt_number: str, amount: Any) -> tuple[PaymentOutcome, Ledger]:
        ledger = self._require(ledger_id)
        outcome = apply_payment(ledger, receipt_number, amount)
        logger.info(
            "Payment on ledger %s receipt %s: %s (applied=%s, unapplied=%s)",
            ledger_id, receipt_number, outcome.status.value, outcome.applied, outcome.unapplied,
        )
        return outcome, ledger.model_copy(deep=True)

    def get(self, ledger_id: str) -> Ledger:
        return self._require(ledger_id).model_copy(deep=True)

    def find_by_contact(self, name: str, phone: str) -> Optional[Ledger]:
        key = self._by_contact.get((name, phone))
        return self._ledgers.get(key) if key is not None else None

    def snapshot(self) -> list[Ledger]:
        return [ledger.model_copy(deep=True) for ledger in self._ledgers.values()]

    def search(self, query: str = "") -> list[Ledger]:
        query = (query or "").strip()
        if not query:
            return self.snapshot()
        needle = query.lower()
        return [
            ledger.model_copy(deep=True)
            for ledger in self._ledgers.values()
            if needle in ledger.name.lower() or query in ledger.phone
        ]

    def summary(self) -> LedgerSummary:
        ledgers = list(self._ledgers.values())
        return LedgerSummary(
            total_shopkeepers=len(ledgers),
            active_shopkeepers=sum(1 for l in ledgers if l.status == LedgerStatus.ACTIVE),
            shopkeepers_with_pending=sum(1 for l in ledgers if l.has_pending),
            total_pending_amount=money.total(l.total_pending_amount for l in ledgers),
            total_due=money.total(-l.balance for l in ledgers if l.balance < 0),
            total_surplus=money.total(l.balance for l in ledgers if l.balance > 0),
        )

    def _require(self, ledger_id: str) -> Ledger:
        ledger = self._ledgers.get(ledger_id)
        if ledger is None:
            raise LedgerNotFoundError(f"Ledger {ledger_id} not found")
        return ledger
