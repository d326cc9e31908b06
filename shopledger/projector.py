from typing import Callable, Iterable

from . import money
from .models import Ledger, LedgerStatus, RawReceipt, RawShopkeeper
from .receipts import group_by_shopkeeper, pending_entry


def project_ledger(shopkeeper: RawShopkeeper, receipts: list[RawReceipt], ledger_id: str) -> Ledger:
    """Fold one shopkeeper record and its matched receipts into a Ledger.

    A stored current_balance is what the shopkeeper owes, so the ledger
    balance is its negation. Without one, balance is received minus billed.
    """
    total_billed = money.total(r.total for r in receipts)
    total_received = money.total(r.received_amount for r in receipts)

    if shopkeeper.current_balance is not None:
        balance = -shopkeeper.current_balance
    else:
        balance = money.subtract(total_received, total_billed)

    pending = [pending_entry(r) for r in receipts if r.pending_amount > 0]

    return Ledger(
        id=ledger_id,
        shopkeeper_id=shopkeeper.id,
        name=shopkeeper.name,
        phone=shopkeeper.effective_phone,
        balance=balance,
        total_orders=len(receipts),
        status=LedgerStatus.ACTIVE if shopkeeper.is_active else LedgerStatus.INACTIVE,
        pending_receipts=pending,
        # summed per entry, not billed - received
        total_pending_amount=money.total(e.pending_amount for e in pending),
    )


def project_all(
    shopkeepers: Iterable[RawShopkeeper],
    receipts: Iterable[RawReceipt],
    key_for: Callable[[RawShopkeeper], str],
) -> list[Ledger]:
    grouped = group_by_shopkeeper(receipts)
    ledgers = []
    for shopkeeper in shopkeepers:
        matched = grouped.get(shopkeeper.id, []) if shopkeeper.id is not None else []
        ledgers.append(project_ledger(shopkeeper, matched, key_for(shopkeeper)))
    return ledgers
