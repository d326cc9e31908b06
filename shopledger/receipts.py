from typing import Iterable, Optional

from .models import PendingReceiptEntry, RawReceipt


def receipts_for(receipts: Iterable[RawReceipt], shopkeeper_id: Optional[int]) -> list[RawReceipt]:
    """Receipts owned by one shopkeeper, in source order.

    A missing id on either side never matches.
    """
    if shopkeeper_id is None:
        return []
    return [r for r in receipts if r.shopkeeper_id is not None and r.shopkeeper_id == shopkeeper_id]


def group_by_shopkeeper(receipts: Iterable[RawReceipt]) -> dict[int, list[RawReceipt]]:
    grouped: dict[int, list[RawReceipt]] = {}
    for receipt in receipts:
        if receipt.shopkeeper_id is None:
            continue
        grouped.setdefault(receipt.shopkeeper_id, []).append(receipt)
    return grouped


def pending_entry(receipt: RawReceipt) -> PendingReceiptEntry:
    return PendingReceiptEntry(
        receipt_number=receipt.receipt_number,
        receipt_date=receipt.date,
        total_amount=receipt.total,
        amount_received=receipt.received_amount,
        pending_amount=receipt.pending_amount,
    )
