import logging
from typing import Any

from . import money
from .models import Ledger, PaymentOutcome, PaymentStatus

logger = logging.getLogger(__name__)


def apply_payment(ledger: Ledger, receipt_number: str, amount: Any) -> PaymentOutcome:
    """Apply a payment to one pending receipt of ``ledger`` in place.

    Only the matching receipt is paid down. Any excess over its pending
    amount is reported back as ``unapplied`` and is not recorded on the
    ledger. Balance and total_orders are never touched.
    """
    if not money.is_positive(amount):
        return PaymentOutcome(
            ledger_id=ledger.id, receipt_number=receipt_number, status=PaymentStatus.REJECTED
        )

    amount = money.to_amount(amount)
    entry = ledger.find_entry(receipt_number)
    if entry is None:
        return PaymentOutcome(
            ledger_id=ledger.id,
            receipt_number=receipt_number,
            status=PaymentStatus.NOT_FOUND,
            unapplied=amount,
        )

    applied = money.minimum(amount, entry.pending_amount)
    entry.amount_received = money.add(entry.amount_received, applied)
    entry.pending_amount = money.clamp_non_negative(money.subtract(entry.pending_amount, amount))

    ledger.pending_receipts = [e for e in ledger.pending_receipts if e.pending_amount > 0]
    ledger.recompute_total_pending()

    unapplied = money.subtract(amount, applied)
    if unapplied > 0:
        logger.info(
            "Payment on %s/%s exceeded pending by %s; excess not recorded",
            ledger.id, receipt_number, unapplied,
        )

    return PaymentOutcome(
        ledger_id=ledger.id,
        receipt_number=receipt_number,
        status=PaymentStatus.SETTLED if entry.pending_amount == 0 else PaymentStatus.PARTIAL,
        applied=applied,
        unapplied=unapplied,
    )
