"""
Unit Tests for ledger projection, payments and the ledger store

Tests cover:
1. Projection from raw shopkeepers and receipts
2. Partial, full and over-payments
3. Receipt-created notices (merge and new shopkeeper)
4. Store reloads and identity
5. Pending-total invariants
"""

import pytest
from decimal import Decimal

from shopledger.errors import LedgerNotFoundError
from shopledger.models import (
    LedgerStatus,
    PaymentStatus,
    RawReceipt,
    RawShopkeeper,
    ReceiptCreatedNotice,
)
from shopledger.payments import apply_payment
from shopledger.projector import project_ledger
from shopledger.receipts import group_by_shopkeeper, receipts_for
from shopledger.store import LedgerStore


def make_shopkeeper(**overrides) -> RawShopkeeper:
    data = {"id": 1, "name": "Ramesh Stores", "phone": "9876543210", "currentBalance": 200, "isActive": True}
    data.update(overrides)
    return RawShopkeeper.model_validate(data)


def make_receipt(number="RCP-1", total=1000, received=400, shopkeeper_id=1) -> RawReceipt:
    return RawReceipt.model_validate({
        "receiptNumber": number,
        "date": "2024-03-18",
        "total": total,
        "receivedAmount": received,
        "shopkeeperId": shopkeeper_id,
    })


def make_notice(name="Ramesh Stores", phone="9876543210", number="RCP-9", total=500, received=100, pending=400):
    return ReceiptCreatedNotice.model_validate({
        "shopkeeperName": name,
        "shopkeeperPhone": phone,
        "receiptNumber": number,
        "receiptDate": "2024-03-20",
        "totalAmount": total,
        "amountReceived": received,
        "pendingAmount": pending,
    })


def assert_invariants(ledger):
    assert ledger.total_pending_amount == sum((e.pending_amount for e in ledger.pending_receipts), Decimal("0"))
    for entry in ledger.pending_receipts:
        assert entry.pending_amount > 0
        assert entry.amount_received + entry.pending_amount == entry.total_amount


class TestReceiptIndex:
    """Tests for grouping receipts by shopkeeper."""

    def test_receipts_for_keeps_source_order(self):
        receipts = [
            make_receipt("A", shopkeeper_id=1),
            make_receipt("B", shopkeeper_id=2),
            make_receipt("C", shopkeeper_id=1),
        ]

        matched = receipts_for(receipts, 1)

        assert [r.receipt_number for r in matched] == ["A", "C"]

    def test_missing_shopkeeper_id_never_matches(self):
        receipts = [make_receipt("A", shopkeeper_id=None)]

        assert receipts_for(receipts, None) == []
        assert group_by_shopkeeper(receipts) == {}

    def test_unparsable_shopkeeper_id_matches_nothing(self):
        receipt = RawReceipt.model_validate({"receiptNumber": "X", "total": 10, "shopkeeperId": "legacy-7"})

        assert receipt.shopkeeper_id is None
        assert receipts_for([receipt], 7) == []
        assert RawReceipt.model_validate({"receiptNumber": "Y", "shopkeeperId": "12"}).shopkeeper_id == 12
        assert RawShopkeeper.model_validate({"id": "3f2b-uuid", "name": "A"}).id is None

    def test_pending_amount_clamped(self):
        """Over-received receipts have zero pending, never negative."""
        receipt = make_receipt(total=100, received=150)

        assert receipt.pending_amount == Decimal("0")


class TestProjection:
    """Tests for projecting a ledger from raw records."""

    def test_scenario_projection(self):
        """Shopkeeper owing 200 with one part-paid receipt."""
        ledger = project_ledger(make_shopkeeper(), [make_receipt()], "ledger-1")

        assert ledger.id == "ledger-1"
        assert ledger.shopkeeper_id == 1
        assert ledger.balance == Decimal("-200")
        assert ledger.total_orders == 1
        assert ledger.total_pending_amount == Decimal("600")
        assert len(ledger.pending_receipts) == 1
        assert ledger.pending_receipts[0].pending_amount == Decimal("600")
        assert ledger.status == LedgerStatus.ACTIVE
        assert_invariants(ledger)

    def test_current_balance_sign_is_inverted(self):
        ledger = project_ledger(make_shopkeeper(currentBalance=500), [], "x")

        assert ledger.balance == Decimal("-500")
        assert ledger.balance_label == "due"

    def test_balance_from_receipts_without_current_balance(self):
        """Without a stored balance, balance is received minus billed."""
        receipts = [make_receipt("A", total=1000, received=400), make_receipt("B", total=300, received=300)]

        ledger = project_ledger(make_shopkeeper(currentBalance=None), receipts, "x")

        assert ledger.balance == Decimal("-600")
        assert ledger.total_orders == 2
        # Fully paid receipt is counted but not pending
        assert [e.receipt_number for e in ledger.pending_receipts] == ["A"]

    def test_over_received_receipt_does_not_offset_pending(self):
        """Pending total is summed per receipt, not billed minus received."""
        receipts = [make_receipt("A", total=1000, received=400), make_receipt("B", total=100, received=300)]

        ledger = project_ledger(make_shopkeeper(currentBalance=None), receipts, "x")

        assert ledger.total_pending_amount == Decimal("600")
        assert ledger.balance == Decimal("-400")
        assert ledger.balance_label == "due"

    def test_missing_fields_use_defaults(self):
        shopkeeper = RawShopkeeper.model_validate({"id": 7, "name": None})

        ledger = project_ledger(shopkeeper, [], "x")

        assert ledger.name == ""
        assert ledger.phone == ""
        assert ledger.balance == Decimal("0")
        assert ledger.status == LedgerStatus.INACTIVE
        assert ledger.pending_receipts == []

    def test_contact_preferred_over_phone(self):
        shopkeeper = make_shopkeeper(contact="9000000001", phone="9000000002")

        ledger = project_ledger(shopkeeper, [], "x")

        assert ledger.phone == "9000000001"

    def test_invalid_amounts_treated_as_zero(self):
        receipt = RawReceipt.model_validate(
            {"receiptNumber": "Z", "total": "abc", "receivedAmount": float("nan"), "shopkeeperId": 1}
        )

        ledger = project_ledger(make_shopkeeper(currentBalance=None), [receipt], "x")

        assert ledger.total_orders == 1
        assert ledger.pending_receipts == []
        assert ledger.total_pending_amount == Decimal("0")

    def test_float_amounts_do_not_drift(self):
        receipts = [make_receipt("A", total=0.1, received=0), make_receipt("B", total=0.2, received=0)]

        ledger = project_ledger(make_shopkeeper(), receipts, "x")

        assert ledger.total_pending_amount == Decimal("0.3")


class TestPaymentFlow:
    """Tests for applying payments to a pending receipt."""

    def _ledger(self):
        return project_ledger(make_shopkeeper(), [make_receipt()], "ledger-1")

    def test_full_payment_removes_entry(self):
        ledger = self._ledger()

        outcome = apply_payment(ledger, "RCP-1", 600)

        assert outcome.status == PaymentStatus.SETTLED
        assert outcome.applied == Decimal("600")
        assert outcome.unapplied == Decimal("0")
        assert ledger.pending_receipts == []
        assert ledger.total_pending_amount == Decimal("0")

    def test_partial_payment_keeps_entry(self):
        ledger = self._ledger()

        outcome = apply_payment(ledger, "RCP-1", 250)

        assert outcome.status == PaymentStatus.PARTIAL
        entry = ledger.pending_receipts[0]
        assert entry.amount_received == Decimal("650")
        assert entry.pending_amount == Decimal("350")
        assert ledger.total_pending_amount == Decimal("350")
        assert_invariants(ledger)

    def test_overpayment_is_clamped(self):
        """Only the receipt's pending amount is applied; the rest is reported."""
        ledger = self._ledger()

        outcome = apply_payment(ledger, "RCP-1", 900)

        assert ledger.pending_receipts == []
        assert ledger.total_pending_amount == Decimal("0")
        assert outcome.applied == Decimal("600")
        assert outcome.unapplied == Decimal("300")

    def test_overpayment_does_not_leak_to_other_receipts(self):
        ledger = project_ledger(
            make_shopkeeper(), [make_receipt("A", 1000, 400), make_receipt("B", 500, 0)], "x"
        )

        apply_payment(ledger, "A", 900)

        assert [e.receipt_number for e in ledger.pending_receipts] == ["B"]
        assert ledger.pending_receipts[0].pending_amount == Decimal("500")
        assert ledger.total_pending_amount == Decimal("500")

    @pytest.mark.parametrize("amount", [0, -50, None, "abc", float("nan"), float("inf")])
    def test_invalid_amount_leaves_ledger_unchanged(self, amount):
        ledger = self._ledger()
        before = ledger.model_dump_json()

        outcome = apply_payment(ledger, "RCP-1", amount)

        assert outcome.status == PaymentStatus.REJECTED
        assert ledger.model_dump_json() == before

    def test_unknown_receipt_is_noop(self):
        ledger = self._ledger()
        before = ledger.model_dump_json()

        outcome = apply_payment(ledger, "RCP-404", 100)

        assert outcome.status == PaymentStatus.NOT_FOUND
        assert outcome.unapplied == Decimal("100")
        assert ledger.model_dump_json() == before

    def test_repeat_payment_on_settled_receipt_is_noop(self):
        ledger = self._ledger()
        apply_payment(ledger, "RCP-1", 600)
        before = ledger.model_dump_json()

        outcome = apply_payment(ledger, "RCP-1", 600)

        assert outcome.status == PaymentStatus.NOT_FOUND
        assert ledger.model_dump_json() == before

    def test_payment_does_not_touch_balance_or_orders(self):
        ledger = self._ledger()

        apply_payment(ledger, "RCP-1", 250)

        assert ledger.balance == Decimal("-200")
        assert ledger.total_orders == 1

    def test_string_amount_accepted(self):
        ledger = self._ledger()

        apply_payment(ledger, "RCP-1", "100.25")

        assert ledger.total_pending_amount == Decimal("499.75")
        assert_invariants(ledger)


class TestLedgerStore:
    """Tests for the live ledger store."""

    def _store(self, **kwargs):
        store = LedgerStore(**kwargs)
        store.replace_all([make_shopkeeper()], [make_receipt()])
        return store

    def test_notice_for_unknown_shopkeeper_creates_ledger(self):
        store = self._store()

        ledger = store.on_receipt_created(make_notice(name="New Shop", phone="9111111111"))

        assert len(store) == 2
        assert ledger.total_orders == 1
        assert ledger.balance == Decimal("0")
        assert ledger.status == LedgerStatus.ACTIVE
        assert ledger.shopkeeper_id is None
        assert len(ledger.pending_receipts) == 1
        assert ledger.total_pending_amount == Decimal("400")

    def test_notice_for_known_shopkeeper_merges(self):
        store = self._store()
        existing = store.snapshot()[0]

        ledger = store.on_receipt_created(make_notice())

        assert ledger.id == existing.id
        assert len(ledger.pending_receipts) == 2
        assert ledger.total_pending_amount == existing.total_pending_amount + Decimal("400")
        # total_orders unchanged on the merge path
        assert ledger.total_orders == existing.total_orders
        assert_invariants(ledger)

    def test_notice_can_count_orders_when_configured(self):
        store = self._store(count_notice_orders=True)

        ledger = store.on_receipt_created(make_notice())

        assert ledger.total_orders == 2

    def test_notice_match_is_case_sensitive(self):
        store = self._store()

        store.on_receipt_created(make_notice(name="ramesh stores"))

        assert len(store) == 2

    def test_second_notice_merges_into_synthesized_ledger(self):
        store = self._store()
        first = store.on_receipt_created(make_notice(name="New Shop", phone="1", number="N1"))

        second = store.on_receipt_created(make_notice(name="New Shop", phone="1", number="N2", pending=50))

        assert second.id == first.id
        assert second.total_orders == 1
        assert second.total_pending_amount == Decimal("450")

    def test_repeated_notice_is_not_double_counted(self):
        store = self._store()
        store.on_receipt_created(make_notice(number="RCP-9"))

        ledger = store.on_receipt_created(make_notice(number="RCP-9"))

        assert [e.receipt_number for e in ledger.pending_receipts] == ["RCP-1", "RCP-9"]
        assert ledger.total_pending_amount == Decimal("1000")

    def test_zero_pending_notice_adds_no_entry(self):
        store = self._store()

        ledger = store.on_receipt_created(make_notice(number="PAID", total=500, received=500, pending=0))

        assert [e.receipt_number for e in ledger.pending_receipts] == ["RCP-1"]
        assert_invariants(ledger)

    def test_payment_through_store(self):
        store = self._store()
        ledger_id = store.snapshot()[0].id

        outcome, ledger = store.apply_payment(ledger_id, "RCP-1", 250)

        assert outcome.status == PaymentStatus.PARTIAL
        assert ledger.total_pending_amount == Decimal("350")
        assert store.get(ledger_id).total_pending_amount == Decimal("350")

    def test_payment_on_unknown_ledger_raises(self):
        store = self._store()

        with pytest.raises(LedgerNotFoundError):
            store.apply_payment("missing", "RCP-1", 100)

    def test_snapshot_is_detached(self):
        store = self._store()
        snapshot = store.snapshot()

        snapshot[0].pending_receipts.clear()

        assert len(store.snapshot()[0].pending_receipts) == 1

    def test_reload_keeps_ledger_ids(self):
        store = self._store()
        original_id = store.snapshot()[0].id

        store.replace_all([make_shopkeeper(currentBalance=0)], [make_receipt(received=1000)])

        reloaded = store.snapshot()
        assert len(reloaded) == 1
        assert reloaded[0].id == original_id
        assert reloaded[0].pending_receipts == []

    def test_reload_adopts_synthesized_ledger_by_contact(self):
        store = self._store()
        synthesized = store.on_receipt_created(make_notice(name="New Shop", phone="9111111111"))

        store.replace_all(
            [make_shopkeeper(), make_shopkeeper(id=2, name="New Shop", phone="9111111111")],
            [make_receipt(), make_receipt("RCP-9", 500, 100, shopkeeper_id=2)],
        )

        ledger = store.find_by_contact("New Shop", "9111111111")
        assert ledger.id == synthesized.id
        assert ledger.shopkeeper_id == 2

    def test_duplicate_contacts_get_distinct_ids(self):
        store = LedgerStore()

        ledgers = store.replace_all(
            [make_shopkeeper(id=1), make_shopkeeper(id=2)],
            [],
        )

        assert len({l.id for l in ledgers}) == 2

    def test_search_by_name_or_phone(self):
        store = LedgerStore()
        store.replace_all(
            [make_shopkeeper(id=1), make_shopkeeper(id=2, name="Lakshmi Traders", phone="9123456780")],
            [],
        )

        assert [l.name for l in store.search("lakshmi")] == ["Lakshmi Traders"]
        assert [l.name for l in store.search("98765")] == ["Ramesh Stores"]
        assert len(store.search("")) == 2

    def test_summary_totals(self):
        store = LedgerStore()
        store.replace_all(
            [
                make_shopkeeper(id=1, currentBalance=200),
                make_shopkeeper(id=2, name="B", currentBalance=-50, isActive=False),
            ],
            [make_receipt(shopkeeper_id=1)],
        )

        summary = store.summary()

        assert summary.total_shopkeepers == 2
        assert summary.active_shopkeepers == 1
        assert summary.shopkeepers_with_pending == 1
        assert summary.total_pending_amount == Decimal("600")
        assert summary.total_due == Decimal("200")
        assert summary.total_surplus == Decimal("50")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
