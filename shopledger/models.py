from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from . import money


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _external_id(value: Any) -> Optional[int]:
    """Raw ids that are not integers cannot link records, so they become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class LedgerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PaymentStatus(str, Enum):
    PARTIAL = "partial"
    SETTLED = "settled"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"


class RawShopkeeper(BaseModel):
    id: Optional[int] = None
    name: str = ""
    phone: str = ""
    contact: str = ""
    current_balance: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("current_balance", "currentBalance")
    )
    is_active: bool = Field(default=False, validation_alias=AliasChoices("is_active", "isActive"))

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[int]:
        return _external_id(value)

    @field_validator("name", "phone", "contact", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> str:
        return _text(value)

    @field_validator("current_balance", mode="before")
    @classmethod
    def _coerce_balance(cls, value: Any) -> Optional[Decimal]:
        return None if value is None else money.to_amount(value)

    @field_validator("is_active", mode="before")
    @classmethod
    def _truthy(cls, value: Any) -> bool:
        return bool(value)

    @property
    def effective_phone(self) -> str:
        return self.contact or self.phone or ""


class RawReceipt(BaseModel):
    receipt_number: str = Field(default="", validation_alias=AliasChoices("receipt_number", "receiptNumber"))
    date: str = ""
    total: Decimal = Decimal("0")
    received_amount: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("received_amount", "receivedAmount")
    )
    shopkeeper_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("shopkeeper_id", "shopkeeperId")
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("shopkeeper_id", mode="before")
    @classmethod
    def _coerce_shopkeeper_id(cls, value: Any) -> Optional[int]:
        return _external_id(value)

    @field_validator("receipt_number", "date", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("total", "received_amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal:
        return money.to_amount(value)

    @property
    def pending_amount(self) -> Decimal:
        return money.clamp_non_negative(money.subtract(self.total, self.received_amount))


class PendingReceiptEntry(BaseModel):
    receipt_number: str
    receipt_date: str = ""
    total_amount: Decimal
    amount_received: Decimal
    pending_amount: Decimal


class Ledger(BaseModel):
    """Derived per-shopkeeper view.

    Positive balance is credit in the shopkeeper's favour, negative is due.
    total_pending_amount always equals the sum over pending_receipts.
    """
    id: str
    shopkeeper_id: Optional[int] = None
    name: str = ""
    phone: str = ""
    balance: Decimal = Decimal("0")
    total_orders: int = 0
    status: LedgerStatus = LedgerStatus.ACTIVE
    pending_receipts: list[PendingReceiptEntry] = Field(default_factory=list)
    total_pending_amount: Decimal = Decimal("0")

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_receipts)

    @property
    def balance_label(self) -> str:
        if self.balance > 0:
            return "surplus"
        if self.balance < 0:
            return "due"
        return "settled"

    def find_entry(self, receipt_number: str) -> Optional[PendingReceiptEntry]:
        for entry in self.pending_receipts:
            if entry.receipt_number == receipt_number:
                return entry
        return None

    def recompute_total_pending(self) -> None:
        self.total_pending_amount = money.total(e.pending_amount for e in self.pending_receipts)


class ReceiptCreatedNotice(BaseModel):
    shopkeeper_name: str = Field(validation_alias=AliasChoices("shopkeeper_name", "shopkeeperName"))
    shopkeeper_phone: str = Field(validation_alias=AliasChoices("shopkeeper_phone", "shopkeeperPhone"))
    receipt_number: str = Field(validation_alias=AliasChoices("receipt_number", "receiptNumber"))
    receipt_date: str = Field(default="", validation_alias=AliasChoices("receipt_date", "receiptDate"))
    total_amount: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("total_amount", "totalAmount")
    )
    amount_received: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("amount_received", "amountReceived")
    )
    pending_amount: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("pending_amount", "pendingAmount")
    )

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {
            "shopkeeperName": "Ramesh Stores",
            "shopkeeperPhone": "9876543210",
            "receiptNumber": "RCP-1042",
            "receiptDate": "2024-03-18",
            "totalAmount": 1000,
            "amountReceived": 400,
            "pendingAmount": 600
        }
    })

    @field_validator("shopkeeper_name", "shopkeeper_phone", "receipt_number", "receipt_date", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("total_amount", "amount_received", "pending_amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal:
        return money.to_amount(value)

    def to_entry(self) -> PendingReceiptEntry:
        return PendingReceiptEntry(
            receipt_number=self.receipt_number,
            receipt_date=self.receipt_date,
            total_amount=self.total_amount,
            amount_received=self.amount_received,
            pending_amount=money.clamp_non_negative(self.pending_amount),
        )


class PaymentOutcome(BaseModel):
    ledger_id: str
    receipt_number: str
    status: PaymentStatus
    applied: Decimal = Decimal("0")
    unapplied: Decimal = Decimal("0")


class PaymentRequest(BaseModel):
    receipt_number: str = Field(validation_alias=AliasChoices("receipt_number", "receiptNumber"))
    amount: Any = Field(default=None, description="Payment amount; non-positive or non-numeric is ignored")

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {"receipt_number": "RCP-1042", "amount": 250}
    })


class PaymentResponse(BaseModel):
    outcome: PaymentOutcome
    ledger: Ledger


class LedgerSummary(BaseModel):
    total_shopkeepers: int
    active_shopkeepers: int
    shopkeepers_with_pending: int
    total_pending_amount: Decimal
    total_due: Decimal
    total_surplus: Decimal
