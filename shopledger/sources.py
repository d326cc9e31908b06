from typing import Any, Iterable, Optional, Protocol


class LedgerSource(Protocol):
    """Where raw shopkeeper and receipt records come from."""

    async def get_raw_shopkeepers(self) -> Iterable[Any]: ...

    async def get_raw_receipts(self) -> Iterable[Any]: ...


class InMemoryLedgerSource:
    def __init__(
        self,
        shopkeepers: Optional[list[dict]] = None,
        receipts: Optional[list[dict]] = None,
        seed: bool = False,
    ):
        self.shopkeepers: list[dict] = list(shopkeepers or [])
        self.receipts: list[dict] = list(receipts or [])
        if seed:
            self._seed_data()

    async def get_raw_shopkeepers(self) -> list[dict]:
        return list(self.shopkeepers)

    async def get_raw_receipts(self) -> list[dict]:
        return list(self.receipts)

    def _seed_data(self):
        self.shopkeepers.extend([
            {"id": 1, "name": "Ramesh General Store", "contact": "9876543210",
             "current_balance": 1500, "is_active": True},
            {"id": 2, "name": "Lakshmi Traders", "phone": "9123456780",
             "current_balance": None, "is_active": True},
            {"id": 3, "name": "Sai Kirana", "phone": "9988776655", "is_active": False},
        ])
        self.receipts.extend([
            {"receiptNumber": "RCP-1001", "date": "2024-03-01", "total": 2500,
             "receivedAmount": 1000, "shopkeeper_id": 1},
            {"receiptNumber": "RCP-1002", "date": "2024-03-04", "total": 800,
             "receivedAmount": 800, "shopkeeper_id": 1},
            {"receiptNumber": "RCP-1003", "date": "2024-03-06", "total": 1200.50,
             "receivedAmount": 200, "shopkeeper_id": 2},
        ])
