"""
Ledger service: the single owner of the ledger store.

Every read and write is queued as a command and executed one at a time by a
single worker task, in arrival order. Bulk loads fetch raw data outside the
worker and are applied as one command, so a reload is never seen half-done.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Type, TypeVar

from pydantic import BaseModel

from .errors import LedgerLoadError, ServiceNotRunningError
from .models import (
    Ledger,
    LedgerSummary,
    PaymentResponse,
    RawReceipt,
    RawShopkeeper,
    ReceiptCreatedNotice,
)
from .sources import LedgerSource
from .store import LedgerStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_STOP = object()


def _coerce(model: Type[M], record: Any) -> M:
    if isinstance(record, model):
        return record
    return model.model_validate(record)


class LedgerService:
    def __init__(self, source: LedgerSource, store: Optional[LedgerStore] = None, queue_size: int = 0):
        self.source = source
        self.store = store or LedgerStore()
        self._queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done() and not self._stopping

    async def start(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._worker = asyncio.create_task(self._run())
        logger.info("Ledger service started")

    async def stop(self) -> None:
        """Finish every queued command, then stop the worker."""
        if not self.is_running:
            return
        self._stopping = True
        queue = self._queue
        try:
            await queue.put(_STOP)
            await self._worker
        finally:
            self._worker = None
            self._queue = None
            self._stopping = False
            self._reject_pending(queue)
        logger.info("Ledger service stopped")

    async def refresh(self) -> list[Ledger]:
        """Reload all ledgers from the source.

        On failure the current ledgers are kept and LedgerLoadError is raised.
        An empty shopkeeper list also keeps the current ledgers.
        """
        self._ensure_running()
        logger.info("Loading shopkeepers and receipts")
        try:
            raw_shopkeepers, raw_receipts = await asyncio.gather(
                self.source.get_raw_shopkeepers(),
                self.source.get_raw_receipts(),
                return_exceptions=True,
            )
            for result in (raw_shopkeepers, raw_receipts):
                if isinstance(result, BaseException):
                    raise result
            shopkeepers = [_coerce(RawShopkeeper, s) for s in raw_shopkeepers or []]
            receipts = [_coerce(RawReceipt, r) for r in raw_receipts or []]
        except Exception as e:
            logger.exception("Failed to load shopkeepers")
            raise LedgerLoadError(f"Failed to load shopkeepers: {e}") from e

        if not shopkeepers:
            logger.warning("Source returned no shopkeepers; keeping current ledgers")
            return await self._submit(self.store.snapshot)

        logger.info("Fetched %d shopkeepers and %d receipts", len(shopkeepers), len(receipts))
        return await self._submit(self.store.replace_all, shopkeepers, receipts)

    async def receipt_created(self, notice: ReceiptCreatedNotice) -> Ledger:
        return await self._submit(self.store.on_receipt_created, notice)

    async def apply_payment(self, ledger_id: str, receipt_number: str, amount: Any) -> PaymentResponse:
        outcome, ledger = await self._submit(self.store.apply_payment, ledger_id, receipt_number, amount)
        return PaymentResponse(outcome=outcome, ledger=ledger)

    async def ledgers(self, query: str = "") -> list[Ledger]:
        return await self._submit(self.store.search, query)

    async def get_ledger(self, ledger_id: str) -> Ledger:
        return await self._submit(self.store.get, ledger_id)

    async def summary(self) -> LedgerSummary:
        return await self._submit(self.store.summary)

    async def _submit(self, func: Callable[..., Any], *args: Any) -> Any:
        self._ensure_running()
        queue = self._queue
        future = asyncio.get_running_loop().create_future()
        await queue.put((func, args, future))
        if queue is not self._queue and not future.done():
            # stop() finished while this command waited for queue space
            future.set_exception(ServiceNotRunningError("Ledger service stopped"))
        # once queued a command always runs, even if the caller goes away
        return await asyncio.shield(future)

    async def _run(self) -> None:
        queue = self._queue
        while True:
            item = await queue.get()
            try:
                if item is _STOP:
                    return
                func, args, future = item
                try:
                    result = func(*args)
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                queue.task_done()

    def _reject_pending(self, queue: asyncio.Queue) -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            queue.task_done()
            if item is _STOP:
                continue
            _, _, future = item
            if not future.done():
                future.set_exception(ServiceNotRunningError("Ledger service stopped"))

    def _ensure_running(self) -> None:
        if not self.is_running:
            raise ServiceNotRunningError("Ledger service is not running")
