import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .errors import LedgerLoadError, LedgerNotFoundError
from .models import (
    Ledger,
    LedgerSummary,
    PaymentRequest,
    PaymentResponse,
    ReceiptCreatedNotice,
)
from .service import LedgerService
from .sources import InMemoryLedgerSource, LedgerSource
from .store import LedgerStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None, source: Optional[LedgerSource] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = LedgerService(
            source or InMemoryLedgerSource(seed=settings.seed_demo_data),
            store=LedgerStore(count_notice_orders=settings.count_notice_orders),
            queue_size=settings.command_queue_size,
        )
        await service.start()
        try:
            await service.refresh()
        except LedgerLoadError:
            logger.warning("Initial load failed; starting with an empty ledger store")
        app.state.ledger_service = service
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(
        title="Shopkeeper Ledger API",
        description="Pending receipts, balances and payments for credit shopkeepers",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def service_of(request: Request) -> LedgerService:
        service = getattr(request.app.state, "ledger_service", None)
        if service is None or not service.is_running:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ledger service not running")
        return service

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": settings.service_name}

    @app.get("/ledgers", response_model=list[Ledger], tags=["Ledgers"])
    async def list_ledgers(request: Request, q: str = "") -> list[Ledger]:
        return await service_of(request).ledgers(q)

    @app.get("/ledgers/summary", response_model=LedgerSummary, tags=["Ledgers"])
    async def ledger_summary(request: Request) -> LedgerSummary:
        return await service_of(request).summary()

    @app.post("/ledgers/refresh", response_model=list[Ledger], tags=["Ledgers"])
    async def refresh_ledgers(request: Request) -> list[Ledger]:
        try:
            return await service_of(request).refresh()
        except LedgerLoadError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    @app.get("/ledgers/{ledger_id}", response_model=Ledger, tags=["Ledgers"])
    async def get_ledger(ledger_id: str, request: Request) -> Ledger:
        try:
            return await service_of(request).get_ledger(ledger_id)
        except LedgerNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Ledger {ledger_id} not found")

    @app.post("/ledgers/{ledger_id}/payments", response_model=PaymentResponse, tags=["Payments"])
    async def apply_payment(ledger_id: str, payment: PaymentRequest, request: Request) -> PaymentResponse:
        try:
            return await service_of(request).apply_payment(ledger_id, payment.receipt_number, payment.amount)
        except LedgerNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Ledger {ledger_id} not found")

    @app.post(
        "/notices/receipt-created",
        response_model=Ledger,
        status_code=status.HTTP_201_CREATED,
        tags=["Notices"],
    )
    async def receipt_created(notice: ReceiptCreatedNotice, request: Request) -> Ledger:
        return await service_of(request).receipt_created(notice)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
