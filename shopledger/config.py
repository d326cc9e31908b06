from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    service_name: str = "shopkeeper-ledger"
    log_level: str = "INFO"

    cors_origins: List[str] = ["*"]

    # Load the bundled demo shopkeepers/receipts on startup
    seed_demo_data: bool = True

    # When true, receipt-created notices for a known shopkeeper also bump
    # total_orders. Off keeps the historical behaviour.
    count_notice_orders: bool = False

    command_queue_size: int = 0

    model_config = SettingsConfigDict(
        env_prefix="SHOPLEDGER_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
