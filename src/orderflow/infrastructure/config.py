"""Runtime configuration, read from ``ORDERFLOW_*`` environment variables
(or a ``.env`` file in the working directory).
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root when installed in editable mode.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = _DEFAULT_DATA_DIR
    default_branch_id: str = "main"
    pending_order_ttl_hours: float = 24

    # Carrier
    carrier_name: str = "ViettelPost"
    carrier_utc_offset_hours: float = 7
    carrier_webhook_token: str | None = None
    carrier_tracking_url: str = "https://viettelpost.com.vn/tra-cuu-hanh-trinh-don/{tracking_code}"

    # After-commit side effects
    side_effect_max_attempts: int = 3
    side_effect_base_delay: float = 0.5
    side_effect_max_delay: float = 5.0

    # Sender used when no branch can be resolved
    store_name: str = "Yumin Beauty"
    store_address: str = "1 Dai Co Viet, Hai Ba Trung, Ha Noi"
    store_phone: str = "0987654321"
    store_ward_code: str = "00001"
    store_district_code: str = "001"
    store_province_code: str = "01"

    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {v!r}")
        return level

    @field_validator("side_effect_max_attempts")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError("side_effect_max_attempts must be at least 1")
        return v
