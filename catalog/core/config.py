import os
from typing import Optional

from pydantic import BaseModel, Field

from catalog.models.models import BORROWING_PERIOD_DAYS, DAILY_LATE_FEE, HOLD_PERIOD_DAYS

DEFAULT_DATA_DIR = "data"


class CatalogSettings(BaseModel):
    data_dir: str = DEFAULT_DATA_DIR
    log_level: str = "INFO"
    log_file: Optional[str] = None
    borrowing_period_days: int = Field(default=BORROWING_PERIOD_DAYS, ge=1)
    hold_period_days: int = Field(default=HOLD_PERIOD_DAYS, ge=1)
    daily_late_fee: int = Field(default=DAILY_LATE_FEE, ge=0)
    top_books_limit: int = Field(default=5, ge=1)

    @classmethod
    def from_env(cls, **overrides) -> "CatalogSettings":
        values = {
            "data_dir": os.getenv("CATALOG_DATA_DIR", DEFAULT_DATA_DIR),
            "log_level": os.getenv("CATALOG_LOG", "INFO"),
            "log_file": os.getenv("CATALOG_LOG_FILE") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
