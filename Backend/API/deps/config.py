import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    db_dsn: Optional[str] = None
    rtp_ceiling: float = Field(default=99.0, gt=0)
    default_rows: int = Field(default=14, ge=0)
    default_risk: Literal["low", "normal", "high"] = "normal"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "db_dsn": os.getenv("DB_DSN") or None,
            "rtp_ceiling": os.getenv("RTP_CEILING"),
            "default_rows": os.getenv("DEFAULT_ROWS"),
            "default_risk": os.getenv("DEFAULT_RISK"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
