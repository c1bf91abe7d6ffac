import os
from dataclasses import dataclass


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from environment variables."""
    database_url: str
    log_level: str
    cascade_policy: str
    max_order_assignees: int
    default_page_size: int


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./backoffice.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cascade_policy=os.getenv("CASCADE_POLICY", "strict").strip().lower(),
        max_order_assignees=_int_env("MAX_ORDER_ASSIGNEES", 10),
        default_page_size=_int_env("DEFAULT_PAGE_SIZE", 20),
    )


settings = load_settings()
