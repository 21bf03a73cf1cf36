import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Literal, Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 5  # seconds to wait for a pooled connection

    # Backends
    RECIPE_STORE_BACKEND: Literal["memory", "postgres"] = "memory"
    LICENSE_BACKEND: Literal["memory", "postgres"] = "memory"
    RECIPE_CATALOG_PATH: Optional[str] = None  # defaults to bundled data/recipes.json

    # Recipe pack
    RECIPE_PACK_VERSION: str = "1.0.0"
    UPGRADE_URL: str = "https://shipswift.app/pro"
    UPGRADE_MESSAGE: str = (
        "This is a Pro recipe. Add a ShipSwift Pro license key "
        "(Authorization: Bearer sk-...) to unlock the full implementation."
    )

    # Licensing
    LICENSE_CACHE_TTL_SECONDS: float = 30.0  # 0 = no caching
    LICENSE_CACHE_MAX_ENTRIES: int = 10_000
    DEV_LICENSE_KEYS: str = ""  # comma-separated, memory backend only

    # Timeouts / retries
    OPERATION_TIMEOUT_SECONDS: float = 3.0
    IO_RETRY_ATTEMPTS: int = 3
    IO_RETRY_BACKOFF_SECONDS: float = 0.1

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_PER_MINUTE_DEFAULT: int = 120
    RATE_LIMIT_BURST_DEFAULT: int = 30

    # HTTP
    CORS_ALLOWED_ORIGINS: str = "*"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate backend selection and required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("recipe_server")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    # Backend names are checked by the Literal fields when Settings is built
    problems = []
    uses_postgres = "postgres" in {cfg.RECIPE_STORE_BACKEND, cfg.LICENSE_BACKEND}
    if uses_postgres and not (cfg.DATABASE_URL or cfg.TEST_DATABASE_URL):
        problems.append("Missing required configuration: DATABASE_URL")

    if cfg.OPERATION_TIMEOUT_SECONDS <= 0:
        problems.append("OPERATION_TIMEOUT_SECONDS must be positive")

    if problems:
        message = "; ".join(problems)
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True


def split_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
