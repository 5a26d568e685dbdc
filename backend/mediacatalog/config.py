from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator
from functools import lru_cache
from sqlalchemy.engine import URL

ASYNC_DRIVER = "postgresql+asyncpg"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Store: either one connection string...
    database_url: str | None = None

    # ...or the split form used by orchestrators that mount the password as a
    # secret. Passwords may contain '#', '@' and friends, so this form is
    # handed to SQLAlchemy as a URL object and never rendered to a string.
    postgres_host: str | None = None
    postgres_port: int = 5432
    postgres_db: str | None = None
    postgres_user: str | None = None
    postgres_password: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # App
    app_name: str = "Media Catalog"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Catalog behaviour
    referential_mode: Literal["permissive", "strict"] = "permissive"
    request_timeout_seconds: float = 30.0
    snapshot_isolation_level: str | None = "REPEATABLE READ"
    create_schema: bool = False

    # Scheduler interval (0 disables the orphan sweep)
    orphan_sweep_interval_hours: int = 0

    @model_validator(mode="after")
    def require_store(self) -> "Settings":
        if not self.database_url and not self._has_split_config():
            raise ValueError(
                "DATABASE_URL is not set (or POSTGRES_HOST/POSTGRES_PASSWORD for split config)"
            )
        return self

    def _has_split_config(self) -> bool:
        return bool(self.postgres_host and self.postgres_password)

    def get_async_url(self) -> URL | str:
        """Connection target for the async engine.

        Bare ``postgres://`` / ``postgresql://`` strings are pointed at asyncpg;
        any URL that already names a driver is used as-is.
        """
        if self._has_split_config():
            return URL.create(
                drivername=ASYNC_DRIVER,
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                database=self.postgres_db,
            )
        scheme, sep, rest = self.database_url.partition("://")
        if sep and scheme in ("postgres", "postgresql"):
            return f"{ASYNC_DRIVER}://{rest}"
        return self.database_url

    @property
    def strict_references(self) -> bool:
        return self.referential_mode == "strict"


@lru_cache
def get_settings() -> Settings:
    return Settings()
