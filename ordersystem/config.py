"""Runtime settings read from environment variables.

Every module gets its configuration from ``get_settings()`` instead of
reading ``os.environ`` directly. The database variables keep the names used
by the Postgres container of the deployment.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from .domain import ConfigurationError

BACKENDS = {"memory", "postgres"}


def _bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    store_backend: str = "memory"
    require_known_drink: bool = True

    db_host: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_name: Optional[str] = None
    db_port: Optional[str] = None
    db_connect_timeout: int = 5
    db_connect_deadline: float = 30.0
    db_statement_timeout_ms: int = 0

    http_port: int = 3000
    grpc_port: int = 4000
    grpc_target: str = "localhost:4000"
    grpc_workers: int = 10
    log_level: str = "info"

    def database_url(self) -> str:
        """Build the SQLAlchemy URL for the durable store.

        Returns:
            str: A ``postgresql+psycopg`` URL.

        Raises:
            ConfigurationError: When one of the required database variables
                is not set.
        """
        required = [
            ("POSTGRES_USER", self.db_user),
            ("POSTGRES_PASSWORD", self.db_password),
            ("POSTGRES_DB", self.db_name),
            ("POSTGRES_TCP_PORT", self.db_port),
            ("DB_HOST", self.db_host),
        ]
        for name, value in required:
            if value is None:
                raise ConfigurationError(f"environment variable '{name}' is not set")
        return f"postgresql+psycopg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance.

    Raises:
        ConfigurationError: When ``STORE_BACKEND`` names an unknown backend
            or a numeric variable cannot be parsed.
    """
    backend = os.getenv("STORE_BACKEND", "memory").strip().lower()
    if backend not in BACKENDS:
        raise ConfigurationError(f"STORE_BACKEND must be one of {sorted(BACKENDS)}, got '{backend}'")

    try:
        return Settings(
            store_backend=backend,
            require_known_drink=_bool(os.getenv("REQUIRE_KNOWN_DRINK"), True),
            db_host=os.getenv("DB_HOST"),
            db_user=os.getenv("POSTGRES_USER"),
            db_password=os.getenv("POSTGRES_PASSWORD"),
            db_name=os.getenv("POSTGRES_DB"),
            db_port=os.getenv("POSTGRES_TCP_PORT"),
            db_connect_timeout=int(os.getenv("DB_CONNECT_TIMEOUT", "5")),
            db_connect_deadline=float(os.getenv("DB_CONNECT_DEADLINE", "30")),
            db_statement_timeout_ms=int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "0")),
            http_port=int(os.getenv("PORT", "3000")),
            grpc_port=int(os.getenv("GRPC_PORT", "4000")),
            grpc_target=os.getenv("GRPC_TARGET", "localhost:4000"),
            grpc_workers=int(os.getenv("GRPC_WORKERS", "10")),
            log_level=os.getenv("LOG_LEVEL", "info"),
        )
    except ValueError as exc:
        raise ConfigurationError(f"invalid numeric setting: {exc}") from exc
