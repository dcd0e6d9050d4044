"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with KEYGATE_ prefix.
An env file can be layered underneath (``keygate --config path/to/.env``).

Learn: The hashing parameters live here rather than in code so a
deployment can tune memory/time cost, and tests can use cheap ones.
Hashes stay verifiable after a change because every encoded hash carries
the parameters it was produced with.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via KEYGATE_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./keygate.db"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8080

    # Logging
    log_level: str = "info"
    log_json: bool = False

    # CORS (off by default, handy when testing from a browser)
    allow_cors: bool = False
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Authentication
    api_key_header: str = "x-api-key"
    # Behind a gateway the peer address is the gateway; read the caller
    # from X-Forwarded-For / X-Real-IP instead.
    trust_forwarded_headers: bool = False

    # Password hashing (argon2id)
    hash_time_cost: int = Field(default=10, ge=1)
    hash_memory_cost: int = Field(default=65536, ge=8)  # KiB
    hash_parallelism: int = Field(default=4, ge=1)
    hash_length: int = Field(default=32, ge=16)
    salt_length: int = Field(default=16, ge=8)
    hash_workers: int = Field(default=4, ge=1)

    # API keys
    api_key_prefix: str = "kg_"
    api_key_bytes: int = Field(default=32, ge=16)
    api_key_attempts: int = Field(default=3, ge=1)

    model_config = {"env_prefix": "KEYGATE_"}

    @field_validator("database_url")
    @classmethod
    def use_async_driver(cls, value: str) -> str:
        """Rewrite sync driver URLs to their async equivalents."""
        if value.startswith("sqlite://"):
            return value.replace("sqlite://", "sqlite+aiosqlite://", 1)
        if value.startswith("postgresql://"):
            return value.replace("postgresql://", "postgresql+asyncpg://", 1)
        return value

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, value: str) -> str:
        level = value.lower()
        if level not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def check_hash_memory(self) -> "Settings":
        # argon2 needs at least 8 KiB of memory per lane
        if self.hash_memory_cost < 8 * self.hash_parallelism:
            raise ValueError(
                f"hash_memory_cost must be at least 8 * hash_parallelism "
                f"({8 * self.hash_parallelism} KiB), got {self.hash_memory_cost}"
            )
        return self


# Process default; the app factory and CLI accept an explicit instance
settings = Settings()
