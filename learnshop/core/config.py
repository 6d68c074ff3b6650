# learnshop/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (shared secret used to verify bearer tokens)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - ALLOW_OVERSELL (defaults to true: stock may go negative at checkout)
    """

    PROJECT_NAME: str = "Learnshop Training Center API"
    API_PREFIX: str = "/api"

    # DB config
    DATABASE_URL: str = "sqlite:///./learnshop.db"
    DATABASE_ECHO: bool = False

    # JWT verification (issued by the identity provider)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Checkout policy: decrement stock unconditionally when true,
    # refuse the decrement (and report insufficient stock) when false.
    ALLOW_OVERSELL: bool = True

    # In-memory guest carts: idle expiry and a hard cap per process
    GUEST_CART_MAX: int = 10_000
    GUEST_CART_TTL_SECONDS: int = 24 * 3600

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
