# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (backend client; cart queries are scoped by user id)
      - DATABASE_URL (direct Postgres connection, only for table bootstrap)
      - CHECKOUT_RPC (name of a Postgres function doing checkout atomically;
        created on startup together with the tables when DATABASE_URL is set)
      - CART_CACHE_SIZE (carts kept in memory before the least recently used is dropped)
    """

    PROJECT_NAME: str = "Cart Checkout Service"
    API_V1_STR: str = "/api/v1"

    # Supabase config
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # When set, tables are created on startup through SQLModel metadata
    DATABASE_URL: str | None = None

    # When set, checkout is one RPC call instead of a client-side saga
    CHECKOUT_RPC: str | None = None

    CART_CACHE_SIZE: int = 1000

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
