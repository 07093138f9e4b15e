from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings sourced from environment variables."""

    BACKEND_API_URL: str = "http://localhost:3001"  # e.g. https://<backend>.vercel.app
    REDIS_URL: str | None = None  # e.g. redis://localhost:6379/0, in-memory cache when unset

    CACHE_TTL_SECONDS: int = 300
    # None leaves backend requests without a timeout
    REQUEST_TIMEOUT_SECONDS: float | None = None

    # Single hardcoded demo user, there is no authorization model
    DEMO_USER_EMAIL: str = "demo@restaurant.local"

    API_PREFIX: str = "/api/v1"

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
