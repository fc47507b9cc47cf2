from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database & redis
    # Plain string so sqlite:// URLs used in tests are accepted as well
    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # memberships
    DEFAULT_MEMBER_JOB_TITLE: str = "Member"

    # seeding & reconciliation
    SEED_COMPANIES_ON_STARTUP: bool = True
    SYNC_ON_DIRECTORY_LOAD: bool = False
    SYNC_SCHEDULE_HOUR: int = 4
    SYNC_SCHEDULE_MINUTE: int = 0

    # deadlines (seconds); None disables the check
    STORE_CALL_TIMEOUT_SECONDS: float | None = None
    SYNC_TIMEOUT_SECONDS: float | None = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
