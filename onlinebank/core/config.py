from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "OnlineBank"
    APP_VERSION: str = "0.1.0"
    ACTIVE_PROFILE: str = "default"  # "production" switches logs to JSON
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = ""  # Falls back to PG* variables when empty
    PGHOST: str = "localhost"
    PGPORT: int = 5432
    PGDATABASE: str = "onlinebank"
    PGUSER: str = "postgres"
    PGPASSWORD: str = "postgres"

    # Connection pool
    DB_MAX_POOL_SIZE: int = 10
    DB_MIN_IDLE: int = 0  # QueuePool opens connections lazily, so only 0 is meaningful
    DB_CONNECTION_TIMEOUT_MS: int = 5000  # Wait for a pooled connection
    DB_VALIDATION_TIMEOUT_MS: int = 2000  # Upper bound for one connectivity probe
    DB_PROBE_INTERVAL_MS: int = 10000

    # Runtime health
    HEAP_UNHEALTHY_PERCENT: float = 90.0
    HEAP_WARNING_PERCENT: float = 80.0
    MEMORY_LIMIT_MB: int = 0  # 0 = measure against total system memory
    READINESS_REQUIRES_DATABASE: bool = False

    # Schema bootstrap (rendered from the ORM metadata when unset)
    SCHEMA_SCRIPT_PATH: Optional[str] = None

    # Test data seeding
    DATA_INIT_ENABLED: bool = True
    DATA_INIT_CLIENT_COUNT: int = 100
    DATA_INIT_CLEAN_BEFORE: bool = False

    # Error tracking
    SENTRY_DSN: str = ""

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}:{self.PGPORT}/{self.PGDATABASE}"
        )

    @property
    def is_production(self) -> bool:
        return self.ACTIVE_PROFILE == "production"


settings = Settings()
