from pathlib import Path
from typing import Annotated, List, Optional

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Settlement Engine'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Security (identity tokens are issued by the external identity service)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'
    SYSTEM_ROLES: Annotated[List[str], NoDecode] = ['system', 'admin']

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []  # comma separated or a JSON array

    @field_validator('BACKEND_CORS_ORIGINS', 'SYSTEM_ROLES', mode='before')
    @classmethod
    def assemble_str_list(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.strip().startswith('['):
            return [str(i) for i in orjson.loads(v)]
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'ticket_settlement'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* parts (e.g. sqlite+aiosqlite)

    # Connection pool (ignored by SQLite)
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql+asyncpg://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    # Reservation
    RESERVATION_DEFAULT_TTL_MINUTES: int = 10
    RESERVATION_MAX_TTL_MINUTES: int = 60
    MAX_TICKETS_PER_RESERVATION: int = 10

    # Stripe hosted checkout
    STRIPE_SECRET_KEY: SecretStr = SecretStr('sk_test_change_me')
    STRIPE_WEBHOOK_SECRET: SecretStr = SecretStr('whsec_change_me')
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    STRIPE_CURRENCY: str = 'usd'
    CHECKOUT_SESSION_MIN_TTL_MINUTES: int = 31  # Stripe rejects sessions expiring within 30 minutes
    PLATFORM_FEE_PERCENT: int = 10

    # Expiration sweeper
    SWEEPER_ENABLED: bool = True
    SWEEPER_INTERVAL_SECONDS: float = 30.0
    SWEEPER_BATCH_SIZE: int = 100

    # Reconciliation
    RECONCILIATION_ENABLED: bool = True
    RECONCILIATION_INTERVAL_SECONDS: float = 3600.0
    RECONCILIATION_HOURS_AGO: int = 24
    RECONCILIATION_REVENUE_TOLERANCE_CENTS: int = 100

    # Observability
    SERVICE_NAME: str = 'settlement-engine'
    DEPLOY_ENV: str = 'local_dev'
    LOG_LEVEL: Optional[str] = None  # Defaults to DEBUG when DEBUG is on, INFO otherwise
    LOG_JSON: bool = False  # One JSON object per line for the log collector
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_CONSOLE_EXPORT: bool = False
    OTEL_SAMPLE_RATIO: float = 1.0


settings = Settings()  # type: ignore
