from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__


@dataclass(frozen=True)
class MailSettings:
    """Everything the Mailer needs, detached from the process environment."""
    mail_from: str
    notify_email: str
    store_name: str = "Desi Aura"
    currency_symbol: str = "₹"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = True
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    api_verify_url: Optional[str] = None
    sink_enabled: bool = False
    max_attempts: int = 3
    backoff_initial: float = 1.0
    backoff_factor: float = 2.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./storefront.db"
    PORT: int = 10000
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    STORE_NAME: str = "Desi Aura"
    CURRENCY_SYMBOL: str = "₹"
    VERSION: str = __version__

    NOTIFY_EMAIL: str = "orders@example.com"
    MAIL_FROM: str = "hello@example.com"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_STARTTLS: bool = True
    MAIL_API_URL: Optional[str] = None
    MAIL_API_TOKEN: Optional[str] = None
    MAIL_API_VERIFY_URL: Optional[str] = None
    MAIL_SINK: bool = False
    MAIL_MAX_ATTEMPTS: int = 3
    MAIL_BACKOFF_INITIAL: float = 1.0
    MAIL_BACKOFF_FACTOR: float = 2.0

    SEED_ON_STARTUP: bool = True
    ENVIRONMENT: str = "development"
    LOG_LEVEL: Optional[str] = None

    def database_url(self) -> str:
        # Hosted Postgres hands out postgres:// URLs; SQLAlchemy needs the async driver
        url = self.DATABASE_URL
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

    def mail(self) -> MailSettings:
        return MailSettings(
            mail_from=self.MAIL_FROM,
            notify_email=self.NOTIFY_EMAIL,
            store_name=self.STORE_NAME,
            currency_symbol=self.CURRENCY_SYMBOL,
            smtp_host=self.SMTP_HOST,
            smtp_port=self.SMTP_PORT,
            smtp_user=self.SMTP_USER,
            smtp_password=self.SMTP_PASSWORD,
            smtp_starttls=self.SMTP_STARTTLS,
            api_url=self.MAIL_API_URL,
            api_token=self.MAIL_API_TOKEN,
            api_verify_url=self.MAIL_API_VERIFY_URL,
            sink_enabled=self.MAIL_SINK,
            max_attempts=self.MAIL_MAX_ATTEMPTS,
            backoff_initial=self.MAIL_BACKOFF_INITIAL,
            backoff_factor=self.MAIL_BACKOFF_FACTOR,
        )
