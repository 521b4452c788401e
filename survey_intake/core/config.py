from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ADMIN_TOKEN = "changeme"


class Settings(BaseSettings):
    """Immutable runtime configuration, read once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    # App
    APP_NAME: str = "Survey Intake"
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    LOG_LEVEL: str = "INFO"

    # Security
    ADMIN_TOKEN: str = DEFAULT_ADMIN_TOKEN  # change in production

    # "true" allows every origin, anything else is a comma-separated list
    CORS_ORIGIN: str = "true"

    # Database
    DB_FILE: str = "data.db"
    DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = False

    # Request handling
    MAX_BODY_BYTES: int = 2 * 1024 * 1024
    TRUST_PROXY: bool = False

    # SMTP for forwarding
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_SECURE: bool = False
    SMTP_TIMEOUT_SECONDS: float = 30.0
    FROM_EMAIL: Optional[str] = None
    MAIL_ESCAPE_HTML: bool = True

    # Admin dashboard assets
    ADMIN_STATIC_DIR: str = str(PACKAGE_DIR / "static" / "admin")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite+aiosqlite:///{self.DB_FILE}"

    @property
    def cors_origins(self) -> List[str]:
        raw = self.CORS_ORIGIN.strip()
        if raw.lower() == "true":
            return ["*"]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def mail_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    @property
    def from_email(self) -> str:
        return self.FROM_EMAIL or self.SMTP_USER or ""

    @property
    def uses_default_admin_token(self) -> bool:
        return self.ADMIN_TOKEN == DEFAULT_ADMIN_TOKEN


def get_settings() -> Settings:
    return Settings()
