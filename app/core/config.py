from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

DEFAULT_SQLITE_URL = "sqlite:///./research_catalog.db"
DEFAULT_STORAGE_DIR = Path(__file__).resolve().parent.parent / "data" / "storage"
DRIVER_NORMALIZATION = {
    # async -> sync
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql+psycopg",
    "mysql+asyncmy": "mysql+pymysql",
    "mysql": "mysql+pymysql",
}


class Settings(BaseSettings):
    database_url: str | None = Field(default=None, validation_alias=AliasChoices("DATABASE_URL"))
    app_env: str | None = Field(default=None, validation_alias=AliasChoices("APP_ENV"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))

    # Bearer token expected on every API request. Unset disables the check (local use).
    api_token: str | None = Field(default=None, validation_alias=AliasChoices("API_TOKEN"))
    cors_origins: str | None = Field(default=None, validation_alias=AliasChoices("CORS_ORIGINS"))

    storage_dir: str = Field(default=str(DEFAULT_STORAGE_DIR), validation_alias=AliasChoices("STORAGE_DIR"))
    storage_signing_secret: str = Field(
        default="local-dev-signing-secret",
        validation_alias=AliasChoices("STORAGE_SIGNING_SECRET"),
    )
    public_base_url: str = Field(default="http://localhost:8000", validation_alias=AliasChoices("PUBLIC_BASE_URL"))
    signed_url_ttl_seconds: int = Field(default=3600, validation_alias=AliasChoices("SIGNED_URL_TTL_SECONDS"))

    max_icon_bytes: int = Field(default=2 * 1024 * 1024, validation_alias=AliasChoices("MAX_ICON_BYTES"))
    max_report_bytes: int = Field(default=50 * 1024 * 1024, validation_alias=AliasChoices("MAX_REPORT_BYTES"))

    sample_seed_disabled: bool = Field(default=False, validation_alias=AliasChoices("DISABLE_SAMPLE_SEED"))

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def origin_list(self) -> list[str]:
        if not self.cors_origins:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_db_url(settings: "Settings") -> str:
    app_env = (settings.app_env or "").strip().lower()
    if settings.database_url:
        return settings.database_url

    if app_env in {"production", "prod", "staging"}:
        raise ValueError("APP_ENV is set to production/staging but DATABASE_URL is missing")

    return DEFAULT_SQLITE_URL


def normalize_db_url(url: str) -> str:
    """
    Convert async driver URLs to sync equivalents so they can be used
    with the synchronous SQLAlchemy engine/session setup.
    """
    url_obj = make_url(url)
    driver = url_obj.drivername
    if driver in DRIVER_NORMALIZATION:
        url_obj = url_obj.set(drivername=DRIVER_NORMALIZATION[driver])
    return url_obj.render_as_string(hide_password=False)


settings = Settings()
