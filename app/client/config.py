from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.client.cache import DEFAULT_TTL_SECONDS


class ClientSettings(BaseSettings):
    base_url: str = Field(default="http://localhost:8000", validation_alias=AliasChoices("RESEARCH_API_BASE_URL"))
    token: str | None = Field(default=None, validation_alias=AliasChoices("RESEARCH_API_TOKEN"))
    cache_ttl_seconds: float = Field(
        default=DEFAULT_TTL_SECONDS,
        validation_alias=AliasChoices("RESEARCH_CACHE_TTL_SECONDS"),
    )
    http_timeout: float = Field(default=30.0, validation_alias=AliasChoices("RESEARCH_HTTP_TIMEOUT"))

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
