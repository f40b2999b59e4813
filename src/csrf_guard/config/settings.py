"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    identity_provider_url: HttpUrl = Field(validation_alias="IDENTITY_PROVIDER_URL")
    identity_provider_api_key: NonEmptyStr | None = Field(
        default=None,
        validation_alias="IDENTITY_PROVIDER_API_KEY",
    )
    identity_provider_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        validation_alias="IDENTITY_PROVIDER_TIMEOUT_SECONDS",
    )
    environment: Literal["development", "production"] = Field(
        default="development",
        validation_alias="ENVIRONMENT",
    )
    csrf_token_ttl_seconds: PositiveInt = Field(
        default=86_400,
        validation_alias="CSRF_TOKEN_TTL_SECONDS",
    )
    csrf_cookie_name: NonEmptyStr = Field(default="csrf_token", validation_alias="CSRF_COOKIE_NAME")
    csrf_header_name: NonEmptyStr = Field(
        default="x-csrf-token",
        validation_alias="CSRF_HEADER_NAME",
    )
    csrf_body_field: NonEmptyStr = Field(default="csrf_token", validation_alias="CSRF_BODY_FIELD")
    csrf_cookie_path: NonEmptyStr = Field(default="/", validation_alias="CSRF_COOKIE_PATH")
    csrf_cookie_domain: NonEmptyStr | None = Field(
        default=None,
        validation_alias="CSRF_COOKIE_DOMAIN",
    )
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        validation_alias="ALLOWED_ORIGINS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def allowed_origin_list(self) -> list[str]:
        """Return configured CORS origins as a de-duplicated ordered list."""

        origins: list[str] = []
        for raw in self.allowed_origins.split(","):
            origin = raw.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
        return origins


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
