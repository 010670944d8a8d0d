"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveFloat = Annotated[float, Field(gt=0.0)]


class PromptTurn(BaseModel):
    """One priming conversation turn configured through `PROMPTS`."""

    role: Literal["user", "model"]
    text: str


DEFAULT_PROMPTS: tuple[PromptTurn, ...] = (
    PromptTurn(role="user", text="You are an assistant."),
    PromptTurn(role="model", text="What can I do for you?"),
)


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    line_channel_secret: NonEmptyStr = Field(validation_alias="LINE_CHANNEL_SECRET")
    line_channel_token: NonEmptyStr = Field(validation_alias="LINE_CHANNEL_TOKEN")
    line_api_base_url: HttpUrl = Field(
        default="https://api.line.me",
        validate_default=True,
        validation_alias="LINE_API_BASE_URL",
    )
    line_http_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        validation_alias="LINE_HTTP_TIMEOUT_SECONDS",
    )
    gemini_api_key: NonEmptyStr = Field(validation_alias="GEMINI_API_KEY")
    gemini_model: NonEmptyStr = Field(
        default="gemini-1.5-flash",
        validation_alias="GEMINI_MODEL",
    )
    gemini_timeout_seconds: PositiveFloat = Field(
        default=60.0,
        validation_alias="GEMINI_TIMEOUT_SECONDS",
    )
    prompts: list[PromptTurn] = Field(
        default_factory=lambda: list(DEFAULT_PROMPTS),
        validation_alias="PROMPTS",
    )
    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    relay_request_timeout_seconds: PositiveFloat = Field(
        default=60.0,
        validation_alias="RELAY_REQUEST_TIMEOUT_SECONDS",
    )
    relay_dispatch_margin_seconds: NonNegativeFloat = Field(
        default=0.1,
        validation_alias="RELAY_DISPATCH_MARGIN_SECONDS",
    )
    relay_generation_margin_seconds: NonNegativeFloat = Field(
        default=1.0,
        validation_alias="RELAY_GENERATION_MARGIN_SECONDS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
