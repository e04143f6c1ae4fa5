from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip().lower() for item in parsed if str(item).strip()]
        except json.JSONDecodeError:
            pass
        return [item.strip().lower() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip().lower() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["Content-Type", "Accept"])

    # --- Remote scoring provider ---
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "gemini_api_key"),
    )
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"

    ai_analysis_provider: str = "gemini"
    ai_analysis_model: str = "gemini-1.5-flash"
    ai_allowed_providers_raw: str = Field(
        default="gemini,mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS", "ai_allowed_providers_raw"),
    )

    ai_temperature: float = 0.3
    ai_top_k: int = 1
    ai_top_p: float = 1.0
    ai_max_tokens: int = 1024
    ai_comparison_max_tokens: int = 512
    ai_timeout_seconds: float = 30.0
    ai_debug_store_raw: bool = False

    # Gemini free tier: 15 requests per minute.
    ai_rate_limit_max_requests: int = 15
    ai_rate_limit_window_seconds: float = 60.0

    ai_max_transcript_chars: int = 100_000
    ai_max_comparison_chars: int = 5_000

    trend_stable_margin: int = 5

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ai_analysis_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        return str(value or "").lower().strip()

    @property
    def ai_allowed_providers(self) -> list[str]:
        return _parse_list_value(self.ai_allowed_providers_raw)

    @property
    def remote_scoring_configured(self) -> bool:
        """True when the analysis provider can be used without further setup."""
        name = self.ai_analysis_provider
        if name not in self.ai_allowed_providers:
            return False
        if name == "mock":
            return True
        if name == "gemini":
            return bool(self.gemini_api_key.strip())
        return False


@lru_cache
def get_settings() -> Settings:
    return Settings()
