"""Application settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    topic_store_url: str = Field(
        default="http://localhost:3000/api", validation_alias="TOPIC_STORE_URL"
    )
    search_url: str = Field(
        default="http://localhost:3000/api/search", validation_alias="SEARCH_URL"
    )
    suggestion_url: str = Field(
        default="http://localhost:3000/api/ai/agents",
        validation_alias="SUGGESTION_URL",
    )
    api_token: str | None = Field(default=None, validation_alias="TOPICLINK_API_TOKEN")
    request_timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = Field(
        default=15.0, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    linked_by: str = Field(default="user", validation_alias="LINKED_BY")
    min_ai_confidence: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.6, validation_alias="MIN_AI_CONFIDENCE"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    def auth_headers(self) -> dict[str, str]:
        """Return the Authorization header for the configured token, if any."""
        if not self.api_token:
            return {}
        return {"Authorization": f"Bearer {self.api_token}"}


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
