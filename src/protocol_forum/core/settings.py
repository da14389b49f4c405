"""Application settings and configuration.

This module defines the configuration options for the protocol forum client.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Protocol Forum", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Upstream forum API
    api_base_url: str = Field(default="http://localhost:8000/api", alias="FORUM_API_URL")
    api_token: str | None = Field(default=None, alias="FORUM_API_TOKEN")
    http_timeout_seconds: float = Field(default=10.0, alias="FORUM_HTTP_TIMEOUT_SECONDS")

    # Pagination defaults for listing and search collaborators
    default_per_page: int = Field(default=10, alias="DEFAULT_PER_PAGE")
    max_per_page: int = Field(default=50, alias="MAX_PER_PAGE")

    # Type-ahead cap requested from the suggestions endpoint
    suggestion_limit: int = Field(default=5, alias="SUGGESTION_LIMIT")

    # Local persistence of confirmed vote directions
    ledger_database_url: str = Field(
        default="sqlite:///./vote_ledger.db",
        alias="LEDGER_DATABASE_URL",
    )
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    def clamp_per_page(self, per_page: int | None) -> int:
        """Return a page size bounded by ``max_per_page``.

        Args:
            per_page: Requested page size, or None for the default

        Returns:
            A page size between 1 and ``max_per_page``
        """
        if per_page is None:
            return self.default_per_page
        return max(1, min(per_page, self.max_per_page))


settings = Settings()
