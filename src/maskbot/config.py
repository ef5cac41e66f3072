# Settings — environment-driven configuration for the bot and callback server.
# Created: 2026-10-06

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

FASTMAIL_SCOPE_CORE = "urn:ietf:params:jmap:core"
FASTMAIL_SCOPE_MASKED_EMAIL = "https://www.fastmail.com/dev/maskedemail"


def get_config_dir() -> Path:
    """Get/create the config directory (~/.maskbot)."""
    d = Path.home() / ".maskbot"
    d.mkdir(parents=True, exist_ok=True)
    return d


class Settings(BaseSettings):
    """Bot settings, loaded from MASKBOT_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="MASKBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram
    telegram_bot_token: str = ""
    telegram_debug: bool = False
    telegram_poll_timeout: int = 30

    # Storage. Empty means sqlite file in the config dir.
    database_url: str = ""

    # Fastmail OAuth2 (public client, PKCE)
    fastmail_client_id: str = ""
    fastmail_api_url: str = "https://api.fastmail.com"
    fastmail_auth_url: str = "https://api.fastmail.com/oauth/authorize"
    fastmail_token_url: str = "https://api.fastmail.com/oauth/refresh"
    fastmail_scopes: list[str] = Field(
        default_factory=lambda: [FASTMAIL_SCOPE_CORE, FASTMAIL_SCOPE_MASKED_EMAIL]
    )
    oauth_redirect_url: str = "http://localhost:8080/oauth2/callback"
    masked_email_description: str = "Created by maskbot"

    # Callback server
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    http_timeout: float = 15.0

    default_language: str = "en"
    log_level: str = "INFO"

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{get_config_dir() / 'maskbot.db'}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
