# tokenwheel/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExecutorSettings(BaseSettings):
    """
    Manages user-configurable settings for the request executor and its
    default collaborators, loaded from environment variables (prefixed with
    'TOKENWHEEL_') or a .env file.

    ``common_headers`` can be given as JSON in the environment, e.g.
    ``TOKENWHEEL_COMMON_HEADERS='{"X-App-Version": "1.4.0"}'``.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "secrets.env"),
        env_file_encoding="utf-8",
        env_prefix="TOKENWHEEL_",
        extra="ignore",
        case_sensitive=False,
    )

    # --- Transport Settings ---
    request_timeout: float = Field(
        default=30.0, description="Default request timeout in seconds"
    )
    user_agent: str = Field(
        default="tokenwheel/0.1.0",
        description="User-Agent header for requests sent by the default transport",
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates against the certifi bundle",
    )

    # --- Request Settings ---
    common_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers added to every outgoing request",
    )

    # --- Token Refresh Settings ---
    refresh_timeout: float = Field(
        default=15.0, description="Timeout in seconds for the refresh-token exchange"
    )


@lru_cache
def get_settings() -> ExecutorSettings:
    """
    Provides access to the executor settings.

    Settings are loaded from environment variables or .env/secrets.env files.
    The instance is cached for performance.

    Returns:
        ExecutorSettings: The settings instance.
    """
    return ExecutorSettings()
