from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ENV: str = "local"
    APP_NAME: str = "sqlstream-backend"
    LOG_LEVEL: str = "INFO"

    # chat frontend routes that forward to the remote agent
    AGENT_BASE_URL: str = "http://localhost:3000"
    AGENT_API_KEY: str | None = None
    CHAT_STREAM_PATH: str = "/api/chat/stream"
    RESUME_STREAM_PATH: str = "/api/chat/stream/resume"
    STREAM_TIMEOUT_SECONDS: float = 300.0

    INTERRUPT_POLICY: str = "never"  # "never" | "always" | agent-defined
    DEFAULT_USER_ID: str = "default-user"
    PRIMARY_MODEL: str = "us.anthropic.claude-sonnet-4-20250514-v1:0"
    SECONDARY_MODEL: str = "us.anthropic.claude-opus-4-20250514-v1:0"
    MAX_TOKENS: int = 16384


@lru_cache
def get_settings() -> Settings:
    return Settings()
