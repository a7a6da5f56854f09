"""citescope configuration: loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "CITESCOPE_", "env_file": ".env"}

    # Provider API keys; an empty key means the provider is not configured
    perplexity_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    anthropic_api_key: str = ""

    # Provider models
    perplexity_model: str = "sonar"
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.0-flash"
    claude_model: str = "claude-3-5-haiku-20241022"

    # Per-provider timeouts (seconds)
    perplexity_timeout: float = 30.0
    openai_timeout: float = 30.0
    gemini_timeout: float = 30.0
    claude_timeout: float = 30.0

    # Database
    database_path: str = "citescope.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]


settings = Settings()
