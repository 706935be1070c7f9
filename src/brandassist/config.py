"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    PLANNER: str = "openai"  # Options: openai, anthropic
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    MODEL_TIMEOUT: float = 60.0
    MAX_TURNS: int = 5
    PERSONA: str = "general"  # Options: general, trend

    # Slack
    SLACK_BOT_TOKEN: str | None = None
    SLACK_SIGNING_SECRET: str | None = None

    # Tool upstreams
    HTTP_TIMEOUT: float = 30.0
    EXA_API_KEY: str | None = None
    SAGE_API_URL: str | None = None
    SAGE_ACCOUNT_ID: str | None = None
    SAGE_LOGIN_ID: str | None = None
    SAGE_API_KEY: str | None = None
    SAGE_API_VERSION: int = 130
    VECTORIZER_AI_API_ID: str | None = None
    VECTORIZER_AI_API_SECRET: str | None = None
    MEM0_API_KEY: str | None = None
    MEM0_HOST: str = "https://api.mem0.ai"

    # Knowledge base (Chroma)
    KNOWLEDGE_DB_HOST: str = "chroma"  # Service name in docker-compose
    KNOWLEDGE_DB_PORT: int = 8000
    KNOWLEDGE_COLLECTION: str = "company-knowledge"
    KNOWLEDGE_MIN_SCORE: float = 0.7

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
