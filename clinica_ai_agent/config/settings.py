"""
Application settings and configuration.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings

from .scheduling import SchedulingConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Clinica AI Agent"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="development", env="ENVIRONMENT")

    # Conversation context store
    redis_url: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")
    context_ttl_seconds: int = Field(default=1800, env="CONTEXT_TTL_SECONDS")
    max_history_length: int = Field(default=20, env="MAX_HISTORY_LENGTH")
    nlp_history_window: int = Field(default=5, env="NLP_HISTORY_WINDOW")

    # Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", env="GEMINI_MODEL")
    llm_temperature: float = Field(default=0.7, env="LLM_TEMPERATURE")
    llm_top_k: int = Field(default=40, env="LLM_TOP_K")
    llm_top_p: float = Field(default=0.95, env="LLM_TOP_P")
    llm_max_output_tokens: int = Field(default=2048, env="LLM_MAX_OUTPUT_TOKENS")
    llm_reply_max_tokens: int = Field(default=1000, env="LLM_REPLY_MAX_TOKENS")
    llm_timeout_seconds: float = Field(default=60.0, env="LLM_TIMEOUT_SECONDS")
    llm_max_retries: int = Field(default=3, env="LLM_MAX_RETRIES")
    rate_limit_window_seconds: int = Field(default=60, env="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_requests: int = Field(default=100, env="RATE_LIMIT_MAX_REQUESTS")

    # OpenAI (fallback provider)
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", env="OPENAI_MODEL")

    # Semantic store
    chroma_path: str = Field(default="chroma_data", env="CHROMA_PATH")
    semantic_conversation_threshold: float = Field(default=0.6, env="SEMANTIC_CONVERSATION_THRESHOLD")
    semantic_knowledge_threshold: float = Field(default=0.5, env="SEMANTIC_KNOWLEDGE_THRESHOLD")

    # Relational store
    clinic_db_path: str = Field(default="clinic.db", env="CLINIC_DB_PATH")

    # Notifications (n8n style webhook)
    notification_webhook_url: Optional[str] = Field(default=None, env="NOTIFICATION_WEBHOOK_URL")
    notification_timeout: float = Field(default=10.0, env="NOTIFICATION_TIMEOUT")

    # Timezone
    timezone: str = Field(default="America/Sao_Paulo", env="TIMEZONE")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def scheduling(self) -> SchedulingConfig:
        """Scheduling rules derived from the flat settings."""
        return SchedulingConfig(timezone=self.timezone)


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
