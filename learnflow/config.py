"""
Configuration management using .env file
"""
import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from .env file"""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # LLM backend
    llm_provider: str = "upstage"  # upstage | openai
    upstage_api_key: str = ""
    openai_api_key: str = ""
    llm_base_url: str = "https://api.upstage.ai/v1"
    llm_model: str = "solar-pro"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048
    llm_timeout: int = 30  # seconds

    # LangSmith
    langsmith_api_key: str = ""
    langsmith_project: str = "learnflow"
    langsmith_tracing: bool = True

    # Application
    environment: str = "development"
    log_dir: str = "logs"

    # Workflow execution
    workflow_step_timeout: float = 60.0
    max_concurrent_agents: int = 3
    agent_retry_base_delay: float = 1.0

    # Agent policies
    document_max_content_length: int = 10000
    document_fetch_timeout: float = 15.0
    max_key_points: int = 8
    qa_history_window: int = 10


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_tracing(settings: Settings) -> bool:
    """
    Export LangSmith variables so `@traceable` picks them up.

    Returns:
        bool: True if tracing was enabled
    """
    if not (settings.langsmith_tracing and settings.langsmith_api_key):
        os.environ["LANGSMITH_TRACING"] = "false"
        os.environ["LANGCHAIN_TRACING_V2"] = "false"
        return False

    # @traceable reads LANGSMITH_*, langchain reads LANGCHAIN_*; set both
    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    os.environ["LANGCHAIN_API_KEY"] = settings.langsmith_api_key
    os.environ["LANGCHAIN_PROJECT"] = settings.langsmith_project
    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key
    os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project
    return True
