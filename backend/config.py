"""Rivalscope configuration, loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "RIVALSCOPE_", "env_file": ".env"}

    # LLM API keys
    openai_api_key: str = ""
    openrouter_api_key: str = ""

    # LLM transport
    llm_provider: str = "direct"
    llm_model: str = "chatgpt-4o-latest"
    request_timeout: float = 120.0
    max_tokens: int = 4000
    temperature: float = 0.1
    debug: bool = False

    # Database
    database_path: str = "rivalscope.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000


settings = Settings()
