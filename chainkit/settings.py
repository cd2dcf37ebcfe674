## Application settings configuration

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    log_level: str = "INFO"

    # Ollama settings (OpenAI-compatible endpoint)
    ollama_base_url: str = "http://localhost:11434/v1"
    ollama_model: str = "llama3.2:latest"

    # Hosted provider settings
    LLM_PROVIDER: str = "ollama"
    GROQ_API_KEY: str | None = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_MODEL: str = "llama-3.1-8b-instant"

    # Request defaults
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 120.0

    # Retry defaults
    retry_max_attempts: int = 3
    retry_delay_ms: int = 1000


settings = Settings()
