from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache

class Settings(BaseSettings):
    # Gateway Settings
    AI_GATEWAY_API_KEY: Optional[str] = None
    AI_GATEWAY_BASE_URL: str = "https://ai-gateway.vercel.sh/v1"
    GATEWAY_TIMEOUT: float = 60.0

    # Model Settings
    MODELS_CACHE_TTL: int = 300  # Seconds; 0 disables the directory cache
    SEARCH_MODEL_ID: str = "perplexity/sonar"
    DEFAULT_MODEL_ID: str = "openai/gpt-4o"
    SYSTEM_PROMPT: str = "You are a helpful assistant that can answer questions and help with tasks"

    # Storage Settings
    STORAGE_BACKEND: str = "json"  # "json" or "mongo"
    THREADS_FILE: str = "threads.json"
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "chat_relay"

    # CORS Settings
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"

    @property
    def CORS_ORIGINS_LIST(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()
