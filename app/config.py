from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    # Basic environment settings
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS settings: Allowed origins should be provided as a comma-separated list in the env var.
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/app.log"

    # Generation service
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 4000

    # Input sanity bounds (characters)
    MIN_INPUT_LENGTH: int = Field(100, ge=0)
    MAX_INPUT_LENGTH: int = Field(50_000, ge=1)

    # Pipeline behaviour
    STAGE_TIMEOUT_SECONDS: float = Field(120.0, gt=0)
    STAGE_PACING_SECONDS: float = Field(0.0, ge=0)
    RETRY_BACKOFF_SECONDS: float = Field(2.0, ge=0)

    # Summary context cache
    CONTEXT_CACHE_TTL: int = 3600
    CONTEXT_CACHE_SIZE: int = 100

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

# Create a single instance of the settings that can be imported anywhere in the project.
settings = Settings()
