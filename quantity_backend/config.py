from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Quantity Survey Backend"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Autocomplete — the search/index service is external
    AUTOCOMPLETE_BASE_URL: str = ""  # prefixed to relative endpoints like /api/autocomplete/units
    AUTOCOMPLETE_DEBOUNCE_MS: int = 300
    AUTOCOMPLETE_LIMIT: int = 10
    AUTOCOMPLETE_TIMEOUT_SECONDS: Optional[float] = None  # None = wait for the server

    class Config:
        env_file = ".env"


settings = Settings()
