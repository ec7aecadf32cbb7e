from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "FinancialInsights"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)

    # Storage (empty path keeps everything in memory)
    STORAGE_PATH: str = Field(default="")

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]


settings = Settings()
