"""
Application settings.
"""
import tempfile
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/checkledger.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"

    # Vision-model recognition provider (preferred when a key is set)
    OPENAI_API_KEY: str = ""
    OPENAI_VISION_MODEL: str = "gpt-4o-mini"
    OPENAI_RESPONSES_URL: str = "https://api.openai.com/v1/responses"

    # Plain OCR recognition provider
    CHECK_OCR_API_URL: str = ""
    CHECK_OCR_API_KEY: str = ""

    RECOGNITION_TIMEOUT_SECONDS: float = 60.0

    # Raw recognition dumps for offline inspection
    OCR_DEBUG: bool = False
    OCR_DEBUG_DIR: str = tempfile.gettempdir()

    # Deposit forwarding
    APP_BASE_URL: str = "http://localhost:8000"
    INTERNAL_API_KEY: str = ""
    FORWARD_TIMEOUT_SECONDS: float = 15.0

    # Ledger policy
    MAX_DEPOSIT_CENTS: int = 1_000_000_00

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
