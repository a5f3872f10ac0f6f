"""
Configuration settings for SheetGrade.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / '.env')


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


DEFAULT_GEMINI_MODELS = [
    "gemini-2.0-flash",
    "gemini-1.5-flash-latest",
    "gemini-1.5-pro-002",
    "gemini-1.5-flash-002",
]


class Settings:
    """Application settings loaded from environment."""

    # Database
    MONGODB_URL: str = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.environ.get("DATABASE_NAME", "sheetgrade")

    # API Keys
    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "")

    # Server
    PORT: int = int(os.environ.get("PORT", 8001))
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    DEBUG: bool = os.environ.get("DEBUG", "False").lower() == "true"
    CORS_ORIGINS: List[str] = _split_csv(os.environ.get("CORS_ORIGINS", "*"))

    # AI Configuration
    # All models in the list must accept inline image/PDF parts
    GEMINI_MODELS: List[str] = _split_csv(os.environ.get("GEMINI_MODELS", "")) or DEFAULT_GEMINI_MODELS
    LLM_TEMPERATURE: float = float(os.environ.get("LLM_TEMPERATURE", 0.1))
    LLM_MAX_OUTPUT_TOKENS: int = int(os.environ.get("LLM_MAX_OUTPUT_TOKENS", 4096))

    # Re-evaluation policy
    MAX_RE_EVALUATIONS: int = int(os.environ.get("MAX_RE_EVALUATIONS", 0))  # 0 disables the cap

    # Caller-side retry (bulk re-evaluation)
    RETRY_MAX_ATTEMPTS: int = int(os.environ.get("RETRY_MAX_ATTEMPTS", 3))
    RETRY_BASE_DELAY: float = float(os.environ.get("RETRY_BASE_DELAY", 1.0))  # seconds
    RETRY_MAX_DELAY: float = float(os.environ.get("RETRY_MAX_DELAY", 15.0))  # seconds

    # Source file download
    FILE_FETCH_TIMEOUT: float = float(os.environ.get("FILE_FETCH_TIMEOUT", 60.0))

    # Logging
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    def validate(self):
        """Validate critical settings."""
        if not self.MONGODB_URL:
            raise ValueError("MONGODB_URI environment variable not set")
        if not self.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable not set")
        if not self.GEMINI_MODELS:
            raise ValueError("GEMINI_MODELS must name at least one model")
        return True


# Global settings instance
settings = Settings()
