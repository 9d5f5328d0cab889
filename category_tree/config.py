# category_tree/config.py
import os
import logging
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


class Config:
    """Configuration settings for the category engine"""

    # Store settings
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory")

    # REST backend
    API_BASE_URL: str = os.getenv("API_BASE_URL", "")
    API_TOKEN: str = os.getenv("API_TOKEN", "")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_POOL_MIN_SIZE: int = int(os.getenv("DB_POOL_MIN_SIZE", "2"))
    DB_POOL_MAX_SIZE: int = int(os.getenv("DB_POOL_MAX_SIZE", "10"))

    # Synchronization settings
    FETCH_TIMEOUT: Optional[float] = _optional_float("FETCH_TIMEOUT")
    SEARCH_DEBOUNCE_MS: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
    PAGE_SIZE: int = int(os.getenv("PAGE_SIZE", "100"))

    # Other settings
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

    @classmethod
    def require(cls, name: str) -> str:
        """Return a mandatory setting or fail with the variable name"""
        value = getattr(cls, name)
        if not value:
            raise ValueError(f"No {name} set in environment")
        return value


def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = Config.LOG_DIR / "category_tree.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
