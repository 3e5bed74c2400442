"""
Centralized Configuration Management
====================================
All configuration values are read from environment variables, with a local
.env file loaded first when present. The validation pipeline itself never
reads the environment; only the default validator instance and the API are
wired from here.
"""
import os
import logging
from typing import List
from enum import Enum

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Deployment environment types"""
    DEV = "dev"
    UAT = "uat"
    PROD = "prod"
    LOCAL = "local"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration with environment-aware settings"""

    # ==================== ENVIRONMENT DETECTION ====================
    @staticmethod
    def get_environment() -> Environment:
        """Detect current deployment environment from ENV variable"""
        env = os.getenv("ENV", "local").lower()
        if env in ["dev", "development"]:
            return Environment.DEV
        elif env in ["uat", "staging"]:
            return Environment.UAT
        elif env in ["prod", "production"]:
            return Environment.PROD
        return Environment.LOCAL

    ENVIRONMENT = get_environment()

    # ==================== VALIDATION ENGINE ====================
    MAX_QUERY_LENGTH: int = int(os.getenv("SQLCOACH_MAX_QUERY_LENGTH", "10000"))

    # Low-precision detectors (N+1, missing index) for every exercise
    HEURISTIC_CHECKS: bool = _env_bool("SQLCOACH_HEURISTIC_CHECKS")

    PASSING_SCORE: int = int(os.getenv("SQLCOACH_PASSING_SCORE", "70"))

    # ==================== FRONTEND & CORS CONFIGURATION ====================
    # Frontend URLs (comma-separated list for multiple domains)
    FRONTEND_URLS: List[str] = [
        url.strip()
        for url in os.getenv("FRONTEND_URLS", "").split(",")
        if url.strip()
    ]

    @staticmethod
    def get_cors_origins() -> List[str]:
        """Get environment-specific CORS origins"""
        origins = list(Config.FRONTEND_URLS)

        # Add localhost for local development
        if Config.ENVIRONMENT == Environment.LOCAL:
            origins.extend([
                "http://localhost:5000",
                "http://localhost:3000",
                "http://127.0.0.1:5000",
                "http://127.0.0.1:3000"
            ])

        return sorted(set(origins))

    # ==================== SERVER CONFIGURATION ====================
    PORT: int = int(os.getenv("PORT", "5000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")

    # ==================== LOGGING ====================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # ==================== VALIDATION ====================
    @classmethod
    def validate_config(cls) -> None:
        """Validate configuration settings, raising ValueError listing every problem"""
        errors = []

        if cls.MAX_QUERY_LENGTH <= 0:
            errors.append("SQLCOACH_MAX_QUERY_LENGTH must be positive")
        if not 0 <= cls.PASSING_SCORE <= 100:
            errors.append("SQLCOACH_PASSING_SCORE must be between 0 and 100")
        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL {cls.LOG_LEVEL!r} is not a logging level")
        if not 0 < cls.PORT < 65536:
            errors.append("PORT must be between 1 and 65535")

        if cls.ENVIRONMENT == Environment.PROD and not cls.FRONTEND_URLS:
            logger.warning("FRONTEND_URLS not set - the API will reject browser requests from any origin")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        logger.info(f"Configuration validated successfully for {cls.ENVIRONMENT.value} environment")

    @classmethod
    def summary(cls) -> dict:
        """Configuration summary, safe to log or expose"""
        return {
            "environment": cls.ENVIRONMENT.value,
            "max_query_length": cls.MAX_QUERY_LENGTH,
            "heuristic_checks": cls.HEURISTIC_CHECKS,
            "passing_score": cls.PASSING_SCORE,
            "cors_origins": len(cls.get_cors_origins()),
            "log_level": cls.LOG_LEVEL,
            "host": cls.HOST,
            "port": cls.PORT,
        }
