import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Blockforward Configuration
    All settings are loaded from environment variables.
    """

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = ENVIRONMENT == "development"

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./blockforward.db")
    SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"

    # CORS - Allowed origins for frontend
    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

    # Walk-forward engine
    WALK_FORWARD_MAX_WORKERS = int(os.getenv("WALK_FORWARD_MAX_WORKERS", "4"))
    WALK_FORWARD_MAX_COMBINATIONS = int(os.getenv("WALK_FORWARD_MAX_COMBINATIONS", "20000"))
    WALK_FORWARD_TIMEOUT_SECONDS = float(os.getenv("WALK_FORWARD_TIMEOUT_SECONDS", "300"))

    # Portfolio statistics
    RISK_FREE_RATE = float(os.getenv("RISK_FREE_RATE", "2.0"))  # annual, percent
    ANNUALIZATION_FACTOR = int(os.getenv("ANNUALIZATION_FACTOR", "252"))

    @classmethod
    def validate(cls):
        """Validate configuration on startup."""
        import logging
        logger = logging.getLogger(__name__)

        warnings = []

        if cls.WALK_FORWARD_MAX_WORKERS < 1:
            warnings.append("WALK_FORWARD_MAX_WORKERS must be >= 1 (falling back to 1)")
        if cls.WALK_FORWARD_MAX_COMBINATIONS < 1:
            warnings.append("WALK_FORWARD_MAX_COMBINATIONS must be >= 1")
        if cls.WALK_FORWARD_TIMEOUT_SECONDS <= 0:
            warnings.append("WALK_FORWARD_TIMEOUT_SECONDS must be positive (runs will abort immediately)")
        if cls.DATABASE_URL.startswith("sqlite") and cls.ENVIRONMENT == "production":
            warnings.append("DATABASE_URL points at SQLite in production")

        for w in warnings:
            logger.warning(f"⚠️  {w}")

        if cls.ENVIRONMENT == "production":
            logger.info("🚀 Running in PRODUCTION mode")
        else:
            logger.info("🔧 Running in DEVELOPMENT mode")

        return len(warnings) == 0

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == "production"


config = Config()
