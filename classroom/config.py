# classroom/config.py
import logging
import os

import structlog
from dotenv import load_dotenv

load_dotenv()  # load from .env


class Settings:
    DB_URL: str = os.getenv("DB_URL", "")
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "")
    CLASSROOM_ENV: str = os.getenv("CLASSROOM_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    GITHUB_API_URL: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    WEBHOOK_URL: str = os.getenv("WEBHOOK_URL", "")
    WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "")

    MAX_JOB_ATTEMPTS: int = int(os.getenv("MAX_JOB_ATTEMPTS", "3"))
    PER_PAGE: int = int(os.getenv("PER_PAGE", "25"))


settings = Settings()


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
