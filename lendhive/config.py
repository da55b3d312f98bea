import logging
import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv

from .errors import ValidationError

load_dotenv()

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


@dataclass
class Settings:
    # Lending rules
    loan_days: int = int(os.getenv("LENDHIVE_LOAN_DAYS", "14"))
    daily_fine: Decimal = Decimal(os.getenv("LENDHIVE_DAILY_FINE", "500"))
    max_loans: int = int(os.getenv("LENDHIVE_MAX_LOANS", "3"))
    fine_ceiling: Decimal = Decimal(os.getenv("LENDHIVE_FINE_CEILING", "5000"))

    # Identity / catalog
    user_id_base: int = int(os.getenv("LENDHIVE_USER_ID_BASE", "1000"))
    min_year: int = int(os.getenv("LENDHIVE_MIN_YEAR", "1450"))

    # Logging
    log_level: str = os.getenv("LENDHIVE_LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValidationError(
                f"Invalid log level {self.log_level!r}: expected one of {', '.join(LOG_LEVELS)}"
            )


settings = Settings()


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = settings.log_level) -> logging.Logger:
    """Attach a stream handler to the package logger, once.

    Applications call this; the library itself only installs a NullHandler.
    """
    level = Settings(log_level=level).log_level
    logger = logging.getLogger("lendhive")
    logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
