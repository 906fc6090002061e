import logging
import os
from logging.handlers import RotatingFileHandler

from .config import Settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024  # 5MB
BACKUP_COUNT = 5


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach handlers to the package logger.

    combined.log gets every record, error.log only ERROR and above. The console
    handler is skipped in production. Calling this again replaces the handlers,
    so building several apps in one process does not duplicate output.
    """
    logger = logging.getLogger("bookwise")
    logger.setLevel(settings.log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)

        combined = RotatingFileHandler(
            os.path.join(settings.log_dir, "combined.log"),
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        combined.setFormatter(formatter)
        logger.addHandler(combined)

        errors = RotatingFileHandler(
            os.path.join(settings.log_dir, "error.log"),
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        logger.addHandler(errors)

    if not settings.is_production:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
