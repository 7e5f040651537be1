from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER_NAME = "smart_attendance"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Child logger under the application root logger.

    The module path is kept relative to the package, so
    ``src.smart_attendance.smart_attendance.ratelimit.service`` logs as
    ``smart_attendance.ratelimit.service``.
    """
    parts = name.split(".") if name else []
    if ROOT_LOGGER_NAME in parts:
        last = len(parts) - 1 - parts[::-1].index(ROOT_LOGGER_NAME)
        parts = parts[last + 1 :]
    relative = ".".join(p for p in parts if p and p != "__main__")
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{relative}" if relative else ROOT_LOGGER_NAME)


def configure_logging(*, level: str = "INFO", log_dir: str | Path | None = None) -> logging.Logger:
    """Attach console and rotating file handlers once.

    Calling again (e.g. one app per test) only updates the level.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        # rotates at 5MB
        file_handler = RotatingFileHandler(
            log_path / "attendance.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging configuration loaded (level=%s)", logging.getLevelName(logger.level))
    return logger
