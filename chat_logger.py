"""
chat_logger.py - Centralized logging configuration for the concierge backend

Sets up Python logging with:
- File handler: logs/YYYY-MM-DD/chat.txt (one folder per day)
- Console handler: stdout
- Configurable log level via LOG_LEVEL env variable
- Sanitization of user text and API secrets
"""

import os
import logging
from datetime import datetime
from pathlib import Path


class MillisecondFormatter(logging.Formatter):
    """Formatter that appends milliseconds to the configured date format."""

    def formatTime(self, record, datefmt=None):
        if datefmt:
            s = datetime.fromtimestamp(record.created).strftime(datefmt)
            ms = int((record.created - int(record.created)) * 1000)
            return f"{s}.{ms:03d}"
        return super().formatTime(record, datefmt)


def sanitize_log_string(text: str) -> str:
    """
    Sanitize string for logging to prevent log injection attacks.
    Removes newlines, carriage returns, and other control characters.

    Args:
        text: String to sanitize

    Returns:
        Sanitized string safe for logging
    """
    if not text:
        return text
    text = text.replace('\n', ' ').replace('\r', ' ').replace('\t', ' ')
    text = ''.join(char if ord(char) >= 32 else ' ' for char in text)
    return text


def mask_secret(secret: str, visible: int = 4) -> str:
    """
    Hide all but the first few characters of an API key.

    Args:
        secret: Key or token
        visible: Number of leading characters to keep

    Returns:
        Masked string, or "<unset>" when the secret is empty
    """
    if not secret:
        return "<unset>"
    if len(secret) <= visible:
        return "***"
    return f"{secret[:visible]}***"


def setup_logger(name: str = "concierge", log_level: str = "INFO") -> logging.Logger:
    """
    Configure and return a logger with file and console handlers.

    Args:
        name: Logger name
        log_level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Prevent duplicate handlers if setup is called multiple times
    if logger.handlers:
        return logger

    formatter = MillisecondFormatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # ─── File Handler ───
    today = datetime.now().strftime("%Y-%m-%d")
    log_dir = Path("logs") / today
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_dir / "chat.txt", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)  # Log everything to file
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # ─── Console Handler ───
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = "concierge") -> logging.Logger:
    """
    Get the configured logger instance.
    If logger doesn't exist, create it with default settings.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        log_level = os.getenv("LOG_LEVEL", "INFO")
        setup_logger(name, log_level)
    return logger
