"""
Logging for the Candle Auction client.

All client loggers hang off "candle" (candle.tracker, candle.sequencer,
candle.contract, ...). Console output is colored and goes to stderr so
command results on stdout stay machine-readable. Registered secrets,
such as the signing key, are masked in every record before it is
formatted.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Set, Union

import colorlog

ROOT_LOGGER = "candle"
LOG_FILE = "candle.log"
MASK = "***"

# Libraries that log every RPC round trip at DEBUG/INFO
NOISY_LOGGERS = ("web3", "urllib3", "aiohttp", "asyncio")


class SecretFilter(logging.Filter):
    """Replaces registered secret strings in log messages."""

    def __init__(self):
        super().__init__()
        self.secrets: Set[str] = set()

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            message = record.getMessage()
            for secret in sorted(self.secrets, key=len, reverse=True):
                message = message.replace(secret, MASK)
            record.msg = message
            record.args = None
        return True


class _StderrHandler(colorlog.StreamHandler):
    """Writes to whatever sys.stderr is at emit time (it may be redirected)."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


class CandleLogger:
    """Owns the handlers on the "candle" logger."""

    _initialized = False
    _log_dir: Optional[Path] = None
    _secret_filter = SecretFilter()

    @classmethod
    def setup(
        cls,
        level: Union[int, str] = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
    ):
        """
        Configure handlers. Calling again replaces them, so the CLI can
        change verbosity after modules have created their loggers.

        Args:
            level: Level number or name ("debug", "WARNING")
            log_dir: Directory for candle.log; defaults to ./logs
            log_to_file: Also write a plain-text log file
        """
        level = _parse_level(level)

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        root_logger.propagate = False
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        console_handler = _StderrHandler()
        console_handler.setLevel(level)
        console_handler.addFilter(cls._secret_filter)
        console_handler.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)-8s%(reset)s [%(name)s] %(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        root_logger.addHandler(console_handler)

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(cls._log_dir / LOG_FILE)
            file_handler.setLevel(level)
            file_handler.addFilter(cls._secret_filter)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            root_logger.addHandler(file_handler)

        # RPC chatter only when explicitly debugging
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup()
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")

    @classmethod
    def register_secret(cls, secret: Optional[str]) -> None:
        """Mask `secret` (and its 0x-less form) in all future log output."""
        if not secret:
            return
        cls._secret_filter.secrets.add(secret)
        if secret.startswith("0x") and len(secret) > 2:
            cls._secret_filter.secrets.add(secret[2:])


def _parse_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def get_logger(name: str) -> logging.Logger:
    """Logger for a client subsystem, e.g. get_logger("tracker") -> candle.tracker"""
    return CandleLogger.get_logger(name)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    CandleLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)


def register_secret(secret: Optional[str]) -> None:
    CandleLogger.register_secret(secret)
