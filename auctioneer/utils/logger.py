"""
Logging for the auction engine.

Every subsystem logs under ``auctioneer.<subsystem>``:

    auction   engine lifecycle (starts, bids, closes)
    registry  record removal
    bank      every send, mint and burn
    genesis   snapshot import and export
    config    parameter loading and updates

The bank logs each transfer at DEBUG, which floods the console during a
sweep, so it is held at INFO unless asked for. Subsystem levels can be set
in code, from the CLI (``--log bank=DEBUG``) or from the
``AUCTIONEER_LOG_LEVELS`` environment variable in the same
``name=LEVEL,name=LEVEL`` form.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional

import colorlog

ROOT_LOGGER = "auctioneer"
LOG_LEVELS_ENV = "AUCTIONEER_LOG_LEVELS"

SUBSYSTEMS = ("auction", "registry", "bank", "genesis", "config")

# Quieter than the root level unless overridden
DEFAULT_SUBSYSTEM_LEVELS: Dict[str, int] = {
    "bank": logging.INFO,
}

CONSOLE_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(subsystem)-8s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(subsystem)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_levels(text: Optional[str]) -> Dict[str, int]:
    """
    Parse ``"bank=DEBUG,auction=WARNING"`` into subsystem levels.

    Raises:
        ValueError: unknown subsystem or level name
    """
    levels: Dict[str, int] = {}
    if not text:
        return levels

    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, level_name = item.partition("=")
        name = name.strip()
        if not sep or name not in SUBSYSTEMS:
            raise ValueError(f"expected <subsystem>=<LEVEL> with subsystem in {', '.join(SUBSYSTEMS)}, got {item!r}")
        level = logging.getLevelName(level_name.strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"unknown log level {level_name!r} for {name}")
        levels[name] = level
    return levels


class _SubsystemFilter(logging.Filter):
    """Adds the short subsystem name (``auctioneer.bank`` -> ``bank``) to records."""

    def filter(self, record: logging.LogRecord) -> bool:
        prefix = ROOT_LOGGER + "."
        record.subsystem = record.name[len(prefix):] if record.name.startswith(prefix) else record.name
        return True


class AuctioneerLogger:
    """Handler setup and per-subsystem levels for the ``auctioneer`` loggers."""

    _initialized = False
    _log_file: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        levels: Optional[Dict[str, int]] = None,
    ):
        """
        Configure the ``auctioneer`` loggers.

        Handlers are installed once. Calling again only changes levels, so
        the CLI can raise or lower verbosity after modules have already
        created their loggers.

        Args:
            level: Level for the root ``auctioneer`` logger
            log_dir: Directory for ``auctioneer.log`` (./logs if None)
            log_to_file: Also write to a log file (first call only)
            levels: Per-subsystem overrides, applied on top of the defaults
                and ``AUCTIONEER_LOG_LEVELS``
        """
        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)

        if not cls._initialized:
            root_logger.handlers.clear()
            root_logger.addHandler(cls._console_handler())

            if log_to_file:
                log_path = Path(log_dir) if log_dir else Path("logs")
                log_path.mkdir(exist_ok=True, parents=True)
                cls._log_file = log_path / "auctioneer.log"
                root_logger.addHandler(cls._file_handler(cls._log_file))

            cls._initialized = True

        for handler in root_logger.handlers:
            handler.setLevel(logging.NOTSET)

        overrides = parse_levels(os.environ.get(LOG_LEVELS_ENV))
        overrides.update(levels or {})
        for name in SUBSYSTEMS:
            if name in overrides:
                cls.set_level(name, overrides[name])
            elif name in DEFAULT_SUBSYSTEM_LEVELS:
                cls.set_level(name, max(DEFAULT_SUBSYSTEM_LEVELS[name], level))
            else:
                cls.set_level(name, logging.NOTSET)

    @staticmethod
    def _console_handler() -> logging.Handler:
        handler = colorlog.StreamHandler(sys.stdout)
        handler.addFilter(_SubsystemFilter())
        handler.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        return handler

    @staticmethod
    def _file_handler(path: Path) -> logging.Handler:
        handler = logging.FileHandler(path)
        handler.addFilter(_SubsystemFilter())
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    @classmethod
    def set_level(cls, subsystem: str, level: int) -> None:
        """Set one subsystem's level."""
        if subsystem not in SUBSYSTEMS:
            raise ValueError(f"unknown subsystem: {subsystem}")
        logging.getLogger(f"{ROOT_LOGGER}.{subsystem}").setLevel(level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for a subsystem, installing handlers on first use."""
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    return AuctioneerLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
    levels: Optional[Dict[str, int]] = None,
):
    AuctioneerLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, levels=levels)
