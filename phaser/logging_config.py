"""Logging setup for phaser.

Every ``phaser.*`` logger writes DEBUG and up to a rotating ``debug.log`` in
the data directory, and WARNING and up to stderr.

Usage:
    from phaser.logging_config import setup_logging
    setup_logging(settings.data_dir)  # once, at startup

Transitions, scans, locks and storage operations log through the helpers at
the bottom of this module so their lines share one greppable shape, e.g.
``grep "LOCK | cert-42" data/debug.log``.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phaser.domain import Phase


LOG_FILE_NAME = "debug.log"
MAX_LOG_SIZE = 10 * 1024 * 1024
BACKUP_COUNT = 5

FILE_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-35s | %(funcName)-25s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


def _file_handler(log_path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    return handler


def setup_logging(
    data_root: Path | str,
    log_level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
) -> Path:
    """Attach file and console handlers to the ``phaser`` logger.

    Calling it again replaces the handlers, so a CLI run or a test can point
    the log at a different directory.

    Args:
        data_root: Directory for ``debug.log``, created if missing
        log_level: Threshold for the file
        console_level: Threshold for stderr

    Returns:
        Path to the log file
    """
    data_path = Path(data_root)
    data_path.mkdir(parents=True, exist_ok=True)
    log_path = data_path / LOG_FILE_NAME

    root = logging.getLogger("phaser")
    root.setLevel(logging.DEBUG)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    root.addHandler(_file_handler(log_path, log_level))
    root.addHandler(_console_handler(console_level))

    root.info(f"Logging to {log_path.absolute()}")
    return log_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger configured as child of the phaser logger
    """
    if name == "phaser" or name.startswith("phaser."):
        return logging.getLogger(name)
    return logging.getLogger(f"phaser.{name}")


# =============================================================================
# Structured Logging Helpers
# =============================================================================


def _phase_name(phase: "Phase | None") -> str:
    return phase.value if phase is not None else "none"


def log_transition(
    logger: logging.Logger,
    target: str,
    from_phase: "Phase | None",
    to_phase: "Phase | None",
    status: str,
    details: str | None = None,
) -> None:
    """Log a phase change of a certification or item."""
    details_str = f" | {details}" if details else ""
    logger.debug(
        f"TRANSITION | {target} | {_phase_name(from_phase)} -> {_phase_name(to_phase)} | {status}{details_str}"
    )


def log_scan(
    logger: logging.Logger,
    stage: str,
    action: str,
    details: str | None = None,
) -> None:
    """Log due-transition scan progress."""
    details_str = f" | {details}" if details else ""
    logger.info(f"SCAN | {stage} | {action}{details_str}")


def log_lock(
    logger: logging.Logger,
    certification_id: str,
    action: str,
    owner: str | None = None,
    success: bool = True,
) -> None:
    """Log certification lock acquisition and release."""
    status = "OK" if success else "BUSY"
    owner_str = f" | owner={owner}" if owner else ""
    logger.debug(f"LOCK | {certification_id} | {action}{owner_str} | {status}")


def log_storage(
    logger: logging.Logger,
    operation: str,
    path: Path | str | None = None,
    success: bool = True,
    details: str | None = None,
) -> None:
    """Log storage operations."""
    status = "OK" if success else "FAILED"
    path_str = f" | {path}" if path else ""
    details_str = f" | {details}" if details else ""
    logger.debug(f"STORAGE | {operation}{path_str} | {status}{details_str}")
