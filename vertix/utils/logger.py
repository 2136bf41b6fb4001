"""
Logging for Vertix.

All loggers live under the "vertix" namespace, one per subsystem
(auction, ledger, custody, fees, escrow, events, storage). Handlers are
attached once to the namespace root:
- a colorlog console handler
- optionally a plain-text file handler under the configured log dir

Calling setup_logging() again replaces the handlers, so the CLI can
reconfigure after module-level loggers have already been created.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Union

import colorlog

ROOT_NAME = "vertix"
LOG_FILE_NAME = "vertix.log"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class VertixLogger:
    """Owns the handlers attached to the vertix logger namespace"""

    _configured = False
    log_file: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[Union[str, Path]] = None,
        log_to_file: bool = False,
        subsystem_levels: Optional[Dict[str, int]] = None,
    ) -> logging.Logger:
        """
        (Re)configure the namespace root.

        Args:
            level: Level for the root and its handlers
            log_dir: Directory for vertix.log (defaults to ./logs)
            log_to_file: Whether to add the file handler
            subsystem_levels: Per-subsystem overrides, e.g. {"events": logging.WARNING}
        """
        root = logging.getLogger(ROOT_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)

        console = colorlog.StreamHandler(sys.stdout)
        console.setFormatter(
            colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LEVEL_COLORS)
        )
        root.addHandler(console)

        cls.log_file = None
        if log_to_file:
            directory = Path(log_dir) if log_dir else Path("logs")
            directory.mkdir(parents=True, exist_ok=True)
            cls.log_file = directory / LOG_FILE_NAME
            file_handler = logging.FileHandler(cls.log_file)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            root.addHandler(file_handler)

        for name, sub_level in (subsystem_levels or {}).items():
            cls.set_subsystem_level(name, sub_level)

        cls._configured = True
        return root

    @classmethod
    def set_subsystem_level(cls, name: str, level: int) -> None:
        logging.getLogger(f"{ROOT_NAME}.{name}").setLevel(level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        # Library use without the CLI still gets console output
        if not cls._configured:
            cls.setup()
        return logging.getLogger(f"{ROOT_NAME}.{name}")


def get_logger(name: str) -> logging.Logger:
    """Logger for one subsystem, e.g. get_logger("auction")"""
    return VertixLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_file: bool = False,
    subsystem_levels: Optional[Dict[str, int]] = None,
) -> logging.Logger:
    return VertixLogger.setup(
        level=level,
        log_dir=log_dir,
        log_to_file=log_to_file,
        subsystem_levels=subsystem_levels,
    )
