import logging
import textwrap
import threading
from datetime import datetime
from pathlib import Path
from typing import Literal

from colorlog import ColoredFormatter

from courtbundler.bundle_config import BundleConfig

LOG_COLORS = {"DEBUG": "cyan", "INFO": "green", "WARNING": "yellow", "ERROR": "red", "CRITICAL": "red,bg_white"}

bundle_logger = logging.getLogger("bundle_logger")

thread_local = threading.local()


def init_worker(counter):
    """Initializer for ThreadPoolExecutor workers to assign a unique ID."""
    thread_local.worker_id = next(counter)


class ThreadIdFormatter(ColoredFormatter):
    """Prefixes records emitted from pool workers with the worker's ID."""

    def __init__(self, fmt=None, datefmt=None, style: Literal["%", "{", "$"] = "%", log_colors=None, reset=True):
        super().__init__(fmt, datefmt, style, log_colors, reset)

    def format(self, record):
        formatted_message = super().format(record)
        if hasattr(thread_local, "worker_id"):
            return f"[W-{thread_local.worker_id}] {formatted_message}"
        return formatted_message


def configure_logger(bundle_config: BundleConfig | None = None, session_id=None):
    """Attach console and per-session file handlers to the bundle logger.

    Log files are written to the configured logs directory as
    courtbundler_<session_id>.log so that a failed run can be traced after
    its temp files are gone.
    """
    logs_dir = Path(bundle_config.logs_dir) if bundle_config else Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Clear existing handlers to prevent duplicate logs on subsequent runs
    if bundle_logger.hasHandlers():
        for handler in bundle_logger.handlers:
            handler.close()
        bundle_logger.handlers.clear()

    bundle_logger.setLevel(logging.DEBUG)
    bundle_logger.propagate = False

    file_formatter = ThreadIdFormatter("%(asctime)s-%(levelname)s-[CBN]: %(message)s")
    console_formatter = ThreadIdFormatter(
        "%(log_color)s%(asctime)s - %(levelname)s - [CBN]: %(message)s%(reset)s",
        log_colors=LOG_COLORS,
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    bundle_logger.addHandler(console_handler)

    if not session_id:
        session_id = bundle_config.session_id if bundle_config else datetime.now().strftime("%Y%m%d%H%M%S")
    logs_path = logs_dir / f"courtbundler_{session_id}.log"
    session_file_handler = logging.FileHandler(logs_path)
    session_file_handler.setLevel(logging.DEBUG)
    session_file_handler.setFormatter(file_formatter)
    bundle_logger.addHandler(session_file_handler)
    return bundle_logger


def dedent_and_log(logger: logging.Logger, message, level=logging.DEBUG):
    """Dedent a multi-line string and log it line by line."""
    for line in textwrap.dedent(message).strip().split("\n"):
        logger.log(level, line)
