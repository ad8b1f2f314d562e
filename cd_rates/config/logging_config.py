# cd_rates/config/logging_config.py

"""Run log setup.

A scrape writes one file per invocation, ``logs/run_<stamp>.log``, at
DEBUG so a skipped bank or an empty history can be traced afterwards.
The console only shows warnings unless ``--verbose`` lowers the level.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from cd_rates.config.settings import Settings

# Full context for the run file, short lines for the terminal
_FILE_FORMAT = (
    "%(asctime)s %(levelname)-7s [%(name)s] "
    "%(funcName)s:%(lineno)d %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    logs_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path:
    """Attach the run-file and stderr handlers to the ``cd_rates`` logger.

    Calling it again keeps the existing handlers, so tests and repeated
    entry points do not double every line.

    Returns:
        Path of this run's log file.
    """
    logs_dir = logs_dir or Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    project_logger = logging.getLogger("cd_rates")
    project_logger.setLevel(logging.DEBUG)
    if project_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    project_logger.addHandler(file_handler)
    project_logger.addHandler(console_handler)

    project_logger.info(
        "Run log %s; %d configured banks; data dir %s",
        log_file,
        len(Settings.TARGETS),
        Settings.DATA_DIR,
    )
    return log_file
