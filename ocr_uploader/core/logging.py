import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from ocr_uploader.core.config import settings

LOG_FILE_NAME = "ocr_uploader.log"


def setup_logging(log_dir: str | Path | None = None, level: str | None = None) -> Path:
    """Configure root logging: console plus a rotating file, uvicorn included."""

    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME
    log_level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    # time | level | module:line | message
    log_format = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s")

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(log_format)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Drop previously installed handlers to avoid duplicate lines.
    root_logger.handlers = []
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Route uvicorn request logs through the same handlers.
    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        logger = logging.getLogger(logger_name)
        logger.handlers = [file_handler, console_handler]
        logger.propagate = False

    # httpx logs every request at INFO, which drowns out job transitions.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info("Logging initialized. Logs will be written to: %s", log_file.absolute())
    return log_file
