"""Main application entry point."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn

from qrlanding.config import settings


def setup_logging() -> None:
    """Configure logging to console and file."""
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(exist_ok=True)

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def main() -> None:
    """Run the API server."""
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info(f"Starting QR landing API on {settings.api_host}:{settings.api_port}")

    uvicorn.run(
        "qrlanding.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # keep our handlers
    )


if __name__ == "__main__":
    main()
