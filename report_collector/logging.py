"""Logging setup for the report collector service."""

import json
import logging
import logging.handlers
import sys
from datetime import UTC, datetime

from report_collector.config import Settings

LOG_FILE_NAME = "report_collector.log"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per line for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_entry["extra"] = record.extra_data

        return json.dumps(log_entry)


def configure_logging(settings: Settings) -> None:
    """Configure root logging: console always, rotating file when possible."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_file = settings.logs_dir / LOG_FILE_NAME
    try:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            )
        )
    except (PermissionError, OSError) as e:
        print(f"Warning: Could not create log file at {log_file}: {e}", file=sys.stderr)
        print("Warning: Logging to file disabled. Using console logging only.", file=sys.stderr)

    formatter: logging.Formatter
    if settings.log_format == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
