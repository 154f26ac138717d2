# -*- coding: utf-8 -*-
"""
@File    : logger.py
@Author  : Martin
@Time    : 2025/12/2 10:52
@Desc    : dictConfig setup for the mindcare and uvicorn loggers
"""
import sys
import json
import logging
import logging.config
from mindcare.core.config import settings


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for log shippers.

    Attributes passed through ``extra`` are copied into the record, e.g.
    ``logger.info("msg", extra={"user_id": 123})``.
    """

    skip_keys = {
        "args", "asctime", "created", "exc_info", "exc_text", "filename",
        "funcName", "levelname", "levelno", "lineno", "module",
        "msecs", "message", "msg", "name", "pathname", "process",
        "processName", "relativeCreated", "stack_info", "thread", "threadName",
        "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "func_name": record.funcName,
            "line_no": record.lineno,
            "process_id": record.process,
            "thread_name": record.threadName,
        }

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in self.skip_keys:
                log_record[key] = value

        return json.dumps(log_record, ensure_ascii=False, default=str)


def build_logging_config() -> dict:
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter_name = "json" if settings.LOG_JSON_FORMAT else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter_name,
            "stream": sys.stdout,
        },
    }
    info_handlers = ["console"]
    error_handlers = ["console"]

    if settings.LOG_TO_FILE:
        log_path = settings.BASE_DIR / settings.LOG_DIR
        log_path.mkdir(parents=True, exist_ok=True)

        handlers["file_info"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": formatter_name,
            "filename": str(log_path / "app.log"),
            "maxBytes": settings.LOG_MAX_BYTES,
            "backupCount": settings.LOG_BACKUP_COUNT,
            "encoding": "utf-8",
        }
        # errors also go to a file of their own
        handlers["file_error"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": formatter_name,
            "filename": str(log_path / "error.log"),
            "maxBytes": settings.LOG_MAX_BYTES,
            "backupCount": settings.LOG_BACKUP_COUNT,
            "encoding": "utf-8",
        }
        info_handlers.append("file_info")
        error_handlers.append("file_error")

    return {
        "version": 1,
        # keep uvicorn's own loggers alive
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JSONFormatter,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },

        "handlers": handlers,

        "loggers": {
            "mindcare": {
                "handlers": sorted(set(info_handlers + error_handlers)),
                "level": log_level,
                "propagate": False,
            },
            "uvicorn": {
                "handlers": info_handlers,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": info_handlers,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": error_handlers,
                "level": "INFO",
                "propagate": False,
            },
        }
    }


def setup_logging():
    logging.config.dictConfig(build_logging_config())
