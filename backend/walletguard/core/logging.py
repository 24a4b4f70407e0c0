"""
Structured Logging Configuration

Provides structured JSON logging using structlog for production
observability and debugging of policy decisions.
"""

import logging
import logging.config
import re
import sys
from typing import Any, Optional

import structlog
from structlog.processors import JSONRenderer

from walletguard.core.config import settings


# =============================================================================
# Secret Redaction Filter
# =============================================================================

class SecretFilter(logging.Filter):
    """
    Filter to redact sensitive values from logs.

    Masks the transaction HMAC key, and anything logged as a
    ``secret_key=...`` pair, before records reach a handler.
    """

    REDACTED = "***REDACTED***"
    SECRET_PAIR = re.compile(r'["\']?secret[_-]?key["\']?\s*[:=]\s*["\']?[^"\'\s]+["\']?', re.IGNORECASE)

    def __init__(self, secrets: Optional[list] = None):
        super().__init__()
        self.secrets = [s for s in (secrets or []) if len(s) > 3]
        if settings.TRANSACTION_SECRET_KEY:
            self.secrets.append(settings.TRANSACTION_SECRET_KEY)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._redact(record.msg)
        if record.args:
            record.args = tuple(self._redact(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True

    def _redact(self, text: str) -> str:
        text = self.SECRET_PAIR.sub(self.REDACTED, text)
        for secret in self.secrets:
            text = text.replace(secret, self.REDACTED)
        return text


# =============================================================================
# Logging Configuration
# =============================================================================

def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Sets up both standard library logging and structlog for
    consistent JSON-formatted logs in production.
    """
    is_json = settings.LOG_FORMAT == "json" and not settings.is_development

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": JSONRenderer(),
                "foreign_pre_chain": [
                    structlog.stdlib.add_log_level,
                    structlog.stdlib.add_logger_name,
                    structlog.processors.TimeStamper(fmt="iso"),
                ],
            },
            "console": {
                "format": '{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","msg":"%(message)s"}',
            },
        },
        "filters": {
            "secret_filter": {
                "()": SecretFilter,
            },
        },
        "handlers": {
            "default": {
                "level": settings.LOG_LEVEL.value,
                "class": "logging.StreamHandler",
                "formatter": "json" if is_json else "console",
                "stream": sys.stdout,
                "filters": ["secret_filter"],
            },
        },
        "loggers": {
            "": {
                "handlers": ["default"],
                "level": settings.LOG_LEVEL.value,
                "propagate": True,
            },
            "uvicorn": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["default"],
                "level": "WARNING" if not settings.DEBUG else "INFO",
                "propagate": False,
            },
        },
    }

    if settings.LOG_FILE:
        logging_config["handlers"]["file"] = {
            "level": settings.LOG_LEVEL.value,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": settings.LOG_FILE,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "formatter": "json" if is_json else "console",
        }
        logging_config["loggers"][""]["handlers"].append("file")

    logging.config.dictConfig(logging_config)

    structlog_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_json:
        structlog_processors.append(JSONRenderer())
    else:
        structlog_processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=structlog_processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# =============================================================================
# Logger Factory
# =============================================================================

def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (defaults to caller module)

    Returns:
        Structured logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("Verdict issued", principal_id="u1", allowed=False)
    """
    return structlog.get_logger(name)


# =============================================================================
# Context Binding
# =============================================================================

class LogContext:
    """
    Context manager for adding context to logs.

    Example:
        with LogContext(request_id="abc123", principal_id="u1"):
            logger.info("Evaluating operation")
    """

    def __init__(self, **context: Any) -> None:
        self.context = context
        self.token = None

    def __enter__(self) -> "LogContext":
        self.token = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.reset_contextvars(**self.token)


configure_logging()
