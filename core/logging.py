import logging
import os
import sys

import structlog
from opentelemetry.instrumentation.logging import LoggingInstrumentor

# PayPal SDK level names -> stdlib
SDK_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def get_log_level():
    """Get log level from environment or default to INFO"""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_renderer():
    """Get log renderer based on environment"""
    env = os.getenv("ENVIRONMENT", "development")
    # Use JSON format for tests and production
    if env in ["test", "production"]:
        return structlog.processors.JSONRenderer()
    # Pretty printing for local development
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)


def configure_logging():
    """Set up structlog + OTEL context injection."""
    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.ExceptionPrettyPrinter(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            get_log_renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    env = os.getenv("ENVIRONMENT", "development")
    if env == "test":
        # In test mode, write to stdout for easier capture
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]  # Replace any existing handlers
    root_logger.setLevel(get_log_level())

    # Silence Uvicorn noise but keep access logs routed through structlog
    logging.getLogger("uvicorn.error").handlers.clear()
    logging.getLogger("uvicorn.access").handlers.clear()

    # Initialize OpenTelemetry logging instrumentation AFTER configuring logging
    LoggingInstrumentor().instrument(set_logging_format=False)


def configure_sdk_logging(
    enabled: bool, level: str = "DEBUG", filename: str | None = None
) -> logging.Logger:
    """
    Route paypalrestsdk's request/response log lines.

    Disabled means the SDK logger is silenced; otherwise it logs at the
    configured level and, when a file name is given, also writes there.
    """
    sdk_logger = logging.getLogger("paypalrestsdk")
    for handler in list(sdk_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            sdk_logger.removeHandler(handler)
            handler.close()

    if not enabled:
        sdk_logger.disabled = True
        return sdk_logger

    sdk_logger.disabled = False
    sdk_logger.setLevel(SDK_LOG_LEVELS.get(level.upper(), logging.DEBUG))
    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        sdk_logger.addHandler(file_handler)
    return sdk_logger


# Business Event Log Names
class BusinessEvents:
    """Standard names for business event logs"""

    API_ENTRY = "api.request"
    ITEM_ADDED = "checkout.item_added"
    PAYMENT_ATTEMPT = "payment.attempt"
    PAYMENT_CREATED = "payment.created"
    TOKEN_OVERWRITTEN = "payment.token_overwritten"
    NO_PENDING_PAYMENT = "payment.no_pending"
    PAYMENT_SUCCESS = "payment.success"
    PAYMENT_FAILURE = "payment.failure"
    PLAN_CHANGED = "plan.changed"
    AGREEMENT_CHANGED = "agreement.changed"


# Configure logging when module is imported
configure_logging()
