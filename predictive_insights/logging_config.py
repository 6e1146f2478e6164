"""
Structured logging setup for hosts embedding the engine.
"""

import logging
from typing import Optional

import structlog

from .config import Settings, get_settings


def configure_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure structlog on top of stdlib logging.

    JSON lines by default, a console renderer in development or when
    ``log_json`` is off.
    """
    app_settings = app_settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=None,
        level=getattr(logging, app_settings.log_level),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if app_settings.log_json and not app_settings.is_development
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger().info(
        "Logging configured",
        app_name=app_settings.app_name,
        version=app_settings.version,
        environment=app_settings.environment,
        log_level=app_settings.log_level
    )
