"""
Structured Logging

DESIGN DECISION: Every balance mutation is logged with enough context
(account, transaction, amounts) to explain a drifted balance later.

The configuration:
- Uses structlog on top of the stdlib logging module
- Emits JSON in production and readable lines in debug mode
- Is applied once; later calls only adjust the level
"""

import logging
import sys
from typing import Optional

import structlog

from goldquest.config import get_settings


_configured = False


def configure_logging(
    level: Optional[str] = None,
    debug: Optional[bool] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum log level name. Defaults to AppSettings.log_level.
        debug: Render human-readable console output instead of JSON.
               Defaults to AppSettings.debug_mode.
    """
    global _configured

    app_settings = get_settings().app
    level = (level or app_settings.log_level).upper()
    debug = app_settings.debug_mode if debug is None else debug

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _configured:
        return

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug or app_settings.log_format == "console"
        else structlog.processors.JSONRenderer()
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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
