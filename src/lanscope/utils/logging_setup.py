"""Process-wide structlog configuration."""
import logging as py_logging

import structlog

from ..config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Routes structlog through stdlib logging at `config.level`.

    `config.format` selects the renderer: 'console' for humans, anything else
    for sorted JSON lines.
    """
    level = getattr(py_logging, config.level.upper(), py_logging.INFO)
    py_logging.basicConfig(level=level, format="%(message)s", force=True)

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if config.format.lower() == "console"
        else structlog.processors.JSONRenderer(sort_keys=True)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.get_logger(__name__).debug("Logging configured.", level=config.level, format=config.format)
