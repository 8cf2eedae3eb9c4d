"""Logging setup shared by the API, the export pipeline and the CLIs."""

import os
import sys
import logging
from typing import Optional

SERVICE_LOGGER = "watermark-export"
COMPONENTS = ("api", "export", "fetcher", "processor", "archive")

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def _build_formatter(format_type: str) -> logging.Formatter:
    if os.getenv("LOG_FORMAT", format_type).lower() == "structured":
        return logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(SIMPLE_FORMAT)


def setup_logger(
    name: str = SERVICE_LOGGER,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Return the named logger with a single stdout handler attached.

    An explicit ``level`` always applies. Without one, ``LOG_LEVEL`` is read
    only the first time the logger is configured, so a level chosen by
    ``configure_service_logging`` is not reset by later lookups.

    Environment Variables:
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
        LOG_FORMAT: "structured" or "simple"
    """
    logger = logging.getLogger(name)
    first_setup = not logger.handlers

    if level or first_setup:
        logger.setLevel(_resolve_level(level))

    if first_setup:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_build_formatter(format_type))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = SERVICE_LOGGER) -> logging.Logger:
    """Look up a service logger, configuring it on first use."""
    return setup_logger(name)


def configure_service_logging(level: str, format_type: str = "structured") -> logging.Logger:
    """
    Configure the service loggers once at process start.

    The root service logger and the per-component loggers share one level;
    uvicorn's access log is routed through the same handler so request lines
    and export progress interleave readably.
    """
    service_logger = setup_logger(SERVICE_LOGGER, level=level, format_type=format_type)
    for component in COMPONENTS:
        setup_logger(f"{SERVICE_LOGGER}.{component}", level=level, format_type=format_type)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers = list(service_logger.handlers)
    access_logger.propagate = False
    return service_logger


logger = setup_logger()
