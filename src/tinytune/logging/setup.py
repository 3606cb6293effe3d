"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

from tinytune.constants import ServiceName
from tinytune.logging.context import RequestIDFilter
from tinytune.logging.formatter import JSONLogFormatter


def configure_logging(
    service: ServiceName = ServiceName.API,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Set up structured JSON logging on the root logger (stdout unless *stream* is given)."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(JSONLogFormatter(service=service))
    handler.addFilter(RequestIDFilter())
    root.addHandler(handler)
