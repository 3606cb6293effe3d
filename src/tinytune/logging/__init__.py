"""Structured logging — JSON formatter, request-id context, and setup."""

from tinytune.logging.context import RequestIDFilter, request_id_var
from tinytune.logging.formatter import JSONLogFormatter
from tinytune.logging.setup import configure_logging

__all__ = ["JSONLogFormatter", "RequestIDFilter", "configure_logging", "request_id_var"]
