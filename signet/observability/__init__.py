"""
Observability Package

Structured logging shared by every layer.
"""

from .logging import StructuredLogger, StructuredLogFormatter, configure_logging, get_logger

__all__ = ["StructuredLogger", "StructuredLogFormatter", "configure_logging", "get_logger"]
