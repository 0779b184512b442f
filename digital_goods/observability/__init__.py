"""
Observability module - Logging, Metrics, and Tracing.
"""

from digital_goods.observability.logging import get_logger, log_context, setup_logging
from digital_goods.observability.metrics import metrics
from digital_goods.observability.tracing import setup_tracing

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
