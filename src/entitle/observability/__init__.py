"""Observability — structured logging and MLflow tracing helpers."""

from entitle.observability.logging import get_correlation_id, setup_logging
from entitle.observability.tracing import init_tracing

__all__ = ["get_correlation_id", "init_tracing", "setup_logging"]
