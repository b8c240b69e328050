"""MLflow tracing setup.

Store queries and pipeline entry points are decorated with
``mlflow.trace``; this module only wires the process to a tracking
backend once at startup (API lifespan or CLI).
"""

import logging

import mlflow

from entitle.config import settings

logger = logging.getLogger(__name__)

_initialized = False


def init_tracing() -> None:
    """Point MLflow at the configured tracking URI and experiment."""
    global _initialized
    if _initialized:
        return
    try:
        mlflow.set_tracking_uri(settings.mlflow_tracking_uri)
        mlflow.set_experiment(settings.mlflow_experiment_name)
        mlflow.config.enable_async_logging()
    except Exception as e:
        logger.warning("MLflow tracing init failed: %s — continuing without a tracking backend", e)
        return
    _initialized = True
    logger.info("MLflow tracing enabled: %s", settings.mlflow_tracking_uri)
