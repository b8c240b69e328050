"""Shared test fixtures."""

import mlflow
import pytest


@pytest.fixture(autouse=True)
def _disable_mlflow_tracing():
    """Disable MLflow tracing during tests — no side effects, no mlruns/ writes."""
    mlflow.tracing.disable()
    yield
    mlflow.tracing.enable()


@pytest.fixture(autouse=True)
def _no_database(monkeypatch):
    """Run every test without a configured store unless a test patches one in."""
    from entitle.config import settings

    monkeypatch.setattr(settings, "database_url", "")
    monkeypatch.setattr(settings, "mapbox_token", "")
    monkeypatch.setattr(settings, "nvidia_api_key", "")
    monkeypatch.setattr(settings, "gemini_api_key", "")


@pytest.fixture(autouse=True)
def _fresh_artifact_store():
    """Reset the process-local artifact store and the backend selection."""
    from entitle.retrieval import llm
    from entitle.retrieval.geocode import clear_cache
    from entitle.storage.artifacts import clear_memory_store, reset_artifact_store

    clear_memory_store()
    reset_artifact_store()
    clear_cache()
    llm.reset_breakers()
    yield
    clear_memory_store()
    reset_artifact_store()
