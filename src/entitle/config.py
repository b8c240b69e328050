"""Entitle configuration — data store, geocoder, and observability settings."""

from urllib.parse import parse_qs, urlparse, urlunparse

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database. Empty means no store is configured and the engine runs
    # in degraded mode (placeholder snapshots, process-local artifacts).
    database_url: str = ""
    database_require_ssl: bool = False

    @model_validator(mode="after")
    def _normalize_database_url(self) -> "Settings":
        """Rewrite DATABASE_URL for SQLAlchemy+asyncpg compatibility.

        Handles scheme rewriting (postgres:// → postgresql+asyncpg://) and
        strips ALL query params (asyncpg doesn't accept libpq params like
        sslmode through the URL). SSL is detected from sslmode=require and
        stored as database_require_ssl for the engine.
        """
        url = self.database_url.strip()
        if not url:
            self.database_url = ""
            return self

        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://") and "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        parsed = urlparse(url)
        if parsed.query:
            params = parse_qs(parsed.query)
            if "sslmode" in params and params["sslmode"][0] in ("require", "verify-ca", "verify-full"):
                self.database_require_ssl = True
            url = urlunparse(parsed._replace(query=""))

        self.database_url = url
        return self

    # Geocoding (Mapbox). Without a token, lookups fall back to the default point.
    mapbox_token: str = ""
    default_lat: float = 47.6062
    default_lng: float = -122.3321

    # LLM providers for project-fit analysis (OpenAI-compatible endpoints).
    # NVIDIA NIM is tried first, Gemini second. With neither key, fit
    # analysis is unavailable and RFQ parsing uses pattern extraction.
    nvidia_api_key: str = ""
    gemini_api_key: str = ""

    @model_validator(mode="after")
    def _strip_api_keys(self) -> "Settings":
        """Strip whitespace/newlines from API keys — common paste error in dashboards."""
        for key in ("mapbox_token", "nvidia_api_key", "gemini_api_key"):
            value = getattr(self, key)
            if value and value != value.strip():
                setattr(self, key, value.strip())
        return self

    # MLflow tracing
    mlflow_tracking_uri: str = "sqlite:///mlruns/mlflow.db"
    mlflow_experiment_name: str = "entitle"

    # Logging
    log_json: bool = True
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
