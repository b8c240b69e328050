"""Entitle API — FastAPI application for entitlement lookups and artifacts.

Run:
    uvicorn entitle.api.main:app --reload
    # or
    entitle-api
"""

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from entitle.api.routes import router
from entitle.config import settings
from entitle.observability import init_tracing, setup_logging
from entitle.observability.logging import correlation_id
from entitle.storage import db
from entitle.storage.artifacts import get_artifact_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and tracing, create tables when a database is configured."""
    setup_logging(json_format=settings.log_json, level=settings.log_level)
    init_tracing()
    if db.is_configured():
        logger.info("Initializing database...")
        await db.init_db()
    else:
        logger.warning("DATABASE_URL not set — placeholder snapshots and process-local artifacts")
    store = get_artifact_store()
    logger.info("Entitle API ready (artifact store: %s)", type(store).__name__)
    yield
    logger.info("Shutting down")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Set correlation ID from X-Request-ID header or generate a new one."""

    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("x-request-id", str(uuid.uuid4()))
        token = correlation_id.set(cid)
        try:
            response = await call_next(request)
            response.headers["x-request-id"] = cid
            return response
        finally:
            correlation_id.reset(token)


app = FastAPI(
    title="Entitle",
    description="Zoning snapshots, permit pathways, code tripwires and risk registers "
    "for commercial projects in Seattle, Austin, and Chicago.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health():
    """Health check — database connectivity and which stores are active."""
    checks = {}

    if not db.is_configured():
        checks["database"] = "not_configured"
    else:
        session = None
        try:
            session = await db.get_session()
            await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"error: {e}"
        finally:
            if session:
                await session.close()

    checks["artifact_store"] = type(get_artifact_store()).__name__

    status = "healthy" if checks["database"] in ("ok", "not_configured") else "degraded"
    return {"status": status, "checks": checks}


def run():
    """Entry point for entitle-api console script."""
    uvicorn.run("entitle.api.main:app", host="0.0.0.0", port=8000, reload=True)
