"""Artifact store — one contract, two interchangeable backends.

  - PostgresArtifactStore: durable, used when DATABASE_URL is configured.
  - MemoryArtifactStore: process-wide dicts, lost on restart. Lifetime is
    process start → process exit; never consistent across instances.

get_artifact_store() selects once per process. Callers only see the
ArtifactStore contract.
"""

import abc
import copy
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select

from entitle.core.types import Artifact, ArtifactType, CreateArtifactInput
from entitle.storage import db
from entitle.storage.models import ArtifactRecord

logger = logging.getLogger(__name__)


class ArtifactStore(abc.ABC):
    """Create-once, read-many persistence for artifacts."""

    @abc.abstractmethod
    async def create(self, data: CreateArtifactInput) -> Artifact:
        """Assign identity and timestamp, persist, return the frozen artifact."""

    @abc.abstractmethod
    async def get_by_id(self, artifact_id: str) -> Artifact | None:
        ...

    @abc.abstractmethod
    async def get_by_slug(self, slug: str) -> Artifact | None:
        ...


# ---------------------------------------------------------------------------
# Process-local backend
# ---------------------------------------------------------------------------

# Process-wide state shared by every MemoryArtifactStore instance
_by_id: dict[str, Artifact] = {}
_by_slug: dict[str, Artifact] = {}


def clear_memory_store() -> None:
    """Drop every process-local artifact (tests and local resets)."""
    _by_id.clear()
    _by_slug.clear()


def _frozen_copy(artifact: Artifact) -> Artifact:
    """Return a copy whose payload dicts can't alias the stored ones."""
    return Artifact(
        id=artifact.id,
        type=artifact.type,
        city=artifact.city,
        input_params=copy.deepcopy(artifact.input_params),
        output_data=copy.deepcopy(artifact.output_data),
        web_slug=artifact.web_slug,
        created_at=artifact.created_at,
        user_email=artifact.user_email,
        address_id=artifact.address_id,
    )


class MemoryArtifactStore(ArtifactStore):
    async def create(self, data: CreateArtifactInput) -> Artifact:
        artifact = Artifact(
            id=str(uuid.uuid4()),
            type=ArtifactType(data.type),
            city=data.city,
            input_params=copy.deepcopy(data.input_params),
            output_data=copy.deepcopy(data.output_data),
            web_slug=data.web_slug,
            created_at=datetime.now(timezone.utc).isoformat(),
            user_email=data.user_email,
            address_id=data.address_id,
        )
        _by_id[artifact.id] = artifact
        # slug collisions resolve to the first artifact, as in PostgresArtifactStore
        _by_slug.setdefault(artifact.web_slug, artifact)
        logger.info(
            "Stored artifact %s (%s) in process-local store",
            artifact.id, artifact.type.value,
            extra={"artifact_id": artifact.id, "artifact_type": artifact.type.value},
        )
        return _frozen_copy(artifact)

    async def get_by_id(self, artifact_id: str) -> Artifact | None:
        artifact = _by_id.get(artifact_id)
        return _frozen_copy(artifact) if artifact else None

    async def get_by_slug(self, slug: str) -> Artifact | None:
        artifact = _by_slug.get(slug)
        return _frozen_copy(artifact) if artifact else None


# ---------------------------------------------------------------------------
# Durable backend
# ---------------------------------------------------------------------------

def _record_to_artifact(row: ArtifactRecord) -> Artifact:
    created = row.created_at
    return Artifact(
        id=str(row.id),
        type=ArtifactType(row.type),
        city=row.city,
        input_params=row.input_params or {},
        output_data=row.output_data or {},
        web_slug=row.web_slug,
        created_at=created.isoformat() if created else "",
        user_email=row.user_email,
        address_id=str(row.address_id) if row.address_id else None,
    )


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class PostgresArtifactStore(ArtifactStore):
    async def create(self, data: CreateArtifactInput) -> Artifact:
        record = ArtifactRecord(
            id=uuid.uuid4(),
            type=ArtifactType(data.type).value,
            address_id=_parse_uuid(data.address_id) if data.address_id else None,
            city=data.city,
            input_params=data.input_params or {},
            output_data=data.output_data or {},
            web_slug=data.web_slug,
            user_email=data.user_email,
            created_at=datetime.now(timezone.utc),
        )
        session = await db.get_session()
        try:
            session.add(record)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

        artifact = _record_to_artifact(record)
        logger.info(
            "Stored artifact %s (%s)", artifact.id, artifact.type.value,
            extra={"artifact_id": artifact.id, "artifact_type": artifact.type.value},
        )
        return artifact

    async def get_by_id(self, artifact_id: str) -> Artifact | None:
        key = _parse_uuid(artifact_id)
        if key is None:
            return None
        session = await db.get_session()
        try:
            result = await session.execute(select(ArtifactRecord).where(ArtifactRecord.id == key).limit(1))
            row = result.scalars().first()
        finally:
            await session.close()
        return _record_to_artifact(row) if row else None

    async def get_by_slug(self, slug: str) -> Artifact | None:
        session = await db.get_session()
        try:
            result = await session.execute(
                select(ArtifactRecord)
                .where(ArtifactRecord.web_slug == slug)
                .order_by(ArtifactRecord.created_at.asc())
                .limit(1)
            )
            row = result.scalars().first()
        finally:
            await session.close()
        return _record_to_artifact(row) if row else None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: ArtifactStore | None = None


def get_artifact_store() -> ArtifactStore:
    """Return the process's artifact store, choosing the backend on first call."""
    global _store
    if _store is None:
        if db.is_configured():
            _store = PostgresArtifactStore()
            logger.info("Artifact store: PostgreSQL")
        else:
            _store = MemoryArtifactStore()
            logger.warning("Artifact store: process-local memory (DATABASE_URL not set, artifacts are not durable)")
    return _store


def reset_artifact_store() -> None:
    """Forget the selected backend so the next call re-selects (tests only)."""
    global _store
    _store = None
