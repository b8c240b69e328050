"""Tests for the artifact store contract, backend selection, and slugs."""

import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from entitle.core.types import ArtifactType, CreateArtifactInput
from entitle.storage.artifacts import (
    MemoryArtifactStore,
    PostgresArtifactStore,
    get_artifact_store,
)
from entitle.storage.slug import SUFFIX_LENGTH, make_slug


def _input(**kw) -> CreateArtifactInput:
    defaults = dict(
        type=ArtifactType.ZONING_SNAPSHOT,
        city="seattle",
        input_params={"address": "400 Pine St", "use_type": "office"},
        output_data={"red_flags": ["Design review"], "overlay_flags": ["historic"]},
        web_slug="zoning-seattle-dmc-office-abc123",
    )
    defaults.update(kw)
    return CreateArtifactInput(**defaults)


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_round_trip_by_id_and_slug(self):
        store = MemoryArtifactStore()
        created = await store.create(_input())

        by_id = await store.get_by_id(created.id)
        by_slug = await store.get_by_slug(created.web_slug)
        assert by_id == created
        assert by_slug == created
        assert created.type == ArtifactType.ZONING_SNAPSHOT
        assert created.created_at

    @pytest.mark.asyncio
    async def test_unchanged_after_unrelated_creates(self):
        store = MemoryArtifactStore()
        created = await store.create(_input())
        for n in range(5):
            await store.create(_input(web_slug=f"permits-seattle-{n}", type=ArtifactType.PERMIT_PATHWAY,
                                      output_data={"n": n}))
        assert await store.get_by_id(created.id) == created

    @pytest.mark.asyncio
    async def test_caller_mutation_does_not_leak(self):
        store = MemoryArtifactStore()
        data = _input()
        created = await store.create(data)
        data.output_data["red_flags"].append("injected")
        created.output_data["red_flags"].append("also injected")

        fetched = await store.get_by_id(created.id)
        assert fetched.output_data["red_flags"] == ["Design review"]

    @pytest.mark.asyncio
    async def test_unknown_keys(self):
        store = MemoryArtifactStore()
        assert await store.get_by_id("missing") is None
        assert await store.get_by_slug("missing") is None

    @pytest.mark.asyncio
    async def test_state_shared_across_instances(self):
        created = await MemoryArtifactStore().create(_input())
        assert await MemoryArtifactStore().get_by_id(created.id) == created

    @pytest.mark.asyncio
    async def test_slug_collision_keeps_first(self):
        store = MemoryArtifactStore()
        first = await store.create(_input(output_data={"n": 1}))
        second = await store.create(_input(output_data={"n": 2}))

        assert await store.get_by_slug(first.web_slug) == first
        assert await store.get_by_id(second.id) == second

    @pytest.mark.asyncio
    async def test_ids_unique(self):
        store = MemoryArtifactStore()
        ids = {(await store.create(_input(web_slug=f"s-{n}"))).id for n in range(20)}
        assert len(ids) == 20


class TestPostgresStore:
    @pytest.mark.asyncio
    async def test_invalid_uuid_returns_none_without_query(self):
        with patch("entitle.storage.artifacts.db.get_session", new_callable=AsyncMock) as get_session:
            assert await PostgresArtifactStore().get_by_id("not-a-uuid") is None
        get_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_commits_and_closes(self):
        session = MagicMock()
        session.commit = AsyncMock()
        session.close = AsyncMock()
        session.rollback = AsyncMock()
        with patch("entitle.storage.artifacts.db.get_session", new_callable=AsyncMock, return_value=session):
            artifact = await PostgresArtifactStore().create(_input())
        session.add.assert_called_once()
        session.commit.assert_awaited_once()
        session.close.assert_awaited_once()
        assert artifact.web_slug == "zoning-seattle-dmc-office-abc123"
        assert artifact.type == ArtifactType.ZONING_SNAPSHOT


class TestSelection:
    def test_memory_without_database(self):
        assert isinstance(get_artifact_store(), MemoryArtifactStore)

    def test_postgres_with_database(self):
        with patch("entitle.storage.artifacts.db.is_configured", return_value=True):
            assert isinstance(get_artifact_store(), PostgresArtifactStore)

    def test_selected_once(self):
        first = get_artifact_store()
        with patch("entitle.storage.artifacts.db.is_configured", return_value=True):
            assert get_artifact_store() is first


class TestSlug:
    def test_format(self):
        slug = make_slug(["zoning", "seattle", "NC3P-65", "office"])
        assert re.fullmatch(rf"zoning-seattle-nc3p-65-office-[a-z0-9]{{{SUFFIX_LENGTH}}}", slug)

    def test_non_alphanumerics_collapsed(self):
        slug = make_slug(["Kickoff Pack", "W/LO (1.3)"])
        assert slug.startswith("kickoff-pack-w-lo-1-3-")

    def test_random_suffix(self):
        assert make_slug(["risk-register", "austin"]) != make_slug(["risk-register", "austin"])
