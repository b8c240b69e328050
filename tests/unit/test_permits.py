"""Tests for permit stats aggregation and the permit pathway."""

from unittest.mock import AsyncMock, patch

import pytest

from entitle.core.types import PermitStatRow
from entitle.pipeline.permits import (
    MAX_COMMON_DELAYS,
    REQUIRED_PERMITS,
    aggregate_permit_stats,
    build_permit_pathway,
)


def _row(permit_type, p50, p90, n, delays=(), calc=None) -> PermitStatRow:
    return PermitStatRow(permit_type, p50, p90, n, list(delays), calc)


class TestAggregate:
    def test_max_not_mean(self):
        agg = aggregate_permit_stats([_row("office", 50, 100, 10), _row("retail", 70, 140, 5)])
        assert (agg.p50_days, agg.p90_days) == (70, 140)
        assert agg.sample_size == 15

    def test_max_taken_per_percentile(self):
        agg = aggregate_permit_stats([_row("building", 90, 120, 3), _row("fire", 40, 200, 3)])
        assert (agg.p50_days, agg.p90_days) == (90, 200)

    def test_delays_union_ordered_and_capped(self):
        rows = [
            _row("building", 1, 2, 1, ["Corrections", "Intake backlog", "Fire review"]),
            _row("mechanical", 1, 2, 1, ["Corrections", "Energy code", "Utility sign-off", "Geotech", "Survey"]),
        ]
        agg = aggregate_permit_stats(rows)
        assert agg.common_delays == ["Corrections", "Intake backlog", "Fire review", "Energy code", "Utility sign-off"]
        assert len(agg.common_delays) == MAX_COMMON_DELAYS

    def test_last_calculated_from_first_row(self):
        agg = aggregate_permit_stats([_row("a", 1, 2, 1, calc="2025-02-01"), _row("b", 1, 2, 1, calc="2025-03-01")])
        assert agg.last_calculated == "2025-02-01"

    def test_empty(self):
        assert aggregate_permit_stats([]) is None


class TestBuildPermitPathway:
    @pytest.mark.asyncio
    async def test_available(self):
        rows = [_row("office", 50, 100, 10, ["Corrections"], "2025-01-15"), _row("retail", 70, 140, 5)]
        with patch("entitle.pipeline.permits.get_permit_stats", new_callable=AsyncMock, return_value=rows):
            pathway = await build_permit_pathway("seattle", "tenant-improvement")
        assert pathway["availability"] == "available"
        assert pathway["timeline_ranges"]["p50_days"] == 70
        assert pathway["timeline_ranges"]["p90_days"] == 140
        assert pathway["timeline_ranges"]["note"] == "Calculated from 15 permits in seattle"
        assert pathway["data_freshness"] == {"sample_size": 15, "last_calculated": "2025-01-15"}
        assert pathway["common_delays"] == ["Corrections"]

    @pytest.mark.asyncio
    async def test_unavailable_without_store(self):
        pathway = await build_permit_pathway("austin", "new-construction")
        assert pathway["availability"] == "unavailable"
        assert pathway["timeline_ranges"]["p50_days"] is None
        assert pathway["timeline_ranges"]["p90_days"] is None
        assert "new-construction" in pathway["timeline_ranges"]["note"]
        assert pathway["required_permits"] == REQUIRED_PERMITS
        assert pathway["common_delays"] == []

    @pytest.mark.asyncio
    async def test_unavailable_with_no_rows(self):
        with patch("entitle.pipeline.permits.get_permit_stats", new_callable=AsyncMock, return_value=[]):
            pathway = await build_permit_pathway("chicago", "addition")
        assert pathway["availability"] == "unavailable"
        assert pathway["data_freshness"]["sample_size"] == 0
