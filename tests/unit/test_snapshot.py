"""Tests for the entitlement snapshot builder.

Store functions are patched at the snapshot module's import site; the
store is "configured" by patching storage.db.is_configured.
"""

from unittest.mock import AsyncMock, patch

import pytest

from entitle.core.errors import InvalidInputError, NoDistrictFoundError
from entitle.core.types import DataAvailability, UseStatus, ZoningDistrict, ZoningRules
from entitle.pipeline.snapshot import (
    DEFAULT_PARKING_SUMMARY,
    PLACEHOLDER_ZONE_CODE,
    assemble_snapshot,
    build_snapshot,
    build_snapshot_by_code,
    build_snapshot_for_address,
    classify_use,
    parking_for,
    placeholder_snapshot,
)

MOD = "entitle.pipeline.snapshot"


def _district(**kw) -> ZoningDistrict:
    defaults = dict(
        city="seattle",
        zone_code="NC3P-65",
        zone_name="",
        properties={"OVERLAY": "SM", "HISTORIC": "Y"},
        source_url="https://data.seattle.gov/zoning",
        last_updated="2025-01-31",
    )
    defaults.update(kw)
    return ZoningDistrict(**defaults)


def _rules(**kw) -> ZoningRules:
    defaults = dict(
        city="seattle",
        zone_code="NC3P-65",
        max_height_ft=65.0,
        max_height_stories=6,
        far=4.75,
        lot_coverage_pct=None,
        setback_front_ft=0.0,
        setback_side_ft=0.0,
        setback_rear_ft=10.0,
        permitted_uses=["office", "retail"],
        conditional_uses=["healthcare"],
        prohibited_uses=["industrial"],
        overlays=["overlay:SM", "pedestrian"],
        red_flags=["Street-level use requirements on pedestrian streets"],
        parking_rules={"office": "None required in urban village", "summary": "Varies by use",
                       "reductions": ["Frequent transit"]},
        source_url="https://library.municode.com/wa/seattle/23.47A",
    )
    defaults.update(kw)
    return ZoningRules(**defaults)


class TestClassifyUse:
    def test_permitted(self):
        assert classify_use("office", _rules()) == UseStatus.PERMITTED

    def test_conditional(self):
        assert classify_use("healthcare", _rules()) == UseStatus.CONDITIONAL

    def test_prohibited(self):
        assert classify_use("industrial", _rules()) == UseStatus.PROHIBITED

    def test_unclassified(self):
        assert classify_use("civic", _rules()) == UseStatus.UNKNOWN

    def test_no_use_or_rules(self):
        assert classify_use(None, _rules()) == UseStatus.UNKNOWN
        assert classify_use("office", None) == UseStatus.UNKNOWN

    def test_most_restrictive_wins_regardless_of_order(self):
        rules = _rules(permitted_uses=["office"], conditional_uses=["office"], prohibited_uses=["office"])
        assert classify_use("office", rules) == UseStatus.PROHIBITED
        rules = _rules(permitted_uses=["retail", "office"], conditional_uses=["office"], prohibited_uses=[])
        assert classify_use("office", rules) == UseStatus.CONDITIONAL


class TestParking:
    def test_use_specific(self):
        assert parking_for("office", _rules()) == ("None required in urban village", ("Frequent transit",))

    def test_summary_fallback(self):
        assert parking_for("retail", _rules())[0] == "Varies by use"

    def test_default(self):
        assert parking_for("retail", _rules(parking_rules={})) == (DEFAULT_PARKING_SUMMARY, ())


class TestAssemble:
    def test_full_snapshot(self):
        snap = assemble_snapshot("seattle", _district(), _rules(), "office")
        assert snap.availability == DataAvailability.AVAILABLE
        assert snap.selected_use_status == UseStatus.PERMITTED
        assert snap.incomplete is False
        # union of rule overlays and derived flags, sorted and deduplicated
        assert snap.overlay_flags == ("historic", "overlay:SM", "pedestrian")
        assert snap.zone_display_name == "Neighborhood Commercial 3 (65')"
        assert snap.ordinance_url == "https://library.municode.com/wa/seattle/23.47A"
        assert snap.data_freshness.sources == (
            "https://data.seattle.gov/zoning",
            "https://library.municode.com/wa/seattle/23.47A",
        )

    def test_stored_zone_name_preferred(self):
        snap = assemble_snapshot("seattle", _district(zone_name="Neighborhood Commercial 3"), _rules())
        assert snap.zone_display_name == "Neighborhood Commercial 3"

    def test_missing_rules_is_partial_not_error(self):
        snap = assemble_snapshot("seattle", _district(), None, "office")
        assert snap.availability == DataAvailability.PARTIAL
        assert snap.incomplete is True
        assert snap.rules is None
        assert snap.overlay_flags == ()
        assert snap.selected_use_status == UseStatus.UNKNOWN

        out = snap.to_output()
        assert out["allowed_uses"] == {"permitted": [], "conditional": [], "prohibited": []}
        assert out["height_limit"] == {"max_height_ft": None, "max_height_stories": None}
        assert out["far"] is None
        assert out["lot_coverage_pct"] is None
        assert out["setbacks_ft"] == {"front": None, "side": None, "rear": None}
        assert out["red_flags"] == []
        assert out["incomplete"] is True
        assert "not yet curated" in out["disclaimer"]

    def test_overlay_union_order_independent(self):
        a = assemble_snapshot("seattle", _district(properties=[{"MIO": "UW"}, {"OVERLAY": "SM"}]),
                              _rules(overlays=["b", "a"]))
        b = assemble_snapshot("seattle", _district(properties=[{"OVERLAY": "SM"}, {"MIO": "UW"}]),
                              _rules(overlays=["a", "b", "a"]))
        assert a.overlay_flags == b.overlay_flags

    def test_output_shape(self):
        out = assemble_snapshot("seattle", _district(), _rules(), "healthcare").to_output()
        assert out["zoning_district"]["zone_code"] == "NC3P-65"
        assert out["selected_use"] == {"use_type": "healthcare", "status": "conditional"}
        assert out["setbacks_ft"] == {"front": 0.0, "side": 0.0, "rear": 10.0}
        assert out["parking"] == {"summary": "Varies by use", "reductions": ["Frequent transit"]}
        assert out["data_availability"] == "available"
        assert out["provenance"] == "database"

    def test_snapshot_is_frozen(self):
        snap = assemble_snapshot("seattle", _district(), _rules(), "office")
        with pytest.raises(AttributeError):
            snap.selected_use_status = UseStatus.PROHIBITED
        with pytest.raises(AttributeError):
            snap.data_freshness.last_updated = "2030-01-01"
        assert isinstance(snap.data_freshness.sources, tuple)


class TestBuildSnapshot:
    @pytest.mark.asyncio
    async def test_unconfigured_store_placeholder(self):
        snap = await build_snapshot("seattle", 47.61, -122.33, "office")
        assert snap.provenance == "placeholder"
        assert snap.availability == DataAvailability.UNAVAILABLE
        assert snap.district.zone_code == PLACEHOLDER_ZONE_CODE
        assert snap == placeholder_snapshot("seattle", "office")

    @pytest.mark.asyncio
    async def test_no_district_raises(self):
        with patch(f"{MOD}.db.is_configured", return_value=True), \
             patch(f"{MOD}.find_district_by_point", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NoDistrictFoundError):
                await build_snapshot("chicago", 41.88, -87.63, "office")

    @pytest.mark.asyncio
    async def test_district_without_rules(self):
        with patch(f"{MOD}.db.is_configured", return_value=True), \
             patch(f"{MOD}.find_district_by_point", new_callable=AsyncMock, return_value=_district()), \
             patch(f"{MOD}.get_rules_for_zone", new_callable=AsyncMock, return_value=None):
            snap = await build_snapshot("seattle", 47.61, -122.33, "office")
        assert snap.incomplete is True
        assert snap.availability == DataAvailability.PARTIAL

    @pytest.mark.asyncio
    async def test_full(self):
        rules_mock = AsyncMock(return_value=_rules())
        with patch(f"{MOD}.db.is_configured", return_value=True), \
             patch(f"{MOD}.find_district_by_point", new_callable=AsyncMock, return_value=_district()), \
             patch(f"{MOD}.get_rules_for_zone", rules_mock):
            snap = await build_snapshot("seattle", 47.61, -122.33, "industrial")
        rules_mock.assert_awaited_once_with("seattle", "NC3P-65")
        assert snap.selected_use_status == UseStatus.PROHIBITED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lat,lng", [(float("nan"), 0), (91, 0), (0, -181), ("north", 0)])
    async def test_invalid_coordinates(self, lat, lng):
        with pytest.raises(InvalidInputError):
            await build_snapshot("seattle", lat, lng)


class TestAddressAndCode:
    @pytest.mark.asyncio
    async def test_supplied_coordinates_skip_geocoder(self):
        geocode = AsyncMock()
        with patch(f"{MOD}.geocode_address", geocode):
            snap, geo = await build_snapshot_for_address("seattle", " 400 Pine St ", "office", lat=47.61, lng=-122.33)
        geocode.assert_not_awaited()
        assert geo["normalized_address"] == "400 Pine St"
        assert snap.provenance == "placeholder"

    @pytest.mark.asyncio
    async def test_geocoder_used_without_coordinates(self):
        geo = {"normalized_address": "400 Pine St, Seattle", "lat": 47.61, "lng": -122.33, "degraded": False}
        with patch(f"{MOD}.geocode_address", new_callable=AsyncMock, return_value=geo):
            _, result = await build_snapshot_for_address("seattle", "400 Pine St", "office")
        assert result is geo

    @pytest.mark.asyncio
    async def test_by_code_synthesizes_district(self):
        with patch(f"{MOD}.db.is_configured", return_value=True), \
             patch(f"{MOD}.get_district_by_code", new_callable=AsyncMock, return_value=None), \
             patch(f"{MOD}.get_rules_for_zone", new_callable=AsyncMock, return_value=_rules(zone_code="B3-2",
                                                                                               city="chicago")):
            snap = await build_snapshot_by_code("chicago", "B3-2", "retail")
        assert snap.district.zone_code == "B3-2"
        assert snap.zone_display_name == "Community Shopping"
        assert snap.availability == DataAvailability.AVAILABLE
        assert snap.district.source_url == "https://library.municode.com/wa/seattle/23.47A"

    @pytest.mark.asyncio
    async def test_by_code_unconfigured_placeholder(self):
        snap = await build_snapshot_by_code("austin", "CS", "office")
        assert snap.provenance == "placeholder"


class TestUnsupportedCity:
    @pytest.mark.asyncio
    async def test_rejected_without_store(self):
        with pytest.raises(InvalidInputError):
            await build_snapshot("boston", 42.36, -71.06, "office")

    @pytest.mark.asyncio
    async def test_rejected_before_spatial_lookup(self):
        lookup = AsyncMock(return_value=None)
        with patch(f"{MOD}.db.is_configured", return_value=True), \
             patch(f"{MOD}.find_district_by_point", lookup):
            with pytest.raises(InvalidInputError):
                await build_snapshot("boston", 42.36, -71.06, "office")
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_by_code_rejected(self):
        with pytest.raises(InvalidInputError):
            await build_snapshot_by_code("boston", "B-1", "office")

    @pytest.mark.asyncio
    async def test_city_key_normalized(self):
        snap = await build_snapshot(" Seattle ", 47.61, -122.33, "office")
        assert snap == placeholder_snapshot("seattle", "office")
