"""Entitlement snapshot builder — district + rules + overlays for one use.

Failure policy:
  - store not configured      → deterministic placeholder (provenance "placeholder")
  - no district at the point  → NoDistrictFoundError
  - district, no rules        → partial snapshot, incomplete=True, nothing guessed
  - district and rules        → full snapshot

Partial and placeholder results are tagged outputs, never exceptions.
"""

import logging
import time

import mlflow
from mlflow.entities import SpanType

from entitle.core.errors import NoDistrictFoundError
from entitle.core.types import (
    PROVENANCE_PLACEHOLDER,
    DataAvailability,
    DataFreshness,
    EntitlementSnapshot,
    UseStatus,
    ZoningDistrict,
    ZoningRules,
)
from entitle.pipeline.overlays import derive_overlay_flags
from entitle.pipeline.zone_names import enrich_zone_index, zone_display_name
from entitle.retrieval.geocode import geocode_address
from entitle.retrieval.zoning import (
    find_district_by_point,
    get_district_by_code,
    get_rules_for_zone,
    list_zones,
    normalize_city,
    validate_coordinates,
)
from entitle.storage import db

logger = logging.getLogger(__name__)

PLACEHOLDER_ZONE_CODE = "UNAVAILABLE"
PLACEHOLDER_ZONE_NAME = "Zoning Data Not Available"
PLACEHOLDER_RED_FLAG = "Zoning data is not available - verify with local planning department"

DEFAULT_PARKING_SUMMARY = "Verify parking requirements with local code."

FULL_DISCLAIMER = (
    "This summary is for informational purposes only. "
    "Verify all constraints with the local planning department."
)
PARTIAL_DISCLAIMER = (
    "Zone identified but detailed rules are not yet curated. "
    "Verify all constraints with the local planning department."
)
PLACEHOLDER_DISCLAIMER = (
    "Zoning data not available. This is not a substitute for consulting "
    "the local planning department."
)


def classify_use(use_type: str | None, rules: ZoningRules | None) -> UseStatus:
    """Most restrictive list wins: prohibited > conditional > permitted > unknown."""
    if not use_type or rules is None:
        return UseStatus.UNKNOWN
    if use_type in rules.prohibited_uses:
        return UseStatus.PROHIBITED
    if use_type in rules.conditional_uses:
        return UseStatus.CONDITIONAL
    if use_type in rules.permitted_uses:
        return UseStatus.PERMITTED
    return UseStatus.UNKNOWN


def parking_for(use_type: str | None, rules: ZoningRules) -> tuple[str, tuple[str, ...]]:
    """(summary, reductions) — use-specific entry, then the generic summary, then a default."""
    parking = rules.parking_rules or {}
    summary = (use_type and parking.get(use_type)) or parking.get("summary") or DEFAULT_PARKING_SUMMARY
    reductions = parking.get("reductions") or []
    if not isinstance(reductions, list):
        reductions = [reductions]
    return str(summary), tuple(str(r) for r in reductions)


def placeholder_snapshot(city: str, use_type: str | None = None) -> EntitlementSnapshot:
    """Offline snapshot. Identical for identical inputs; clearly not real data."""
    return EntitlementSnapshot(
        city=city,
        district=ZoningDistrict(city=city, zone_code=PLACEHOLDER_ZONE_CODE, zone_name=PLACEHOLDER_ZONE_NAME),
        rules=None,
        use_type=use_type,
        selected_use_status=UseStatus.UNKNOWN,
        overlay_flags=(),
        data_freshness=DataFreshness(sources=(), last_updated=None),
        availability=DataAvailability.UNAVAILABLE,
        provenance=PROVENANCE_PLACEHOLDER,
        incomplete=True,
        zone_display_name=PLACEHOLDER_ZONE_NAME,
        red_flags=(PLACEHOLDER_RED_FLAG,),
        parking_summary=(
            f"Zoning data not available for {city}. "
            "Contact the local planning department for accurate information."
        ),
        disclaimer=PLACEHOLDER_DISCLAIMER,
    )


def assemble_snapshot(
    city: str,
    district: ZoningDistrict,
    rules: ZoningRules | None,
    use_type: str | None = None,
) -> EntitlementSnapshot:
    """Merge a resolved district with its rules (or their absence)."""
    display_name = district.zone_name or zone_display_name(city, district.zone_code)

    if rules is None:
        return EntitlementSnapshot(
            city=city,
            district=district,
            rules=None,
            use_type=use_type,
            selected_use_status=UseStatus.UNKNOWN,
            overlay_flags=(),
            data_freshness=DataFreshness(
                sources=tuple(s for s in (district.source_url,) if s),
                last_updated=district.last_updated,
            ),
            availability=DataAvailability.PARTIAL,
            incomplete=True,
            zone_display_name=display_name,
            ordinance_url=district.source_url,
            parking_summary=DEFAULT_PARKING_SUMMARY,
            disclaimer=PARTIAL_DISCLAIMER,
        )

    overlays = set(rules.overlays) | derive_overlay_flags(city, district.properties)
    summary, reductions = parking_for(use_type, rules)
    return EntitlementSnapshot(
        city=city,
        district=district,
        rules=rules,
        use_type=use_type,
        selected_use_status=classify_use(use_type, rules),
        overlay_flags=tuple(sorted(overlays)),
        data_freshness=DataFreshness(
            sources=tuple(s for s in (district.source_url, rules.source_url) if s),
            last_updated=district.last_updated,
        ),
        availability=DataAvailability.AVAILABLE,
        zone_display_name=display_name,
        ordinance_url=rules.source_url or district.source_url,
        red_flags=tuple(rules.red_flags),
        parking_summary=summary,
        parking_reductions=reductions,
        disclaimer=FULL_DISCLAIMER,
    )


@mlflow.trace(name="build_snapshot", span_type=SpanType.CHAIN)
async def build_snapshot(city: str, lat: float, lng: float, use_type: str | None = None) -> EntitlementSnapshot:
    """Coordinate-first snapshot.

    Raises:
        InvalidInputError: non-finite or out-of-range coordinates, or an unsupported city.
        NoDistrictFoundError: the store is configured and nothing contains the point.
    """
    city = normalize_city(city)
    lat, lng = validate_coordinates(lat, lng)

    if not db.is_configured():
        logger.warning("Spatial store not configured — serving placeholder snapshot", extra={"city": city})
        return placeholder_snapshot(city, use_type)

    t0 = time.monotonic()
    district = await find_district_by_point(city, lat, lng)
    if district is None:
        raise NoDistrictFoundError(city, lat, lng)

    rules = await get_rules_for_zone(city, district.zone_code)
    snapshot = assemble_snapshot(city, district, rules, use_type)
    logger.info(
        "Snapshot built (%s)", snapshot.availability.value,
        extra={
            "city": city,
            "zone_code": district.zone_code,
            "step": "snapshot",
            "duration_ms": round((time.monotonic() - t0) * 1000),
        },
    )
    return snapshot


async def build_snapshot_for_address(
    city: str,
    address: str,
    use_type: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
) -> tuple[EntitlementSnapshot, dict]:
    """Address-first snapshot. Skips the geocoder when coordinates are supplied.

    Returns (snapshot, geocode) so callers can record the resolved address.
    """
    if lat is not None and lng is not None:
        geocode = {"normalized_address": address.strip(), "lat": lat, "lng": lng, "degraded": False}
    else:
        geocode = await geocode_address(address)
    snapshot = await build_snapshot(city, geocode["lat"], geocode["lng"], use_type)
    return snapshot, geocode


@mlflow.trace(name="build_snapshot_by_code", span_type=SpanType.CHAIN)
async def build_snapshot_by_code(city: str, zone_code: str, use_type: str | None = None) -> EntitlementSnapshot:
    """Code-first snapshot for zone reference pages.

    When no polygon carries the code, a display district is synthesized from
    the rules' citation or the zone-name table.
    """
    city = normalize_city(city)
    if not db.is_configured():
        return placeholder_snapshot(city, use_type)

    district = await get_district_by_code(city, zone_code)
    rules = await get_rules_for_zone(city, zone_code)
    if district is None:
        logger.info("No district polygon for code %s — synthesizing", zone_code,
                    extra={"city": city, "zone_code": zone_code})
        district = ZoningDistrict(
            city=city,
            zone_code=zone_code,
            zone_name=zone_display_name(city, zone_code),
            properties={},
            source_url=rules.source_url if rules else "",
        )
    return assemble_snapshot(city, district, rules, use_type)


async def zone_index(city: str) -> list[dict]:
    """Every zone code in a city with display name and category."""
    return enrich_zone_index(city, await list_zones(city))
