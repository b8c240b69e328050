"""Zoning district and rules lookup against the PostGIS store.

Point-in-polygon resolution uses ST_Contains over the city's district
polygons. Every function returns None (or an empty list) when no store is
configured; callers that need to tell "store absent" from "no match" check
storage.db.is_configured() themselves.
"""

import logging
import math
from datetime import date, datetime

import mlflow
from mlflow.entities import SpanType
from sqlalchemy import func, select

from entitle.core.errors import InvalidInputError
from entitle.core.types import CITIES, ZoningDistrict, ZoningRules
from entitle.storage import db
from entitle.storage.models import ZoningDistrictRecord, ZoningRuleRecord

logger = logging.getLogger(__name__)

# Upper bound on containing polygons fetched per point. More than one means
# the zoning layer overlaps itself at that coordinate.
MAX_CANDIDATES = 10


def normalize_city(city: str) -> str:
    """Lower-case and validate a city key against the supported set."""
    key = (city or "").strip().lower()
    if key not in CITIES:
        raise InvalidInputError(f"Unsupported city: {city!r} (expected one of {', '.join(CITIES)})")
    return key


def validate_coordinates(lat, lng) -> tuple[float, float]:
    """Coerce lat/lng to floats; reject non-finite or out-of-range values."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Coordinates must be numbers, got ({lat!r}, {lng!r})")
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise InvalidInputError(f"Coordinates must be finite, got ({lat_f}, {lng_f})")
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0):
        raise InvalidInputError(f"Coordinates out of range: ({lat_f}, {lng_f})")
    return lat_f, lng_f


def iso_date(value) -> str | None:
    """'2025-01-31T08:00:00' / date / datetime → '2025-01-31'."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10] or None


def _to_district(city: str, row) -> ZoningDistrict:
    return ZoningDistrict(
        city=city,
        zone_code=str(row.zone_code),
        zone_name=str(row.zone_name or ""),
        properties=row.properties,
        source_url=str(row.source_url or ""),
        last_updated=iso_date(row.last_updated),
    )


def _to_rules(city: str, row) -> ZoningRules:
    return ZoningRules(
        city=city,
        zone_code=str(row.zone_code),
        max_height_ft=row.max_height_ft,
        max_height_stories=row.max_height_stories,
        far=row.far,
        lot_coverage_pct=row.lot_coverage_pct,
        setback_front_ft=row.setback_front_ft,
        setback_side_ft=row.setback_side_ft,
        setback_rear_ft=row.setback_rear_ft,
        permitted_uses=list(row.permitted_uses or []),
        conditional_uses=list(row.conditional_uses or []),
        prohibited_uses=list(row.prohibited_uses or []),
        overlays=list(row.overlays or []),
        red_flags=list(row.red_flags or []),
        parking_rules=dict(row.parking_rules or {}),
        source_url=str(row.source_url or ""),
    )


def pick_district(candidates: list[tuple[int, ZoningDistrict]]) -> ZoningDistrict | None:
    """Choose one district among polygons that all contain the same point.

    Tie-break: lexicographically smallest zone_code, then smallest row id.
    A correctly partitioned layer never produces more than one code here;
    when it does, the overlap is logged so it can be fixed upstream.
    """
    if not candidates:
        return None
    codes = sorted({d.zone_code for _, d in candidates})
    if len(codes) > 1:
        logger.warning(
            "Overlapping zoning districts at one point: %s — using %s",
            ", ".join(codes), codes[0],
            extra={"city": candidates[0][1].city, "zone_code": codes[0]},
        )
    _, chosen = min(candidates, key=lambda c: (c[1].zone_code, c[0]))
    return chosen


@mlflow.trace(name="find_district_by_point", span_type=SpanType.TOOL)
async def find_district_by_point(city: str, lat: float, lng: float) -> ZoningDistrict | None:
    """Point-in-polygon lookup: the district containing (lat, lng), or None."""
    if not db.is_configured():
        return None

    point = func.ST_SetSRID(func.ST_MakePoint(lng, lat), 4326)
    stmt = (
        select(
            ZoningDistrictRecord.id,
            ZoningDistrictRecord.zone_code,
            ZoningDistrictRecord.zone_name,
            ZoningDistrictRecord.properties,
            ZoningDistrictRecord.source_url,
            ZoningDistrictRecord.last_updated,
        )
        .where(ZoningDistrictRecord.city == city)
        .where(func.ST_Contains(ZoningDistrictRecord.geometry, point))
        .order_by(ZoningDistrictRecord.zone_code, ZoningDistrictRecord.id)
        .limit(MAX_CANDIDATES)
    )

    session = await db.get_session()
    try:
        result = await session.execute(stmt)
        rows = result.all()
    finally:
        await session.close()

    if not rows:
        logger.info("No district contains (%.5f, %.5f)", lat, lng, extra={"city": city})
        return None
    return pick_district([(row.id, _to_district(city, row)) for row in rows])


@mlflow.trace(name="get_district_by_code", span_type=SpanType.TOOL)
async def get_district_by_code(city: str, zone_code: str) -> ZoningDistrict | None:
    if not db.is_configured():
        return None

    stmt = (
        select(
            ZoningDistrictRecord.zone_code,
            ZoningDistrictRecord.zone_name,
            ZoningDistrictRecord.properties,
            ZoningDistrictRecord.source_url,
            ZoningDistrictRecord.last_updated,
        )
        .where(ZoningDistrictRecord.city == city, ZoningDistrictRecord.zone_code == zone_code)
        .order_by(ZoningDistrictRecord.id.asc())
        .limit(1)
    )
    session = await db.get_session()
    try:
        row = (await session.execute(stmt)).first()
    finally:
        await session.close()
    return _to_district(city, row) if row else None


@mlflow.trace(name="get_rules_for_zone", span_type=SpanType.TOOL)
async def get_rules_for_zone(city: str, zone_code: str) -> ZoningRules | None:
    """Curated rules for (city, zone_code), or None when not curated."""
    if not db.is_configured():
        return None

    stmt = (
        select(ZoningRuleRecord)
        .where(ZoningRuleRecord.city == city, ZoningRuleRecord.zone_code == zone_code)
        .limit(1)
    )
    session = await db.get_session()
    try:
        row = (await session.execute(stmt)).scalars().first()
    finally:
        await session.close()

    if row is None:
        logger.info("No curated rules for zone %s", zone_code, extra={"city": city, "zone_code": zone_code})
        return None
    return _to_rules(city, row)


async def list_zones(city: str) -> list[dict]:
    """Distinct zone codes for a city with their stored names."""
    if not db.is_configured():
        return []

    stmt = (
        select(ZoningDistrictRecord.zone_code, func.max(ZoningDistrictRecord.zone_name).label("zone_name"))
        .where(ZoningDistrictRecord.city == city)
        .group_by(ZoningDistrictRecord.zone_code)
        .order_by(ZoningDistrictRecord.zone_code.asc())
    )
    session = await db.get_session()
    try:
        rows = (await session.execute(stmt)).all()
    finally:
        await session.close()
    return [{"zone_code": str(r.zone_code), "zone_name": str(r.zone_name or r.zone_code)} for r in rows]
