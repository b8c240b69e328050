"""Permit pathway — worst-case timeline from historical permit samples.

The pathway is bounded by its slowest gating permit, so P50/P90 are the
maximum across permit-type rows, never an average.
"""

import logging

import mlflow
from mlflow.entities import SpanType

from entitle.core.types import DataAvailability, PermitAggregate, PermitStatRow
from entitle.retrieval.permits import get_permit_stats

logger = logging.getLogger(__name__)

MAX_COMMON_DELAYS = 5

REQUIRED_PERMITS = ["Building", "Mechanical", "Electrical", "Plumbing", "Fire"]
REVIEW_SEQUENCE = ["Intake", "Plan Review", "Corrections", "Permit Issuance"]
DEPARTMENTS = ["Planning", "Building", "Fire"]
GATING_ITEMS = ["Corrections must be resolved before permit issuance"]


def aggregate_permit_stats(rows: list[PermitStatRow]) -> PermitAggregate | None:
    """Collapse permit-type rows into one pathway estimate. None for no rows.

    Delays keep first-seen order across rows and are capped; last_calculated
    comes from the first (highest-ranked) row.
    """
    if not rows:
        return None

    delays: list[str] = []
    for row in rows:
        for delay in row.common_delays or []:
            if delay not in delays:
                delays.append(delay)

    return PermitAggregate(
        p50_days=max(r.p50_days for r in rows),
        p90_days=max(r.p90_days for r in rows),
        sample_size=sum(r.sample_size for r in rows),
        common_delays=delays[:MAX_COMMON_DELAYS],
        permit_types=[r.permit_type for r in rows],
        last_calculated=rows[0].last_calculated,
    )


def _pathway(
    availability: DataAvailability,
    p50: float | None,
    p90: float | None,
    note: str,
    delays: list[str],
    sample_size: int,
    last_calculated: str | None,
) -> dict:
    return {
        "required_permits": list(REQUIRED_PERMITS),
        "review_sequence": list(REVIEW_SEQUENCE),
        "departments": list(DEPARTMENTS),
        "timeline_ranges": {"p50_days": p50, "p90_days": p90, "note": note},
        "common_delays": delays,
        "gating_items": list(GATING_ITEMS),
        "data_freshness": {"sample_size": sample_size, "last_calculated": last_calculated},
        "availability": availability.value,
    }


@mlflow.trace(name="build_permit_pathway", span_type=SpanType.CHAIN)
async def build_permit_pathway(city: str, project_type: str) -> dict:
    """Aggregated pathway, or the illustrative fallback with null timelines."""
    rows = await get_permit_stats(city, project_type)
    agg = aggregate_permit_stats(rows or [])

    if agg is None:
        logger.info("No permit samples for %s — fallback pathway", project_type, extra={"city": city})
        return _pathway(
            DataAvailability.UNAVAILABLE,
            None,
            None,
            (
                f"No permit data available for {project_type} projects in {city}. "
                "Contact the local building department for estimates."
            ),
            [],
            0,
            None,
        )

    logger.info(
        "Permit pathway from %d rows (%d samples)", len(rows), agg.sample_size,
        extra={"city": city, "step": "permits"},
    )
    return _pathway(
        DataAvailability.AVAILABLE,
        agg.p50_days,
        agg.p90_days,
        f"Calculated from {agg.sample_size} permits in {city}",
        agg.common_delays,
        agg.sample_size,
        agg.last_calculated,
    )
