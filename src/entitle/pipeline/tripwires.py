"""Code tripwire checklist — static catalog merged with jurisdiction rows.

The catalog fixes which checks exist and their order. Store rows, when
present, supply the authoritative code reference, requirement text, and
threshold expressions. Status is always derived here, never stored.
"""

import logging

import mlflow
from mlflow.entities import SpanType

from entitle.core.types import (
    TRIPWIRE_CATALOG,
    DataAvailability,
    TripwireCheck,
    TripwireRow,
    TripwireStatus,
)
from entitle.pipeline.thresholds import evaluate, parse_expression
from entitle.retrieval.tripwires import get_tripwires

logger = logging.getLogger(__name__)

TRIPWIRE_DISCLAIMER = (
    "This checklist highlights common issues only. It is not a substitute for "
    "professional plan review. Consult a licensed architect."
)

# Request keys carrying a unit suffix, mapped to the check they measure
INPUT_ALIASES = {
    "corridor_width_in": "corridor_width",
}


def normalize_inputs(inputs: dict | None) -> dict[str, float]:
    """Map request inputs onto check names, dropping absent values."""
    out: dict[str, float] = {}
    for key, value in (inputs or {}).items():
        if value is None:
            continue
        out[INPUT_ALIASES.get(key, key)] = value
    return out


def resolve_thresholds(check: TripwireCheck, row: TripwireRow | None) -> dict | None:
    """Thresholds from the row's check_logic (either nesting), else the catalog default."""
    if row is not None and isinstance(row.check_logic, dict):
        thresholds = row.check_logic.get("thresholds")
        if thresholds is None:
            nested = row.check_logic.get("check_logic")
            if isinstance(nested, dict):
                thresholds = nested.get("thresholds")
        if thresholds:
            return thresholds
    return check.default_thresholds


def _status_for(check: TripwireCheck, row: TripwireRow | None, inputs: dict[str, float]) -> TripwireStatus:
    if check.check_name not in inputs:
        return TripwireStatus.NOT_CHECKED

    thresholds = resolve_thresholds(check, row)
    if thresholds and isinstance(thresholds, dict):
        bad = [k for k, v in thresholds.items() if v is not None and parse_expression(v) is None]
        if bad:
            logger.warning(
                "Malformed threshold expression(s) %s for %s", bad, check.check_name,
                extra={"step": "tripwires"},
            )
    return evaluate(inputs[check.check_name], thresholds)


def build_checklist(
    catalog: tuple[TripwireCheck, ...],
    rows: list[TripwireRow] | None,
    inputs: dict | None = None,
) -> list[dict]:
    """One checklist entry per catalog check, in catalog order."""
    by_name = {r.check_name: r for r in (rows or [])}
    values = normalize_inputs(inputs)

    checklist = []
    for check in catalog:
        row = by_name.get(check.check_name)
        checklist.append({
            "check_name": check.check_name,
            "label": check.label,
            "why_it_matters": check.rationale,
            "code_reference": (row.code_reference if row and row.code_reference else check.code_reference),
            "requirement": row.requirement if row else "",
            "common_issue": row.common_issue if row else "",
            "status": _status_for(check, row, values).value,
        })
    return checklist


@mlflow.trace(name="get_tripwire_checklist", span_type=SpanType.CHAIN)
async def get_tripwire_checklist(city: str, occupancy_type: str, inputs: dict | None = None) -> dict:
    """Checklist payload for a city and occupancy type.

    Availability is "available" when the store returned rows, "partial" when
    the checklist is built from the static catalog alone.
    """
    rows = await get_tripwires(city, occupancy_type)
    availability = DataAvailability.AVAILABLE if rows else DataAvailability.PARTIAL

    if not rows:
        logger.info("No tripwire rows for %s — catalog only", occupancy_type, extra={"city": city})

    return {
        "checklist": build_checklist(TRIPWIRE_CATALOG, rows, inputs),
        "disclaimer": TRIPWIRE_DISCLAIMER,
        "availability": availability.value,
    }
