"""Risk register synthesis from previously generated artifacts.

Each artifact type has its own extractor over its stored output payload.
Extracted items are deduplicated by description (first occurrence keeps
its metadata), capped, then numbered E-001, E-002, ... in that order. Ids
are only meaningful within one register.
"""

import asyncio
import logging

import mlflow
from mlflow.entities import SpanType

from entitle.core.types import Artifact, ArtifactType, RiskItem, TripwireStatus
from entitle.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

MAX_RISK_ITEMS = 25
MAX_DELAYS_PER_SOURCE = 2
TRACK_CTA = "Track in Part3"

ZONING_CONSEQUENCE = "Interpretation required; may trigger design review or variance"
OVERLAY_CONSEQUENCE = "Additional review scope and timeline risk"
TRIPWIRE_CONSEQUENCE = "RFI during permit review"
DELAY_CONSEQUENCE = "Schedule risk (additional review cycle)"


def from_zoning_snapshot(output: dict) -> list[RiskItem]:
    """One item per red flag. Generic "not available" flags carry no risk."""
    items = []
    for flag in output.get("red_flags") or []:
        text = str(flag)
        if "not available" in text:
            continue
        items.append(RiskItem(description=text, source="Zoning", consequence=ZONING_CONSEQUENCE))
    return items


def from_overlay_flags(output: dict) -> list[RiskItem]:
    return [
        RiskItem(description=f"Overlay flag: {flag}", source="Zoning", consequence=OVERLAY_CONSEQUENCE)
        for flag in output.get("overlay_flags") or []
    ]


def from_tripwire_checklist(output: dict) -> list[RiskItem]:
    """One item per check currently flagged as a likely issue."""
    items = []
    for check in output.get("checklist") or []:
        if not isinstance(check, dict) or check.get("status") != TripwireStatus.LIKELY_ISSUE.value:
            continue
        label = check.get("label") or check.get("check_name") or "Tripwire"
        items.append(RiskItem(description=str(label), source="Code check", consequence=TRIPWIRE_CONSEQUENCE))
    return items


def from_permit_pathway(output: dict) -> list[RiskItem]:
    delays = list(output.get("common_delays") or [])[:MAX_DELAYS_PER_SOURCE]
    return [
        RiskItem(description=f"Common delay: {delay}", source="Permit pathway", consequence=DELAY_CONSEQUENCE)
        for delay in delays
    ]


def from_kickoff_pack(output: dict) -> list[RiskItem]:
    contents = output.get("contents") or {}
    return (
        from_zoning_snapshot(contents.get("zoning_snapshot") or {})
        + from_tripwire_checklist(contents.get("tripwire_checklist") or {})
        + from_permit_pathway(contents.get("permit_pathway") or {})
    )


EXTRACTORS = {
    ArtifactType.ZONING_SNAPSHOT: from_zoning_snapshot,
    ArtifactType.TRIPWIRE_CHECKLIST: from_tripwire_checklist,
    ArtifactType.PERMIT_PATHWAY: from_permit_pathway,
    ArtifactType.KICKOFF_PACK: from_kickoff_pack,
}


def extract_items(artifact: Artifact) -> list[RiskItem]:
    extractor = EXTRACTORS.get(ArtifactType(artifact.type))
    if extractor is None:
        return []
    return extractor(artifact.output_data or {})


def number_items(items: list[RiskItem]) -> list[RiskItem]:
    """Dedup by description (first wins), cap, and assign sequential ids."""
    seen: set[str] = set()
    unique: list[RiskItem] = []
    for item in items:
        if item.description in seen:
            continue
        seen.add(item.description)
        unique.append(item)

    return [
        RiskItem(
            description=item.description,
            source=item.source,
            consequence=item.consequence,
            status=item.status,
            risk_id=f"E-{i:03d}",
        )
        for i, item in enumerate(unique[:MAX_RISK_ITEMS], start=1)
    ]


def item_to_dict(item: RiskItem) -> dict:
    return {
        "risk_id": item.risk_id,
        "description": item.description,
        "source": item.source,
        "status": item.status,
        "consequence": item.consequence,
    }


def register_output(items: list[RiskItem]) -> dict:
    return {"items": [item_to_dict(i) for i in items], "cta": TRACK_CTA}


@mlflow.trace(name="synthesize_risk_register", span_type=SpanType.CHAIN)
async def synthesize(city: str, source_artifact_ids: list[str], store: ArtifactStore) -> list[RiskItem]:
    """Numbered risk items from the resolvable source artifacts.

    Sources are fetched concurrently. Unknown ids are skipped; the order of
    source_artifact_ids decides which duplicate wins and how ids are assigned.
    """
    fetched = await asyncio.gather(*(store.get_by_id(sid) for sid in source_artifact_ids))

    extracted: list[RiskItem] = []
    for sid, artifact in zip(source_artifact_ids, fetched):
        if artifact is None:
            logger.info("Risk source %s not found — skipped", sid, extra={"city": city})
            continue
        extracted.extend(extract_items(artifact))

    items = number_items(extracted)
    logger.info(
        "Risk register: %d extracted, %d kept", len(extracted), len(items),
        extra={"city": city, "step": "risk"},
    )
    return items
