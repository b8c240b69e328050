"""Artifact producers — compute a result, freeze it, persist it.

Each producer builds its output payload, derives a slug from its key
dimensions, and writes through the ArtifactStore contract. None of them
know which backend is active.
"""

import asyncio
import logging
from dataclasses import dataclass

import mlflow
from mlflow.entities import SpanType

from entitle.core.types import (
    Artifact,
    ArtifactType,
    CreateArtifactInput,
    DataAvailability,
)
from entitle.pipeline.permits import build_permit_pathway
from entitle.pipeline.risk import (
    from_overlay_flags,
    from_zoning_snapshot,
    number_items,
    register_output,
    synthesize,
)
from entitle.pipeline.snapshot import build_snapshot_for_address
from entitle.pipeline.tripwires import get_tripwire_checklist, normalize_inputs
from entitle.retrieval.geocode import geocode_address
from entitle.storage.artifacts import get_artifact_store
from entitle.storage.records import insert_address_if_configured, persist_risk_items_if_configured
from entitle.storage.slug import make_slug

logger = logging.getLogger(__name__)


@dataclass
class ArtifactResult:
    artifact: Artifact
    output: dict


def _log_created(artifact: Artifact) -> None:
    logger.info(
        "Created %s artifact %s", artifact.type.value, artifact.web_slug,
        extra={"artifact_id": artifact.id, "artifact_type": artifact.type.value, "city": artifact.city},
    )


@mlflow.trace(name="create_zoning_snapshot_artifact", span_type=SpanType.CHAIN)
async def create_zoning_snapshot_artifact(
    city: str,
    address: str,
    use_type: str,
    lat: float | None = None,
    lng: float | None = None,
) -> ArtifactResult:
    snapshot, geocode = await build_snapshot_for_address(city, address, use_type, lat=lat, lng=lng)
    output = snapshot.to_output()

    zone_code = snapshot.district.zone_code if snapshot.district else "unknown"
    address_id = await insert_address_if_configured(
        input_address=address,
        normalized_address=geocode["normalized_address"],
        lat=geocode["lat"],
        lng=geocode["lng"],
        city=city,
    )
    artifact = await get_artifact_store().create(CreateArtifactInput(
        type=ArtifactType.ZONING_SNAPSHOT,
        city=city,
        input_params={"city": city, "address": address, "use_type": use_type,
                      "lat": lat, "lng": lng, "geocode": geocode},
        output_data=output,
        web_slug=make_slug(["zoning", city, zone_code, use_type]),
        address_id=address_id,
    ))
    _log_created(artifact)
    return ArtifactResult(artifact, output)


@mlflow.trace(name="create_permit_pathway_artifact", span_type=SpanType.CHAIN)
async def create_permit_pathway_artifact(city: str, project_type: str) -> ArtifactResult:
    pathway = await build_permit_pathway(city, project_type)
    output = {k: v for k, v in pathway.items() if k != "availability"}
    output["data_availability"] = pathway["availability"]

    artifact = await get_artifact_store().create(CreateArtifactInput(
        type=ArtifactType.PERMIT_PATHWAY,
        city=city,
        input_params={"city": city, "project_type": project_type},
        output_data=output,
        web_slug=make_slug(["permits", city, project_type]),
    ))
    _log_created(artifact)
    return ArtifactResult(artifact, output)


@mlflow.trace(name="create_tripwire_checklist_artifact", span_type=SpanType.CHAIN)
async def create_tripwire_checklist_artifact(
    city: str,
    occupancy_type: str,
    inputs: dict | None = None,
) -> ArtifactResult:
    """Checklist artifact. With inputs, the supplied checks are evaluated."""
    checklist = await get_tripwire_checklist(city, occupancy_type, inputs)
    output = {
        "checklist": checklist["checklist"],
        "disclaimer": checklist["disclaimer"],
        "data_availability": checklist["availability"],
    }
    input_params: dict = {"city": city, "occupancy_type": occupancy_type}
    if inputs:
        output["inputs"] = normalize_inputs(inputs)
        input_params["inputs"] = dict(inputs)

    artifact = await get_artifact_store().create(CreateArtifactInput(
        type=ArtifactType.TRIPWIRE_CHECKLIST,
        city=city,
        input_params=input_params,
        output_data=output,
        web_slug=make_slug(["tripwires", city, occupancy_type]),
    ))
    _log_created(artifact)
    return ArtifactResult(artifact, output)


@mlflow.trace(name="create_risk_register_artifact", span_type=SpanType.CHAIN)
async def create_risk_register_artifact(city: str, source_artifact_ids: list[str]) -> ArtifactResult:
    store = get_artifact_store()
    items = await synthesize(city, source_artifact_ids, store)
    output = register_output(items)

    artifact = await store.create(CreateArtifactInput(
        type=ArtifactType.RISK_REGISTER,
        city=city,
        input_params={"city": city, "source_artifact_ids": list(source_artifact_ids)},
        output_data=output,
        web_slug=make_slug(["risk-register", city]),
    ))
    await persist_risk_items_if_configured(artifact.id, items)
    _log_created(artifact)
    return ArtifactResult(artifact, output)


def known_ambiguities(zoning_availability: str, permit_availability: str) -> list[str]:
    out = []
    if zoning_availability != DataAvailability.AVAILABLE.value:
        out.append("Zoning data incomplete - verify with local planning department")
    if permit_availability != DataAvailability.AVAILABLE.value:
        out.append("Permit timeline data not available - contact building department")
    out.append("Confirm intended occupancy and occupant load")
    out.append("Confirm parking reductions applicability")
    return out


@mlflow.trace(name="create_kickoff_pack_artifact", span_type=SpanType.CHAIN)
async def create_kickoff_pack_artifact(
    city: str,
    address: str,
    use_type: str,
    project_type: str,
    occupancy_type: str,
    email: str | None = None,
) -> ArtifactResult:
    """Snapshot, pathway, checklist and a starter risk register in one artifact."""
    geocode = await geocode_address(address)
    (snapshot, _), pathway, checklist = await asyncio.gather(
        build_snapshot_for_address(city, address, use_type, lat=geocode["lat"], lng=geocode["lng"]),
        build_permit_pathway(city, project_type),
        get_tripwire_checklist(city, occupancy_type),
    )

    zoning = snapshot.to_output()
    permits = {k: v for k, v in pathway.items() if k not in ("availability", "data_freshness")}
    tripwires = {"checklist": checklist["checklist"], "disclaimer": checklist["disclaimer"]}
    items = number_items(from_zoning_snapshot(zoning) + from_overlay_flags(zoning))

    output = {
        "contents": {
            "zoning_snapshot": zoning,
            "permit_pathway": permits,
            "tripwire_checklist": tripwires,
            "risk_register": register_output(items),
            "known_ambiguities": known_ambiguities(snapshot.availability.value, pathway["availability"]),
        },
        "data_availability": {
            "zoning": snapshot.availability.value,
            "permits": pathway["availability"],
            "tripwires": checklist["availability"],
        },
    }

    address_id = await insert_address_if_configured(
        input_address=address,
        normalized_address=geocode["normalized_address"],
        lat=geocode["lat"],
        lng=geocode["lng"],
        city=city,
    )
    artifact = await get_artifact_store().create(CreateArtifactInput(
        type=ArtifactType.KICKOFF_PACK,
        city=city,
        input_params={
            "city": city,
            "address": address,
            "use_type": use_type,
            "project_type": project_type,
            "occupancy_type": occupancy_type,
            "email": email,
            "geocode": geocode,
        },
        output_data=output,
        web_slug=make_slug(["kickoff-pack", city]),
        user_email=email,
        address_id=address_id,
    ))
    _log_created(artifact)
    return ArtifactResult(artifact, output)
