"""API route handlers for entitle.

POST /api/v1/zoning/lookup              — zoning snapshot artifact for an address
GET  /api/v1/zoning/{city}/zones        — zone index with display names
GET  /api/v1/zoning/{city}/zones/{code} — code-first snapshot (not persisted)
POST /api/v1/permits/pathway            — permit pathway artifact
POST /api/v1/code/tripwires             — tripwire checklist artifact
POST /api/v1/code/tripwires/evaluate    — checklist with numeric inputs evaluated
POST /api/v1/risk-register/generate     — risk register from prior artifacts
POST /api/v1/artifact/kickoff-pack      — combined kickoff pack
GET  /api/v1/artifact/{id}              — artifact by id
GET  /api/v1/artifact/slug/{slug}       — artifact by slug
POST /api/v1/ai/analyze-fit             — LLM project-fit analysis against site zoning
POST /api/v1/ai/parse-rfq               — project requirements extracted from RFQ text
"""

import asyncio
import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from entitle.api.schemas import (
    ArtifactCreatedResponse,
    ArtifactResponse,
    ErrorResponse,
    FitAnalysisRequest,
    FitAnalysisResponse,
    KickoffPackRequest,
    PermitPathwayRequest,
    RfqParseRequest,
    RfqParseResponse,
    RiskRegisterRequest,
    TripwireChecklistRequest,
    TripwireEvaluateRequest,
    ZoneListItem,
    ZoningLookupRequest,
)
from entitle.core.errors import (
    AnalysisUnavailableError,
    InvalidInputError,
    NoDistrictFoundError,
    StoreUnavailableError,
)
from entitle.core.types import Artifact, ProjectRequirements
from entitle.pipeline.artifacts import (
    ArtifactResult,
    create_kickoff_pack_artifact,
    create_permit_pathway_artifact,
    create_risk_register_artifact,
    create_tripwire_checklist_artifact,
    create_zoning_snapshot_artifact,
)
from entitle.pipeline.fit import analyze_fit
from entitle.pipeline.rfq import parse_rfq
from entitle.pipeline.snapshot import build_snapshot_by_code, zone_index
from entitle.retrieval.zoning import normalize_city
from entitle.storage.artifacts import get_artifact_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["entitlements"])

REQUEST_TIMEOUT = 60  # seconds

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Not found"},
    502: {"model": ErrorResponse, "description": "Upstream or store error"},
    503: {"model": ErrorResponse, "description": "Store or LLM provider unavailable"},
    504: {"model": ErrorResponse, "description": "Timeout"},
}


async def _guarded(coro, what: str):
    """Await a pipeline call and translate its failures into HTTP errors."""
    try:
        return await asyncio.wait_for(coro, timeout=REQUEST_TIMEOUT)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail=f"{what} timed out after {REQUEST_TIMEOUT}s")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoDistrictFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (StoreUnavailableError, AnalysisUnavailableError) as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("%s failed", what)
        raise HTTPException(status_code=502, detail=str(e))


def _created(result: ArtifactResult) -> ArtifactCreatedResponse:
    return ArtifactCreatedResponse(
        artifact_id=result.artifact.id,
        web_slug=result.artifact.web_slug,
        output=result.output,
    )


def _artifact_response(artifact: Artifact) -> ArtifactResponse:
    data = asdict(artifact)
    data["type"] = artifact.type.value
    return ArtifactResponse(**data)


def _city(raw: str) -> str:
    try:
        return normalize_city(raw)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/zoning/lookup", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def zoning_lookup(request: ZoningLookupRequest):
    """Resolve an address (or coordinates) to a zoning snapshot artifact."""
    city = _city(request.city)
    result = await _guarded(
        create_zoning_snapshot_artifact(city, request.address, request.use_type, lat=request.lat, lng=request.lng),
        "Zoning lookup",
    )
    return _created(result)


@router.get("/zoning/{city}/zones", response_model=list[ZoneListItem], responses=ERROR_RESPONSES)
async def list_city_zones(city: str):
    city = _city(city)
    return await _guarded(zone_index(city), "Zone index")


@router.get("/zoning/{city}/zones/{zone_code}", responses=ERROR_RESPONSES)
async def zone_by_code(city: str, zone_code: str, use_type: str | None = None):
    """Code-first snapshot for a zone reference page. Nothing is persisted."""
    city = _city(city)
    snapshot = await _guarded(build_snapshot_by_code(city, zone_code, use_type), "Zone lookup")
    return snapshot.to_output()


@router.post("/permits/pathway", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def permit_pathway(request: PermitPathwayRequest):
    city = _city(request.city)
    result = await _guarded(create_permit_pathway_artifact(city, request.project_type), "Permit pathway")
    return _created(result)


@router.post("/code/tripwires", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def tripwire_checklist(request: TripwireChecklistRequest):
    city = _city(request.city)
    result = await _guarded(
        create_tripwire_checklist_artifact(city, request.occupancy_type),
        "Tripwire checklist",
    )
    return _created(result)


@router.post("/code/tripwires/evaluate", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def tripwire_evaluate(request: TripwireEvaluateRequest):
    """Checklist with the supplied numeric inputs classified against thresholds."""
    city = _city(request.city)
    inputs = request.inputs.model_dump(exclude_none=True)
    result = await _guarded(
        create_tripwire_checklist_artifact(city, request.occupancy_type, inputs),
        "Tripwire evaluation",
    )
    return _created(result)


@router.post("/risk-register/generate", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def risk_register(request: RiskRegisterRequest):
    city = _city(request.city)
    result = await _guarded(
        create_risk_register_artifact(city, request.source_artifact_ids),
        "Risk register",
    )
    return _created(result)


@router.post("/artifact/kickoff-pack", response_model=ArtifactCreatedResponse, responses=ERROR_RESPONSES)
async def kickoff_pack(request: KickoffPackRequest):
    city = _city(request.city)
    result = await _guarded(
        create_kickoff_pack_artifact(
            city,
            request.address,
            request.use_type,
            request.project_type,
            request.occupancy_type,
            email=request.email,
        ),
        "Kickoff pack",
    )
    return _created(result)


@router.get("/artifact/slug/{slug}", response_model=ArtifactResponse, responses=ERROR_RESPONSES)
async def artifact_by_slug(slug: str):
    artifact = await _guarded(get_artifact_store().get_by_slug(slug), "Artifact lookup")
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"Artifact not found: {slug}")
    return _artifact_response(artifact)


@router.get("/artifact/{artifact_id}", response_model=ArtifactResponse, responses=ERROR_RESPONSES)
async def artifact_by_id(artifact_id: str):
    artifact = await _guarded(get_artifact_store().get_by_id(artifact_id), "Artifact lookup")
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"Artifact not found: {artifact_id}")
    return _artifact_response(artifact)


@router.post("/ai/analyze-fit", response_model=FitAnalysisResponse, responses=ERROR_RESPONSES)
async def ai_analyze_fit(request: FitAnalysisRequest):
    """Verdict on whether the described project fits the site's zoning."""
    city = _city(request.city)
    requirements = ProjectRequirements(**request.requirements.model_dump())
    result = await _guarded(
        analyze_fit(city, request.address, requirements, lat=request.lat, lng=request.lng),
        "Fit analysis",
    )
    return FitAnalysisResponse(**result)


@router.post("/ai/parse-rfq", response_model=RfqParseResponse, responses=ERROR_RESPONSES)
async def ai_parse_rfq(request: RfqParseRequest):
    result = await _guarded(parse_rfq(request.text), "RFQ parsing")
    return RfqParseResponse(**result)
