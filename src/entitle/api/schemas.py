"""Pydantic request/response models for the entitle API.

These are the API contract — decoupled from the internal domain dataclasses.
Artifact payloads stay untyped dicts; their shape is fixed per artifact type.
"""

from pydantic import BaseModel, Field


class ZoningLookupRequest(BaseModel):
    """Request body for POST /api/v1/zoning/lookup."""

    city: str = Field(..., min_length=2, examples=["seattle"])
    address: str = Field(
        ...,
        min_length=3,
        max_length=200,
        examples=["400 Pine St, Seattle, WA"],
    )
    use_type: str = Field(..., min_length=2, examples=["office"])
    lat: float | None = Field(None, description="Skip geocoding when both lat and lng are given")
    lng: float | None = None


class PermitPathwayRequest(BaseModel):
    city: str = Field(..., min_length=2)
    project_type: str = Field(..., min_length=2, examples=["tenant-improvement"])


class TripwireChecklistRequest(BaseModel):
    city: str = Field(..., min_length=2)
    occupancy_type: str = Field(..., min_length=1, examples=["B"])


class TripwireInputs(BaseModel):
    """Numeric inputs keyed by check name. corridor_width_in feeds corridor_width."""

    model_config = {"extra": "allow"}

    corridor_width_in: float | None = Field(None, gt=0)


class TripwireEvaluateRequest(BaseModel):
    city: str = Field(..., min_length=2)
    occupancy_type: str = Field(..., min_length=1)
    inputs: TripwireInputs = Field(default_factory=TripwireInputs)


class RiskRegisterRequest(BaseModel):
    city: str = Field(..., min_length=2)
    source_artifact_ids: list[str] = Field(..., min_length=1, max_length=20)


class KickoffPackRequest(BaseModel):
    city: str = Field(..., min_length=2)
    address: str = Field(..., min_length=3, max_length=200)
    use_type: str = Field(..., min_length=2)
    project_type: str = Field(..., min_length=2)
    occupancy_type: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ArtifactCreatedResponse(BaseModel):
    artifact_id: str
    web_slug: str
    output: dict


class ArtifactResponse(BaseModel):
    id: str
    type: str
    city: str
    input_params: dict
    output_data: dict
    web_slug: str
    created_at: str
    user_email: str | None = None
    address_id: str | None = None


class ZoneListItem(BaseModel):
    zone_code: str
    zone_name: str
    category: str


class ErrorResponse(BaseModel):
    detail: str
    error_type: str = "unknown"


class FitRequirements(BaseModel):
    proposed_use: str = Field(..., min_length=2, examples=["office"])
    target_sf: float | None = Field(None, gt=0)
    height_needed_ft: float | None = Field(None, gt=0)
    stories: int | None = Field(None, gt=0)
    parking_stalls: int | None = Field(None, ge=0)
    timeline: str | None = None
    additional_notes: str = ""


class FitAnalysisRequest(BaseModel):
    """Request body for POST /api/v1/ai/analyze-fit."""

    city: str = Field(..., min_length=2)
    address: str = Field(..., min_length=3, max_length=200)
    requirements: FitRequirements
    lat: float | None = None
    lng: float | None = None


class FitAnalysisResponse(BaseModel):
    address: str
    zoning: dict
    requirements: dict
    analysis: dict


class RfqParseRequest(BaseModel):
    text: str = Field(..., max_length=200_000)


class RfqParseResponse(BaseModel):
    requirements: dict
    document_length: int
    mode: str
