"""Core domain types shared across all entitle modules."""

from entitle.core.errors import (
    AnalysisUnavailableError,
    EntitlementError,
    InvalidInputError,
    NoDistrictFoundError,
    StoreUnavailableError,
)
from entitle.core.types import (
    CITIES,
    TRIPWIRE_CATALOG,
    Artifact,
    ArtifactType,
    CreateArtifactInput,
    DataAvailability,
    EntitlementSnapshot,
    PermitStatRow,
    RiskItem,
    TripwireCheck,
    TripwireRow,
    TripwireStatus,
    UseStatus,
    ZoningDistrict,
    ZoningRules,
)

__all__ = [
    "CITIES",
    "TRIPWIRE_CATALOG",
    "AnalysisUnavailableError",
    "Artifact",
    "ArtifactType",
    "CreateArtifactInput",
    "DataAvailability",
    "EntitlementError",
    "EntitlementSnapshot",
    "InvalidInputError",
    "NoDistrictFoundError",
    "PermitStatRow",
    "RiskItem",
    "StoreUnavailableError",
    "TripwireCheck",
    "TripwireRow",
    "TripwireStatus",
    "UseStatus",
    "ZoningDistrict",
    "ZoningRules",
]
