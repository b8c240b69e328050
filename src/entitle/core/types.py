"""Domain types for the entitle engine.

All shared dataclasses and type definitions live here to prevent
circular imports and establish a single source of truth for the
domain model. Every other module imports from here.
"""

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Cities
# ---------------------------------------------------------------------------

CITIES: tuple[str, ...] = ("seattle", "austin", "chicago")

CITY_NAMES: dict[str, str] = {
    "seattle": "Seattle",
    "austin": "Austin",
    "chicago": "Chicago",
}

# Commercial + institutional scope
USE_TYPES: tuple[str, ...] = ("office", "retail", "mixed-use", "healthcare", "education", "civic")
PROJECT_TYPES: tuple[str, ...] = ("new-construction", "tenant-improvement", "addition", "change-of-use")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UseStatus(str, Enum):
    PERMITTED = "permitted"
    CONDITIONAL = "conditional"
    PROHIBITED = "prohibited"
    UNKNOWN = "unknown"


class DataAvailability(str, Enum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    UNAVAILABLE = "unavailable"


class TripwireStatus(str, Enum):
    PASS = "Pass"
    LIKELY_ISSUE = "Likely Issue"
    UNKNOWN = "Unknown"
    NOT_CHECKED = "Not Checked"


class ArtifactType(str, Enum):
    ZONING_SNAPSHOT = "zoning_snapshot"
    PERMIT_PATHWAY = "permit_pathway"
    TRIPWIRE_CHECKLIST = "tripwire_checklist"
    RISK_REGISTER = "risk_register"
    KICKOFF_PACK = "kickoff_pack"


PROVENANCE_DATABASE = "database"
PROVENANCE_PLACEHOLDER = "placeholder"


# ---------------------------------------------------------------------------
# Zoning store records
# ---------------------------------------------------------------------------

@dataclass
class ZoningDistrict:
    """A zoning district resolved from the spatial store.

    ``properties`` is the raw attribute bag of the source polygon, or a list
    of bags when several polygons were merged under one zone code.
    """

    city: str
    zone_code: str
    zone_name: str = ""
    properties: dict | list[dict] | None = None
    source_url: str = ""
    last_updated: str | None = None     # ISO date, e.g. "2025-01-31"


@dataclass
class ZoningRules:
    """Dimensional and use rules for one (city, zone_code). None = not curated."""

    city: str
    zone_code: str
    max_height_ft: float | None = None
    max_height_stories: int | None = None
    far: float | None = None
    lot_coverage_pct: float | None = None
    setback_front_ft: float | None = None
    setback_side_ft: float | None = None
    setback_rear_ft: float | None = None
    permitted_uses: list[str] = field(default_factory=list)
    conditional_uses: list[str] = field(default_factory=list)
    prohibited_uses: list[str] = field(default_factory=list)
    overlays: list[str] = field(default_factory=list)
    red_flags: list[str] = field(default_factory=list)
    parking_rules: dict = field(default_factory=dict)
    source_url: str = ""


@dataclass(frozen=True)
class DataFreshness:
    sources: tuple[str, ...] = ()
    last_updated: str | None = None


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Normalized zoning snapshot for one location and requested use.

    Built once by the snapshot builder and never mutated afterwards.
    ``provenance`` is "placeholder" when no spatial store was configured;
    ``incomplete`` is set when the district is known but its rules are not.
    """

    city: str
    district: ZoningDistrict | None
    rules: ZoningRules | None
    use_type: str | None
    selected_use_status: UseStatus
    overlay_flags: tuple[str, ...]
    data_freshness: DataFreshness
    availability: DataAvailability
    provenance: str = PROVENANCE_DATABASE
    incomplete: bool = False
    zone_display_name: str = ""
    ordinance_url: str = ""
    red_flags: tuple[str, ...] = ()
    parking_summary: str = ""
    parking_reductions: tuple[str, ...] = ()
    disclaimer: str = ""

    def to_output(self) -> dict:
        """Serialize to the zoning_snapshot artifact payload."""
        rules = self.rules
        district = self.district
        out: dict = {
            "zoning_district": {
                "zone_code": district.zone_code if district else "",
                "zone_name": self.zone_display_name,
                "ordinance_url": self.ordinance_url,
            },
            "allowed_uses": {
                "permitted": list(rules.permitted_uses) if rules else [],
                "conditional": list(rules.conditional_uses) if rules else [],
                "prohibited": list(rules.prohibited_uses) if rules else [],
            },
        }
        if self.use_type:
            out["selected_use"] = {
                "use_type": self.use_type,
                "status": self.selected_use_status.value,
            }
        out.update({
            "height_limit": {
                "max_height_ft": rules.max_height_ft if rules else None,
                "max_height_stories": rules.max_height_stories if rules else None,
            },
            "far": rules.far if rules else None,
            "lot_coverage_pct": rules.lot_coverage_pct if rules else None,
            "setbacks_ft": {
                "front": rules.setback_front_ft if rules else None,
                "side": rules.setback_side_ft if rules else None,
                "rear": rules.setback_rear_ft if rules else None,
            },
            "parking": {
                "summary": self.parking_summary,
                "reductions": list(self.parking_reductions),
            },
            "overlay_flags": list(self.overlay_flags),
            "red_flags": list(self.red_flags),
            "data_freshness": {
                "sources": list(self.data_freshness.sources),
                "last_updated": self.data_freshness.last_updated,
            },
            "disclaimer": self.disclaimer,
            "data_availability": self.availability.value,
            "provenance": self.provenance,
            "incomplete": self.incomplete,
        })
        return out


# ---------------------------------------------------------------------------
# Code tripwires
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TripwireCheck:
    """Static catalog entry for one code-compliance check."""

    check_name: str
    label: str
    rationale: str
    code_reference: str
    default_thresholds: dict | None = None


@dataclass
class TripwireRow:
    """Jurisdiction-specific tripwire data from the catalog store."""

    check_name: str
    requirement: str = ""
    code_reference: str = ""
    common_issue: str = ""
    city: str | None = None
    check_logic: dict = field(default_factory=dict)


TRIPWIRE_CATALOG: tuple[TripwireCheck, ...] = (
    TripwireCheck(
        "corridor_width", "Corridor width", "Most common commercial RFI", "IBC 1020.2",
        default_thresholds={"pass": ">= 44", "warning": "42-44", "fail": "< 42"},
    ),
    TripwireCheck("egress_travel_distance", "Egress travel distance", "Determines exit count/placement", "IBC 1017.1"),
    TripwireCheck("exit_separation", "Exit separation", "Fails plan check if too close", "IBC 1007.1.1"),
    TripwireCheck("door_clearances_ada", "Door clearances (ADA)", "Accessibility requirement", "ADA 404.2.4"),
    TripwireCheck("stair_geometry", "Stair geometry", "Riser/tread dimensions, handrail", "IBC 1011"),
    TripwireCheck("fire_separation", "Fire separation", "Rated assemblies between occupancies", "IBC Table 508.4"),
    TripwireCheck("occupant_load", "Occupant load", "Drives egress requirements", "IBC Table 1004.5"),
    TripwireCheck("plumbing_fixture_count", "Plumbing fixture count", "Often under-counted early", "IPC Table 403.1"),
    TripwireCheck("shaft_enclosures", "Shaft enclosures", "Stair/elevator shaft rating", "IBC 713"),
    TripwireCheck("exterior_wall_openings", "Exterior wall openings", "Fire separation distance impact", "IBC Table 705.8"),
)


# ---------------------------------------------------------------------------
# Permit statistics
# ---------------------------------------------------------------------------

@dataclass
class PermitStatRow:
    """Historical duration percentiles for one (city, project_type, permit_type)."""

    permit_type: str
    p50_days: float
    p90_days: float
    sample_size: int
    common_delays: list[str] = field(default_factory=list)
    last_calculated: str | None = None


@dataclass
class PermitAggregate:
    """Worst-case timeline across the gating permits of a pathway."""

    p50_days: float
    p90_days: float
    sample_size: int
    common_delays: list[str]
    permit_types: list[str]
    last_calculated: str | None = None


# ---------------------------------------------------------------------------
# Risk register
# ---------------------------------------------------------------------------

@dataclass
class RiskItem:
    """One row of a risk register. risk_id is assigned at synthesis time."""

    description: str
    source: str
    consequence: str
    status: str = "Open"     # "Open", "In Review", "Resolved"
    risk_id: str = ""


# ---------------------------------------------------------------------------
# Project fit
# ---------------------------------------------------------------------------

FIT_VERDICTS: tuple[str, ...] = ("fits", "conditional", "conflicts")


@dataclass
class ProjectRequirements:
    """What the architect intends to build, as stated by the client."""

    proposed_use: str
    target_sf: float | None = None
    height_needed_ft: float | None = None
    stories: int | None = None
    parking_stalls: int | None = None
    timeline: str | None = None
    additional_notes: str = ""


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------

@dataclass
class CreateArtifactInput:
    type: ArtifactType
    city: str
    input_params: dict
    output_data: dict
    web_slug: str
    user_email: str | None = None
    address_id: str | None = None


@dataclass(frozen=True)
class Artifact:
    """Immutable snapshot of a computed result (inputs + outputs)."""

    id: str
    type: ArtifactType
    city: str
    input_params: dict
    output_data: dict
    web_slug: str
    created_at: str
    user_email: str | None = None
    address_id: str | None = None
