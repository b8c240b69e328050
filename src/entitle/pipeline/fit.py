"""Project-fit analysis — does a proposed building fit the site's zoning?

The snapshot supplies the zoning facts; the LLM reads them next to the
project requirements and returns a verdict, per-category analysis, risks
and recommendations. Nothing is persisted.
"""

import logging
from dataclasses import asdict

import mlflow
from mlflow.entities import SpanType

from entitle.core.errors import AnalysisUnavailableError, StoreUnavailableError
from entitle.core.types import FIT_VERDICTS, PROVENANCE_PLACEHOLDER, EntitlementSnapshot, ProjectRequirements
from entitle.pipeline.snapshot import build_snapshot_for_address
from entitle.retrieval import llm

logger = logging.getLogger(__name__)

FIT_SYSTEM_PROMPT = """\
You are an expert architect and zoning consultant. Analyze whether a proposed \
project fits the site's zoning constraints, citing the specific rule for every finding.

Return ONLY valid JSON, no markdown fences, no explanation.

{
  "verdict": "fits | conditional | conflicts",
  "verdict_summary": "One-line summary of the verdict",
  "analysis": [
    {
      "category": "use | height | far | parking | setbacks | overlay | other",
      "status": "ok | conditional | conflict",
      "requirement": "What the project needs",
      "zoning_allows": "What zoning permits",
      "explanation": "Explanation with specific code references",
      "citation": "The zoning rule or code section referenced"
    }
  ],
  "risks": [
    {
      "severity": "high | medium | low",
      "title": "Short title",
      "description": "What the risk is",
      "impact": "Estimated impact on timeline or cost",
      "mitigation": "Possible mitigation"
    }
  ],
  "recommendations": ["Actionable recommendation for the architect"]
}

"fits" = primary use permitted and dimensional requirements met.
"conditional" = use needs discretionary approval, or the project is close to a limit.
"conflicts" = use prohibited, or a dimensional requirement exceeds the limit.\
"""


def _bullets(items, empty: str) -> list[str]:
    return [f"- {i}" for i in items] if items else [f"- {empty}"]


def build_zoning_context(snapshot: EntitlementSnapshot) -> str:
    """Render the snapshot's zoning facts as prompt text."""
    district = snapshot.district
    rules = snapshot.rules
    lines = [
        f"Zone Code: {district.zone_code if district else 'Unknown'}",
        f"Zone Name: {snapshot.zone_display_name or 'Unknown'}",
        f"City: {snapshot.city}",
        "",
    ]
    if rules is None:
        lines += [
            "### Note: Detailed zoning rules not available for this zone code.",
            "Analysis will be based on general zoning principles for this zone type.",
        ]
        return "\n".join(lines)

    lines.append("### Dimensional Limits")
    if rules.max_height_ft:
        lines.append(f"- Maximum Height: {rules.max_height_ft:g} feet")
    if rules.max_height_stories:
        lines.append(f"- Maximum Stories: {rules.max_height_stories}")
    if rules.far:
        lines.append(f"- Floor Area Ratio (FAR): {rules.far:g}")
    if rules.lot_coverage_pct:
        lines.append(f"- Maximum Lot Coverage: {rules.lot_coverage_pct:g}%")

    lines += ["", "### Setbacks"]
    for label, value in (
        ("Front", rules.setback_front_ft),
        ("Side", rules.setback_side_ft),
        ("Rear", rules.setback_rear_ft),
    ):
        if value is not None:
            lines.append(f"- {label} Setback: {value:g} feet")

    lines += ["", "### Permitted Uses (allowed by right)"]
    lines += _bullets(rules.permitted_uses, "No data available")
    lines += ["", "### Conditional Uses (requires discretionary approval)"]
    lines += _bullets(rules.conditional_uses, "None specified")
    lines += ["", "### Prohibited Uses"]
    lines += _bullets(rules.prohibited_uses, "None specified")

    if snapshot.overlay_flags:
        lines += ["", "### Overlay Districts / Special Requirements"]
        lines += _bullets(snapshot.overlay_flags, "")
    if snapshot.red_flags:
        lines += ["", "### Known Red Flags / Triggers"]
        lines += _bullets(snapshot.red_flags, "")
    if snapshot.parking_summary:
        lines += ["", "### Parking Requirements", snapshot.parking_summary]
    if snapshot.ordinance_url:
        lines += ["", f"### Source: {snapshot.ordinance_url}"]
    return "\n".join(lines)


def _or_unspecified(value, unit: str = "") -> str:
    if value is None or value == "":
        return "Not specified"
    if isinstance(value, float):
        value = f"{value:,.0f}" if value.is_integer() else f"{value:,}"
    return f"{value}{unit}"


def build_fit_prompt(address: str, requirements: ProjectRequirements, zoning_context: str) -> str:
    return (
        "## PROJECT REQUIREMENTS\n"
        f"- Address: {address}\n"
        f"- Proposed Use: {requirements.proposed_use}\n"
        f"- Target Square Footage: {_or_unspecified(requirements.target_sf, ' SF')}\n"
        f"- Height Needed: {_or_unspecified(requirements.height_needed_ft, ' ft')}\n"
        f"- Stories: {_or_unspecified(requirements.stories)}\n"
        f"- Parking Required: {_or_unspecified(requirements.parking_stalls, ' stalls')}\n"
        f"- Timeline: {_or_unspecified(requirements.timeline)}\n"
        f"- Additional Notes: {requirements.additional_notes or 'None'}\n\n"
        "## ZONING DATA FOR THIS SITE\n"
        f"{zoning_context}\n"
    )


def normalize_analysis(raw: dict) -> dict:
    """Coerce the model's JSON into the fixed analysis shape."""
    verdict = str(raw.get("verdict", "")).strip().lower()
    if verdict not in FIT_VERDICTS:
        logger.warning("Unrecognized fit verdict %r — reporting as conditional", raw.get("verdict"))
        verdict = "conditional"

    def _list(key: str) -> list:
        value = raw.get(key)
        return [v for v in value if v] if isinstance(value, list) else []

    return {
        "verdict": verdict,
        "verdict_summary": str(raw.get("verdict_summary") or ""),
        "analysis": [a for a in _list("analysis") if isinstance(a, dict)],
        "risks": [r for r in _list("risks") if isinstance(r, dict)],
        "recommendations": [str(r) for r in _list("recommendations")],
    }


@mlflow.trace(name="analyze_fit", span_type=SpanType.CHAIN)
async def analyze_fit(
    city: str,
    address: str,
    requirements: ProjectRequirements,
    lat: float | None = None,
    lng: float | None = None,
) -> dict:
    """Resolve the site's zoning and ask the LLM whether the project fits.

    Raises:
        InvalidInputError: unsupported city or bad coordinates.
        NoDistrictFoundError: no district contains the site.
        StoreUnavailableError: no zoning store, so there is nothing to analyze against.
        AnalysisUnavailableError: no LLM provider configured, or all of them failed.
    """
    if not llm.is_configured():
        raise AnalysisUnavailableError("No LLM provider configured for fit analysis")

    snapshot, geocode = await build_snapshot_for_address(
        city, address, requirements.proposed_use, lat=lat, lng=lng,
    )
    if snapshot.provenance == PROVENANCE_PLACEHOLDER:
        raise StoreUnavailableError("Zoning store not configured; fit analysis needs district data")

    messages = [
        {"role": "system", "content": FIT_SYSTEM_PROMPT},
        {"role": "user", "content": build_fit_prompt(address, requirements, build_zoning_context(snapshot))},
    ]
    raw = await llm.complete_json(messages, max_tokens=3000)
    if raw is None:
        raise AnalysisUnavailableError("Fit analysis failed: no LLM provider returned a usable answer")

    analysis = normalize_analysis(raw)
    logger.info(
        "Fit verdict: %s", analysis["verdict"],
        extra={"city": snapshot.city, "zone_code": snapshot.district.zone_code, "step": "fit"},
    )
    return {
        "address": geocode["normalized_address"],
        "zoning": snapshot.to_output(),
        "requirements": asdict(requirements),
        "analysis": analysis,
    }
