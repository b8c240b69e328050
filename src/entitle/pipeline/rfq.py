"""RFQ parsing — pull project requirements out of a client's document.

With an LLM provider configured the document is read by the model; without
one (or when the model's answer is unusable) a set of patterns extracts
the common fields. Either way the result has the same shape, and ``mode``
says which path produced it.
"""

import logging
import re

import mlflow
from mlflow.entities import SpanType

from entitle.core.errors import InvalidInputError
from entitle.retrieval import llm

logger = logging.getLogger(__name__)

MIN_DOCUMENT_CHARS = 50
MAX_PROMPT_CHARS = 15000
MAX_SOURCE_TEXT = 100

REQUIREMENT_FIELDS = (
    "project_name", "proposed_use", "target_sf", "height_needed_ft", "stories",
    "parking_stalls", "timeline", "lot_size", "sustainability_targets", "special_requirements",
)

_SF_RE = re.compile(
    r"(\d{1,3}(?:,\d{3})+|\d+)\s*(?:SF|sq\.?\s*ft|square feet|gsf|gross square feet)", re.IGNORECASE,
)
_HEIGHT_RES = (
    re.compile(r"(\d+)\s*(?:ft|feet|foot|')\s*(?:height|tall|high|maximum height)", re.IGNORECASE),
    re.compile(r"(?:height|tall|high)(?:\s+of)?\s+(\d+)\s*(?:ft|feet|foot|')?", re.IGNORECASE),
)
_STORIES_RE = re.compile(r"(\d+)\s*(?:stories|story|floors|floor|levels|level)\b", re.IGNORECASE)
_PARKING_RE = re.compile(r"(\d+)\s*(?:parking|stalls|spaces|car\s*parks)", re.IGNORECASE)
_NAME_RE = re.compile(
    r"(?i:project|building|development)(?i:\s*name)?[:\s]+[\"']?([A-Z][A-Za-z0-9 ]+?)[\"']?(?:\n|,|\.)",
)
_TIMELINE_RES = (
    re.compile(r"(\d+)\s*(?:months?|years?)\s*(?:timeline|schedule|duration|from\s+permit)", re.IGNORECASE),
    re.compile(r"(?:timeline|schedule|duration)[:\s]+(\d+\s*(?:months?|years?))", re.IGNORECASE),
)
_LEED_RE = re.compile(r"leed\s*(gold|silver|platinum|certified)?", re.IGNORECASE)

# "office" wins unless it only appears as "post office"; otherwise the first
# matching keyword group decides the primary use
USE_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("retail", ("retail", "store", "shop")),
    ("mixed-use", ("mixed use", "mixed-use")),
    ("healthcare", ("medical", "healthcare", "clinic", "hospital")),
    ("hotel", ("hotel", "lodging")),
    ("education", ("education", "school", "university")),
    ("restaurant", ("restaurant", "food service", "dining")),
]

SUSTAINABILITY_KEYWORDS = [
    (("net zero", "net-zero"), "Net Zero"),
    (("energy star",), "Energy Star"),
]

SPECIAL_KEYWORDS = [
    (("ground floor retail", "retail activation"), "Ground floor retail activation"),
    (("public space", "plaza"), "Public space / plaza"),
    (("rooftop", "roof deck"), "Rooftop amenity"),
]


def _first(patterns, text: str) -> re.Match | None:
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            return m
    return None


def _detect_use(lower: str) -> str:
    if "office" in lower and "post office" not in lower:
        return "office"
    for use, keywords in USE_KEYWORDS:
        if any(k in lower for k in keywords):
            return use
    return ""


def extract_requirements(text: str) -> dict:
    """Pattern-based extraction. Every value found is backed by a raw extract."""
    raw_extracts: list[dict] = []

    def note(field_name: str, value: str, match: re.Match | None = None) -> None:
        source = match.group(0) if match else value
        raw_extracts.append({"field": field_name, "value": value, "source_text": source[:MAX_SOURCE_TEXT]})

    lower = text.lower()

    m = _SF_RE.search(text)
    target_sf = int(m.group(1).replace(",", "")) if m else None
    if m:
        note("target_sf", m.group(1), m)

    m = _first(_HEIGHT_RES, text)
    height = int(m.group(1)) if m else None
    if m:
        note("height_needed_ft", f"{m.group(1)} ft", m)

    m = _STORIES_RE.search(text)
    stories = int(m.group(1)) if m else None
    if m:
        note("stories", m.group(1), m)

    m = _PARKING_RE.search(text)
    parking = int(m.group(1)) if m else None
    if m:
        note("parking_stalls", m.group(1), m)

    proposed_use = _detect_use(lower)
    if proposed_use:
        note("proposed_use", proposed_use)

    m = _NAME_RE.search(text)
    project_name = m.group(1).strip() if m else None
    if m:
        note("project_name", project_name, m)

    m = _first(_TIMELINE_RES, text)
    timeline = m.group(0) if m else None
    if m:
        note("timeline", timeline, m)

    sustainability = []
    if "leed" in lower:
        leed = _LEED_RE.search(text)
        level = (leed.group(1) or "").title() if leed else ""
        sustainability.append(f"LEED {level}".strip())
    sustainability += [label for keys, label in SUSTAINABILITY_KEYWORDS if any(k in lower for k in keys)]
    special = [label for keys, label in SPECIAL_KEYWORDS if any(k in lower for k in keys)]

    return {
        "project_name": project_name,
        "proposed_use": proposed_use,
        "target_sf": target_sf,
        "height_needed_ft": height,
        "stories": stories,
        "parking_stalls": parking,
        "timeline": timeline,
        "lot_size": None,
        "sustainability_targets": sustainability,
        "special_requirements": special,
        "confidence": {
            "proposed_use": "medium" if proposed_use else "low",
            "target_sf": "high" if target_sf else "low",
            "height_needed_ft": "high" if height else "low",
        },
        "raw_extracts": raw_extracts,
    }


RFQ_SYSTEM_PROMPT = """\
You read architectural RFQs (Requests for Qualifications) and project specifications \
and extract the project requirements.

Return ONLY valid JSON with these fields (null when not stated):
{
  "project_name": "string or null",
  "proposed_use": "office | retail | restaurant | mixed-use | healthcare | education | civic | hotel | warehouse | residential",
  "target_sf": "gross square footage as a number",
  "height_needed_ft": "required building height in feet as a number",
  "stories": "number of stories",
  "parking_stalls": "number of parking spaces",
  "timeline": "schedule requirements",
  "lot_size": "lot size as stated",
  "sustainability_targets": ["LEED Gold, Net Zero, ..."],
  "special_requirements": ["other notable requirements"],
  "confidence": {"proposed_use": "high|medium|low", "target_sf": "high|medium|low", "height_needed_ft": "high|medium|low"},
  "raw_extracts": [{"field": "which field", "value": "extracted value", "source_text": "exact quote, max 100 chars"}]
}\
"""


def _from_llm(raw: dict) -> dict | None:
    """Project the model's answer onto the extraction shape; None when unusable."""
    if not raw.get("proposed_use"):
        return None
    out = {key: raw.get(key) for key in REQUIREMENT_FIELDS}
    for key in ("sustainability_targets", "special_requirements"):
        if not isinstance(out[key], list):
            out[key] = []
    out["confidence"] = raw.get("confidence") if isinstance(raw.get("confidence"), dict) else {}
    out["raw_extracts"] = [r for r in raw.get("raw_extracts") or [] if isinstance(r, dict)]
    return out


@mlflow.trace(name="parse_rfq", span_type=SpanType.CHAIN)
async def parse_rfq(document_text: str) -> dict:
    """Extract requirements from RFQ text. Returns requirements, document_length and mode."""
    text = (document_text or "").strip()
    if len(text) < MIN_DOCUMENT_CHARS:
        raise InvalidInputError(f"Please provide RFQ content (at least {MIN_DOCUMENT_CHARS} characters)")

    if llm.is_configured():
        raw = await llm.complete_json(
            [
                {"role": "system", "content": RFQ_SYSTEM_PROMPT},
                {"role": "user", "content": f'DOCUMENT:\n"""\n{text[:MAX_PROMPT_CHARS]}\n"""'},
            ],
            max_tokens=2000,
        )
        extracted = _from_llm(raw) if raw else None
        if extracted is not None:
            return {"requirements": extracted, "document_length": len(text), "mode": "ai"}
        logger.warning("LLM extraction unusable, falling back to pattern extraction")

    return {"requirements": extract_requirements(text), "document_length": len(text), "mode": "regex"}
