"""Human-readable zone names and categories per city.

Municipal zone codes are terse ("NC3P-65", "CS-MU-V-CO-NP", "B3-2"). These
tables map code patterns to a display name and a category; first match wins,
so more specific patterns sit above broader ones.
"""

import re

# (pattern, name, category)
SEATTLE_ZONES: list[tuple[str, str, str]] = [
    # Downtown
    (r"^DOC", "Downtown Office Core", "downtown"),
    (r"^DRC", "Downtown Retail Core", "downtown"),
    (r"^DMC", "Downtown Mixed Commercial", "downtown"),
    (r"^DMR", "Downtown Mixed Residential", "downtown"),
    (r"^DH1", "Downtown Harborfront 1", "downtown"),
    (r"^DH2", "Downtown Harborfront 2", "downtown"),
    # Commercial
    (r"^C1P?-", "Commercial 1", "commercial"),
    (r"^C2P?-", "Commercial 2", "commercial"),
    (r"^NC1P?-", "Neighborhood Commercial 1", "commercial"),
    (r"^NC2P?-", "Neighborhood Commercial 2", "commercial"),
    (r"^NC3P?-", "Neighborhood Commercial 3", "commercial"),
    # Industrial
    (r"^IC-", "Industrial Commercial", "industrial"),
    (r"^IB", "Industrial Buffer", "industrial"),
    (r"^IG1", "General Industrial 1", "industrial"),
    (r"^IG2", "General Industrial 2", "industrial"),
    # Residential
    (r"^LR1", "Lowrise 1", "residential"),
    (r"^LR2", "Lowrise 2", "residential"),
    (r"^LR3", "Lowrise 3", "residential"),
    (r"^MR-?", "Midrise", "residential"),
    (r"^HR", "Highrise", "residential"),
    (r"^SF", "Single Family", "residential"),
    (r"^RSL", "Residential Small Lot", "residential"),
    # Special
    (r"^MIO-", "Major Institution Overlay", "special"),
    (r"^IDM", "International District Mixed", "mixed"),
    (r"^IDR", "International District Residential", "residential"),
    (r"^PSM", "Pioneer Square Mixed", "mixed"),
    (r"^PMM", "Pike Market Mixed", "mixed"),
    (r"^MPC", "Master Planned Community", "special"),
    (r"^SM-?U?", "Seattle Mixed", "mixed"),
]

AUSTIN_ZONES: list[tuple[str, str, str]] = [
    (r"^CBD", "Central Business District", "downtown"),
    (r"^DMU", "Downtown Mixed Use", "downtown"),
    (r"^CS-1", "Commercial Services 1", "commercial"),
    (r"^CS(?!-1)", "Commercial Services", "commercial"),
    (r"^CR", "Commercial Recreation", "commercial"),
    (r"^CH", "Commercial Highway", "commercial"),
    (r"^GR", "Community Commercial", "commercial"),
    (r"^LR", "Neighborhood Commercial", "commercial"),
    (r"^LO", "Limited Office", "commercial"),
    (r"^GO", "General Office", "commercial"),
    (r"^NO", "Neighborhood Office", "commercial"),
    (r"^MF-[1-4]", "Multifamily Residence", "residential"),
    (r"^MF-[5-6]", "Multifamily Residence High Density", "residential"),
    (r"^SF-", "Single Family", "residential"),
    (r"^MH", "Mobile Home", "residential"),
    (r"^LI", "Limited Industrial", "industrial"),
    (r"^MI", "Major Industrial", "industrial"),
    (r"^IP", "Industrial Park", "industrial"),
    (r"^W/LO", "Warehouse Limited Office", "industrial"),
    (r"^DR", "Development Reserve", "special"),
    (r"^ERC", "East Riverside Corridor", "special"),
    (r"^TOD", "Transit Oriented Development", "mixed"),
    (r"^PUD", "Planned Unit Development", "special"),
    (r"^AG", "Agricultural", "special"),
    (r"^AV", "Aviation", "special"),
    (r"^P(?:-|$)", "Public", "special"),
]

CHICAGO_ZONES: list[tuple[str, str, str]] = [
    (r"^B1-", "Neighborhood Shopping", "commercial"),
    (r"^B2-", "Neighborhood Mixed-Use", "commercial"),
    (r"^B3-", "Community Shopping", "commercial"),
    (r"^C1-", "Neighborhood Commercial", "commercial"),
    (r"^C2-", "Motor Vehicle-Related Commercial", "commercial"),
    (r"^C3-", "Commercial, Manufacturing, and Employment", "commercial"),
    (r"^DC-", "Downtown Core", "downtown"),
    (r"^DR-", "Downtown Residential", "downtown"),
    (r"^DS-", "Downtown Service", "downtown"),
    (r"^DX-", "Downtown Mixed-Use", "downtown"),
    (r"^M1-", "Limited Manufacturing/Business Park", "industrial"),
    (r"^M2-", "Light Industry", "industrial"),
    (r"^M3-", "Heavy Industry", "industrial"),
    (r"^RS-", "Residential Single-Unit", "residential"),
    (r"^RT-", "Residential Two-Flat, Townhouse", "residential"),
    (r"^RM-", "Residential Multi-Unit", "residential"),
    (r"^PD\s*\d+", "Planned Development", "special"),
    (r"^PD$", "Planned Development", "special"),
    (r"^POS-", "Parks and Open Space", "special"),
    (r"^T", "Transportation", "special"),
]

_COMPILED: dict[str, list[tuple[re.Pattern, str, str]]] = {
    city: [(re.compile(p, re.IGNORECASE), name, cat) for p, name, cat in table]
    for city, table in (
        ("seattle", SEATTLE_ZONES),
        ("austin", AUSTIN_ZONES),
        ("chicago", CHICAGO_ZONES),
    )
}

_HEIGHT_RE = re.compile(r"-(\d+)(?:\s|$|\()")
_INCENTIVE_RE = re.compile(r"\([\d.]+\)$")

# (pattern, suffix label) for trailing code modifiers
_MODIFIERS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"-MU", re.IGNORECASE), "Mixed Use"),
    (re.compile(r"-V", re.IGNORECASE), "Vertical Mixed Use"),
    (re.compile(r"-CO", re.IGNORECASE), "Conditional Overlay"),
    (re.compile(r"-NP", re.IGNORECASE), "Neighborhood Plan"),
    (re.compile(r"-H(?:-|$)", re.IGNORECASE), "Historic"),
    (re.compile(r"-PUD", re.IGNORECASE), "PUD"),
    (re.compile(r"\bRC\b", re.IGNORECASE), "Residential Commercial"),
]


def _match(city: str, code: str) -> tuple[str, str] | None:
    for pattern, name, category in _COMPILED.get(city, []):
        if pattern.search(code):
            return name, category
    return None


def _format_name(base: str, code: str) -> str:
    """Append height, incentive, or modifier detail parsed from the code."""
    m = _HEIGHT_RE.search(code)
    if m and 20 <= int(m.group(1)) <= 600:
        return f"{base} ({m.group(1)}')"

    if _INCENTIVE_RE.search(code):
        return f"{base} Incentive"

    suffixes = [label for pattern, label in _MODIFIERS if pattern.search(code)]
    if suffixes:
        return f"{base} - {', '.join(suffixes)}"
    return base


def zone_display_name(city: str, zone_code: str) -> str:
    """'NC3P-65' → "Neighborhood Commercial 3 (65')". Unmapped codes come back upper-cased."""
    code = (zone_code or "").strip()
    hit = _match(city, code)
    if hit is None:
        return code.upper()
    return _format_name(hit[0], code)


def zone_category(city: str, zone_code: str) -> str:
    hit = _match(city, (zone_code or "").strip())
    return hit[1] if hit else "unknown"


def is_informative_name(name: str | None) -> bool:
    """False for empty names, bare numbers, and one- or two-character code echoes."""
    if not name:
        return False
    text = name.strip()
    return len(text) > 2 and not text.isdigit()


def enrich_zone_index(city: str, zones: list[dict]) -> list[dict]:
    """Attach display names and categories to raw (zone_code, zone_name) rows.

    A stored name is kept when it is informative and not just the code
    repeated, otherwise the mapped display name is used.
    """
    out = []
    for zone in zones:
        code = zone["zone_code"]
        stored = zone.get("zone_name")
        keep = is_informative_name(stored) and stored.strip().upper() != code.strip().upper()
        out.append({
            "zone_code": code,
            "zone_name": stored if keep else zone_display_name(city, code),
            "category": zone_category(city, code),
        })
    return out
