"""Overlay flag derivation from raw zoning polygon attributes.

District properties arrive either as one attribute dict or, after several
polygons were merged under one zone code, as a list of dicts. Both shapes
are normalized once into (key, value) observations; the per-city rules only
ever see observations.

Pure functions — no I/O.
"""

import math
from collections.abc import Iterable, Iterator

# key -> flag emitted when the key carries any non-blank value
PRESENCE_RULES: dict[str, dict[str, str]] = {
    "seattle": {
        "HISTORIC": "historic",
        "SHORELINE": "shoreline",
        "LIGHTRAIL": "light_rail",
    },
}

# key -> prefix; one "<prefix>:<value>" flag per distinct value
VALUE_RULES: dict[str, dict[str, str]] = {
    "seattle": {
        "OVERLAY": "overlay",
        "PEDESTRIAN": "pedestrian",
        "VILLAGE": "village",
        "MIO": "mio",
    },
    "austin": {
        "overlay": "overlay",
    },
}

# key -> flag emitted when any value parses as a number > 0
POSITIVE_NUMBER_RULES: dict[str, dict[str, str]] = {
    "chicago": {
        "pd_num": "planned_development",
    },
}


def _flatten(value) -> Iterator[str]:
    if value is None:
        return
    if isinstance(value, (list, tuple, set)):
        for item in value:
            yield from _flatten(item)
        return
    text = str(value).strip()
    if text:
        yield text


def observations(properties) -> list[tuple[str, str]]:
    """Flatten a property bag (dict, list of dicts, or None) to (key, value) pairs.

    List-valued attributes contribute one observation per element. None and
    blank values are dropped; values are stripped. Non-dict list members are
    ignored.
    """
    if not properties:
        return []
    bags: Iterable = properties if isinstance(properties, list) else [properties]

    out: list[tuple[str, str]] = []
    for bag in bags:
        if not isinstance(bag, dict):
            continue
        for key, value in bag.items():
            for text in _flatten(value):
                out.append((str(key), text))
    return out


def _is_positive_number(text: str) -> bool:
    try:
        n = float(text)
    except ValueError:
        return False
    return math.isfinite(n) and n > 0


def derive_overlay_flags(city: str, properties) -> set[str]:
    """Normalized overlay tags for a district's properties. Unknown city → empty set."""
    presence = PRESENCE_RULES.get(city, {})
    by_value = VALUE_RULES.get(city, {})
    positive = POSITIVE_NUMBER_RULES.get(city, {})
    if not (presence or by_value or positive):
        return set()

    flags: set[str] = set()
    for key, value in observations(properties):
        if key in presence:
            flags.add(presence[key])
        if key in by_value:
            flags.add(f"{by_value[key]}:{value}")
        if key in positive and _is_positive_number(value):
            flags.add(positive[key])
    return flags
