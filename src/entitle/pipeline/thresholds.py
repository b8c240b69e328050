"""Threshold expression evaluation for code tripwires.

Expressions are tiny: a closed range "42-43" or a comparison ">= 44".
Evaluation order is pass, then fail, then warning; the first match wins, so
a value that satisfies both a warning and a fail expression is flagged via
fail. Malformed or missing expressions never raise; they just don't match.
"""

import math
import operator
import re
from dataclasses import dataclass

from entitle.core.types import TripwireStatus

_RANGE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)$")
_CMP_RE = re.compile(r"^(>=|<=|>|<)\s*(\d+(?:\.\d+)?)$")

_OPS = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}


@dataclass(frozen=True)
class RangeExpr:
    low: float
    high: float

    def matches(self, value: float) -> bool:
        return self.low <= value <= self.high


@dataclass(frozen=True)
class CompareExpr:
    op: str
    bound: float

    def matches(self, value: float) -> bool:
        return _OPS[self.op](value, self.bound)


def parse_expression(expr) -> RangeExpr | CompareExpr | None:
    """Parse one threshold expression. Returns None for anything malformed."""
    if not isinstance(expr, str):
        return None
    text = expr.strip()

    m = _RANGE_RE.match(text)
    if m:
        return RangeExpr(float(m.group(1)), float(m.group(2)))
    m = _CMP_RE.match(text)
    if m:
        return CompareExpr(m.group(1), float(m.group(2)))
    return None


def _matches(expr, value: float) -> bool:
    parsed = parse_expression(expr)
    return parsed is not None and parsed.matches(value)


def evaluate(value: float, thresholds: dict | None) -> TripwireStatus:
    """Classify a numeric input against {pass?, warning?, fail?} expressions."""
    if not isinstance(thresholds, dict):
        return TripwireStatus.UNKNOWN
    try:
        value = float(value)
    except (TypeError, ValueError):
        return TripwireStatus.UNKNOWN
    if not math.isfinite(value):
        return TripwireStatus.UNKNOWN

    if _matches(thresholds.get("pass"), value):
        return TripwireStatus.PASS
    if _matches(thresholds.get("fail"), value):
        return TripwireStatus.LIKELY_ISSUE
    if _matches(thresholds.get("warning"), value):
        return TripwireStatus.LIKELY_ISSUE
    return TripwireStatus.UNKNOWN
