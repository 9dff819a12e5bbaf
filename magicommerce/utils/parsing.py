# =============================================
# File: magicommerce/utils/parsing.py
# Purpose: Parse-or-fallback for model output: Parsed(data) | Malformed(reason)
# =============================================
from __future__ import annotations
import json
import re
from dataclasses import dataclass
from typing import Any, Union

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
# ASCII digits only: "²" passes str.isdigit() but not int()
_INT_RE = re.compile(r"-?[0-9]+", re.ASCII)


@dataclass(frozen=True)
class Parsed:
    data: Any


@dataclass(frozen=True)
class Malformed:
    reason: str
    raw: str = ""


ParseResult = Union[Parsed, Malformed]

_BRACKETS = {list: ("[", "]"), dict: ("{", "}")}


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_json(text: str | None, expect: type) -> ParseResult:
    """
    Decode model output expected to be a JSON `list` or `dict`.

    Tolerates markdown code fences and short prose around the payload (the
    outermost bracket pair of the expected kind is tried when the whole text
    does not decode). Anything else, including valid JSON of the wrong shape,
    is Malformed.
    """
    if not text or not text.strip():
        return Malformed("empty response")
    body = _strip_fences(text)
    try:
        data = json.loads(body)
    except ValueError:
        opener, closer = _BRACKETS[expect]
        start, end = body.find(opener), body.rfind(closer)
        if start == -1 or end <= start:
            return Malformed("not json", raw=text[:200])
        try:
            data = json.loads(body[start:end + 1])
        except ValueError:
            return Malformed("not json", raw=text[:200])
    if not isinstance(data, expect):
        return Malformed(f"expected {expect.__name__}, got {type(data).__name__}", raw=text[:200])
    return Parsed(data)


def coerce_id(value: Any) -> int | None:
    """Product ids are integers; models sometimes quote them."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def coerce_score(value: Any) -> float | None:
    """Numeric score clamped to [0, 1]; None when not a number."""
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return max(0.0, min(1.0, score))
