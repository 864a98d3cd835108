# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Tolerant decoding of free-text language-model output.

Models are asked for strict JSON but routinely wrap it in prose or markdown
fences. These helpers locate the first well-formed structure and return a
ParseResult instead of raising, so callers can fall back deterministically.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

# First bracketed list of plain numbers, e.g. "[8, 2, 9.5, 1]"
_NUMERIC_ARRAY_RE = re.compile(r"\[\s*-?\d+(?:\.\d+)?(?:\s*,\s*-?\d+(?:\.\d+)?)*\s*,?\s*\]")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a decode attempt: either a value or an error description."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "ParseResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(error=error)


def extract_score_array(
    text: str | None, low: int = 0, high: int = 10, expected: int | None = None
) -> ParseResult:
    """
    Extract a bracketed numeric array and clamp its values to [low, high] integers.

    Without *expected* the first array wins. With *expected*, the last array of
    exactly that length wins (prose such as "excerpt [2]" is skipped) and no
    such array is a failure.
    """
    if not text:
        return ParseResult.failure("empty response")
    arrays = []
    for match in _NUMERIC_ARRAY_RE.finditer(text):
        try:
            arrays.append(json.loads(re.sub(r",\s*\]$", "]", match.group(0))))
        except json.JSONDecodeError:
            continue
    if not arrays:
        return ParseResult.failure("no numeric array found")
    if expected is None:
        raw = arrays[0]
    else:
        sized = [a for a in arrays if len(a) == expected]
        if not sized:
            return ParseResult.failure(f"no array of {expected} scores (got lengths {[len(a) for a in arrays]})")
        raw = sized[-1]
    scores = [min(high, max(low, round(float(v)))) for v in raw]
    return ParseResult.success(scores)


def extract_json_object(text: str | None) -> ParseResult:
    """Decode the first well-formed JSON object embedded in *text*."""
    if not text:
        return ParseResult.failure("empty response")
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            obj, _end = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return ParseResult.success(obj)
    return ParseResult.failure("no JSON object found")
