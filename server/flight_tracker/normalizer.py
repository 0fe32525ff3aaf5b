from __future__ import annotations

import re as _re
from typing import Mapping, Optional, Pattern

_WHITESPACE_RE: Pattern[str] = _re.compile(r"\s+")
_NON_DIGIT_RE: Pattern[str] = _re.compile(r"\D+")


def normalize(raw: Optional[str]) -> str:
    """
    "UA 8839" -> "UA8839", " lh402 " -> "LH402".
    Never fails; callers reject an empty result.
    """
    if not raw:
        return ""
    return _WHITESPACE_RE.sub("", str(raw)).upper()


def resolve_codeshare(canonical: str, codeshares: Mapping[str, str]) -> str:
    """Operating designator for a codeshare, else the input unchanged."""
    return codeshares.get(canonical, canonical)


def numeric_part(designator: Optional[str]) -> str:
    """
    UA 8839 -> 8839
    """
    return _NON_DIGIT_RE.sub("", designator or "")
