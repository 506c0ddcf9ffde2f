from __future__ import annotations

import re

from models.telephony import NormalizedNumber
from telephony.errors import InvalidNumber

# E.164: leading +, no leading zero, 7-15 digits in total.
E164_RE = re.compile(r"^\+[1-9]\d{6,14}$")

# Without an explicit +, a shorter string is almost always a typo'd local
# number, never a full international one.
MIN_BARE_DIGITS = 10
MAX_DIGITS = 15

_NON_DIGIT = re.compile(r"\D")


def _reconstruct(raw: str, default_country_code: str) -> str:
    s = raw.strip()
    explicit_plus = s.startswith("+")
    digits = _NON_DIGIT.sub("", s)
    if not digits:
        return ""
    if explicit_plus:
        return f"+{digits}"
    if len(digits) == 10:
        return f"+{default_country_code}{digits}"
    if MIN_BARE_DIGITS <= len(digits) <= MAX_DIGITS:
        return f"+{digits}"
    return ""


def normalize(raw: str, default_country_code: str = "1") -> NormalizedNumber:
    """Turn user-typed phone text into E.164, or raise InvalidNumber.

    Cleanup is heuristic (bare 10-digit numbers get ``default_country_code``);
    the result is then checked against the canonical pattern on its own, so a
    bad reconstruction can never leak through.
    """
    if not isinstance(raw, str):
        raise InvalidNumber(raw)
    cc = _NON_DIGIT.sub("", default_country_code or "") or "1"
    candidate = _reconstruct(raw, cc)
    if not E164_RE.match(candidate):
        raise InvalidNumber(raw)
    return NormalizedNumber(candidate)


def is_valid(raw: str, default_country_code: str = "1") -> bool:
    try:
        normalize(raw, default_country_code)
    except InvalidNumber:
        return False
    return True
