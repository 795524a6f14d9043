"""Mobile number normalization, validation and masking.

Residents type numbers in every shape: ``98765 43210``, ``+91-98765-43210``,
``(0091) 9876543210``, ``919876543210``.  Everything is canonicalized to a
``(country_code, local_number)`` pair before comparison so the identity
reconciler never reports a mismatch for a formatting difference.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from flatfund.config import (
    COUNTRY_CODES,
    DEFAULT_COUNTRY_CODE,
    MOBILE_MASK_PREFIX,
    MOBILE_MASK_VISIBLE_DIGITS,
)

_SEPARATORS_RE = re.compile(r"[\s\-()]")
_NON_DIGIT_RE = re.compile(r"\D")
_INDIAN_MOBILE_RE = re.compile(r"^[6-9]\d{9}$")

# dial code → expected local length; "+1" is shared by US and Canada
_DIAL_CODE_LENGTHS: dict[str, int] = {}
for _iso, _name, _dial, _length in COUNTRY_CODES:
    _DIAL_CODE_LENGTHS.setdefault(_dial, _length)

# Longest dial codes first so "+971" is tried before "+9..." lookalikes
_DIAL_CODES_BY_LENGTH = sorted(_DIAL_CODE_LENGTHS, key=len, reverse=True)


@dataclass(frozen=True)
class NormalizedMobile:
    country_code: str
    local_number: str
    full_number: str
    was_normalized: bool
    original_value: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "country_code": self.country_code,
            "local_number": self.local_number,
            "full_number": self.full_number,
            "was_normalized": self.was_normalized,
            "original_value": self.original_value,
        }


def _result(value: str, code: str, local: str) -> NormalizedMobile:
    full = f"{code}{local}"
    return NormalizedMobile(
        country_code=code,
        local_number=local,
        full_number=full,
        was_normalized=value not in (full, local),
        original_value=value,
    )


def normalize_mobile_number(value: Optional[str]) -> NormalizedMobile:
    """Canonicalize a free-form phone string.

    Order of rules:
      1. ``+91`` / ``91`` prefix followed by exactly 10 digits → India
      2. any registry dial code followed by that country's local length
      3. exactly 10 digits → default country (+91)
      4. more than 10 digits, no recognised prefix → last 10 digits, +91
         (lossy on purpose: ``0091...`` and stray trunk prefixes collapse)
      5. anything shorter is returned as a partial entry
    """
    if not value or not value.strip():
        return NormalizedMobile(DEFAULT_COUNTRY_CODE, "", "", False, value)

    cleaned = _SEPARATORS_RE.sub("", value)
    digits = _NON_DIGIT_RE.sub("", cleaned)

    # 1. India, with or without "+"
    if cleaned.startswith("+91") or (digits.startswith("91") and not cleaned.startswith("+")):
        if len(digits) == 12:
            return _result(value, "+91", digits[2:])

    # 2. registry dial codes (needs the explicit "+")
    if cleaned.startswith("+"):
        for dial in _DIAL_CODES_BY_LENGTH:
            if cleaned.startswith(dial):
                local = _NON_DIGIT_RE.sub("", cleaned[len(dial):])
                if len(local) == _DIAL_CODE_LENGTHS[dial]:
                    return _result(value, dial, local)

    # 3. bare local number
    if len(digits) == 10:
        return _result(value, DEFAULT_COUNTRY_CODE, digits)

    # 4. lossy fallback
    if len(digits) > 10:
        return _result(value, DEFAULT_COUNTRY_CODE, digits[-10:])

    # 5. partial entry
    return NormalizedMobile(
        country_code=DEFAULT_COUNTRY_CODE,
        local_number=digits,
        full_number=f"{DEFAULT_COUNTRY_CODE}{digits}" if digits else "",
        was_normalized=False,
        original_value=value,
    )


def validate_mobile_number(local_number: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> tuple[bool, Optional[str]]:
    """Return ``(is_valid, error_message)`` for a local number."""
    if not local_number or not local_number.strip():
        return False, "Mobile number is required"

    digits = _NON_DIGIT_RE.sub("", local_number)
    if country_code == "+91":
        if len(digits) != 10:
            return False, "Mobile number must be exactly 10 digits"
        if not _INDIAN_MOBILE_RE.match(digits):
            return False, "Please enter a valid Indian mobile number"
    elif not 8 <= len(digits) <= 15:
        return False, "Please enter a valid mobile number"
    return True, None


def mask_mobile(value: Optional[str]) -> str:
    """Display form revealing only the last 4 digits: ``******3210``."""
    local = normalize_mobile_number(value).local_number if value else ""
    if len(local) >= MOBILE_MASK_VISIBLE_DIGITS:
        return f"{MOBILE_MASK_PREFIX}{local[-MOBILE_MASK_VISIBLE_DIGITS:]}"
    return MOBILE_MASK_PREFIX


def format_mobile_for_display(value: Optional[str]) -> str:
    """``+91 9876543210`` style, or '' when nothing usable was entered."""
    if not value:
        return ""
    n = normalize_mobile_number(value)
    if not n.local_number:
        return ""
    return f"{n.country_code} {n.local_number}"


def format_mobile_for_storage(country_code: str, local_number: str) -> str:
    return f"{country_code}{_NON_DIGIT_RE.sub('', local_number or '')}"


def mobiles_match(a: Optional[str], b: Optional[str]) -> bool:
    """True when both numbers canonicalize to the same full number."""
    return normalize_mobile_number(a).full_number == normalize_mobile_number(b).full_number
