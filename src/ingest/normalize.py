"""Scalar normalizers shared by webhook extraction and the DVI client."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGITS = re.compile(r"\D")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_TRAILING_ASTERISKS = re.compile(r"\*+$")

_COMPANY_KEYWORDS = (
    " llc",
    " inc",
    " co",
    " corp",
    " corporation",
    " company",
    " ltd",
    " llp",
    " laboratory",
    " laboratories",
    " clinic",
    " collision",
    " electric",
    " university",
    " hospital",
    " pathology",
    " services",
    " auto ",
    " repair",
)

def normalize_text(value: Any) -> str | None:
    if value is None or isinstance(value, (bool, Mapping, list)):
        return None
    text = str(value).strip()
    return text or None


def normalize_email(value: Any) -> str | None:
    text = normalize_text(value)
    if text is None:
        return None
    email = text.lower()
    return email if _EMAIL_PATTERN.match(email) else None


def normalize_phone(value: Any) -> str | None:
    text = normalize_text(value)
    if text is None:
        return None
    digits = _NON_DIGITS.sub("", text)
    return digits or None


def normalize_mileage(value: Any) -> int | None:
    """
    Parse an odometer reading, tolerating formatting such as ``"45,231"`` or
    ``"$45,231.00"``. Fractions are truncated.

    Zero and negative readings are indistinguishable from a missing reading
    and come back as ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        number = int(value)
    else:
        try:
            number = int(float(_NON_NUMERIC.sub("", str(value))))
        except ValueError:
            return None
    return number if number > 0 else None


def normalize_year(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value) or None
    digits = _NON_DIGITS.sub("", str(value))
    return int(digits) if digits and int(digits) > 0 else None


def normalize_vin(value: Any) -> str | None:
    text = normalize_text(value)
    return text.upper() if text else None


def normalize_identifier(value: Any) -> str | None:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return normalize_text(value)


def clean_person_token(value: Any) -> str | None:
    """Trim a first/last name, dropping trailing asterisks (``"Michael*"``)."""
    text = normalize_text(value)
    if text is None:
        return None
    return _TRAILING_ASTERISKS.sub("", text).strip() or None


def looks_like_company(value: str | None) -> bool:
    if not value:
        return False
    text = value.lower()
    if any(keyword in text for keyword in _COMPANY_KEYWORDS):
        return True
    return len(text.split()) >= 2

