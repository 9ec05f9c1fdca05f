from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from src.dvi.services import CanonicalServiceKey, canonicalize


class Severity(enum.Enum):
    NA = "na"
    GREEN = "green"
    UNKNOWN = "unknown"
    YELLOW = "yellow"
    RED = "red"


_RANK: dict[Severity, int] = {
    Severity.NA: 0,
    Severity.GREEN: 1,
    Severity.UNKNOWN: 2,
    Severity.YELLOW: 3,
    Severity.RED: 4,
}

# AutoFlow DVI sheets encode item status as a digit.
_CODED: dict[str, Severity] = {
    "0": Severity.RED,
    "1": Severity.YELLOW,
    "2": Severity.GREEN,
}

_TEXT: dict[str, Severity] = {
    "red": Severity.RED,
    "yellow": Severity.YELLOW,
    "green": Severity.GREEN,
    "na": Severity.NA,
    "n/a": Severity.NA,
    "unknown": Severity.UNKNOWN,
}

SeverityMap = dict[CanonicalServiceKey, Severity]


def worse(a: Severity, b: Severity) -> Severity:
    """Return the more severe of two classifications."""
    return b if _RANK[b] > _RANK[a] else a


def parse_severity(value: Any) -> Severity:
    """Decode a textual (``red``) or coded (``"0"``) item status."""
    if isinstance(value, Severity):
        return value
    if value is None or isinstance(value, bool):
        return Severity.UNKNOWN
    text = str(value).strip().lower()
    if text in _CODED:
        return _CODED[text]
    return _TEXT.get(text, Severity.UNKNOWN)


@dataclass(frozen=True)
class DviFinding:
    """A single inspection item. ``canonical_key`` is derived from ``label`` when unset."""

    label: str | None
    severity: Severity
    notes: str | None = None
    canonical_key: CanonicalServiceKey | None = None

    @property
    def key(self) -> CanonicalServiceKey:
        if self.canonical_key is not None:
            return self.canonical_key
        return canonicalize(self.label)


def merge_severities(
    findings: Iterable[DviFinding],
    base: Mapping[CanonicalServiceKey, Severity] | None = None,
) -> SeverityMap:
    """
    Collapse findings to the worst severity per canonical key.

    The fold is commutative and associative, so input order never changes the
    result, and merging into ``base`` can only raise a key's severity.
    """
    merged: SeverityMap = dict(base or {})
    for finding in findings:
        key = finding.key
        previous = merged.get(key)
        merged[key] = (
            finding.severity if previous is None else worse(previous, finding.severity)
        )
    return merged
