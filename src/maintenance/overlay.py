"""
Severity overlay for maintenance recommendations.

Inspection findings can only make a recommendation more urgent: a red
finding makes it overdue, a yellow finding makes a not-yet or coming-soon
item due. Nothing here ever relaxes a status.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping

from pydantic import BaseModel, Field

from src.dvi.services import CanonicalServiceKey, canonicalize
from src.dvi.severity import Severity


class RecommendationStatus(enum.Enum):
    OVERDUE = "overdue"
    DUE = "due"
    COMING_SOON = "coming_soon"
    NOT_YET = "not_yet"


_YELLOW_UPGRADABLE = frozenset(
    {RecommendationStatus.NOT_YET, RecommendationStatus.COMING_SOON}
)


class MaintenanceRecommendation(BaseModel):
    title: str
    status: RecommendationStatus
    canonical_key: CanonicalServiceKey | None = None
    sources: list[str] = Field(default_factory=list)

    @property
    def key(self) -> CanonicalServiceKey:
        return self.canonical_key or canonicalize(self.title)


def upgraded_status(
    status: RecommendationStatus, severity: Severity | None
) -> RecommendationStatus:
    if severity is Severity.RED:
        return RecommendationStatus.OVERDUE
    if severity is Severity.YELLOW and status in _YELLOW_UPGRADABLE:
        return RecommendationStatus.DUE
    return status


def overlay(
    recommendations: list[MaintenanceRecommendation],
    severities: Mapping[CanonicalServiceKey, Severity],
) -> list[MaintenanceRecommendation]:
    """Upgrade recommendation statuses from a severity map, in place."""
    for recommendation in recommendations:
        key = recommendation.key
        # Unrelated labels all collapse into OTHER.
        if key is CanonicalServiceKey.OTHER:
            continue
        recommendation.status = upgraded_status(
            recommendation.status, severities.get(key)
        )
    return recommendations
