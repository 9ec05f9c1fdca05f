from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from src.dvi.severity import DviFinding, parse_severity


class DviFetchError(Exception):
    """The inspection source could not produce a usable DVI."""


@dataclass(frozen=True)
class DviItem:
    name: str | None
    status: str | None = None
    item_id: str | None = None
    notes: str | None = None
    pictures: tuple[str, ...] = ()
    videos: tuple[str, ...] = ()

    def to_finding(self) -> DviFinding:
        return DviFinding(
            label=self.name, severity=parse_severity(self.status), notes=self.notes
        )


@dataclass(frozen=True)
class DviCategory:
    name: str | None
    category_id: str | None = None
    video: str | None = None
    video_status: str | None = None
    video_notes: str | None = None
    items: tuple[DviItem, ...] = ()


@dataclass(frozen=True)
class HunterResult:
    vin: str | None = None
    order_number: str | None = None
    odometer: int | None = None
    url: str | None = None
    date_time: str | None = None


@dataclass(frozen=True)
class DviResult:
    invoice: str
    vin: str | None = None
    mileage: int | None = None
    advisor: str | None = None
    technician: str | None = None
    sheet_name: str | None = None
    completed_at: str | None = None
    pdf_url: str | None = None
    shop_url: str | None = None
    customer_url: str | None = None
    categories: tuple[DviCategory, ...] = ()
    hunter: tuple[HunterResult, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    def findings(self) -> list[DviFinding]:
        return [
            item.to_finding() for category in self.categories for item in category.items
        ]


class DviSource(ABC):
    @abstractmethod
    async def fetch_dvi(self, invoice: str) -> DviResult: ...

    async def aclose(self) -> None:
        return None
