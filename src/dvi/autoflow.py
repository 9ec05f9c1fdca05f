from __future__ import annotations

import logging
import re
from typing import Any, Self
from urllib.parse import quote

import httpx

from src.base.cache import TtlCache
from src.dvi.interface import (
    DviCategory,
    DviFetchError,
    DviItem,
    DviResult,
    DviSource,
    HunterResult,
)
from src.ingest.normalize import normalize_mileage, normalize_text, normalize_vin
from src.shop.config import AutoflowConfig

logger = logging.getLogger(__name__)


class AutoflowDviClient(DviSource):
    """Reads DVI sheets from the AutoFlow ``/api/v1/dvi/{invoice}`` endpoint."""

    _ZERO_TIMESTAMP_PATTERN = re.compile(r"^0{4}-0{2}-0{2}[T ]0{2}:0{2}:0{2}")

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        cache: TtlCache[DviResult] | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._cache = cache

    @classmethod
    def create(
        cls,
        client: httpx.AsyncClient,
        config: AutoflowConfig,
        cache: TtlCache[DviResult] | None = None,
    ) -> Self:
        if not config.configured:
            raise DviFetchError("AutoFlow not configured for this shop.")
        return cls(client, config.base_url, cache)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_dvi(self, invoice: str) -> DviResult:
        invoice = invoice.strip()
        if not invoice:
            raise DviFetchError("Missing invoice/RO.")

        cache_key = f"dvi:{self._base_url}:{invoice}"
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        url = f"{self._base_url}/api/v1/dvi/{quote(invoice, safe='')}"
        response = await self._client.get(url, headers={"accept": "application/json"})
        if response.is_error:
            raise DviFetchError(
                f"HTTP {response.status_code}: {response.text or response.reason_phrase}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise DviFetchError("Invalid JSON from AutoFlow.") from e

        result = self._parse_dvi(payload, invoice)
        logger.info(
            "Fetched DVI for invoice %s (%d categories)", invoice, len(result.categories)
        )
        if self._cache is not None:
            self._cache.set(cache_key, result)
        return result

    def _parse_dvi(self, payload: Any, invoice: str) -> DviResult:
        if not isinstance(payload, dict):
            raise DviFetchError("Invalid JSON from AutoFlow.")
        if _to_int(payload.get("success")) != 1:
            raise DviFetchError(
                normalize_text(payload.get("message"))
                or "AutoFlow returned success=0"
            )

        content = payload.get("content") or {}
        dvis = [d for d in content.get("dvis") or [] if isinstance(d, dict)]
        primary = next(
            (d for d in dvis if self._normalize_time(d.get("completed_datetime"))),
            dvis[0] if dvis else {},
        )

        return DviResult(
            invoice=normalize_text(content.get("invoice")) or invoice,
            vin=normalize_vin(content.get("vin")),
            mileage=normalize_mileage(content.get("mileage")),
            advisor=normalize_text(content.get("service_advisor_name")),
            technician=normalize_text(primary.get("completed_by")),
            sheet_name=normalize_text(primary.get("dvi_name")),
            completed_at=self._normalize_time(primary.get("completed_datetime")),
            pdf_url=normalize_text(primary.get("pdf_url")),
            shop_url=normalize_text(content.get("shop_url")),
            customer_url=normalize_text(content.get("customer_url")),
            categories=tuple(
                self._parse_category(c)
                for c in primary.get("dvi_category") or []
                if isinstance(c, dict)
            ),
            hunter=tuple(
                self._parse_hunter(h)
                for h in content.get("hunter_results") or []
                if isinstance(h, dict)
            ),
            raw=payload,
        )

    def _parse_category(self, category: dict[str, Any]) -> DviCategory:
        return DviCategory(
            name=normalize_text(category.get("category_name")),
            category_id=normalize_text(category.get("category_id")),
            video=normalize_text(category.get("category_video")),
            video_status=normalize_text(category.get("category_video_status")),
            video_notes=normalize_text(category.get("category_video_notes")),
            items=tuple(
                self._parse_item(i)
                for i in category.get("dvi_items") or []
                if isinstance(i, dict)
            ),
        )

    def _parse_item(self, item: dict[str, Any]) -> DviItem:
        # Status key is "item_status" on most sheets, "status" on some.
        status = item.get("item_status")
        if status is None:
            status = item.get("status")

        if isinstance(item.get("item_picture"), list):
            pictures = _non_empty_strings(item["item_picture"])
        elif normalize_text(item.get("image")):
            pictures = (str(item["image"]).strip(),)
        else:
            pictures = ()

        videos = (
            _non_empty_strings(item["item_video"])
            if isinstance(item.get("item_video"), list)
            else ()
        )

        return DviItem(
            name=normalize_text(item.get("item_name")),
            status=normalize_text(status),
            item_id=normalize_text(item.get("item_id")),
            notes=self._item_notes(item),
            pictures=pictures,
            videos=videos,
        )

    @staticmethod
    def _item_notes(item: dict[str, Any]) -> str | None:
        # Tire sheets carry size/tread/pressure in extra fields.
        extras: list[str] = []
        oe = normalize_text(item.get("oe"))
        actual = normalize_text(item.get("actual"))
        tread = normalize_text(item.get("threaddepth"))
        psi_before = normalize_text(item.get("psi_before"))
        psi_after = normalize_text(item.get("psi_after"))
        if oe or actual:
            extras.append(f"Size: {oe or '-'} → {actual or '-'}")
        if tread:
            extras.append(f'Tread: {tread}/32"')
        if psi_before or psi_after:
            extras.append(f"PSI: {psi_before or '-'} → {psi_after or '-'}")

        base = normalize_text(item.get("item_notes")) or normalize_text(item.get("notes"))
        parts = [p for p in (base, " • ".join(extras) if extras else None) if p]
        return "\n".join(parts) or None

    @staticmethod
    def _parse_hunter(hunter: dict[str, Any]) -> HunterResult:
        return HunterResult(
            vin=normalize_vin(hunter.get("vin")),
            order_number=normalize_text(hunter.get("order_number")),
            odometer=normalize_mileage(hunter.get("odometer")),
            url=normalize_text(hunter.get("results_url")),
            date_time=normalize_text(hunter.get("date_time")),
        )

    @classmethod
    def _normalize_time(cls, value: Any) -> str | None:
        text = normalize_text(value)
        if text is None or cls._ZERO_TIMESTAMP_PATTERN.match(text):
            return None
        return text


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _non_empty_strings(values: list[Any]) -> tuple[str, ...]:
    return tuple(text for text in (normalize_text(v) for v in values) if text)
