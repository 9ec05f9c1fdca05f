"""
Field extraction from loosely structured AutoFlow payloads.

Upstream events come in several shapes (``data.customer.*`` for customer
events, flat ``customer``/``ticket``/``vehicle`` blocks for status and DVI
events, plus assorted vendor spellings). Each logical attribute therefore has
an ordered list of accessors; the first one that yields a usable value wins.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from src.dvi.severity import DviFinding, parse_severity
from src.ingest.normalize import (
    clean_person_token,
    looks_like_company,
    normalize_email,
    normalize_identifier,
    normalize_mileage,
    normalize_phone,
    normalize_text,
    normalize_vin,
    normalize_year,
)

T = TypeVar("T")

Accessor = Callable[[Any], Any]

_MOBILE_PHONE_TYPES = frozenset({"M", "MOBILE", "CELL"})


# ── Accessors ──


def path(dotted: str) -> Accessor:
    """Accessor walking dict keys (and list indices) separated by dots."""
    parts = tuple(dotted.split("."))

    def access(raw: Any) -> Any:
        node = raw
        for part in parts:
            if isinstance(node, Mapping):
                node = node.get(part)
            elif isinstance(node, Sequence) and not isinstance(node, str):
                if not part.isdigit() or int(part) >= len(node):
                    return None
                node = node[int(part)]
            else:
                return None
            if node is None:
                return None
        return node

    return access


def preferred_phone_entry(list_path: str) -> Accessor:
    """Accessor picking the mobile entry of a ``phone_numbers`` array, else the first."""
    entries_of = path(list_path)

    def access(raw: Any) -> Any:
        entries = entries_of(raw)
        if not isinstance(entries, list) or not entries:
            return None
        typed = [e for e in entries if isinstance(e, Mapping)]
        if not typed:
            return None
        mobile = next(
            (
                e
                for e in typed
                if str(e.get("phone_type", "")).strip().upper() in _MOBILE_PHONE_TYPES
            ),
            None,
        )
        entry = mobile if mobile is not None else typed[0]
        return entry.get("phonenumber") or entry.get("number") or entry.get("phone")

    return access


def first_present(
    raw: Any, accessors: Iterable[Accessor], normalize: Callable[[Any], T | None]
) -> T | None:
    """Return the first accessor value that survives ``normalize``."""
    for accessor in accessors:
        value = normalize(accessor(raw))
        if value is not None:
            return value
    return None



# ── Candidate paths, in priority order ──

_EXTERNAL_ID = (
    path("data.customer.id"),
    path("customer.id"),
    path("customer.remote_id"),
    path("customerId"),
    path("externalId"),
)
_FIRST_NAME = (
    path("data.customer.firstName"),
    path("customer.firstname"),
    path("customer.firstName"),
    path("firstName"),
)
_LAST_NAME = (
    path("data.customer.lastName"),
    path("customer.lastname"),
    path("customer.lastName"),
    path("lastName"),
)
_NAME = (
    path("data.customer.name"),
    path("customer.name"),
    path("ticket.customer.name"),
)
_EMAIL = (
    path("data.customer.email"),
    path("customer.email"),
    path("email"),
)
_PHONE = (
    path("data.customer.phone"),
    path("customer.phone"),
    path("phone"),
    preferred_phone_entry("customer.phone_numbers"),
    preferred_phone_entry("data.customer.phone_numbers"),
)
_VIN = (
    path("vehicle.vin"),
    path("data.vehicle.vin"),
    path("ticket.vehicle.vin"),
    path("data.vin"),
    path("ticket.vin"),
    path("vin"),
    path("VIN"),
    path("vehicleVIN"),
    path("VehicleVIN"),
    path("vinNumber"),
    path("Vehicle.VIN"),
)
_MILEAGE = (
    path("vehicle.odometer"),
    path("data.vehicle.odometer"),
    path("ticket.vehicle.odometer"),
    path("data.odometer"),
    path("ticket.mileage"),
    path("mileage"),
    path("odometer"),
    path("odometerIn"),
    path("odometerOut"),
    path("mileageIn"),
    path("vehicle.mileage"),
    path("VehicleMileage"),
    path("serviceVehicle.mileage"),
)
_RO_NUMBER = (
    path("ticket.invoice"),
    path("ticket.id"),
    path("ticket.number"),
    path("roNumber"),
    path("ro"),
    path("ro_no"),
    path("repairOrderNumber"),
    path("data.roNumber"),
    path("ticketNumber"),
    path("workOrderNumber"),
    path("invoiceNumber"),
    path("repairOrder.number"),
    path("workorder.number"),
    path("event.invoice"),
)
_TICKET_STATUS = (
    path("ticket.status"),
    path("data.ticket.status"),
)
_EVENT_NAME = (
    path("event.type"),
    path("event"),
    path("type"),
    path("name"),
)
_VEHICLE_BLOCK = (
    path("vehicle"),
    path("data.vehicle"),
    path("ticket.vehicle"),
)
_DVI_ITEMS = (
    path("dvi.items"),
    path("data.dvi.items"),
    path("dvi_items"),
    path("data.dvi_items"),
)

_ITEM_LABEL = (path("item_name"), path("name"), path("label"), path("system"))
_ITEM_SEVERITY = (
    path("item_status"),
    path("status"),
    path("severity"),
)
_ITEM_NOTES = (
    path("item_notes"),
    path("notes"),
    path("note"),
    path("comment"),
)


# ── Extracted records ──


@dataclass(frozen=True)
class VehicleMeta:
    year: int | None = None
    make: str | None = None
    model: str | None = None
    license: str | None = None

    def is_empty(self) -> bool:
        return not (self.year or self.make or self.model or self.license)


@dataclass(frozen=True)
class ExtractedFields:
    """Canonical view of one event. Every field is optional."""

    external_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    vin: str | None = None
    ro_number: str | None = None
    mileage: int | None = None
    ticket_status: str | None = None
    vehicle_meta: VehicleMeta | None = None
    event_name: str | None = None

    @property
    def has_identity(self) -> bool:
        return bool(self.external_id or self.email or self.phone)


def _vehicle_meta(raw: Any) -> VehicleMeta | None:
    block = first_present(
        raw, _VEHICLE_BLOCK, lambda v: v if isinstance(v, Mapping) and v else None
    )
    if block is None:
        return None
    meta = VehicleMeta(
        year=normalize_year(block.get("year")),
        make=normalize_text(block.get("make")),
        model=normalize_text(block.get("model")),
        license=normalize_text(block.get("license")),
    )
    return None if meta.is_empty() else meta


def _names(raw: Any) -> tuple[str | None, str | None, str | None]:
    first = first_present(raw, _FIRST_NAME, clean_person_token)
    last = first_present(raw, _LAST_NAME, clean_person_token)
    name = first_present(raw, _NAME, normalize_text)

    if name is None and first is None and looks_like_company(last):
        name, last = last, None
    if name is None:
        name = " ".join(part for part in (first, last) if part) or None
    return first, last, name


def extract(raw: Any) -> ExtractedFields:
    """Pull canonical fields out of an arbitrary event. Never raises."""
    if not isinstance(raw, Mapping):
        return ExtractedFields()

    first, last, name = _names(raw)
    return ExtractedFields(
        external_id=first_present(raw, _EXTERNAL_ID, normalize_identifier),
        first_name=first,
        last_name=last,
        name=name,
        email=first_present(raw, _EMAIL, normalize_email),
        phone=first_present(raw, _PHONE, normalize_phone),
        vin=first_present(raw, _VIN, normalize_vin),
        ro_number=first_present(raw, _RO_NUMBER, normalize_identifier),
        mileage=first_present(raw, _MILEAGE, normalize_mileage),
        ticket_status=first_present(raw, _TICKET_STATUS, normalize_text),
        vehicle_meta=_vehicle_meta(raw),
        event_name=first_present(raw, _EVENT_NAME, normalize_text),
    )


def extract_findings(items: Any) -> list[DviFinding]:
    """Turn DVI item dicts (``item_name``/``item_status`` or ``name``/``severity``) into findings."""
    if not isinstance(items, list):
        return []
    findings: list[DviFinding] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        findings.append(
            DviFinding(
                label=first_present(item, _ITEM_LABEL, normalize_text),
                severity=parse_severity(
                    first_present(item, _ITEM_SEVERITY, normalize_identifier)
                ),
                notes=first_present(item, _ITEM_NOTES, normalize_text),
            )
        )
    return findings


def extract_inline_findings(raw: Any) -> list[DviFinding]:
    """Findings carried directly in a webhook payload, if any."""
    items = first_present(
        raw, _DVI_ITEMS, lambda v: v if isinstance(v, list) and v else None
    )
    return extract_findings(items)
