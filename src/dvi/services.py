"""Canonical maintenance-service vocabulary.

Every source of service labels (webhook items, DVI sheets, analyzer
recommendations) goes through :func:`canonicalize` so that keys agree across
sources.
"""

from __future__ import annotations

import enum


class CanonicalServiceKey(enum.Enum):
    ENGINE_OIL = "engine_oil"
    OIL_FILTER = "oil_filter"
    CABIN_FILTER = "cabin_filter"
    AIR_FILTER = "air_filter"
    COOLANT = "coolant"
    BRAKE_FLUID = "brake_fluid"
    TRANSMISSION_SERVICE = "transmission_service"
    TRANSFER_CASE_SERVICE = "transfer_case_service"
    DIFFERENTIAL_SERVICE_FRONT = "differential_service_front"
    DIFFERENTIAL_SERVICE_REAR = "differential_service_rear"
    SPARK_PLUGS = "spark_plugs"
    SERPENTINE_BELT = "serpentine_belt"
    TIMING_BELT = "timing_belt"
    PCV = "pcv"
    THROTTLE_BODY_CLEAN = "throttle_body_clean"
    FUEL_SYSTEM_SERVICE = "fuel_system_service"
    BATTERY = "battery"
    BRAKES_FRONT = "brakes_front"
    BRAKES_REAR = "brakes_rear"
    BRAKES = "brakes"
    TIRES = "tires"
    ALIGNMENT = "alignment"
    WIPERS = "wipers"
    HVAC = "hvac"
    STEERING_SUSPENSION = "steering_suspension"
    DRIVELINE = "driveline"
    EXHAUST = "exhaust"
    SAFETY_RECALL = "safety_recall"
    OTHER = "other"


# A trigger is a group of lowercase substrings that must all occur in the
# label. Declaration order is match order: a key must come before any more
# general key that would also match its labels.
_Trigger = tuple[str, ...]

_TRIGGERS: tuple[tuple[CanonicalServiceKey, tuple[_Trigger, ...]], ...] = (
    (
        CanonicalServiceKey.ENGINE_OIL,
        (("engine oil",), ("oil change",), ("oil & filter",), ("oil and filter",)),
    ),
    (CanonicalServiceKey.OIL_FILTER, (("oil filter",),)),
    (CanonicalServiceKey.CABIN_FILTER, (("cabin",),)),
    (CanonicalServiceKey.AIR_FILTER, (("air filter",), ("air cleaner",))),
    (CanonicalServiceKey.COOLANT, (("coolant",), ("antifreeze",), ("radiator",))),
    (CanonicalServiceKey.BRAKE_FLUID, (("brake fluid",),)),
    (
        CanonicalServiceKey.TRANSMISSION_SERVICE,
        (
            ("transmission",),
            ("trans fluid",),
            ("atf",),
            ("mtf",),
            ("gear oil",),
        ),
    ),
    (CanonicalServiceKey.TRANSFER_CASE_SERVICE, (("transfer case",),)),
    (CanonicalServiceKey.DIFFERENTIAL_SERVICE_FRONT, (("front differential",),)),
    (CanonicalServiceKey.DIFFERENTIAL_SERVICE_REAR, (("rear differential",),)),
    (
        CanonicalServiceKey.SPARK_PLUGS,
        (("spark plug",), ("ignition",), ("coil",)),
    ),
    (CanonicalServiceKey.SERPENTINE_BELT, (("serpentine",), ("drive belt",))),
    (CanonicalServiceKey.TIMING_BELT, (("timing belt",),)),
    (
        CanonicalServiceKey.PCV,
        (("pcv",), ("egr",), ("evap",), ("emissions",)),
    ),
    (CanonicalServiceKey.THROTTLE_BODY_CLEAN, (("throttle body",),)),
    (CanonicalServiceKey.FUEL_SYSTEM_SERVICE, (("fuel",),)),
    (CanonicalServiceKey.BATTERY, (("battery",), ("alternator",), ("charging",))),
    (CanonicalServiceKey.BRAKES_FRONT, (("brake", "front"),)),
    (CanonicalServiceKey.BRAKES_REAR, (("brake", "rear"),)),
    (
        CanonicalServiceKey.BRAKES,
        (("brake",), ("pads",), ("rotors",), ("hydraulic",)),
    ),
    (CanonicalServiceKey.TIRES, (("tire",), ("rotation",), ("rotate",))),
    (CanonicalServiceKey.ALIGNMENT, (("align",),)),
    (CanonicalServiceKey.WIPERS, (("wiper",),)),
    (
        CanonicalServiceKey.HVAC,
        (("hvac",), ("a/c",), ("air conditioning",)),
    ),
    (
        CanonicalServiceKey.STEERING_SUSPENSION,
        (
            ("suspension",),
            ("steering",),
            ("strut",),
            ("shock",),
            ("tie rod",),
            ("boot",),
        ),
    ),
    (
        CanonicalServiceKey.DRIVELINE,
        (("driveline",), ("driveshaft",), ("u-joint",)),
    ),
    (CanonicalServiceKey.EXHAUST, (("exhaust",),)),
    (CanonicalServiceKey.SAFETY_RECALL, (("recall",),)),
    # Bare "oil" last, after every key whose labels also mention oil.
    (CanonicalServiceKey.ENGINE_OIL, (("oil",),)),
)


def canonicalize(label: str | None) -> CanonicalServiceKey:
    """Map a free-text service label to its canonical key, ``OTHER`` if none."""
    text = (label or "").lower()
    for key, triggers in _TRIGGERS:
        if any(all(part in text for part in trigger) for trigger in triggers):
            return key
    return CanonicalServiceKey.OTHER
