import pytest

from src.dvi.services import CanonicalServiceKey, canonicalize


class TestCanonicalize:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Engine Oil Condition", CanonicalServiceKey.ENGINE_OIL),
            ("Oil & Filter Change", CanonicalServiceKey.ENGINE_OIL),
            ("Oil Filter", CanonicalServiceKey.OIL_FILTER),
            ("oil filter leak", CanonicalServiceKey.OIL_FILTER),
            ("Cabin Air Filter", CanonicalServiceKey.CABIN_FILTER),
            ("Engine Air Filter", CanonicalServiceKey.AIR_FILTER),
            ("Brake Fluid Flush", CanonicalServiceKey.BRAKE_FLUID),
            ("Front Brake Pads", CanonicalServiceKey.BRAKES_FRONT),
            ("Brakes - Rear Rotors", CanonicalServiceKey.BRAKES_REAR),
            ("Brake Inspection", CanonicalServiceKey.BRAKES),
            ("LF Tire", CanonicalServiceKey.TIRES),
            ("Rear Differential Fluid", CanonicalServiceKey.DIFFERENTIAL_SERVICE_REAR),
            ("Open Recall", CanonicalServiceKey.SAFETY_RECALL),
            ("ATF exchange", CanonicalServiceKey.TRANSMISSION_SERVICE),
            ("MTF drain and fill", CanonicalServiceKey.TRANSMISSION_SERVICE),
            ("Gear oil", CanonicalServiceKey.TRANSMISSION_SERVICE),
            ("EGR valve", CanonicalServiceKey.PCV),
            ("EVAP leak", CanonicalServiceKey.PCV),
            ("Emissions test", CanonicalServiceKey.PCV),
            ("Hydraulic line", CanonicalServiceKey.BRAKES),
            ("CV boot torn", CanonicalServiceKey.STEERING_SUSPENSION),
            ("Rotate", CanonicalServiceKey.TIRES),
            ("Ignition system", CanonicalServiceKey.SPARK_PLUGS),
            ("Coil pack", CanonicalServiceKey.SPARK_PLUGS),
            ("Synthetic oil", CanonicalServiceKey.ENGINE_OIL),
        ],
    )
    def test_known_labels(self, label: str, expected: CanonicalServiceKey) -> None:
        assert canonicalize(label) == expected

    def test_case_insensitive(self) -> None:
        assert canonicalize("ENGINE OIL") == canonicalize("engine oil")

    def test_unknown_label_is_other(self) -> None:
        assert canonicalize("Horn operation") == CanonicalServiceKey.OTHER
        assert canonicalize("") == CanonicalServiceKey.OTHER
        assert canonicalize(None) == CanonicalServiceKey.OTHER

    def test_brake_fluid_not_treated_as_brakes(self) -> None:
        assert canonicalize("brake fluid") != CanonicalServiceKey.BRAKES

    def test_bare_oil_does_not_shadow_specific_keys(self) -> None:
        assert canonicalize("Oil filter") == CanonicalServiceKey.OIL_FILTER
        assert canonicalize("Gear oil leak") == CanonicalServiceKey.TRANSMISSION_SERVICE
        assert canonicalize("Transfer case oil") == CanonicalServiceKey.TRANSFER_CASE_SERVICE
        assert (
            canonicalize("Rear differential oil")
            == CanonicalServiceKey.DIFFERENTIAL_SERVICE_REAR
        )

    def test_deterministic(self) -> None:
        labels = ["Front Brake Pads", "Wipers", "mystery", "Coolant"]

        assert [canonicalize(label) for label in labels] == [
            canonicalize(label) for label in labels
        ]
