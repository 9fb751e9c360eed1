from decimal import Decimal

import pytest

from smartstock.ledger import (
    InvalidConversionError,
    InvalidQuantityError,
    ItemSnapshot,
    UnitConversion,
    UnknownUnitError,
    convert,
    fits_scale,
    from_base,
    resolve_factor,
    to_base,
    to_decimal,
    validate_conversions,
)


@pytest.fixture
def mouse() -> ItemSnapshot:
    return ItemSnapshot(
        id="2",
        base_unit="pcs",
        stock=Decimal("45"),
        conversions=(UnitConversion("Box", Decimal("10")), UnitConversion("Pack", Decimal("2.5"))),
        name="Mouse Wireless Pro",
        sku="ACC-002",
    )


class TestResolveFactor:
    def test_base_unit_is_one(self, mouse):
        assert resolve_factor("pcs", mouse) == Decimal("1")

    def test_named_conversion(self, mouse):
        assert resolve_factor("Box", mouse) == Decimal("10")

    def test_unit_names_are_case_sensitive(self, mouse):
        with pytest.raises(UnknownUnitError):
            resolve_factor("box", mouse)

    def test_unknown_unit_lists_known_units(self, mouse):
        with pytest.raises(UnknownUnitError) as excinfo:
            resolve_factor("ZZZ", mouse)
        assert excinfo.value.unit == "ZZZ"
        assert excinfo.value.known_units == ["pcs", "Box", "Pack"]


class TestConversion:
    def test_to_base_multiplies(self, mouse):
        assert to_base(2, "Box", mouse) == Decimal("20")
        assert to_base("3", "Pack", mouse) == Decimal("7.5")

    def test_from_base_divides(self):
        assert from_base(Decimal("25"), Decimal("10")) == Decimal("2.5")

    def test_from_base_rejects_non_positive_factor(self):
        with pytest.raises(InvalidConversionError):
            from_base(Decimal("10"), 0)
        with pytest.raises(InvalidConversionError):
            from_base(Decimal("10"), Decimal("-2"))

    def test_round_trip_through_base(self, mouse):
        base = to_base(Decimal("1.3"), "Box", mouse)
        assert from_base(base, resolve_factor("Box", mouse)) == Decimal("1.3")

    def test_convert_between_non_base_units(self, mouse):
        assert convert(1, "Box", "Pack", mouse) == Decimal("4")

    def test_float_input_uses_decimal_text(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", ["abc", True, ""])
    def test_to_decimal_rejects_garbage(self, value):
        with pytest.raises(InvalidQuantityError):
            to_decimal(value)


class TestValidateConversions:
    def test_accepts_tuples_and_strips_names(self):
        result = validate_conversions("pcs", [(" Box ", "10"), ("Crate", 120)])
        assert result == (UnitConversion("Box", Decimal("10")), UnitConversion("Crate", Decimal("120")))

    @pytest.mark.parametrize(
        "conversions",
        [
            [("Box", 0)],
            [("Box", -5)],
            [("Box", "NaN")],
            [("Box", "Infinity")],
            [("", 10)],
            [("pcs", 10)],
            [("Box", 10), ("Box", 12)],
        ],
    )
    def test_rejects_invalid_tables(self, conversions):
        with pytest.raises(InvalidConversionError):
            validate_conversions("pcs", conversions)

    def test_rejects_empty_base_unit(self):
        with pytest.raises(InvalidConversionError):
            validate_conversions("  ", [])

    def test_rejects_factor_finer_than_storage_scale(self):
        quantum = Decimal("0.000001")
        assert validate_conversions("pcs", [("Pack", "2.5")], quantum=quantum)[0].factor == Decimal("2.5")
        with pytest.raises(InvalidConversionError):
            validate_conversions("pcs", [("Pack", "0.3333333")], quantum=quantum)


def test_from_base_rejects_nan_factor():
    with pytest.raises(InvalidConversionError):
        from_base(Decimal("10"), "NaN")


def test_fits_scale():
    assert fits_scale(Decimal("1.25"), Decimal("0.0001"))
    assert not fits_scale(Decimal("0.00006"), Decimal("0.0001"))
