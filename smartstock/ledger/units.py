from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable

from smartstock.ledger.errors import InvalidConversionError, InvalidQuantityError, UnknownUnitError

ONE = Decimal("1")


@dataclass(frozen=True)
class UnitConversion:
    name: str
    factor: Decimal


@dataclass(frozen=True)
class ItemSnapshot:
    id: str
    base_unit: str
    stock: Decimal = Decimal("0")
    conversions: tuple[UnitConversion, ...] = field(default_factory=tuple)
    min_stock: Decimal = Decimal("0")
    name: str = ""
    sku: str = ""

    @property
    def unit_names(self) -> list[str]:
        return [self.base_unit, *(conv.name for conv in self.conversions)]

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidQuantityError(f"Not a quantity: {value!r}")
    try:
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidQuantityError(f"Not a quantity: {value!r}") from exc


def fits_scale(value: Decimal, quantum: Decimal) -> bool:
    """True when ``value`` is already a whole multiple of ``quantum``."""
    try:
        return value.quantize(quantum) == value
    except InvalidOperation:
        return False


def validate_conversions(
    base_unit: str,
    conversions: Iterable[UnitConversion | tuple[str, Decimal | int | float | str]],
    quantum: Decimal | None = None,
) -> tuple[UnitConversion, ...]:
    base = base_unit.strip()
    if not base:
        raise InvalidConversionError("Base unit must not be empty")

    seen: set[str] = set()
    validated: list[UnitConversion] = []
    for entry in conversions:
        if isinstance(entry, UnitConversion):
            raw_name, raw_factor = entry.name, entry.factor
        else:
            raw_name, raw_factor = entry
        name = raw_name.strip()
        if not name:
            raise InvalidConversionError("Conversion unit name must not be empty")
        if name == base:
            raise InvalidConversionError(f"Conversion '{name}' duplicates the base unit")
        if name in seen:
            raise InvalidConversionError(f"Duplicate conversion unit '{name}'")
        try:
            factor = to_decimal(raw_factor)
        except InvalidQuantityError as exc:
            raise InvalidConversionError(f"Conversion '{name}' has an invalid factor") from exc
        if not factor.is_finite() or factor <= 0:
            raise InvalidConversionError(f"Conversion '{name}' factor must be greater than zero")
        if quantum is not None and not fits_scale(factor, quantum):
            raise InvalidConversionError(f"Conversion '{name}' factor has more decimal places than {quantum} allows")
        seen.add(name)
        validated.append(UnitConversion(name=name, factor=factor))
    return tuple(validated)


def resolve_factor(unit_name: str, item: ItemSnapshot) -> Decimal:
    if unit_name == item.base_unit:
        return ONE
    for conv in item.conversions:
        if conv.name == unit_name:
            return conv.factor
    raise UnknownUnitError(item.id, unit_name, item.unit_names)


def to_base(quantity: Decimal | int | float | str, unit_name: str, item: ItemSnapshot) -> Decimal:
    return to_decimal(quantity) * resolve_factor(unit_name, item)


def from_base(base_quantity: Decimal | int | float | str, factor: Decimal | int | float | str) -> Decimal:
    divisor = to_decimal(factor)
    if not divisor.is_finite() or divisor <= 0:
        raise InvalidConversionError(f"Cannot convert with non-positive factor {divisor}")
    return to_decimal(base_quantity) / divisor


def convert(
    quantity: Decimal | int | float | str,
    from_unit: str,
    to_unit: str,
    item: ItemSnapshot,
) -> Decimal:
    return from_base(to_base(quantity, from_unit, item), resolve_factor(to_unit, item))
