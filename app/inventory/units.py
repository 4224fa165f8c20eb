# app/inventory/units.py
"""Container/consumption unit arithmetic for inventory items.

Bulk products are bought and stocked in containers (a 20 L drum, a box of
100 clips) but sold and used in consumption units (litres, clips).  Stock
counts and minimum levels of a bulk item are stored in containers; anything
that reaches an invoice is in consumption units.  Every conversion between the
two goes through this module.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple, Optional

_UNIT_ALIASES = {
    'l': 'litre',
    'liter': 'litre',
    'litres': 'litre',
    'liters': 'litre',
    'units': 'unit',
    '': 'unit',
}

_PLURALS = {
    'litre': 'litres',
    'unit': 'units',
}

_SYMBOLS = {
    'litre': 'L',
    'ml': 'ml',
    'kg': 'kg',
    'g': 'g',
    'unit': '',
}


def _has_bulk(bulk_quantity) -> bool:
    return isinstance(bulk_quantity, (int, float)) and not isinstance(bulk_quantity, bool) \
        and bulk_quantity > 0


def _normalise_unit(unit_of_measure: Optional[str]) -> str:
    unit = (unit_of_measure or 'unit').strip().lower()
    return _UNIT_ALIASES.get(unit, unit)


def format_number(value: float) -> str:
    """``200.0`` -> ``"200"``, ``7.5`` -> ``"7.5"``, ``1/3`` -> ``"0.33"``."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip('0').rstrip('.')


def calculate_total_consumption_units(stock_count: float, is_bulk: bool,
                                      bulk_quantity: Optional[float] = None) -> float:
    """10 drums x 20 L/drum = 200 L.  Non-bulk counts pass through unchanged."""
    if not is_bulk or not _has_bulk(bulk_quantity):
        return stock_count
    return stock_count * bulk_quantity


def calculate_price_per_consumption_unit(bulk_price: float, is_bulk: bool,
                                         bulk_quantity: Optional[float] = None) -> float:
    """$50/drum / 20 L/drum = $2.50/L."""
    if not is_bulk or not _has_bulk(bulk_quantity):
        return bulk_price
    return bulk_price / bulk_quantity


def get_unit_label(unit_of_measure: Optional[str], quantity: float = 1) -> str:
    unit = _normalise_unit(unit_of_measure)
    if quantity == 1:
        return unit
    return _PLURALS.get(unit, unit)


def get_unit_symbol(unit_of_measure: Optional[str]) -> str:
    unit = _normalise_unit(unit_of_measure)
    return _SYMBOLS.get(unit, unit)


def format_consumption(quantity: float, unit_of_measure: Optional[str] = 'unit') -> str:
    return f"{format_number(quantity)} {get_unit_label(unit_of_measure, quantity)}"


def format_stock_display(stock_count: float, bulk_quantity: Optional[float] = None,
                         unit_of_measure: Optional[str] = 'unit') -> str:
    """``"10 containers (200L)"`` for bulk items, ``"5 units"`` otherwise."""
    if not _has_bulk(bulk_quantity):
        return format_consumption(stock_count, unit_of_measure)

    consumption = calculate_total_consumption_units(stock_count, True, bulk_quantity)
    container_label = 'container' if stock_count == 1 else 'containers'
    symbol = get_unit_symbol(unit_of_measure)
    if symbol:
        detail = f"{format_number(consumption)}{symbol}"
    else:
        detail = format_consumption(consumption, unit_of_measure)
    return f"{format_number(stock_count)} {container_label} ({detail})"


def format_price_display(price: float, is_bulk: bool, bulk_quantity: Optional[float] = None,
                         unit_of_measure: Optional[str] = 'unit') -> str:
    base = f"${price:.2f}/{get_unit_label(unit_of_measure, 1)}"
    if not is_bulk or not _has_bulk(bulk_quantity):
        return base
    per_unit = calculate_price_per_consumption_unit(price, is_bulk, bulk_quantity)
    symbol = get_unit_symbol(unit_of_measure) or get_unit_label(unit_of_measure, 1)
    return f"${price:.2f}/container (${per_unit:.2f}/{symbol})"


class UnitKind(enum.Enum):
    CONTAINER = 'container'
    CONSUMPTION = 'consumption'


@dataclass(frozen=True)
class Quantity:
    """An amount that knows which unit domain it is expressed in."""

    amount: float
    kind: UnitKind

    @classmethod
    def containers(cls, amount: float) -> 'Quantity':
        return cls(amount, UnitKind.CONTAINER)

    @classmethod
    def consumption(cls, amount: float) -> 'Quantity':
        return cls(amount, UnitKind.CONSUMPTION)

    def to_consumption(self, bulk_quantity: Optional[float]) -> 'Quantity':
        if self.kind is UnitKind.CONSUMPTION:
            return self
        return Quantity.consumption(
            calculate_total_consumption_units(self.amount, True, bulk_quantity)
        )

    def to_containers(self, bulk_quantity: Optional[float]) -> 'Quantity':
        if self.kind is UnitKind.CONTAINER:
            return self
        if not _has_bulk(bulk_quantity):
            return Quantity.containers(self.amount)
        return Quantity.containers(self.amount / bulk_quantity)


class StockCheck(NamedTuple):
    is_valid: bool
    message: Optional[str] = None


def validate_sufficient_stock(requested: float, current_stock: float, is_bulk: bool,
                              bulk_quantity: Optional[float] = None,
                              unit_of_measure: Optional[str] = 'unit') -> StockCheck:
    """Compare a request in consumption units against stock on hand.

    ``current_stock`` is the stored count (containers for bulk items).
    """
    available = calculate_total_consumption_units(current_stock or 0, is_bulk, bulk_quantity)
    if requested > available:
        return StockCheck(
            False,
            "Insufficient stock. Available: {}, requested: {} (short by {}).".format(
                format_consumption(available, unit_of_measure),
                format_consumption(requested, unit_of_measure),
                format_consumption(requested - available, unit_of_measure),
            ),
        )
    return StockCheck(True)
