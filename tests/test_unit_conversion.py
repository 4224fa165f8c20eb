import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from app.inventory.units import (
    Quantity,
    UnitKind,
    calculate_price_per_consumption_unit,
    calculate_total_consumption_units,
    format_price_display,
    format_stock_display,
    get_unit_label,
    get_unit_symbol,
    validate_sufficient_stock,
)


@pytest.mark.parametrize('count,bulk', [(10, 20), (0, 5), (2.5, 4), (7, 1)])
def test_bulk_items_multiply_out(count, bulk):
    assert calculate_total_consumption_units(count, True, bulk) == count * bulk
    assert calculate_price_per_consumption_unit(50.0, True, bulk) == 50.0 / bulk


@pytest.mark.parametrize('is_bulk,bulk', [(False, 20), (True, None), (True, 0), (True, -3)])
def test_conversions_are_identity_without_usable_bulk(is_bulk, bulk):
    assert calculate_total_consumption_units(12, is_bulk, bulk) == 12
    assert calculate_price_per_consumption_unit(9.5, is_bulk, bulk) == 9.5


def test_unit_labels_pluralise():
    assert get_unit_label('litre', 1) == 'litre'
    assert get_unit_label('litre', 5) == 'litres'
    assert get_unit_label('unit', 1) == 'unit'
    assert get_unit_label('unit', 0) == 'units'
    assert get_unit_label(None, 3) == 'units'
    assert get_unit_label('kg', 4) == 'kg'
    assert get_unit_label('L', 2) == 'litres'


def test_unit_symbols():
    assert get_unit_symbol('litre') == 'L'
    assert get_unit_symbol('ml') == 'ml'
    assert get_unit_symbol('unit') == ''


def test_stock_display():
    assert format_stock_display(10, 20, 'litre') == '10 containers (200L)'
    assert format_stock_display(1, 20, 'litre') == '1 container (20L)'
    assert format_stock_display(2, 50, 'unit') == '2 containers (100 units)'
    assert format_stock_display(5, None, 'unit') == '5 units'
    assert format_stock_display(1, 0, 'litre') == '1 litre'


def test_price_display():
    assert format_price_display(50.0, True, 20, 'litre') == '$50.00/container ($2.50/L)'
    assert format_price_display(12.0, False, None, 'unit') == '$12.00/unit'


def test_quantity_never_double_converts():
    stock = Quantity.containers(10)
    litres = stock.to_consumption(20)
    assert litres == Quantity(200, UnitKind.CONSUMPTION)
    assert litres.to_consumption(20) == litres
    assert litres.to_containers(20) == Quantity.containers(10)
    assert Quantity.consumption(7).to_containers(None).amount == 7


def test_sufficient_stock_converts_containers():
    assert validate_sufficient_stock(150, 10, True, 20).is_valid
    assert validate_sufficient_stock(200, 10, True, 20).is_valid


def test_insufficient_stock_message():
    check = validate_sufficient_stock(250, 10, True, 20, 'litre')
    assert check.is_valid is False
    assert 'Available: 200 litres' in check.message
    assert 'requested: 250 litres' in check.message
    assert 'short by 50 litres' in check.message


@pytest.mark.parametrize('bulk', [None, 0])
def test_validation_tolerates_missing_bulk_quantity(bulk):
    assert validate_sufficient_stock(3, 4, True, bulk).is_valid
    assert not validate_sufficient_stock(5, 4, True, bulk).is_valid
