# app/inventory/utils.py
"""Helpers shared by the inventory blueprint and the CLI."""

from app.inventory.units import (
    calculate_price_per_consumption_unit,
    calculate_total_consumption_units,
    format_price_display,
    format_stock_display,
)


def describe_item(item: dict) -> dict:
    """Inventory row plus the consumption-unit figures the UI shows."""
    is_bulk = bool(item.get('is_bulk_product'))
    bulk = item.get('bulk_quantity') if is_bulk else None
    uom = item.get('unit_of_measure') or 'unit'
    in_stock = item.get('in_stock') or 0
    return {
        **item,
        'available_units': calculate_total_consumption_units(in_stock, is_bulk, bulk),
        'unit_price': calculate_price_per_consumption_unit(item.get('price') or 0.0, is_bulk, bulk),
        'stock_display': format_stock_display(in_stock, bulk, uom),
        'min_display': format_stock_display(item.get('min_stock') or 0, bulk, uom),
        'price_display': format_price_display(item.get('price') or 0.0, is_bulk, bulk, uom),
    }


def stock_percentage(in_stock: float, min_stock: float) -> float:
    if not min_stock:
        return 100.0
    return min(in_stock / min_stock * 100, 100.0)


def low_stock_bulk_items(items: list, limit: int = 5) -> list:
    """Bulk items below their minimum, most depleted first.

    Items under half their minimum are flagged ``critical``.
    """
    low = [
        i for i in items
        if i.get('is_bulk_product') and (i.get('in_stock') or 0) < (i.get('min_stock') or 0)
    ]
    low.sort(key=lambda i: stock_percentage(i.get('in_stock') or 0, i.get('min_stock') or 0))
    out = []
    for item in low[:limit]:
        pct = stock_percentage(item.get('in_stock') or 0, item.get('min_stock') or 0)
        out.append({
            **describe_item(item),
            'stock_percentage': round(pct, 1),
            'critical': pct < 50,
        })
    return out
