# app/invoices/utils.py

"""Invoice assembly helpers: line construction, validation and totals."""

from app.errors import ValidationError
from app.inventory.units import (
    calculate_price_per_consumption_unit,
    validate_sufficient_stock,
)
from app.record_store import coerce_id


def parse_quantity(value) -> float:
    try:
        qty = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Please enter a valid quantity') from None
    if qty <= 0:
        raise ValidationError('Please enter a valid quantity')
    return qty


def line_from_inventory_item(item: dict, quantity: float) -> dict:
    """
    Invoice line for ``quantity`` consumption units of ``item``.
    Bulk items are priced per consumption unit, not per container.
    """
    is_bulk = bool(item.get('is_bulk_product'))
    unit_price = calculate_price_per_consumption_unit(
        item.get('price') or 0.0, is_bulk, item.get('bulk_quantity')
    )
    return {
        'description': item.get('name'),
        'quantity': quantity,
        'unit_price': unit_price,
        'total': round(quantity * unit_price, 2),
        'tax_rate': None,
        'inventory_item_id': item.get('id'),
    }


def check_line_stock(item: dict, quantity: float):
    return validate_sufficient_stock(
        quantity,
        item.get('in_stock') or 0,
        bool(item.get('is_bulk_product')),
        item.get('bulk_quantity'),
        item.get('unit_of_measure'),
    )


def normalise_lines(raw_lines) -> list:
    lines = []
    for raw in raw_lines or []:
        description = (raw.get('description') or '').strip()
        if not description:
            raise ValidationError('Every invoice line needs a description')
        quantity = parse_quantity(raw.get('quantity', 1))
        try:
            unit_price = float(raw.get('unit_price') or 0.0)
            tax_rate = raw.get('tax_rate')
            tax_rate = float(tax_rate) if tax_rate not in (None, '') else None
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid price or tax rate on line {description!r}') from None
        item_id = raw.get('inventory_item_id')
        lines.append({
            'description': description,
            'quantity': quantity,
            'unit_price': unit_price,
            'total': round(quantity * unit_price, 2),
            'tax_rate': tax_rate,
            'inventory_item_id': coerce_id(item_id) if item_id not in (None, '') else None,
        })
    return lines


def invoice_total(lines: list) -> float:
    total = 0.0
    for line in lines:
        rate = line.get('tax_rate') or 0.0
        total += line['total'] * (1 + rate / 100)
    return round(total, 2)


def validate_invoice(data: dict) -> dict:
    """Required-field check done before any record store call."""
    customer = (data.get('customer_name') or '').strip()
    invoice_date = (data.get('invoice_date') or '').strip()
    if not customer:
        raise ValidationError('Customer is required')
    if not invoice_date:
        raise ValidationError('Invoice date is required')
    lines = normalise_lines(data.get('lines'))
    if not lines:
        raise ValidationError('Add at least one line item')
    return {
        'customer_name': customer,
        'invoice_date': invoice_date,
        'lines': lines,
        'total': invoice_total(lines),
    }
