# app/inventory/routes.py

from flask import Blueprint, abort, current_app, jsonify, request

from app.inventory.units import validate_sufficient_stock
from app.inventory.utils import describe_item, low_stock_bulk_items
from app.record_store import coerce_id, get_store

bp = Blueprint('inventory', __name__)


def _get_item_or_404(item_id):
    rows = get_store().find('inventory_items', {'id': coerce_id(item_id)})
    if not rows:
        abort(404, description=f'Inventory item {item_id} not found')
    return rows[0]


@bp.route('/')
def list_items():
    items = get_store().find('inventory_items')
    return jsonify(items=[describe_item(i) for i in items])


@bp.route('/low-stock')
def low_stock():
    try:
        limit = int(request.args.get('limit', current_app.config['LOW_STOCK_REPORT_LIMIT']))
    except ValueError:
        abort(400, description='limit must be a whole number')
    items = get_store().find('inventory_items')
    return jsonify(items=low_stock_bulk_items(items, limit=limit))


@bp.route('/<int:item_id>/stock-check')
def stock_check(item_id):
    """
    Check whether ?quantity= consumption units can be drawn from an item.
    Returns { is_valid, message }.
    """
    try:
        quantity = float(request.args.get('quantity', ''))
    except ValueError:
        abort(400, description='quantity must be a number')
    item = _get_item_or_404(item_id)
    check = validate_sufficient_stock(
        quantity,
        item.get('in_stock') or 0,
        bool(item.get('is_bulk_product')),
        item.get('bulk_quantity'),
        item.get('unit_of_measure'),
    )
    return jsonify(is_valid=check.is_valid, message=check.message)
