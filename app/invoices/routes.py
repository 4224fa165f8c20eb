# app/invoices/routes.py

import logging

from flask import Blueprint, abort, jsonify, request

from app.errors import DeductionFailed, RecordStoreError
from app.inventory.impact import InvoiceCommitGate, build_impacts
from app.inventory.ledger import InventoryLedger
from app.invoices.utils import (
    check_line_stock,
    line_from_inventory_item,
    parse_quantity,
    validate_invoice,
)
from app.notifications import ERROR, SUCCESS, collected, notify
from app.record_store import coerce_id, get_store

bp = Blueprint('invoices', __name__)


def _load_items(lines):
    store = get_store()
    items = {}
    for line in lines:
        item_id = line.get('inventory_item_id')
        if item_id is None or item_id in items:
            continue
        rows = store.find('inventory_items', {'id': item_id})
        if rows:
            items[item_id] = rows[0]
    return items


def _open_gate(invoice):
    impacts = build_impacts(invoice['lines'], _load_items(invoice['lines']))
    return InvoiceCommitGate().open(impacts)


@bp.route('/lines', methods=['POST'])
def build_line():
    """
    Turn an inventory pick into an invoice line.
    Short stock is a soft block: the client gets requires_confirmation=True
    and may repeat the request with override=true.
    """
    data = request.get_json() or {}
    quantity = parse_quantity(data.get('quantity'))
    rows = get_store().find('inventory_items', {'id': coerce_id(data.get('item_id'))})
    if not rows:
        abort(404, description='Inventory item not found')
    item = rows[0]

    check = check_line_stock(item, quantity)
    if not check.is_valid and not data.get('override'):
        return jsonify(
            requires_confirmation=True,
            message=f"{check.message}\n\nDo you want to continue anyway?",
        )
    return jsonify(
        requires_confirmation=False,
        warning=check.message,
        line=line_from_inventory_item(item, quantity),
    )


@bp.route('/preview', methods=['POST'])
def preview():
    invoice = validate_invoice(request.get_json() or {})
    gate = _open_gate(invoice)
    return jsonify(
        customer_name=invoice['customer_name'],
        invoice_date=invoice['invoice_date'],
        total=invoice['total'],
        **gate.to_dict(),
    )


@bp.route('/confirm', methods=['POST'])
def confirm():
    data = request.get_json() or {}
    invoice = validate_invoice(data)
    gate = _open_gate(invoice)
    gate.set_confirmed(data.get('confirmed', False))

    if not gate.can_confirm:
        body = gate.to_dict()
        if gate.has_critical:
            body['error'] = ('One or more items have insufficient stock. Please adjust '
                             'the invoice or add stock before proceeding.')
        else:
            body['error'] = 'Confirm the inventory changes to create this invoice.'
        return jsonify(body), 409

    impacts = list(gate.impacts)
    store = get_store()

    def create_invoice():
        created = store.insert('invoices', {
            'customer_name': invoice['customer_name'],
            'invoice_date': invoice['invoice_date'],
            'total': invoice['total'],
            'status': 'draft',
        })
        try:
            for line in invoice['lines']:
                store.insert('invoice_items', {**line, 'invoice_id': created['id']})
        except RecordStoreError:
            # an invoice without its lines must not survive a retry
            try:
                store.delete('invoices', created['id'])
            except RecordStoreError as e:
                logging.error("could not remove incomplete invoice %s: %s", created['id'], e)
            raise
        return created

    try:
        created = gate.commit(create_invoice)
    except RecordStoreError as e:
        logging.exception("invoice creation failed: %s", e)
        notify(ERROR, 'Error', 'Failed to create invoice. Please try again.')
        return jsonify(error=str(e), state=gate.state.value, notifications=collected()), 502

    stock_deducted = True
    still_deducted = []
    if impacts:
        try:
            InventoryLedger(store).commit_deduction(
                {i.item_id: i.quantity_used for i in impacts}, created['id']
            )
        except DeductionFailed as e:
            stock_deducted = False
            still_deducted = e.still_deducted
            logging.exception("stock deduction for invoice %s failed: %s", created['id'], e)
            notify(ERROR, 'Inventory Update Error', str(e))

    notify(SUCCESS, 'Invoice Created', f"Invoice #{created['id']} for {invoice['customer_name']}")
    return jsonify(
        invoice=created,
        stock_deducted=stock_deducted,
        still_deducted=still_deducted,
        notifications=collected(),
    ), 201
