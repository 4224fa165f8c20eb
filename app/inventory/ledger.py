# app/inventory/ledger.py
"""Stock deduction once an invoice has made it through the commit gate."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from app.errors import DeductionFailed, RecordNotFound, RecordStoreError
from app.inventory.units import Quantity, format_consumption
from app.record_store import utcnow_iso


class InventoryLedger:
    def __init__(self, store) -> None:
        self.store = store

    def commit_deduction(self, deductions: Dict[Any, float], reference_id: Any,
                         reference_type: str = 'invoice') -> List[Dict[str, Any]]:
        """Deduct consumption quantities from stock and log a transaction each.

        ``deductions`` maps item id to the quantity used in consumption units.
        Bulk items are stored in containers so the deduction is converted
        first, which can leave a fractional container count.

        All or nothing: when one item fails, the items already deducted are
        put back and :class:`DeductionFailed` is raised.
        """
        applied = []
        logged = []
        try:
            for item_id, used in deductions.items():
                rows = self.store.find('inventory_items', {'id': item_id})
                if not rows:
                    raise RecordNotFound('inventory_items', item_id)
                item = rows[0]
                bulk = item.get('bulk_quantity') if item.get('is_bulk_product') else None
                change = Quantity.consumption(float(used)).to_containers(bulk).amount
                before = item.get('in_stock') or 0
                after = before - change

                self.store.update('inventory_items', item_id, {'in_stock': after})
                entry = {'item_id': item_id, 'before': before, 'transaction': None}
                applied.append(entry)
                entry['transaction'] = self.store.insert('inventory_transactions', {
                    'inventory_item_id': item_id,
                    'reference_type': reference_type,
                    'reference_id': str(reference_id),
                    'quantity_change': -change,
                    'quantity_after': after,
                    'notes': f"Deducted {format_consumption(used, item.get('unit_of_measure'))} "
                             f"from {item.get('name')}",
                    'created_at': utcnow_iso(),
                })
                logged.append(entry['transaction'])
                logging.info("stock item=%s used=%s change=%s after=%s",
                             item_id, used, change, after)
        except RecordStoreError as e:
            stuck = self._undo(applied)
            raise DeductionFailed(
                f"Stock deduction for {reference_type} {reference_id} failed: {e}", stuck
            ) from e
        return logged

    def _undo(self, applied: List[Dict[str, Any]]) -> List[Any]:
        """Put back already deducted items; returns the ids that stayed deducted."""
        stuck = []
        for entry in reversed(applied):
            try:
                if entry['transaction'] is not None:
                    self.store.delete('inventory_transactions', entry['transaction']['id'])
                self.store.update('inventory_items', entry['item_id'],
                                  {'in_stock': entry['before']})
                logging.info("stock item=%s restored to %s", entry['item_id'], entry['before'])
            except RecordStoreError as e:
                logging.error("could not restore stock for item %s: %s", entry['item_id'], e)
                stuck.append(entry['item_id'])
        return stuck
