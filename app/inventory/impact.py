# app/inventory/impact.py
"""Inventory impact preview and the invoice commit gate.

Before an invoice is created every line that draws on stock is projected
against the item's current stock.  Projections are compared in consumption
units: a bulk item's stored counts (containers) are converted before the
quantity used is subtracted.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.errors import CommitBlocked, ValidationError
from app.inventory.units import (
    Quantity,
    format_consumption,
    format_stock_display,
)

# an item is "approaching minimum" below this multiple of its minimum
WARNING_RATIO = 1.5


class ImpactStatus(str, enum.Enum):
    CRITICAL = 'critical'
    LOW = 'low'
    WARNING = 'warning'
    NORMAL = 'normal'


STATUS_LABELS = {
    ImpactStatus.CRITICAL: 'Insufficient Stock',
    ImpactStatus.LOW: 'Below Minimum',
    ImpactStatus.WARNING: 'Approaching Minimum',
    ImpactStatus.NORMAL: 'Normal',
}


def classify_stock(after_stock: float, min_stock: float) -> ImpactStatus:
    """Most severe matching status wins; every comparison is strict."""
    if after_stock < 0:
        return ImpactStatus.CRITICAL
    if after_stock < min_stock:
        return ImpactStatus.LOW
    if after_stock < min_stock * WARNING_RATIO:
        return ImpactStatus.WARNING
    return ImpactStatus.NORMAL


def _as_quantity(value, default_kind: Callable[[float], Quantity]) -> Quantity:
    if isinstance(value, Quantity):
        return value
    return default_kind(float(value or 0))


@dataclass
class InventoryImpact:
    """Projected effect of an invoice on one inventory item.

    Plain numbers for ``current_stock`` and ``min_stock`` are read as stored
    counts (containers for bulk items); ``quantity_used`` as consumption
    units.  Pass a :class:`Quantity` to say otherwise.  After construction all
    three, and ``after_stock``, are consumption-unit floats.
    """

    item_id: Any
    item_name: str
    current_stock: Any
    quantity_used: Any
    min_stock: Any = 0
    is_bulk_product: bool = False
    bulk_quantity: Optional[float] = None
    unit_of_measure: str = 'unit'
    after_stock: float = field(init=False)

    def __post_init__(self) -> None:
        bulk = self._bulk
        self.current_stock = _as_quantity(self.current_stock, Quantity.containers) \
            .to_consumption(bulk).amount
        self.min_stock = _as_quantity(self.min_stock, Quantity.containers) \
            .to_consumption(bulk).amount
        self.quantity_used = _as_quantity(self.quantity_used, Quantity.consumption) \
            .to_consumption(bulk).amount
        self.after_stock = self.current_stock - self.quantity_used

    @property
    def _bulk(self) -> Optional[float]:
        return self.bulk_quantity if self.is_bulk_product else None

    @property
    def status(self) -> ImpactStatus:
        return classify_stock(self.after_stock, self.min_stock)

    @property
    def blocks_commit(self) -> bool:
        return self.status is ImpactStatus.CRITICAL

    def _display(self, consumption_amount: float) -> str:
        if self._bulk:
            containers = Quantity.consumption(consumption_amount).to_containers(self._bulk)
            return format_stock_display(containers.amount, self._bulk, self.unit_of_measure)
        return format_consumption(consumption_amount, self.unit_of_measure)

    def to_dict(self) -> Dict[str, Any]:
        status = self.status
        return {
            'item_id': self.item_id,
            'item_name': self.item_name,
            'current_stock': self.current_stock,
            'quantity_used': self.quantity_used,
            'after_stock': self.after_stock,
            'min_stock': self.min_stock,
            'is_bulk_product': self.is_bulk_product,
            'bulk_quantity': self.bulk_quantity,
            'unit_of_measure': self.unit_of_measure,
            'status': status.value,
            'label': STATUS_LABELS[status],
            'current_display': self._display(self.current_stock),
            'used_display': format_consumption(self.quantity_used, self.unit_of_measure),
            'after_display': self._display(self.after_stock),
            'min_display': self._display(self.min_stock),
        }


def build_impacts(lines: Iterable[Dict[str, Any]],
                  items: Dict[Any, Dict[str, Any]]) -> List[InventoryImpact]:
    """One impact per inventory item referenced by ``lines``.

    Quantities of lines drawing on the same item are summed; the result keeps
    the order in which items first appear.  Lines without an inventory
    reference do not touch stock and are skipped.
    """
    used: Dict[Any, float] = {}
    for line in lines:
        item_id = line.get('inventory_item_id')
        if item_id in (None, ''):
            continue
        if item_id not in items:
            raise ValidationError(f"Unknown inventory item {item_id!r}")
        used[item_id] = used.get(item_id, 0.0) + float(line.get('quantity') or 0)

    impacts = []
    for item_id, quantity in used.items():
        item = items[item_id]
        impacts.append(
            InventoryImpact(
                item_id=item_id,
                item_name=item.get('name') or '',
                current_stock=item.get('in_stock') or 0,
                quantity_used=quantity,
                min_stock=item.get('min_stock') or 0,
                is_bulk_product=bool(item.get('is_bulk_product')),
                bulk_quantity=item.get('bulk_quantity'),
                unit_of_measure=item.get('unit_of_measure') or 'unit',
            )
        )
    return impacts


class GateState(str, enum.Enum):
    CLOSED = 'closed'
    BLOCKED = 'blocked'
    PENDING_CONFIRMATION = 'pending_confirmation'
    READY = 'ready'
    COMMITTING = 'committing'


class InvoiceCommitGate:
    """Decides whether an invoice with the given impacts may be committed.

    Opening the gate always clears the confirmation, so a confirmation given
    for one set of impacts never carries over to the next.
    """

    def __init__(self) -> None:
        self.impacts: List[InventoryImpact] = []
        self.confirmed = False
        self.is_open = False
        self.committing = False

    def open(self, impacts: Iterable[InventoryImpact]) -> 'InvoiceCommitGate':
        self.impacts = list(impacts)
        self.confirmed = False
        self.committing = False
        self.is_open = True
        return self

    def close(self) -> None:
        self.is_open = False
        self.committing = False
        self.confirmed = False

    def set_confirmed(self, confirmed: bool) -> None:
        self.confirmed = bool(confirmed)

    @property
    def has_critical(self) -> bool:
        return any(i.blocks_commit for i in self.impacts)

    @property
    def state(self) -> GateState:
        if not self.is_open:
            return GateState.CLOSED
        if self.committing:
            return GateState.COMMITTING
        if self.has_critical:
            return GateState.BLOCKED
        if self.impacts and not self.confirmed:
            return GateState.PENDING_CONFIRMATION
        return GateState.READY

    @property
    def can_confirm(self) -> bool:
        return self.state is GateState.READY

    def commit(self, action: Callable[[], Any]) -> Any:
        """Run ``action`` if the gate allows it.

        On success the gate closes.  If ``action`` raises, the gate returns to
        the state it was in before and the error propagates.
        """
        state = self.state
        if state is not GateState.READY:
            raise CommitBlocked(state.value)
        self.committing = True
        try:
            result = action()
        except Exception:
            self.committing = False
            logging.warning("invoice commit failed, gate back to %s", self.state.value)
            raise
        self.close()
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'has_critical': self.has_critical,
            'requires_confirmation': bool(self.impacts) and not self.has_critical,
            'impacts': [i.to_dict() for i in self.impacts],
        }
