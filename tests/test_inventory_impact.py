import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from app.errors import CommitBlocked, ValidationError
from app.inventory.impact import (
    GateState,
    ImpactStatus,
    InventoryImpact,
    InvoiceCommitGate,
    build_impacts,
    classify_stock,
)
from app.inventory.units import Quantity


@pytest.mark.parametrize('after,minimum,expected', [
    (-0.5, 10, ImpactStatus.CRITICAL),
    (-1, 0, ImpactStatus.CRITICAL),
    (9, 10, ImpactStatus.LOW),
    (10, 10, ImpactStatus.WARNING),   # equal to minimum is not "low"
    (14.9, 10, ImpactStatus.WARNING),
    (15, 10, ImpactStatus.NORMAL),
    (0, 0, ImpactStatus.NORMAL),
])
def test_classification_boundaries(after, minimum, expected):
    assert classify_stock(after, minimum) is expected


def test_bulk_item_scenario_is_low():
    impact = InventoryImpact(
        item_id=1, item_name='Engine oil 5W-30', current_stock=10, quantity_used=150,
        min_stock=Quantity.consumption(60), is_bulk_product=True, bulk_quantity=20,
        unit_of_measure='litre',
    )
    assert impact.current_stock == 200
    assert impact.after_stock == 50
    assert impact.status is ImpactStatus.LOW
    assert not impact.blocks_commit


def test_min_stock_in_containers_is_converted():
    impact = InventoryImpact(1, 'Coolant', current_stock=10, quantity_used=150, min_stock=3,
                             is_bulk_product=True, bulk_quantity=20, unit_of_measure='litre')
    assert impact.min_stock == 60
    data = impact.to_dict()
    assert data['status'] == 'low'
    assert data['current_display'] == '10 containers (200L)'
    assert data['after_display'] == '2.5 containers (50L)'
    assert data['used_display'] == '150 litres'


def test_non_bulk_impact():
    impact = InventoryImpact(2, 'Oil filter', current_stock=4, quantity_used=5, min_stock=2)
    assert impact.after_stock == -1
    assert impact.status is ImpactStatus.CRITICAL
    assert impact.to_dict()['after_display'] == '-1 units'


def test_build_impacts_sums_lines_per_item():
    items = {
        1: {'id': 1, 'name': 'Oil', 'in_stock': 10, 'min_stock': 2,
            'is_bulk_product': True, 'bulk_quantity': 20, 'unit_of_measure': 'litre'},
        2: {'id': 2, 'name': 'Filter', 'in_stock': 6, 'min_stock': 1},
    }
    lines = [
        {'description': 'Labour', 'quantity': 2},
        {'description': 'Oil', 'quantity': 5, 'inventory_item_id': 1},
        {'description': 'Filter', 'quantity': 1, 'inventory_item_id': 2},
        {'description': 'Oil top-up', 'quantity': 1.5, 'inventory_item_id': 1},
    ]
    impacts = build_impacts(lines, items)
    assert [i.item_id for i in impacts] == [1, 2]
    assert impacts[0].quantity_used == 6.5
    assert impacts[0].after_stock == 193.5


def test_build_impacts_rejects_unknown_item():
    with pytest.raises(ValidationError):
        build_impacts([{'description': 'x', 'quantity': 1, 'inventory_item_id': 9}], {})


def _impact(after_ok=True):
    used = 1 if after_ok else 50
    return InventoryImpact(1, 'Filter', current_stock=10, quantity_used=used, min_stock=2)


def test_gate_ready_without_impacts():
    gate = InvoiceCommitGate().open([])
    assert gate.state is GateState.READY
    assert gate.can_confirm


def test_gate_needs_confirmation():
    gate = InvoiceCommitGate().open([_impact()])
    assert gate.state is GateState.PENDING_CONFIRMATION
    assert not gate.can_confirm
    gate.set_confirmed(True)
    assert gate.state is GateState.READY


def test_gate_blocked_by_critical_regardless_of_checkbox():
    gate = InvoiceCommitGate().open([_impact(), _impact(after_ok=False)])
    gate.set_confirmed(True)
    assert gate.state is GateState.BLOCKED
    assert not gate.can_confirm
    with pytest.raises(CommitBlocked):
        gate.commit(lambda: 'never')


def test_reopening_clears_confirmation():
    gate = InvoiceCommitGate().open([_impact()])
    gate.set_confirmed(True)
    gate.close()
    gate.open([_impact()])
    assert gate.confirmed is False
    assert gate.state is GateState.PENDING_CONFIRMATION


def test_commit_success_closes_gate():
    gate = InvoiceCommitGate().open([_impact()])
    gate.set_confirmed(True)
    seen = []

    def action():
        seen.append(gate.state)
        return 'created'

    assert gate.commit(action) == 'created'
    assert seen == [GateState.COMMITTING]
    assert gate.state is GateState.CLOSED


def test_commit_failure_restores_state():
    gate = InvoiceCommitGate().open([_impact()])
    gate.set_confirmed(True)

    def action():
        raise RuntimeError('store down')

    with pytest.raises(RuntimeError):
        gate.commit(action)
    assert gate.state is GateState.READY
    assert gate.is_open
