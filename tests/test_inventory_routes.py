import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from app.cli import workshop_cli
from app.inventory.utils import low_stock_bulk_items, stock_percentage
from app.record_store import get_store


def setup_app():
    app = create_app('testing')
    with app.app_context():
        store = get_store()
        store.insert('inventory_items', {'name': 'Coolant', 'in_stock': 1, 'min_stock': 4,
                                         'price': 40.0, 'is_bulk_product': True,
                                         'bulk_quantity': 5, 'unit_of_measure': 'litre'})
        store.insert('inventory_items', {'name': 'Brake fluid', 'in_stock': 3, 'min_stock': 4,
                                         'price': 30.0, 'is_bulk_product': True,
                                         'bulk_quantity': 1, 'unit_of_measure': 'litre'})
        store.insert('inventory_items', {'name': 'Wiper blade', 'in_stock': 0, 'min_stock': 2,
                                         'price': 15.0})
        store.insert('inventory_items', {'name': 'Gear oil', 'in_stock': 8, 'min_stock': 2,
                                         'price': 80.0, 'is_bulk_product': True,
                                         'bulk_quantity': 20, 'unit_of_measure': 'litre'})
    return app


def test_list_items_includes_consumption_figures():
    client = setup_app().test_client()
    items = client.get('/inventory/').get_json()['items']
    gear = items[3]
    assert gear['available_units'] == 160
    assert gear['unit_price'] == 4.0
    assert gear['stock_display'] == '8 containers (160L)'
    assert items[2]['stock_display'] == '0 units'


def test_low_stock_only_lists_bulk_items_most_depleted_first():
    client = setup_app().test_client()
    items = client.get('/inventory/low-stock').get_json()['items']
    assert [i['name'] for i in items] == ['Coolant', 'Brake fluid']
    assert items[0]['critical'] is True
    assert items[1]['critical'] is False
    assert items[0]['stock_percentage'] == 25.0


def test_low_stock_limit():
    items = [
        {'name': str(n), 'is_bulk_product': True, 'bulk_quantity': 1, 'in_stock': n, 'min_stock': 10}
        for n in range(8)
    ]
    assert [i['name'] for i in low_stock_bulk_items(items, limit=3)] == ['0', '1', '2']
    assert stock_percentage(5, 0) == 100.0


def test_low_stock_rejects_bad_limit():
    client = setup_app().test_client()
    assert client.get('/inventory/low-stock?limit=abc').status_code == 400
    items = client.get('/inventory/low-stock?limit=1').get_json()['items']
    assert [i['name'] for i in items] == ['Coolant']


def test_stock_check():
    client = setup_app().test_client()
    ok = client.get('/inventory/4/stock-check?quantity=150').get_json()
    assert ok == {'is_valid': True, 'message': None}
    short = client.get('/inventory/4/stock-check?quantity=170').get_json()
    assert short['is_valid'] is False
    assert 'short by 10 litres' in short['message']
    assert client.get('/inventory/4/stock-check?quantity=abc').status_code == 400
    assert client.get('/inventory/42/stock-check?quantity=1').status_code == 404


def test_low_stock_command():
    app = setup_app()
    runner = app.test_cli_runner()
    result = runner.invoke(workshop_cli, ['low-stock'])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[0].startswith('Coolant: 1 container (5L)')
    assert lines[0].endswith('CRITICAL')


def test_sync_jobs_command():
    app = setup_app()
    with app.app_context():
        store = get_store()
        store.insert('bookings', {'customer_name': 'Ann', 'car': 'Mazda 3',
                                  'booking_date': '2026-10-21', 'duration': 60,
                                  'status': 'confirmed'})
        store.insert('bookings', {'customer_name': 'Bob', 'car': 'Golf',
                                  'booking_date': '2026-10-21', 'status': 'pending'})
        store.insert('jobs', {'customer': 'Ann', 'vehicle': 'Mazda 3', 'date': '2026-10-21',
                              'status': 'in_progress'})
    result = app.test_cli_runner().invoke(workshop_cli, ['sync-jobs'])
    assert result.exit_code == 0
    assert 'checked=1 synced=1 failed=0' in result.output
    with app.app_context():
        job = get_store().find('jobs')[0]
        assert job['status'] == 'pending'
        assert job['booking_id'] == 1
