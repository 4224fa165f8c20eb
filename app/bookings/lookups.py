# app/bookings/lookups.py
"""Reference-data lookups used while propagating a booking."""

from typing import Optional

from app.record_store import coerce_id


class TechnicianDirectory:
    def __init__(self, store) -> None:
        self.store = store

    def find_technician_name(self, technician_id) -> Optional[str]:
        if technician_id in (None, ''):
            return None
        rows = self.store.find('technicians', {'id': coerce_id(technician_id)})
        if not rows:
            return None
        return rows[0].get('name') or None


def find_service_price(store, service_id) -> Optional[float]:
    if service_id in (None, ''):
        return None
    rows = store.find('services', {'id': coerce_id(service_id)})
    if not rows or rows[0].get('price') is None:
        return None
    return float(rows[0]['price'])
