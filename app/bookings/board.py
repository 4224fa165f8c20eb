# app/bookings/board.py
"""In-memory booking list with per-record optimistic state."""

from __future__ import annotations

import enum
from typing import Any, Dict, Iterable, List, Optional


class RecordState(str, enum.Enum):
    COMMITTED = 'committed'
    PENDING = 'pending'
    ROLLED_BACK = 'rolled_back'


def _key(record_id: Any) -> str:
    return str(record_id).strip()


class BookingBoard:
    """The booking list a client is looking at.

    Edits are applied immediately and tracked as ``pending`` together with
    the version they replaced, so undoing a failed edit restores that version
    instead of depending on a re-fetch.
    """

    def __init__(self, bookings: Iterable[Dict[str, Any]] = ()) -> None:
        self._rows: List[Dict[str, Any]] = []
        self._states: Dict[str, RecordState] = {}
        self._snapshots: Dict[str, Optional[Dict[str, Any]]] = {}
        self.replace_all(bookings)

    @property
    def bookings(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._rows]

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        key = _key(record_id)
        for row in self._rows:
            if _key(row.get('id')) == key:
                return dict(row)
        return None

    def state_of(self, record_id: Any) -> Optional[RecordState]:
        return self._states.get(_key(record_id))

    def _index(self, key: str) -> Optional[int]:
        for i, row in enumerate(self._rows):
            if _key(row.get('id')) == key:
                return i
        return None

    def apply(self, booking: Dict[str, Any]) -> None:
        key = _key(booking['id'])
        idx = self._index(key)
        if key not in self._snapshots:
            self._snapshots[key] = dict(self._rows[idx]) if idx is not None else None
        if idx is None:
            self._rows.append(dict(booking))
        else:
            self._rows[idx] = {**self._rows[idx], **booking, 'id': self._rows[idx]['id']}
        self._states[key] = RecordState.PENDING

    def remove(self, record_id: Any) -> None:
        key = _key(record_id)
        idx = self._index(key)
        if idx is None:
            return
        if key not in self._snapshots:
            self._snapshots[key] = dict(self._rows[idx])
        del self._rows[idx]
        self._states[key] = RecordState.PENDING

    def commit(self, record_id: Any) -> None:
        key = _key(record_id)
        self._snapshots.pop(key, None)
        self._states[key] = RecordState.COMMITTED

    def rollback(self, record_id: Any) -> None:
        key = _key(record_id)
        if key not in self._snapshots:
            return
        previous = self._snapshots.pop(key)
        idx = self._index(key)
        if previous is None:
            if idx is not None:
                del self._rows[idx]
        elif idx is None:
            self._rows.append(previous)
        else:
            self._rows[idx] = previous
        self._states[key] = RecordState.ROLLED_BACK

    def replace_all(self, bookings: Iterable[Dict[str, Any]]) -> None:
        """Take the store's list as the truth; rolled-back markers survive."""
        self._rows = [dict(b) for b in bookings]
        self._snapshots.clear()
        rolled_back = {k for k, s in self._states.items() if s is RecordState.ROLLED_BACK}
        self._states = {
            _key(r.get('id')): (
                RecordState.ROLLED_BACK if _key(r.get('id')) in rolled_back
                else RecordState.COMMITTED
            )
            for r in self._rows
        }
