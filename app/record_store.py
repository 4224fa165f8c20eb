# app/record_store.py
"""Record store used by the booking, invoice and inventory engines.

The engines only ever talk to the store through ``find``, ``insert``,
``update``, ``delete`` and ``call``.  Two backends are provided:

* :class:`SqlRecordStore` keeps records in the application database through
  Flask-SQLAlchemy.  This is the default and what the tests run against.
* :class:`RestRecordStore` talks to a PostgREST compatible HTTP endpoint
  (e.g. a hosted Postgres with a REST gateway) using ``requests``.

Records are plain dicts in both cases and ``find`` results are always ordered
by ascending id so callers picking "the first match" get a stable answer.
"""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import RecordNotFound, RecordStoreError


def utcnow_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


def coerce_id(value: Any) -> Any:
    """Accept ``7`` and ``"7"`` alike; leave non-numeric ids untouched."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _row_to_dict(obj) -> Dict[str, Any]:
    return {col: getattr(obj, col) for col in obj.__table__.columns.keys()}


TABLES: Dict[str, Any] = {}


def _register_models() -> None:
    from app import models as m

    TABLES.update(
        {
            "bookings": m.Booking,
            "jobs": m.Job,
            "customers": m.Customer,
            "customer_vehicles": m.CustomerVehicle,
            "customer_notes": m.CustomerNote,
            "technicians": m.Technician,
            "services": m.Service,
            "inventory_items": m.InventoryItem,
            "inventory_transactions": m.InventoryTransaction,
            "invoices": m.Invoice,
            "invoice_items": m.InvoiceItem,
        }
    )


class SqlRecordStore:
    """Record store backed by the Flask-SQLAlchemy session."""

    def __init__(self) -> None:
        if not TABLES:
            _register_models()
        self.procedures = {
            "record_customer_visit": self._record_customer_visit,
        }

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise RecordStoreError(f"unknown table {table!r}") from None

    def find(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        model = self._model(table)
        try:
            rows = model.query.filter_by(**(filters or {})).order_by(model.id).all()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RecordStoreError(f"find {table} failed: {e}") from e
        return [_row_to_dict(r) for r in rows]

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        columns = model.__table__.columns.keys()
        obj = model(**{k: v for k, v in record.items() if k in columns})
        try:
            db.session.add(obj)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RecordStoreError(f"insert into {table} failed: {e}") from e
        return _row_to_dict(obj)

    def update(self, table: str, record_id: Any, patch: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        obj = db.session.get(model, coerce_id(record_id))
        if obj is None:
            raise RecordNotFound(table, record_id)
        for col in model.__table__.columns.keys():
            if col == "id":
                continue
            if col in patch:
                setattr(obj, col, patch[col])
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RecordStoreError(f"update of {table} {record_id!r} failed: {e}") from e
        return _row_to_dict(obj)

    def delete(self, table: str, record_id: Any) -> None:
        model = self._model(table)
        obj = db.session.get(model, coerce_id(record_id))
        if obj is None:
            raise RecordNotFound(table, record_id)
        try:
            db.session.delete(obj)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RecordStoreError(f"delete of {table} {record_id!r} failed: {e}") from e

    def call(self, procedure: str, params: Dict[str, Any]) -> Any:
        try:
            fn = self.procedures[procedure]
        except KeyError:
            raise RecordStoreError(f"unknown procedure {procedure!r}") from None
        return fn(**params)

    def _record_customer_visit(self, customer_id: Any, amount: float, visited_at: str | None = None) -> Dict[str, Any]:
        """Bump last visit, visit count and spend in a single commit."""
        model = self._model("customers")
        obj = db.session.get(model, coerce_id(customer_id))
        if obj is None:
            raise RecordNotFound("customers", customer_id)
        obj.last_visit = visited_at or utcnow_iso()
        obj.visit_count = (obj.visit_count or 0) + 1
        obj.total_spend = (obj.total_spend or 0.0) + float(amount)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RecordStoreError(f"record_customer_visit failed: {e}") from e
        return _row_to_dict(obj)


class RestRecordStore:
    """Record store speaking the PostgREST dialect over HTTP.

    Reads are retried with exponential backoff on 429/5xx.  Writes are sent
    exactly once; retrying them could duplicate notes or spend.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: int = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @staticmethod
    def _eq(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for key, value in (filters or {}).items():
            params[key] = "is.null" if value is None else f"eq.{value}"
        return params

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        start = time.monotonic()
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RecordStoreError(f"{method} {path} failed: {e}") from e
        logging.info(
            "store %s %s %s %.1fms", method, path, r.status_code, (time.monotonic() - start) * 1000
        )
        return r

    def _raise_for(self, r: requests.Response, what: str) -> None:
        if r.status_code >= 400:
            raise RecordStoreError(f"{what} rejected ({r.status_code}): {r.text[:200]}")

    def find(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        params = self._eq(filters)
        params["order"] = "id.asc"
        tries = 0
        while True:
            try:
                r = self._send("GET", f"/{table}", params=params)
            except RecordStoreError:
                tries += 1
                if tries > 3:
                    raise
                time.sleep(min(2 ** tries, 30) + random.random())
                continue
            if r.status_code == 429 or r.status_code >= 500:
                tries += 1
                if tries > 3:
                    self._raise_for(r, f"find {table}")
                time.sleep(min(2 ** tries, 30) + random.random())
                continue
            self._raise_for(r, f"find {table}")
            return r.json()

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        r = self._send(
            "POST", f"/{table}", json=record, headers={"Prefer": "return=representation"}
        )
        self._raise_for(r, f"insert into {table}")
        rows = r.json()
        return rows[0] if isinstance(rows, list) and rows else rows

    def update(self, table: str, record_id: Any, patch: Dict[str, Any]) -> Dict[str, Any]:
        r = self._send(
            "PATCH",
            f"/{table}",
            params={"id": f"eq.{coerce_id(record_id)}"},
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        self._raise_for(r, f"update of {table} {record_id!r}")
        rows = r.json()
        if not rows:
            raise RecordNotFound(table, record_id)
        return rows[0]

    def delete(self, table: str, record_id: Any) -> None:
        r = self._send(
            "DELETE",
            f"/{table}",
            params={"id": f"eq.{coerce_id(record_id)}"},
            headers={"Prefer": "return=representation"},
        )
        self._raise_for(r, f"delete of {table} {record_id!r}")
        if not r.json():
            raise RecordNotFound(table, record_id)

    def call(self, procedure: str, params: Dict[str, Any]) -> Any:
        r = self._send("POST", f"/rpc/{procedure}", json=params)
        self._raise_for(r, f"procedure {procedure}")
        return r.json() if r.content else None


def build_record_store(app):
    backend = app.config.get("RECORD_STORE_BACKEND", "sql")
    if backend == "rest":
        url = app.config.get("RECORD_STORE_URL")
        if not url:
            raise RuntimeError("RECORD_STORE_URL must be set for the rest backend")
        return RestRecordStore(
            url,
            api_key=app.config.get("RECORD_STORE_API_KEY", ""),
            timeout=app.config.get("RECORD_STORE_TIMEOUT", 10),
        )
    return SqlRecordStore()


def get_store():
    from flask import current_app

    return current_app.extensions["record_store"]
