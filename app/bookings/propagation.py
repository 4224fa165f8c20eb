# app/bookings/propagation.py
"""Keep jobs and customers in line with an edited booking.

Bookings, technician jobs and customers are separate records without
foreign keys between them.  After the booking itself has been written, its
changes are pushed to the matching job and customer on a best-effort basis:

1. apply the edit to the client's booking board;
2. write the booking (the only step allowed to fail the operation);
3. sync the mirrored job;
4. look up the customer by phone number and update their visit record;
5. add the booking's vehicle to that customer if it is new;
6. copy the booking notes to the customer's notes;
7. re-read the booking list.

Steps 3-6 run through :class:`~app.bookings.steps.StepRunner`.  The visit
record, vehicle and notes need only the phone lookup, so a failed visit
update still lets 5 and 6 run.  Nothing is retried and there is no version
check on the booking, so concurrent edits resolve as last write wins.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from app.bookings.board import BookingBoard
from app.bookings.lookups import TechnicianDirectory, find_service_price
from app.bookings.steps import StepRunner
from app.errors import RecordStoreError, ValidationError
from app.notifications import ERROR, SUCCESS, notify
from app.record_store import coerce_id, utcnow_iso

BOOKING_STATUSES = ('pending', 'confirmed', 'cancelled', 'completed')

# bookings and jobs use different status vocabularies
JOB_STATUS_FOR_BOOKING = {
    'confirmed': 'pending',
    'completed': 'completed',
    'cancelled': 'cancelled',
}

UNASSIGNED = 'Unassigned'

BOOKING_FIELDS = (
    'customer_name', 'customer_phone', 'customer_email', 'service',
    'booking_date', 'booking_time', 'duration', 'car', 'status',
    'technician_id', 'service_id', 'bay_id', 'notes', 'cost',
)


def job_status_for(booking_status: str) -> str:
    return JOB_STATUS_FOR_BOOKING.get(booking_status, 'pending')


def _optional_id(value):
    return coerce_id(value) if value not in (None, '') else None


def normalise_booking(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an edited booking before anything is written."""
    if data.get('id') in (None, ''):
        raise ValidationError('Booking id is required')
    name = (data.get('customer_name') or '').strip()
    if not name:
        raise ValidationError('Customer name is required')
    status = data.get('status') or 'pending'
    if status not in BOOKING_STATUSES:
        raise ValidationError(f'Unknown booking status {status!r}')
    try:
        duration = data.get('duration')
        duration = int(duration) if duration not in (None, '') else 60
        cost = data.get('cost')
        cost = float(cost) if cost not in (None, '') else None
    except (TypeError, ValueError):
        raise ValidationError('Duration and cost must be numbers') from None

    booking = {k: data.get(k) for k in BOOKING_FIELDS}
    booking.update(
        id=coerce_id(data['id']),
        customer_name=name,
        status=status,
        duration=duration,
        cost=cost,
        technician_id=_optional_id(data.get('technician_id')),
        service_id=_optional_id(data.get('service_id')),
        bay_id=_optional_id(data.get('bay_id')),
    )
    return booking


def booking_patch(booking: Dict[str, Any], cost: Optional[float]) -> Dict[str, Any]:
    return {
        'customer_name': booking['customer_name'],
        'customer_phone': booking.get('customer_phone'),
        'customer_email': booking.get('customer_email'),
        'service': booking.get('service'),
        'booking_time': booking.get('booking_time'),
        'duration': booking.get('duration'),
        'car': booking.get('car'),
        'status': booking['status'],
        'booking_date': booking.get('booking_date'),
        'technician_id': booking.get('technician_id'),
        'service_id': booking.get('service_id'),
        'bay_id': booking.get('bay_id'),
        'notes': booking.get('notes') or None,
        'cost': cost if cost is not None else booking.get('cost'),
    }


class BookingPropagator:
    def __init__(self, store, board: Optional[BookingBoard] = None,
                 technicians: Optional[TechnicianDirectory] = None,
                 notifier: Callable[[str, str, str], None] = notify,
                 clock: Callable[[], str] = utcnow_iso) -> None:
        self.store = store
        self.board = board if board is not None else BookingBoard()
        self.technicians = technicians or TechnicianDirectory(store)
        self.notify = notifier
        self.clock = clock
        self.last_error: Optional[BaseException] = None
        self.last_steps: Dict[str, str] = {}

    # -- entry points -------------------------------------------------------

    def update_booking(self, data: Dict[str, Any], cost: Optional[float] = None) -> bool:
        """Write an edited booking and propagate it.  Returns ``False`` only
        when the booking itself could not be written."""
        booking = normalise_booking(data)
        if cost not in (None, ''):
            try:
                cost = float(cost)
            except (TypeError, ValueError):
                raise ValidationError('Cost must be a number') from None
        else:
            cost = None
        booking_id = booking['id']
        self.last_error = None
        self.board.apply(booking)

        if cost is None:
            cost = self._booking_cost(booking)

        try:
            self.store.update('bookings', booking_id, booking_patch(booking, cost))
        except RecordStoreError as e:
            logging.error("booking %s update failed: %s", booking_id, e)
            self.last_error = e
            self.board.rollback(booking_id)
            self.refresh()
            self.notify(ERROR, 'Error', 'Failed to update booking. Please try again.')
            return False
        self.board.commit(booking_id)

        runner = StepRunner(f"booking {booking_id}")
        runner.run('job_sync', self.sync_job, booking)
        found = runner.run('customer_lookup', self.find_customer, booking)
        runner.run('customer', self.reconcile_customer, found.value, booking, cost,
                   requires=found)
        runner.run('vehicle', self.ensure_vehicle, found.value, booking, requires=found)
        runner.run('notes', self.add_booking_note, found.value, booking, requires=found)
        self.last_steps = runner.summary()

        self.notify(SUCCESS, 'Booking Updated',
                    f"{booking['customer_name']}'s booking has been updated.")
        self.refresh()
        return True

    def delete_booking(self, booking_id: Any) -> bool:
        booking_id = coerce_id(booking_id)
        self.last_error = None
        try:
            rows = self.store.find('bookings', {'id': booking_id})
            booking = rows[0] if rows else self.board.get(booking_id)
            self.board.remove(booking_id)
            self.store.delete('bookings', booking_id)
        except RecordStoreError as e:
            logging.error("booking %s delete failed: %s", booking_id, e)
            self.last_error = e
            self.board.rollback(booking_id)
            self.refresh()
            self.notify(ERROR, 'Error', 'Failed to delete booking. Please try again.')
            return False
        self.board.commit(booking_id)

        runner = StepRunner(f"booking {booking_id}")
        if booking:
            runner.run('job_cleanup', self.delete_jobs, booking)
        self.last_steps = runner.summary()

        self.notify(SUCCESS, 'Booking Deleted', 'The booking has been removed.')
        self.refresh()
        return True

    def refresh(self) -> None:
        try:
            self.board.replace_all(self.store.find('bookings'))
        except RecordStoreError as e:
            logging.exception("booking refresh failed: %s", e)

    # -- steps --------------------------------------------------------------

    def _booking_cost(self, booking: Dict[str, Any]) -> Optional[float]:
        if booking.get('cost') is not None:
            return booking['cost']
        if booking['status'] != 'completed' or booking.get('service_id') is None:
            return None
        try:
            price = find_service_price(self.store, booking['service_id'])
        except RecordStoreError as e:
            logging.warning("service price lookup for booking %s failed: %s", booking['id'], e)
            return None
        if price is not None:
            logging.info("using service price %s for completed booking %s", price, booking['id'])
        return price

    def _technician_name(self, technician_id) -> str:
        try:
            return self.technicians.find_technician_name(technician_id) or UNASSIGNED
        except RecordStoreError as e:
            logging.warning("technician lookup %s failed: %s", technician_id, e)
            return UNASSIGNED

    def find_job(self, booking: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Job keyed to the booking, else the first unkeyed job with the same
        customer, vehicle and date."""
        keyed = self.store.find('jobs', {'booking_id': booking['id']})
        if keyed:
            return keyed[0]
        candidates = self.store.find('jobs', {
            'customer': booking['customer_name'],
            'vehicle': booking.get('car'),
            'date': booking.get('booking_date'),
            'booking_id': None,
        })
        if len(candidates) > 1:
            logging.warning(
                "booking %s matches %d unkeyed jobs, using job %s",
                booking['id'], len(candidates), candidates[0]['id'],
            )
        return candidates[0] if candidates else None

    def sync_job(self, booking: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        job = self.find_job(booking)
        if job is None:
            logging.info("no job mirrors booking %s", booking['id'])
            return None
        return self.store.update('jobs', job['id'], {
            'booking_id': booking['id'],
            'customer': booking['customer_name'],
            'vehicle': booking.get('car'),
            'service': booking.get('service'),
            'status': job_status_for(booking['status']),
            'assigned_to': self._technician_name(booking.get('technician_id')),
            'date': booking.get('booking_date'),
            'time_estimate': f"{booking.get('duration')} minutes",
        })

    def find_customer(self, booking: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        phone = (booking.get('customer_phone') or '').strip()
        if not phone:
            return None
        rows = self.store.find('customers', {'phone': phone})
        if not rows:
            logging.info("no customer with phone %s for booking %s", phone, booking['id'])
            return None
        return rows[0]

    def reconcile_customer(self, customer: Dict[str, Any], booking: Dict[str, Any],
                           cost: Optional[float]) -> Dict[str, Any]:
        now = self.clock()

        patch: Dict[str, Any] = {'last_visit': now}
        email = (booking.get('customer_email') or '').strip()
        if email and not (customer.get('email') or '').strip():
            patch['email'] = email

        if booking['status'] == 'completed' and cost:
            try:
                recorded = self.store.call('record_customer_visit', {
                    'customer_id': customer['id'],
                    'amount': cost,
                    'visited_at': now,
                })
                # set-returning procedures come back as a list of rows
                if isinstance(recorded, list):
                    recorded = recorded[0] if recorded else None
                customer = recorded or customer
                del patch['last_visit']
            except RecordStoreError as e:
                logging.warning(
                    "recording visit for customer %s failed, updating last visit only: %s",
                    customer['id'], e,
                )

        if patch:
            customer = self.store.update('customers', customer['id'], patch)
        return customer

    def ensure_vehicle(self, customer: Dict[str, Any],
                       booking: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        # exact match only: "Ford Focus" and "ford focus" are two vehicles
        vehicle = booking.get('car')
        if not vehicle:
            return None
        existing = self.store.find('customer_vehicles', {
            'customer_id': customer['id'],
            'vehicle_info': vehicle,
        })
        if existing:
            return existing[0]
        return self.store.insert('customer_vehicles', {
            'customer_id': customer['id'],
            'vehicle_info': vehicle,
        })

    def add_booking_note(self, customer: Dict[str, Any],
                         booking: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        notes = (booking.get('notes') or '').strip()
        if not notes:
            return None
        prefix = f"Booking note ({booking.get('booking_date')}, {booking.get('service')}): "
        return self.store.insert('customer_notes', {
            'customer_id': customer['id'],
            'note': prefix + notes,
            'created_by': 'System',
            'created_at': self.clock(),
        })

    def delete_jobs(self, booking: Dict[str, Any]) -> int:
        jobs = self.store.find('jobs', {'booking_id': booking['id']})
        if not jobs:
            jobs = self.store.find('jobs', {
                'customer': booking.get('customer_name'),
                'date': booking.get('booking_date'),
                'booking_id': None,
            })
        deleted = 0
        for job in jobs:
            try:
                self.store.delete('jobs', job['id'])
                deleted += 1
            except RecordStoreError as e:
                logging.error("deleting job %s failed: %s", job['id'], e)
        return deleted
