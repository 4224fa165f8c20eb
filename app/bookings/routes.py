# app/bookings/routes.py

from flask import Blueprint, jsonify, request

from app.bookings.board import BookingBoard
from app.bookings.propagation import BookingPropagator
from app.errors import RecordNotFound
from app.notifications import collected
from app.record_store import get_store

bp = Blueprint('bookings', __name__)


def _propagator():
    store = get_store()
    return BookingPropagator(store, BookingBoard(store.find('bookings')))


def _failure(prop, message):
    status = 404 if isinstance(prop.last_error, RecordNotFound) else 502
    return jsonify(success=False, error=message, bookings=prop.board.bookings,
                   notifications=collected()), status


@bp.route('/')
def list_bookings():
    return jsonify(bookings=get_store().find('bookings'))


@bp.route('/<booking_id>', methods=['POST'])
def update_booking(booking_id):
    """
    Save an edited booking and push the change to its job and customer.
    Optional "final_cost" overrides the booking cost recorded as customer spend.
    Returns { success, bookings, steps, notifications }.
    """
    data = request.get_json() or {}
    prop = _propagator()
    ok = prop.update_booking({**data, 'id': booking_id}, cost=data.get('final_cost'))
    if not ok:
        return _failure(prop, 'Failed to update booking. Please try again.')
    return jsonify(success=True, bookings=prop.board.bookings, steps=prop.last_steps,
                   notifications=collected())


@bp.route('/<booking_id>/delete', methods=['POST'])
def delete_booking(booking_id):
    prop = _propagator()
    if not prop.delete_booking(booking_id):
        return _failure(prop, 'Failed to delete booking. Please try again.')
    return jsonify(success=True, bookings=prop.board.bookings, steps=prop.last_steps,
                   notifications=collected())
