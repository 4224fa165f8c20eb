import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.bookings.board import BookingBoard, RecordState
from app.bookings.steps import StepRunner


def make_board():
    return BookingBoard([
        {'id': 1, 'customer_name': 'Ann', 'status': 'pending'},
        {'id': 2, 'customer_name': 'Bob', 'status': 'confirmed'},
    ])


def test_apply_is_visible_immediately():
    board = make_board()
    board.apply({'id': '2', 'status': 'completed'})
    assert board.get(2) == {'id': 2, 'customer_name': 'Bob', 'status': 'completed'}
    assert board.state_of(2) is RecordState.PENDING
    assert board.state_of(1) is RecordState.COMMITTED


def test_rollback_restores_previous_version():
    board = make_board()
    board.apply({'id': 2, 'status': 'completed'})
    board.apply({'id': 2, 'status': 'cancelled'})
    board.rollback(2)
    assert board.get(2)['status'] == 'confirmed'
    assert board.state_of(2) is RecordState.ROLLED_BACK


def test_rollback_of_unknown_record_removes_it():
    board = make_board()
    board.apply({'id': 3, 'customer_name': 'Cy'})
    board.rollback(3)
    assert board.get(3) is None
    assert len(board.bookings) == 2


def test_remove_and_rollback():
    board = make_board()
    board.remove(1)
    assert board.get(1) is None
    board.rollback(1)
    assert board.get(1)['customer_name'] == 'Ann'


def test_replace_all_keeps_rolled_back_marker():
    board = make_board()
    board.apply({'id': 1, 'status': 'confirmed'})
    board.rollback(1)
    board.replace_all([{'id': 1, 'status': 'pending'}, {'id': 2, 'status': 'confirmed'}])
    assert board.state_of(1) is RecordState.ROLLED_BACK
    assert board.state_of(2) is RecordState.COMMITTED


def test_runner_isolates_failures_and_skips_dependents():
    runner = StepRunner('test')

    def boom():
        raise RuntimeError('boom')

    first = runner.run('first', boom)
    second = runner.run('second', lambda: 'fine')
    dependent = runner.run('dependent', lambda value: value, first.value, requires=first)
    assert runner.summary() == {'first': 'failed', 'second': 'ok', 'dependent': 'skipped'}
    assert isinstance(first.error, RuntimeError)
    assert second.value == 'fine'
    assert dependent.skipped
