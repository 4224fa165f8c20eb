# app/cli.py
"""``flask workshop ...`` maintenance commands."""

import logging

import click
from flask import current_app
from flask.cli import AppGroup

from app.bookings.propagation import BookingPropagator
from app.bookings.steps import StepRunner
from app.inventory.utils import low_stock_bulk_items
from app.record_store import get_store

workshop_cli = AppGroup('workshop', help='Workshop consistency commands.')


@workshop_cli.command('low-stock')
@click.option('--limit', type=int, default=None, help='Number of items to list')
def low_stock_command(limit):
    """List bulk products below their minimum stock."""
    limit = limit or current_app.config['LOW_STOCK_REPORT_LIMIT']
    items = low_stock_bulk_items(get_store().find('inventory_items'), limit=limit)
    if not items:
        click.echo('All bulk products are well stocked')
        return
    for item in items:
        flag = 'CRITICAL' if item['critical'] else 'low'
        click.echo(
            f"{item['name']}: {item['stock_display']} "
            f"(min {item['min_display']}, {item['stock_percentage']}%) {flag}"
        )


@workshop_cli.command('sync-jobs')
@click.option('--status', multiple=True, default=('confirmed', 'completed'),
              help='Booking statuses to resync')
def sync_jobs_command(status):
    """Push every booking with the given statuses to its mirrored job."""
    store = get_store()
    prop = BookingPropagator(store)
    runner = StepRunner('sync-jobs')
    for booking in store.find('bookings'):
        if booking.get('status') not in status:
            continue
        runner.run(f"booking {booking['id']}", prop.sync_job, booking)
    synced = sum(1 for r in runner.results if r.ok and r.value)
    failed = sum(1 for r in runner.results if not r.ok)
    logging.info("sync-jobs checked=%s synced=%s failed=%s", len(runner.results), synced, failed)
    click.echo(f"checked={len(runner.results)} synced={synced} failed={failed}")
