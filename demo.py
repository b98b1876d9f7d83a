"""
Demo bill used to try the app without typing in a receipt
"""
import logging

import click
from flask.cli import with_appcontext

from bill_store import BillStore
from snapshot import BillSnapshot

logger = logging.getLogger(__name__)


def build_demo_snapshot():
    """Five friends at a BBQ: shared sets, a partly claimed side, a sponsor and a discount"""
    bill = BillSnapshot(name='Friday Night BBQ @ Gyu-Kaku', location='District 1, HCMC')

    alex = bill.add_person('Alex (Host)', paid_amount=1800000)
    bob = bill.add_person('Bob', paid_amount=200000)
    charlie = bill.add_person('Charlie', sponsor_amount=500000)
    david = bill.add_person('David')
    eve = bill.add_person('Eve')
    bill.set_host(alex.id)

    wagyu = bill.add_item('Wagyu Party Set', 1200000)
    for person in (alex, bob, charlie, david, eve):
        bill.set_assignment(wagyu.id, person.id, 1)

    beer = bill.add_item('Tiger Beer Tower', 450000)
    for person in (alex, bob, david):
        bill.set_assignment(beer.id, person.id, 1)

    corn = bill.add_item('Grilled Corn', 120000, quantity=3)
    bill.set_assignment(corn.id, eve.id, 2)
    bill.set_assignment(corn.id, david.id, 1)

    kimchi = bill.add_item('Special Kimchi', 80000, quantity=2)
    bill.set_assignment(kimchi.id, charlie.id, 1)
    bill.set_assignment(kimchi.id, eve.id, 1)

    water = bill.add_item('Mineral Water', 60000, quantity=3)
    for person in (bob, alex, charlie):
        bill.set_assignment(water.id, person.id, 1)

    bill.add_global_charge('VAT', 10, 'percent')
    bill.add_global_charge('Service Charge', 5, 'percent')
    bill.add_global_charge('Evening Discount', -100000, 'fixed')
    return bill


@click.command('seed-demo')
@click.option('--bill-id', default=None, help='Overwrite this bill instead of creating a new one.')
@with_appcontext
def seed_demo_command(bill_id):
    """Store the demo bill and print its id."""
    bill_id = BillStore().save(bill_id, build_demo_snapshot())
    logger.info("Seeded demo bill %s", bill_id)
    click.echo(bill_id)
