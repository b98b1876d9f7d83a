"""
Bill Store: persists whole bill snapshots keyed by bill id.

A save replaces everything stored for the bill (people, items, charges,
host, name, location). There is no merging and no concurrency token, so the
last write wins.
"""
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from bill_splitting_logic import compute_total_extras, compute_total_item_cost
from extensions import db
from models import Bill, BillCharge, BillItem, BillPerson, ItemAssignment
from snapshot import BillSnapshot, GlobalCharge, Item, Person

logger = logging.getLogger(__name__)


class BillNotFound(LookupError):
    def __init__(self, bill_id):
        super().__init__(f"Bill {bill_id} not found")
        self.bill_id = bill_id


class BillStoreError(RuntimeError):
    """The store could not be reached or the write failed; safe to retry"""
    retryable = True


@dataclass
class StoredBill:
    id: str
    snapshot: BillSnapshot
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'data': self.snapshot.to_dict(),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


def _to_snapshot(bill: Bill) -> BillSnapshot:
    return BillSnapshot(
        people=[
            Person(p.person_id, p.name, p.sponsor_amount or 0.0, p.paid_amount or 0.0)
            for p in bill.people
        ],
        items=[
            Item(
                i.item_id, i.name, i.price, i.quantity or 1,
                {a.person_id: a.quantity for a in i.assignments},
            )
            for i in bill.items
        ],
        global_charges=[
            GlobalCharge(g.charge_id, g.name, g.amount, g.type)
            for g in bill.global_charges
        ],
        host_id=bill.host_id,
        name=bill.name or '',
        location=bill.location or '',
    )


def _display_name(bill: Bill) -> str:
    if bill.name:
        return bill.name
    if not bill.items:
        return 'Empty Bill'
    first = bill.items[0].name
    if len(bill.items) > 1:
        return f"{first} & {len(bill.items) - 1} more"
    return first


class BillStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def load(self, bill_id: str) -> StoredBill:
        try:
            bill = self.session.get(Bill, bill_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load bill %s: %s", bill_id, e)
            raise BillStoreError(f"Could not load bill {bill_id}") from e
        if bill is None:
            raise BillNotFound(bill_id)
        return StoredBill(bill.id, _to_snapshot(bill), bill.created_at, bill.updated_at)

    def save(self, bill_id: Optional[str], snapshot: BillSnapshot) -> str:
        """Replace the stored snapshot for ``bill_id`` (or create a new bill). Returns the id."""
        bill_id = bill_id or str(uuid.uuid4())
        try:
            bill = self.session.get(Bill, bill_id)
            if bill is None:
                bill = Bill(id=bill_id)
                self.session.add(bill)
                logger.info("Creating bill %s", bill_id)
            else:
                logger.info("Replacing bill %s", bill_id)

            bill.name = snapshot.name or None
            bill.location = snapshot.location or None
            bill.host_id = snapshot.host_id
            bill.updated_at = datetime.utcnow()

            bill.people = [
                BillPerson(
                    position=index,
                    person_id=p.id,
                    name=p.name,
                    sponsor_amount=float(p.sponsor_amount or 0),
                    paid_amount=float(p.paid_amount or 0),
                )
                for index, p in enumerate(snapshot.people)
            ]
            bill.items = [
                BillItem(
                    position=index,
                    item_id=i.id,
                    name=i.name,
                    price=float(i.price or 0),
                    quantity=i.quantity or 1,
                    assignments=[
                        ItemAssignment(person_id=person_id, quantity=float(qty))
                        for person_id, qty in i.assignments.items()
                    ],
                )
                for index, i in enumerate(snapshot.items)
            ]
            bill.global_charges = [
                BillCharge(
                    position=index,
                    charge_id=g.id,
                    name=g.name,
                    type=g.type,
                    amount=float(g.amount or 0),
                )
                for index, g in enumerate(snapshot.global_charges)
            ]

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to save bill %s: %s", bill_id, e)
            raise BillStoreError(f"Could not save bill {bill_id}") from e

        return bill_id

    def delete(self, bill_id: str) -> None:
        try:
            bill = self.session.get(Bill, bill_id)
            if bill is None:
                raise BillNotFound(bill_id)
            self.session.delete(bill)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to delete bill %s: %s", bill_id, e)
            raise BillStoreError(f"Could not delete bill {bill_id}") from e
        logger.info("Deleted bill %s", bill_id)

    def list_bills(self) -> List[Dict[str, Any]]:
        """Bill history, most recently updated first"""
        try:
            bills = self.session.query(Bill).order_by(Bill.updated_at.desc()).all()
        except SQLAlchemyError as e:
            logger.error("Failed to list bills: %s", e)
            raise BillStoreError("Could not list bills") from e

        history = []
        for bill in bills:
            snapshot = _to_snapshot(bill)
            total_item_cost = compute_total_item_cost(snapshot.items)
            total = total_item_cost + compute_total_extras(snapshot.global_charges, total_item_cost)
            history.append({
                'id': bill.id,
                'name': _display_name(bill),
                'location': bill.location,
                'total_amount': float(total),
                'created_at': bill.created_at.isoformat() if bill.created_at else None,
                'updated_at': bill.updated_at.isoformat() if bill.updated_at else None,
            })
        return history
