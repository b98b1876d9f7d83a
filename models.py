from extensions import db
from datetime import datetime
import uuid


def _uuid():
    return str(uuid.uuid4())


class Bill(db.Model):
    __tablename__ = 'bills'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=True)
    location = db.Column(db.String(200), nullable=True)
    # Not a foreign key: the host may have been removed from the bill
    host_id = db.Column(db.String(64), nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    people = db.relationship(
        'BillPerson', backref='bill', cascade='all, delete-orphan',
        order_by='BillPerson.position', lazy=True
    )
    items = db.relationship(
        'BillItem', backref='bill', cascade='all, delete-orphan',
        order_by='BillItem.position', lazy=True
    )
    global_charges = db.relationship(
        'BillCharge', backref='bill', cascade='all, delete-orphan',
        order_by='BillCharge.position', lazy=True
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'host_id': self.host_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<Bill {self.id} - {self.name}>'


class BillPerson(db.Model):
    __tablename__ = 'bill_people'

    pk = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.String(36), db.ForeignKey('bills.id', ondelete='CASCADE'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    person_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    sponsor_amount = db.Column(db.Float, default=0.0)
    paid_amount = db.Column(db.Float, default=0.0)

    def __repr__(self):
        return f'<BillPerson {self.person_id} - {self.name}>'


class BillItem(db.Model):
    __tablename__ = 'bill_items'

    pk = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.String(36), db.ForeignKey('bills.id', ondelete='CASCADE'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    item_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    # Price of the whole line, not per unit
    price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, default=1)

    assignments = db.relationship(
        'ItemAssignment', backref='item', cascade='all, delete-orphan',
        order_by='ItemAssignment.pk', lazy=True
    )

    def __repr__(self):
        return f'<BillItem {self.item_id} - {self.name}>'


class ItemAssignment(db.Model):
    __tablename__ = 'item_assignments'

    pk = db.Column(db.Integer, primary_key=True)
    item_pk = db.Column(db.Integer, db.ForeignKey('bill_items.pk', ondelete='CASCADE'), nullable=False)
    # Dangling ids are kept as-is; the settlement engine ignores them
    person_id = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Float, default=1.0)

    __table_args__ = (db.UniqueConstraint('item_pk', 'person_id'),)


class BillCharge(db.Model):
    __tablename__ = 'bill_charges'

    pk = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.String(36), db.ForeignKey('bills.id', ondelete='CASCADE'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    charge_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(10), nullable=False, default='fixed')
    amount = db.Column(db.Float, nullable=False)

    def __repr__(self):
        return f'<BillCharge {self.name} {self.amount} {self.type}>'


class Receipt(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    # Extraction output (candidate items and charges)
    raw_text = db.Column(db.Text, nullable=True)
    raw_data = db.Column(db.JSON, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    image_path = db.Column(db.String(500), nullable=True)

    def to_dict(self):
        """Convert receipt to dictionary for JSON response"""
        return {
            'id': self.id,
            'raw_data': self.raw_data,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Receipt {self.id}>'
