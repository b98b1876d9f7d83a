"""
Bill snapshot data model and editing operations
"""
from __future__ import annotations
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CHARGE_TYPES = ('fixed', 'percent')


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Person:
    """Someone at the table"""
    id: str
    name: str
    sponsor_amount: float = 0.0  # contribution toward the bill, independent of consumption
    paid_amount: float = 0.0  # cash actually handed over


@dataclass
class Item:
    """Receipt line; price covers the whole quantity"""
    id: str
    name: str
    price: float
    quantity: int = 1
    assignments: Dict[str, float] = field(default_factory=dict)  # person id -> claimed qty


@dataclass
class GlobalCharge:
    """Tax, service charge or discount applied to the whole bill"""
    id: str
    name: str
    amount: float
    type: str = 'fixed'  # 'fixed' or 'percent'


@dataclass
class BillSnapshot:
    people: List[Person] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    global_charges: List[GlobalCharge] = field(default_factory=list)
    host_id: Optional[str] = None
    name: str = ''
    location: str = ''

    # --- people ---

    def add_person(self, name: str, sponsor_amount: float = 0.0, paid_amount: float = 0.0) -> Person:
        person = Person(new_id(), name, sponsor_amount, paid_amount)
        self.people.append(person)
        return person

    def get_person(self, person_id: str) -> Person:
        for person in self.people:
            if person.id == person_id:
                return person
        raise KeyError(f"Person {person_id} not found")

    def update_person(self, person_id: str, **fields) -> Person:
        person = self.get_person(person_id)
        for key, value in fields.items():
            if key == 'id' or not hasattr(person, key):
                raise AttributeError(f"Cannot update person field '{key}'")
            setattr(person, key, value)
        return person

    def remove_person(self, person_id: str) -> None:
        """Remove a person along with their claims; clears the host if it was them"""
        person = self.get_person(person_id)
        self.people.remove(person)
        for item in self.items:
            item.assignments.pop(person_id, None)
        if self.host_id == person_id:
            self.host_id = None

    # --- items ---

    def add_item(self, name: str, price: float, quantity: int = 1) -> Item:
        if quantity is None or int(quantity) <= 0:
            raise ValueError("Item quantity must be a positive integer")
        item = Item(new_id(), name, price, int(quantity))
        self.items.append(item)
        return item

    def get_item(self, item_id: str) -> Item:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(f"Item {item_id} not found")

    def update_item(self, item_id: str, **fields) -> Item:
        item = self.get_item(item_id)
        if 'quantity' in fields:
            quantity = fields['quantity']
            if quantity is None or int(quantity) <= 0:
                raise ValueError("Item quantity must be a positive integer")
            fields['quantity'] = int(quantity)
        for key, value in fields.items():
            if key == 'id' or not hasattr(item, key):
                raise AttributeError(f"Cannot update item field '{key}'")
            setattr(item, key, value)
        return item

    def remove_item(self, item_id: str) -> None:
        self.items.remove(self.get_item(item_id))

    def set_assignment(self, item_id: str, person_id: str, quantity: float) -> None:
        """Set how much of an item a person claims; zero or less unclaims"""
        item = self.get_item(item_id)
        self.get_person(person_id)
        if quantity is None or quantity <= 0:
            item.assignments.pop(person_id, None)
        else:
            item.assignments[person_id] = quantity

    def toggle_assignment(self, item_id: str, person_id: str) -> bool:
        """Claim one unit, or drop an existing claim. Returns True if now claimed."""
        item = self.get_item(item_id)
        if item.assignments.get(person_id, 0) > 0:
            self.set_assignment(item_id, person_id, 0)
            return False
        self.set_assignment(item_id, person_id, 1)
        return True

    # --- global charges ---

    def add_global_charge(self, name: str, amount: float, type: str = 'fixed') -> GlobalCharge:
        if type not in CHARGE_TYPES:
            raise ValueError(f"Unknown charge type: {type}")
        charge = GlobalCharge(new_id(), name, amount, type)
        self.global_charges.append(charge)
        return charge

    def get_global_charge(self, charge_id: str) -> GlobalCharge:
        for charge in self.global_charges:
            if charge.id == charge_id:
                return charge
        raise KeyError(f"Charge {charge_id} not found")

    def update_global_charge(self, charge_id: str, **fields) -> GlobalCharge:
        charge = self.get_global_charge(charge_id)
        if 'type' in fields and fields['type'] not in CHARGE_TYPES:
            raise ValueError(f"Unknown charge type: {fields['type']}")
        for key, value in fields.items():
            if key == 'id' or not hasattr(charge, key):
                raise AttributeError(f"Cannot update charge field '{key}'")
            setattr(charge, key, value)
        return charge

    def remove_global_charge(self, charge_id: str) -> None:
        self.global_charges.remove(self.get_global_charge(charge_id))

    # --- bill ---

    def set_host(self, person_id: Optional[str]) -> None:
        if person_id is not None:
            self.get_person(person_id)
        self.host_id = person_id

    def reset(self) -> None:
        self.people = []
        self.items = []
        self.global_charges = []
        self.host_id = None
        self.name = ''
        self.location = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'location': self.location,
            'host_id': self.host_id,
            'people': [
                {'id': p.id, 'name': p.name, 'sponsor_amount': p.sponsor_amount, 'paid_amount': p.paid_amount}
                for p in self.people
            ],
            'items': [
                {'id': i.id, 'name': i.name, 'price': i.price, 'quantity': i.quantity,
                 'assignments': dict(i.assignments)}
                for i in self.items
            ],
            'global_charges': [
                {'id': g.id, 'name': g.name, 'amount': g.amount, 'type': g.type}
                for g in self.global_charges
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BillSnapshot':
        """Build a snapshot from its JSON shape. Raises ValueError on malformed input."""
        if not isinstance(data, dict):
            raise ValueError("Bill data must be an object")

        people_data = _list_field(data, 'people')
        items_data = _list_field(data, 'items')
        charges_data = _list_field(data, 'global_charges')

        people = []
        for p in people_data:
            people.append(Person(
                id=_entry_id(p),
                name=str(p.get('name') or ''),
                sponsor_amount=_number(p.get('sponsor_amount'), 'sponsor_amount', non_negative=True),
                paid_amount=_number(p.get('paid_amount'), 'paid_amount', non_negative=True),
            ))

        items = []
        for i in items_data:
            quantity = i.get('quantity')
            quantity = 1 if quantity is None else quantity
            if not isinstance(quantity, (int, float)) or isinstance(quantity, bool) \
                    or quantity <= 0 or int(quantity) != quantity:
                raise ValueError(f"Invalid item quantity: {quantity!r}")
            assignments = i.get('assignments') or {}
            if not isinstance(assignments, dict):
                raise ValueError("Item assignments must be an object")
            items.append(Item(
                id=_entry_id(i),
                name=str(i.get('name') or ''),
                price=_number(i.get('price'), 'price', non_negative=True),
                quantity=int(quantity),
                assignments={str(k): _number(v, 'assignment', non_negative=True) for k, v in assignments.items()},
            ))

        charges = []
        for g in charges_data:
            charge_type = g.get('type', 'fixed')
            if charge_type not in CHARGE_TYPES:
                raise ValueError(f"Unknown charge type: {charge_type!r}")
            charges.append(GlobalCharge(
                id=_entry_id(g),
                name=str(g.get('name') or ''),
                amount=_number(g.get('amount'), 'amount'),
                type=charge_type,
            ))

        host_id = data.get('host_id')
        return cls(
            people=people,
            items=items,
            global_charges=charges,
            host_id=str(host_id) if host_id is not None else None,
            name=data.get('name') or '',
            location=data.get('location') or '',
        )


def _list_field(data: Dict[str, Any], key: str) -> list:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValueError(f"Entries of '{key}' must be objects")
    return value


def _entry_id(entry: Dict[str, Any]) -> str:
    value = entry.get('id')
    if value is None or value == '':
        value = new_id()
    return str(value)


def _number(value: Any, field_name: str, non_negative: bool = False) -> float:
    if value is None or value == '':
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"Invalid number for {field_name}: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid number for {field_name}: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"Invalid number for {field_name}: {value!r}")
    if non_negative and number < 0:
        raise ValueError(f"{field_name} must not be negative: {value!r}")
    return number
