"""
Settlement engine: turns a bill snapshot into per-person costs and transfers.

Stages run in order and each one is a plain function:
  1. allocate_item_costs  - item prices to people, with an unassigned pool
  2. distribute_extras    - tax/service/discount in proportion to raw cost
  3. apply_sponsorship    - sponsor money nets against everyone's debt
  4. settlement strategy  - payables vs. cash handed over -> transfers
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, List, Optional

from settlement import (
    HubAndSpokeSettlement,
    SettlementPlan,
    SettlementStrategy,
    Transfer,
    to_decimal,
)
from snapshot import BillSnapshot, GlobalCharge, Item, Person

ZERO = Decimal('0')
HUNDRED = Decimal('100')


@dataclass
class Allocation:
    raw_cost: Dict[str, Decimal]
    active_ids: List[str]  # people holding at least one claim
    splitter_ids: List[str]  # who shares the unassigned pool (active, else everyone)
    unassigned_pool: Decimal


@dataclass
class Sponsorship:
    payable: Dict[str, Decimal]
    total_surplus: Decimal  # sponsor money left over after covering every debt
    applied: Decimal  # sponsor money spent on other people's debt


@dataclass
class SettlementResult:
    raw_cost: Dict[str, Decimal]
    total_cost: Dict[str, Decimal]
    payable: Dict[str, Decimal]
    total_item_cost: Decimal
    total_bill: Decimal
    total_extras: Decimal
    total_surplus: Decimal
    sponsorship_applied: Decimal
    transfers: List[Transfer] = field(default_factory=list)
    settled: List[str] = field(default_factory=list)
    status: str = SettlementPlan.OK
    discrepancy: Decimal = ZERO
    effective_paid: Dict[str, Decimal] = field(default_factory=dict)
    active_ids: List[str] = field(default_factory=list)

    @property
    def has_host(self) -> bool:
        return self.status != SettlementPlan.NO_HOST

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view with money rounded to cents"""
        return {
            'raw_cost': _round_map(self.raw_cost),
            'total_cost': _round_map(self.total_cost),
            'payable': _round_map(self.payable),
            'total_item_cost': round_currency(self.total_item_cost),
            'total_bill': round_currency(self.total_bill),
            'total_extras': round_currency(self.total_extras),
            'total_surplus': round_currency(self.total_surplus),
            'sponsorship_applied': round_currency(self.sponsorship_applied),
            'transfers': [
                {'from': t.from_id, 'to': t.to_id, 'amount': round_currency(t.amount)}
                for t in self.transfers
            ],
            'settled': list(self.settled),
            'status': self.status,
            'discrepancy': round_currency(self.discrepancy),
            'effective_paid': _round_map(self.effective_paid),
            'active_ids': list(self.active_ids),
        }


def round_currency(amount) -> float:
    """Round to 2 decimal places for currency"""
    if amount is None:
        return 0.0
    return float(to_decimal(amount).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _round_map(values: Dict[str, Decimal]) -> Dict[str, float]:
    return {key: round_currency(value) for key, value in values.items()}


def _item_quantity(item: Item) -> Decimal:
    quantity = to_decimal(item.quantity)
    return quantity if quantity > 0 else Decimal('1')


def _claims(item: Item, known_ids: set) -> List[tuple]:
    """(person_id, qty) pairs that count: positive quantity, person still on the bill"""
    claims = []
    for person_id, qty in (item.assignments or {}).items():
        if person_id not in known_ids:
            continue
        qty = to_decimal(qty)
        if qty > 0:
            claims.append((person_id, qty))
    return claims


def allocate_item_costs(people: List[Person], items: List[Item]) -> Allocation:
    """
    Attribute every item's price to the people who claimed it.

    Claims at or above the item quantity split the whole price proportionally.
    Claims below it pay for their fraction at the unit rate, and the unclaimed
    remainder joins the unassigned pool. The pool is split equally among the
    active participants, or among everyone when nothing is claimed anywhere.
    """
    known_ids = {p.id for p in people}
    raw_cost = {p.id: ZERO for p in people}
    active = set()
    pool = ZERO

    for item in items:
        price = to_decimal(item.price)
        quantity = _item_quantity(item)
        claims = _claims(item, known_ids)

        if not claims:
            pool += price
            continue

        active.update(person_id for person_id, _ in claims)
        total_claimed = sum((min(qty, quantity) for _, qty in claims), ZERO)

        if total_claimed >= quantity:
            for person_id, qty in claims:
                raw_cost[person_id] += min(qty, quantity) * price / total_claimed
        else:
            accounted = ZERO
            for person_id, qty in claims:
                share = min(qty, quantity) * price / quantity
                raw_cost[person_id] += share
                accounted += share
            pool += price - accounted

    active_ids = [p.id for p in people if p.id in active]
    splitter_ids = active_ids or [p.id for p in people]

    if pool != 0 and splitter_ids:
        shared = pool / len(splitter_ids)
        for person_id in splitter_ids:
            raw_cost[person_id] += shared

    return Allocation(raw_cost, active_ids, splitter_ids, pool)


def compute_total_item_cost(items: Iterable[Item]) -> Decimal:
    return sum((to_decimal(item.price) for item in items), ZERO)


def compute_total_extras(global_charges: Iterable[GlobalCharge], total_item_cost) -> Decimal:
    """Percent charges apply to the item subtotal; fixed ones (discounts are negative) add as-is"""
    total_item_cost = to_decimal(total_item_cost)
    total = ZERO
    for charge in global_charges:
        amount = to_decimal(charge.amount)
        if charge.type == 'percent':
            total += amount / HUNDRED * total_item_cost
        else:
            total += amount
    return total


def distribute_extras(people: List[Person], allocation: Allocation, total_extras: Decimal) -> Dict[str, Decimal]:
    """Spread extras by each person's share of the summed raw costs"""
    raw_cost = allocation.raw_cost
    raw_sum = sum(raw_cost.values(), ZERO)
    splitters = set(allocation.splitter_ids)

    total_cost = {}
    for person in people:
        base = raw_cost.get(person.id, ZERO)
        if raw_sum != 0:
            total_cost[person.id] = base + total_extras * base / raw_sum
        elif person.id in splitters:
            total_cost[person.id] = total_extras / len(splitters)
        else:
            total_cost[person.id] = ZERO
    return total_cost


def apply_sponsorship(people: List[Person], total_cost: Dict[str, Decimal]) -> Sponsorship:
    """
    Net each person's sponsor contribution against their own cost, then use the
    excess to discount everyone who still owes, proportionally. A payable never
    goes below zero.
    """
    payable = {}
    surplus = ZERO
    deficit = ZERO

    for person in people:
        diff = total_cost.get(person.id, ZERO) - to_decimal(person.sponsor_amount)
        if diff <= 0:
            payable[person.id] = ZERO
            surplus += abs(diff)
        else:
            payable[person.id] = diff
            deficit += diff

    applied = ZERO
    if surplus > 0 and deficit > 0:
        discount_ratio = min(Decimal('1'), surplus / deficit)
        for person_id, amount in payable.items():
            if amount > 0:
                payable[person_id] = amount * (1 - discount_ratio)
        applied = min(surplus, deficit)
        surplus -= applied

    return Sponsorship(payable, surplus, applied)


def calculate(
    people: List[Person],
    items: List[Item],
    global_charges: List[GlobalCharge],
    host_id: Optional[str],
    strategy: Optional[SettlementStrategy] = None,
    allocator: Callable[[List[Person], List[Item]], Allocation] = allocate_item_costs,
) -> SettlementResult:
    """
    Compute owed amounts and settlement transfers for a bill.

    Pure and deterministic: inputs are never mutated and the same snapshot
    always yields the same result. A missing host is reported through
    ``status`` rather than raised.
    """
    strategy = strategy or HubAndSpokeSettlement()

    allocation = allocator(people, items)
    total_item_cost = compute_total_item_cost(items)
    total_extras = compute_total_extras(global_charges, total_item_cost)
    total_cost = distribute_extras(people, allocation, total_extras)
    sponsorship = apply_sponsorship(people, total_cost)
    total_bill = total_item_cost + total_extras

    plan = strategy.settle(people, sponsorship.payable, total_bill, host_id)

    return SettlementResult(
        raw_cost=allocation.raw_cost,
        total_cost=total_cost,
        payable=sponsorship.payable,
        total_item_cost=total_item_cost,
        total_bill=total_bill,
        total_extras=total_extras,
        total_surplus=sponsorship.total_surplus,
        sponsorship_applied=sponsorship.applied,
        transfers=plan.transfers,
        settled=plan.settled,
        status=plan.status,
        discrepancy=plan.discrepancy,
        effective_paid=plan.effective_paid,
        active_ids=allocation.active_ids,
    )


def calculate_snapshot(snapshot: BillSnapshot, strategy: Optional[SettlementStrategy] = None) -> SettlementResult:
    return calculate(snapshot.people, snapshot.items, snapshot.global_charges, snapshot.host_id, strategy)
