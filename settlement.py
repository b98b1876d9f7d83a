"""
Settlement strategies: turn what each person owes and what they actually
handed over into money transfers.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from snapshot import Person

ZERO = Decimal('0')
EPSILON = Decimal('0.01')


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot convert {value!r} to Decimal")


@dataclass(frozen=True)
class Transfer:
    from_id: str
    to_id: str
    amount: Decimal


@dataclass
class SettlementPlan:
    OK = 'ok'
    NO_HOST = 'no_host'

    status: str
    transfers: List[Transfer] = field(default_factory=list)
    settled: List[str] = field(default_factory=list)
    effective_paid: Dict[str, Decimal] = field(default_factory=dict)
    discrepancy: Decimal = ZERO


def _find_host(people: List[Person], host_id: Optional[str]) -> Optional[Person]:
    if host_id is None:
        return None
    for person in people:
        if person.id == host_id:
            return person
    return None


def effective_payments(
    people: List[Person],
    payable: Dict[str, Decimal],
    total_bill: Decimal,
    host: Optional[Person],
    honor_host_paid: bool = False,
) -> Tuple[Dict[str, Decimal], Decimal]:
    """
    Cash each person counts as having paid, plus the unexplained difference
    between cash paid and total payable.

    The host covers whatever the others did not pay, unless ``honor_host_paid``
    is set. Sponsored money the host fronted is not recoverable, so a positive
    difference comes off the host's figure. An honored host amount is left
    as entered and any excess is reported.
    """
    others_paid = sum(
        (to_decimal(p.paid_amount) for p in people if host is None or p.id != host.id),
        ZERO,
    )

    paid = {}
    for person in people:
        if host is not None and person.id == host.id:
            if honor_host_paid:
                paid[person.id] = to_decimal(person.paid_amount)
            else:
                paid[person.id] = max(ZERO, to_decimal(total_bill) - others_paid)
        else:
            paid[person.id] = to_decimal(person.paid_amount)

    discrepancy = sum(paid.values(), ZERO) - sum(payable.values(), ZERO)
    if discrepancy > EPSILON and host is not None and not honor_host_paid:
        paid[host.id] -= discrepancy
        discrepancy = ZERO

    return paid, discrepancy


def _sorted_transfers(transfers: List[Transfer]) -> List[Transfer]:
    return sorted(transfers, key=lambda t: (str(t.from_id), str(t.to_id)))


class SettlementStrategy(ABC):
    """Base class for settlement strategies"""

    def __init__(self, honor_host_paid: bool = False):
        self.honor_host_paid = honor_host_paid

    @abstractmethod
    def settle(
        self,
        people: List[Person],
        payable: Dict[str, Decimal],
        total_bill: Decimal,
        host_id: Optional[str],
    ) -> SettlementPlan:
        pass


class HubAndSpokeSettlement(SettlementStrategy):
    """Everyone squares up with the host; guests never pay each other."""

    name = 'hub'

    def settle(self, people, payable, total_bill, host_id):
        host = _find_host(people, host_id)
        if host is None:
            return SettlementPlan(status=SettlementPlan.NO_HOST)

        paid, discrepancy = effective_payments(people, payable, total_bill, host, self.honor_host_paid)

        transfers = []
        settled = []
        for person in people:
            if person.id == host.id:
                continue
            balance = to_decimal(person.paid_amount) - payable.get(person.id, ZERO)
            if balance < -EPSILON:
                transfers.append(Transfer(person.id, host.id, -balance))
            elif balance > EPSILON:
                transfers.append(Transfer(host.id, person.id, balance))
            else:
                settled.append(person.id)

        return SettlementPlan(
            status=SettlementPlan.OK,
            transfers=_sorted_transfers(transfers),
            settled=settled,
            effective_paid=paid,
            discrepancy=discrepancy,
        )


class GreedySettlement(SettlementStrategy):
    """
    Pair the largest debtor with the largest creditor until one side runs out.
    Works without a host; with one, the host still covers the rest of the bill.
    """

    name = 'greedy'

    def settle(self, people, payable, total_bill, host_id):
        host = _find_host(people, host_id)
        paid, discrepancy = effective_payments(people, payable, total_bill, host, self.honor_host_paid)

        net = {p.id: paid[p.id] - payable.get(p.id, ZERO) for p in people}
        creditors = [[pid, v] for pid, v in net.items() if v > EPSILON]
        debtors = [[pid, -v] for pid, v in net.items() if v < -EPSILON]
        settled = [pid for pid, v in net.items() if abs(v) <= EPSILON]
        creditors.sort(key=lambda x: (-x[1], str(x[0])))
        debtors.sort(key=lambda x: (-x[1], str(x[0])))

        transfers = []
        i = j = 0
        while i < len(debtors) and j < len(creditors):
            debtor, creditor = debtors[i], creditors[j]
            amount = min(debtor[1], creditor[1])
            if amount > EPSILON:
                transfers.append(Transfer(debtor[0], creditor[0], amount))
            debtor[1] -= amount
            creditor[1] -= amount
            if debtor[1] <= EPSILON:
                i += 1
            if creditor[1] <= EPSILON:
                j += 1

        return SettlementPlan(
            status=SettlementPlan.OK,
            transfers=_sorted_transfers(transfers),
            settled=settled,
            effective_paid=paid,
            discrepancy=discrepancy,
        )


STRATEGIES = {
    HubAndSpokeSettlement.name: HubAndSpokeSettlement,
    GreedySettlement.name: GreedySettlement,
}


def get_settlement_strategy(name: str = 'hub', honor_host_paid: bool = False) -> SettlementStrategy:
    if not isinstance(name, str):
        raise ValueError(f"Unknown settlement strategy: {name!r}")
    try:
        strategy_class = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown settlement strategy: {name}")
    return strategy_class(honor_host_paid=honor_host_paid)
