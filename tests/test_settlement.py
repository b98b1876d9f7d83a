from decimal import Decimal

import pytest
from bill_splitting_logic import calculate
from settlement import (
    GreedySettlement,
    HubAndSpokeSettlement,
    SettlementPlan,
    get_settlement_strategy,
)
from snapshot import Item, Person


def platter_for_three(paid=None, sponsor=None):
    """h (host), a and b each eat a third of a 120 platter -> 40 each"""
    paid = paid or {}
    sponsor = sponsor or {}
    people = [
        Person(pid, pid.upper(), sponsor.get(pid, 0), paid.get(pid, 0))
        for pid in ('h', 'a', 'b')
    ]
    items = [Item('platter', 'Platter', 120, 1, {'h': 1, 'a': 1, 'b': 1})]
    return people, items


def flows(result):
    return [(t.from_id, t.to_id, t.amount.quantize(Decimal('0.01'))) for t in result.transfers]


def test_hub_debtors_pay_host_and_host_refunds_prepaid():
    people, items = platter_for_three(paid={'a': 80})

    result = calculate(people, items, [], 'h', HubAndSpokeSettlement())

    assert result.status == SettlementPlan.OK
    assert flows(result) == [
        ('b', 'h', Decimal('40.00')),
        ('h', 'a', Decimal('40.00')),
    ]
    assert result.settled == []


def test_hub_reports_settled_people_within_a_cent():
    people, items = platter_for_three(paid={'a': 40, 'b': 39.995})

    result = calculate(people, items, [], 'h')

    assert result.transfers == []
    assert result.settled == ['a', 'b']


def test_hub_transfers_always_touch_host():
    people, items = platter_for_three(paid={'h': 999})

    result = calculate(people, items, [], 'h')

    for transfer in result.transfers:
        assert 'h' in (transfer.from_id, transfer.to_id)
        assert transfer.from_id != transfer.to_id


def test_host_covers_the_rest_by_default():
    people, items = platter_for_three(paid={'h': 10})

    result = calculate(people, items, [], 'h')

    assert result.effective_paid['h'] == Decimal(120)
    assert result.discrepancy == 0


def test_honor_host_paid_reports_shortfall():
    people, items = platter_for_three(paid={'h': 10})

    result = calculate(people, items, [], 'h', HubAndSpokeSettlement(honor_host_paid=True))

    assert result.effective_paid['h'] == Decimal(10)
    assert result.discrepancy == Decimal(-110)
    # guests still settle their own share with the host
    assert [(t.from_id, t.to_id) for t in result.transfers] == [('a', 'h'), ('b', 'h')]


def test_honor_host_paid_reports_excess():
    people, items = platter_for_three(paid={'h': 200})

    result = calculate(people, items, [], 'h', HubAndSpokeSettlement(honor_host_paid=True))

    assert result.effective_paid['h'] == Decimal(200)
    assert result.discrepancy == Decimal(80)


def test_sponsored_money_comes_off_host_recovery():
    people, items = platter_for_three(sponsor={'a': 60})

    result = calculate(people, items, [], 'h')

    # a covers own 40 plus 20 of the 80 owed by h and b
    assert result.payable['a'] == 0
    assert result.payable['b'] == Decimal(30)
    assert result.effective_paid['h'] == Decimal(60)
    assert result.discrepancy == 0
    assert result.settled == ['a']
    assert flows(result) == [('b', 'h', Decimal('30.00'))]


def test_greedy_pairs_debtors_with_creditors_without_host():
    people, items = platter_for_three(paid={'a': 120})

    result = calculate(people, items, [], None, GreedySettlement())

    assert result.status == SettlementPlan.OK
    assert flows(result) == [
        ('b', 'a', Decimal('40.00')),
        ('h', 'a', Decimal('40.00')),
    ]


def test_greedy_lets_guests_pay_each_other():
    people, items = platter_for_three(paid={'a': 80})

    result = calculate(people, items, [], 'h', GreedySettlement())

    # host fronts the remaining 40 which is exactly their share
    assert result.effective_paid['h'] == Decimal(40)
    assert flows(result) == [('b', 'a', Decimal('40.00'))]
    assert result.settled == ['h']


def test_greedy_splits_one_debt_across_creditors():
    people = [Person('x', 'X', 0, 0), Person('y', 'Y', 0, 60), Person('z', 'Z', 0, 30)]
    items = [Item('meal', 'Meal', 90, 1, {'x': 1})]

    result = calculate(people, items, [], None, GreedySettlement())

    assert flows(result) == [
        ('x', 'y', Decimal('60.00')),
        ('x', 'z', Decimal('30.00')),
    ]


def test_get_settlement_strategy():
    assert isinstance(get_settlement_strategy('hub'), HubAndSpokeSettlement)
    greedy = get_settlement_strategy('greedy', honor_host_paid=True)
    assert isinstance(greedy, GreedySettlement)
    assert greedy.honor_host_paid is True


def test_get_settlement_strategy_unknown():
    with pytest.raises(ValueError, match="Unknown settlement strategy"):
        get_settlement_strategy('round-robin')


def test_get_settlement_strategy_rejects_non_string():
    with pytest.raises(ValueError, match="Unknown settlement strategy"):
        get_settlement_strategy(['hub'])
