import pytest
from snapshot import BillSnapshot


def test_remove_person_drops_claims_and_host(three_friends):
    host_id = three_friends.host_id
    platter = three_friends.items[0]

    three_friends.remove_person(host_id)

    assert host_id not in platter.assignments
    assert len(platter.assignments) == 2
    assert three_friends.host_id is None
    assert [p.name for p in three_friends.people] == ['Bao', 'Chi']


def test_remove_guest_keeps_host(three_friends):
    guest = three_friends.people[1]

    three_friends.remove_person(guest.id)

    assert three_friends.host_id == three_friends.people[0].id


def test_new_item_has_no_assignments():
    bill = BillSnapshot()
    item = bill.add_item('Beer', 45000, quantity=3)

    assert item.assignments == {}
    assert item.quantity == 3


def test_add_item_rejects_non_positive_quantity():
    bill = BillSnapshot()
    with pytest.raises(ValueError):
        bill.add_item('Beer', 45000, quantity=0)


@pytest.mark.parametrize('quantity', [0, -2, None])
def test_update_item_rejects_non_positive_quantity(quantity):
    bill = BillSnapshot()
    beer = bill.add_item('Beer', 45000, quantity=3)

    with pytest.raises(ValueError):
        bill.update_item(beer.id, quantity=quantity)
    assert beer.quantity == 3


def test_from_dict_keeps_signed_charge_amounts():
    snapshot = BillSnapshot.from_dict({
        'global_charges': [{'id': 'g1', 'name': 'Voucher', 'amount': -20000, 'type': 'fixed'}],
    })

    assert snapshot.global_charges[0].amount == -20000.0


def test_set_assignment_zero_unclaims(three_friends):
    platter = three_friends.items[0]
    guest = three_friends.people[1]

    three_friends.set_assignment(platter.id, guest.id, 0.5)
    assert platter.assignments[guest.id] == 0.5

    three_friends.set_assignment(platter.id, guest.id, 0)
    assert guest.id not in platter.assignments


def test_toggle_assignment(three_friends):
    platter = three_friends.items[0]
    guest = three_friends.people[2]

    assert three_friends.toggle_assignment(platter.id, guest.id) is False
    assert guest.id not in platter.assignments
    assert three_friends.toggle_assignment(platter.id, guest.id) is True
    assert platter.assignments[guest.id] == 1


def test_unknown_ids_raise_key_error(three_friends):
    with pytest.raises(KeyError):
        three_friends.remove_person('nobody')
    with pytest.raises(KeyError):
        three_friends.set_assignment('no-item', three_friends.people[0].id, 1)
    with pytest.raises(KeyError):
        three_friends.set_host('nobody')


def test_update_person_rejects_unknown_field(three_friends):
    person = three_friends.people[0]

    three_friends.update_person(person.id, paid_amount=50000)
    assert person.paid_amount == 50000

    with pytest.raises(AttributeError):
        three_friends.update_person(person.id, favourite_dish='pho')


def test_global_charge_lifecycle():
    bill = BillSnapshot()
    charge = bill.add_global_charge('VAT', 8, 'percent')

    bill.update_global_charge(charge.id, amount=10)
    assert bill.global_charges[0].amount == 10

    with pytest.raises(ValueError):
        bill.update_global_charge(charge.id, type='per-head')

    bill.remove_global_charge(charge.id)
    assert bill.global_charges == []


def test_add_global_charge_rejects_unknown_type():
    with pytest.raises(ValueError):
        BillSnapshot().add_global_charge('Tip', 10, 'voluntary')


def test_reset_clears_everything(three_friends):
    three_friends.add_global_charge('VAT', 10, 'percent')

    three_friends.reset()

    assert three_friends == BillSnapshot()


def test_dict_round_trip(three_friends):
    three_friends.add_global_charge('Discount', -20000, 'fixed')

    restored = BillSnapshot.from_dict(three_friends.to_dict())

    assert restored == three_friends


def test_from_dict_keeps_dangling_assignments():
    snapshot = BillSnapshot.from_dict({
        'people': [{'id': 'p1', 'name': 'An'}],
        'items': [{'id': 'i1', 'name': 'Tea', 'price': 10000, 'assignments': {'p1': 1, 'gone': 2}}],
    })

    assert snapshot.items[0].assignments == {'p1': 1.0, 'gone': 2.0}
    assert snapshot.items[0].quantity == 1
    assert snapshot.people[0].paid_amount == 0.0
    assert snapshot.host_id is None


@pytest.mark.parametrize('data', [
    {'people': 'An, Binh'},
    {'people': ['An']},
    {'items': [{'name': 'Tea', 'price': 'ten'}]},
    {'items': [{'name': 'Tea', 'price': 'nan'}]},
    {'items': [{'name': 'Tea', 'price': -10}]},
    {'items': [{'name': 'Tea', 'price': 10, 'assignments': {'p1': -1}}]},
    {'people': [{'id': 'p1', 'name': 'An', 'sponsor_amount': -100000}]},
    {'people': [{'id': 'p1', 'name': 'An', 'paid_amount': -1}]},
    {'items': [{'name': 'Tea', 'price': 10, 'quantity': 0}]},
    {'items': [{'name': 'Tea', 'price': 10, 'quantity': 1.5}]},
    {'items': [{'name': 'Tea', 'price': 10, 'assignments': ['p1']}]},
    {'global_charges': [{'name': 'Tip', 'amount': 10, 'type': 'voluntary'}]},
])
def test_from_dict_rejects_malformed_data(data):
    with pytest.raises(ValueError):
        BillSnapshot.from_dict(data)


def test_from_dict_requires_object():
    with pytest.raises(ValueError):
        BillSnapshot.from_dict([])
