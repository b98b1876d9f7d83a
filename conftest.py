import pytest
from app import create_app
from config import TestingConfig
from extensions import db
from snapshot import BillSnapshot


@pytest.fixture(scope='session')
def app():
    # Configure the app for testing
    flask_app = create_app(TestingConfig)

    with flask_app.app_context():
        # Create tables in database
        db.create_all()
        yield flask_app
        # Drop tables after the session is done
        db.drop_all()


@pytest.fixture(scope='function')
def session(app):
    # Clean up database for each test function
    db.session.remove()
    db.drop_all()
    db.create_all()
    db.session.commit()
    return db.session


@pytest.fixture(scope='function')
def client(app, session):
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app, session):
    return app.test_cli_runner()


@pytest.fixture
def three_friends():
    """Host + two guests sharing one 120,000 platter, nothing paid yet"""
    bill = BillSnapshot(name='Lunch')
    host = bill.add_person('Hana')
    bill.add_person('Bao')
    bill.add_person('Chi')
    bill.set_host(host.id)
    platter = bill.add_item('Platter', 120000)
    for person in bill.people:
        bill.set_assignment(platter.id, person.id, 1)
    return bill


@pytest.fixture
def mock_extract_data(mocker):
    """Mocks the external receipt data extraction function."""
    return mocker.patch(
        'app.extract_receipt_data',
        return_value={
            'items': [{'name': 'Pho Bo', 'price': 87000.0, 'quantity': 2}],
            'global_charges': [{'name': 'Tax (VAT)', 'amount': 17400.0, 'type': 'fixed'}],
            'raw_text': 'Pho Bo 2 87.000\nVAT 17.400',
        }
    )
