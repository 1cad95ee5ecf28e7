from decimal import Decimal

import pytest

from orderdesk import create_app
from orderdesk.config import TestingConfig
from orderdesk.extensions import db
from orderdesk.models import Product, Role, User


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make_user(**overrides):
        counter['n'] += 1
        n = counter['n']
        defaults = dict(
            email=f"user{n}@example.com",
            phone=f"90000000{n:02d}",
            name=f"User {n}",
            role=Role.B2B_CUSTOMER,
            state_code='27',
            billing_address={'line1': '1 Market Road', 'city': 'Pune', 'stateCode': '27'},
        )
        defaults.update(overrides)
        user = User(**defaults)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(app):
    counter = {'n': 0}

    def _make_product(**overrides):
        counter['n'] += 1
        n = counter['n']
        defaults = dict(
            product_code=f"TST-{n:03d}",
            name=f"Test Laminate {n}",
            brand='DURIAN',
            category='DECORATIVE',
            price=Decimal('100.00'),
            b2b_price=Decimal('90.00'),
            dealer_price=Decimal('80.00'),
            moq=1,
            stock_quantity=100,
        )
        defaults.update(overrides)
        product = Product(**defaults)
        db.session.add(product)
        db.session.commit()
        return product

    return _make_product


@pytest.fixture
def admin(make_user):
    return make_user(email='admin@homelia.in', name='Admin', role=Role.ADMIN)


@pytest.fixture
def customer(make_user):
    return make_user(company_name='XYZ Furniture')
