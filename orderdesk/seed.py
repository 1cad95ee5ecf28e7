import logging
from decimal import Decimal

from orderdesk.extensions import db
from orderdesk.models.product import Product
from orderdesk.models.user import Role, User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    dict(email='admin@homelia.in', phone='9876543210', name='Admin User',
         role=Role.ADMIN, company_name='Homelia Laminates'),
    dict(email='dealer@example.com', phone='9876543211', name='Sample Dealer',
         role=Role.DEALER, company_name='ABC Interiors',
         gst_number='27AAAAA0000A1Z5', state_code='27'),
    dict(email='b2b@example.com', phone='9876543212', name='B2B Customer',
         role=Role.B2B_CUSTOMER, company_name='XYZ Furniture',
         gst_number='29BBBBB0000B1Z5', state_code='29'),
]

DEMO_PRODUCTS = [
    dict(product_code='DUR-WG-001', name='American Walnut Classic', brand='DURIAN', category='DECORATIVE',
         price=Decimal('2450'), b2b_price=Decimal('2350'), dealer_price=Decimal('2200'),
         moq=10, stock_quantity=100),
    dict(product_code='DUR-WG-002', name='Nordic Oak Natural', brand='DURIAN', category='DECORATIVE',
         price=Decimal('2680'), b2b_price=Decimal('2550'), dealer_price=Decimal('2400'),
         moq=10, stock_quantity=80),
    dict(product_code='DUR-ST-001', name='Charcoal Slate', brand='DURIAN', category='DECORATIVE',
         price=Decimal('2890'), b2b_price=Decimal('2750'), dealer_price=Decimal('2600'),
         moq=10, stock_quantity=60),
    dict(product_code='DUR-HG-001', name='Pure White Gloss', brand='DURIAN', category='DECORATIVE',
         price=Decimal('3200'), b2b_price=Decimal('3050'), dealer_price=Decimal('2900'),
         moq=10, stock_quantity=75),
    dict(product_code='DUR-EX-001', name='Exterior Teak', brand='DURIAN', category='EXTERIOR',
         is_price_on_request=True, moq=25, stock_quantity=40),
    dict(product_code='DUR-CP-001', name='Compact White Core', brand='DURIAN', category='COMPACT',
         is_price_on_request=True, moq=20, stock_quantity=40),
]


def seed_demo_data():
    """Insert demo users and products into an empty database. Returns the number of rows added."""
    if User.query.first() is not None:
        return 0

    for fields in DEMO_USERS:
        db.session.add(User(**fields))
    for fields in DEMO_PRODUCTS:
        db.session.add(Product(**fields))
    db.session.commit()

    created = len(DEMO_USERS) + len(DEMO_PRODUCTS)
    logger.info('Seeded %s users and %s products', len(DEMO_USERS), len(DEMO_PRODUCTS))
    return created
