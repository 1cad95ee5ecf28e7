import os


def _env_bool(key, default):
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-prod')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///orderdesk.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Seller identity printed on every invoice
    SELLER_NAME = os.environ.get('SELLER_NAME', 'Homelia Laminates')
    SELLER_GSTIN = os.environ.get('SELLER_GSTIN', '27AAACH1234F1Z5')
    SELLER_STATE_CODE = os.environ.get('SELLER_STATE_CODE', '27')
    SELLER_ADDRESS = os.environ.get('SELLER_ADDRESS', 'Plot 12, MIDC Industrial Area, Bhiwandi, Maharashtra 421302')
    SELLER_PHONE = os.environ.get('SELLER_PHONE', '+91 22 4000 1234')
    SELLER_EMAIL = os.environ.get('SELLER_EMAIL', 'accounts@homelia.in')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@homelia.in')

    # Tax
    DEFAULT_GST_RATE = int(os.environ.get('DEFAULT_GST_RATE', 18))
    DEFAULT_BUYER_STATE_CODE = os.environ.get('DEFAULT_BUYER_STATE_CODE', '27')
    PROFORMA_ESTIMATE_GST_RATE = int(os.environ.get('PROFORMA_ESTIMATE_GST_RATE', 18))

    # Freight: max(min charge, units * per unit)
    FREIGHT_MIN_CHARGE = int(os.environ.get('FREIGHT_MIN_CHARGE', 500))
    FREIGHT_PER_UNIT = int(os.environ.get('FREIGHT_PER_UNIT', 50))

    INVOICE_DUE_DAYS = int(os.environ.get('INVOICE_DUE_DAYS', 15))

    SAMPLE_MAX_PER_PRODUCT = int(os.environ.get('SAMPLE_MAX_PER_PRODUCT', 2))
    SAMPLE_MAX_TOTAL = int(os.environ.get('SAMPLE_MAX_TOTAL', 10))

    # Outbox for post-commit side effects
    OUTBOX_MAX_ATTEMPTS = int(os.environ.get('OUTBOX_MAX_ATTEMPTS', 5))
    OUTBOX_DISPATCH_INLINE = _env_bool('OUTBOX_DISPATCH_INLINE', True)

    # Show internal error details in API responses
    PROPAGATE_DETAIL = False


class DevelopmentConfig(Config):
    DEBUG = True
    PROPAGATE_DETAIL = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    LOG_LEVEL = 'WARNING'
    PROPAGATE_DETAIL = True
