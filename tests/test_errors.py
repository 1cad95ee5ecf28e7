"""
Tests for orderdesk.errors: error types and the JSON error handlers.
"""

import pytest
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import NotFound

from orderdesk.errors import (
    BusinessRuleError, ConflictError, ForbiddenError, NotFoundError, ValidationError, from_pydantic,
)
from orderdesk.extensions import db
from orderdesk.models import User


class _Payload(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


@pytest.fixture
def client(app):
    def raise_error(kind):
        errors = {
            'validation': ValidationError('Bad input', errors={'quantity': 'must be positive'}),
            'not-found': NotFoundError('Order not found', code='ORDER_NOT_FOUND'),
            'conflict': ConflictError('Tax invoice already exists for this order', code='INVOICE_EXISTS'),
            'forbidden': ForbiddenError('Access denied'),
            'rule': BusinessRuleError('Quote has expired', code='QUOTE_EXPIRED'),
            'boom': RuntimeError('database on fire'),
            'http': NotFound(),
        }
        if kind == 'duplicate':
            db.session.add(User(email='dup@example.com', name='One'))
            db.session.add(User(email='dup@example.com', name='Two'))
            db.session.commit()
        raise errors[kind]

    app.add_url_rule('/raise/<kind>', 'raise_error', raise_error)
    return app.test_client()


@pytest.mark.parametrize('kind, status, code', [
    ('validation', 400, 'VALIDATION_ERROR'),
    ('not-found', 404, 'ORDER_NOT_FOUND'),
    ('conflict', 409, 'INVOICE_EXISTS'),
    ('forbidden', 403, 'FORBIDDEN'),
    ('rule', 422, 'QUOTE_EXPIRED'),
])
def test_api_errors_render_json(client, kind, status, code):
    response = client.get(f'/raise/{kind}')
    assert response.status_code == status
    body = response.get_json()
    assert body['success'] is False
    assert body['code'] == code


def test_validation_error_lists_fields(client):
    body = client.get('/raise/validation').get_json()
    assert body['errors'] == {'quantity': 'must be positive'}


def test_integrity_error_is_a_duplicate(client):
    response = client.get('/raise/duplicate')
    assert response.status_code == 409
    assert response.get_json()['code'] == 'DUPLICATE_ENTRY'


def test_unexpected_error_detail(app, client):
    response = client.get('/raise/boom')
    assert response.status_code == 500
    assert response.get_json()['message'] == 'database on fire'

    app.config['PROPAGATE_DETAIL'] = False
    response = client.get('/raise/boom')
    assert response.get_json() == {
        'success': False,
        'message': 'An unexpected error occurred',
        'code': 'INTERNAL_ERROR',
    }


def test_http_errors_pass_through(client):
    assert client.get('/raise/http').status_code == 404


def test_from_pydantic_maps_fields():
    with pytest.raises(PydanticValidationError) as exc:
        _Payload.model_validate({'name': '', 'quantity': 0})

    error = from_pydantic(exc.value, 'Invalid order')
    assert error.status_code == 400
    assert error.message == 'Invalid order'
    assert set(error.errors) == {'name', 'quantity'}
