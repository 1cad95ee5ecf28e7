from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from orderdesk.errors import from_pydantic


class OrderItemInput(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class CreateOrderInput(BaseModel):
    items: List[OrderItemInput] = Field(..., min_length=1)
    shipping_address: Optional[dict] = None
    billing_address: Optional[dict] = None
    notes: Optional[str] = None


class QuoteItemInput(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = None


class CreateQuoteInput(BaseModel):
    items: List[QuoteItemInput] = Field(..., min_length=1)
    notes: Optional[str] = None


class QuotePricingLine(BaseModel):
    quote_item_id: int
    quoted_qty: int = Field(..., gt=0)
    quoted_price: Decimal = Field(..., ge=0)


class QuotePricingInput(BaseModel):
    lines: List[QuotePricingLine] = Field(..., min_length=1)
    freight_charges: Decimal = Field(Decimal('0'), ge=0)
    discount: Decimal = Field(Decimal('0'), ge=0)
    valid_until: datetime
    admin_notes: Optional[str] = None


class RejectQuoteInput(BaseModel):
    reason: str = Field(..., min_length=1)


class SampleItemInput(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class SampleRequestInput(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
    phone: Optional[str] = None
    company_name: Optional[str] = None
    address: Optional[dict] = None
    items: List[SampleItemInput] = Field(..., min_length=1)
    notes: Optional[str] = None


class PaymentInput(BaseModel):
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., min_length=1)
    reference: Optional[str] = None


def parse(schema, data, message='Validation failed'):
    """Validate ``data`` against ``schema``; pydantic errors become our ValidationError."""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise from_pydantic(exc, message)
