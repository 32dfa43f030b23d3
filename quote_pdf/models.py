"""Pydantic models for the quote document: input contract of the renderer.

The caller assembles a ``DocumentRecord`` from its own stores; the renderer
only reads it.  Money values arrive as decimals or numeric strings.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, field_validator, model_validator

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date]


class _RecordModel(BaseModel):
    """Input model base: a null on a defaulted field takes the default.

    Upstream stores many of these as nullable columns.  Required fields are
    left alone so that a null there still fails validation.
    """

    @model_validator(mode="before")
    @classmethod
    def _null_means_default(cls, data):
        if not isinstance(data, dict):
            return data
        nulled = [
            name
            for name, field in cls.model_fields.items()
            if name in data
            and data[name] is None
            and not field.is_required()
            and field.get_default(call_default_factory=True) is not None
        ]
        if not nulled:
            return data
        logger.warning("%s: null %s, using defaults", cls.__name__, ", ".join(nulled))
        return {k: v for k, v in data.items() if k not in nulled}


class Party(_RecordModel):
    """Client, vendor or branch: name plus optional contact fields."""

    name: str = ""
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None


class Branch(Party):
    # Only branches with this flag get the fixed box on page 1
    show_on_first_page: bool = True


class Product(_RecordModel):
    name: str = ""
    description: Optional[str] = None
    image_url: Optional[str] = None


class Dimensions(_RecordModel):
    """Physical size in centimetres."""

    width: Optional[Decimal] = None
    height: Optional[Decimal] = None
    depth: Optional[Decimal] = None

    @property
    def is_empty(self) -> bool:
        return not any((self.width, self.height, self.depth))


class ItemCustomization(_RecordModel):
    mode: Literal["percentage", "flat"] = "flat"
    percentage: Decimal = Decimal("0")
    value: Decimal = Decimal("0")
    description: Optional[str] = None


class LineItem(_RecordModel):
    product: Optional[Product] = None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    # Accepted as given: upstream may have folded customization into it
    total_price: Decimal = Decimal("0")
    customization: Optional[ItemCustomization] = None
    dimensions: Optional[Dimensions] = None
    customization_photo: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value


class PaymentPlan(_RecordModel):
    method: str = ""
    installments: int = 1
    down_payment: Optional[Decimal] = None
    remaining_amount: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    interest_value: Optional[Decimal] = None


class ShippingPlan(_RecordModel):
    method: str = ""
    cost: Optional[Decimal] = None
    delivery_type: Literal["delivery", "pickup"] = "delivery"


class DocumentRecord(_RecordModel):
    number: str
    title: str = ""
    created_at: Optional[DateLike] = None
    valid_until: Optional[DateLike] = None
    delivery_deadline: Optional[DateLike] = None

    total_value: Decimal

    has_discount: bool = False
    discount_type: Literal["percentage", "flat"] = "percentage"
    discount_percentage: Decimal = Decimal("0")
    discount_value: Decimal = Decimal("0")

    has_customization: bool = False
    customization_percentage: Decimal = Decimal("0")
    customization_value: Decimal = Decimal("0")
    customization_description: Optional[str] = None

    notes: Optional[str] = None

    client: Optional[Party] = None
    vendor: Optional[Party] = None
    branch: Optional[Branch] = None
    items: Optional[list[LineItem]] = None
    payment: Optional[PaymentPlan] = None
    shipping: Optional[ShippingPlan] = None

    @field_validator("discount_type", mode="before")
    @classmethod
    def _alias_discount_type(cls, value):
        # Upstream stores flat discounts as "value"
        if value == "value":
            return "flat"
        return value
