"""Pydantic schemas for orders.

This module exposes the request/response schemas used by the orders API
and the order service.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .domain import PaymentMethod


class CreateOrderDTO(BaseModel):
    """Schema for creating an order from a cart.

    Attributes:
        user_id: Ordering user.
        cart_id: Cart being checked out.
        total_price: Order total (must be >= 0).
        payment_method: Payment method name. Kept as a raw string so the
            service can reject unknown values itself.
        delivery_address: Delivery address id, or None to use the user's
            default delivery address.
        invoice_address: Invoice address id, or None to use the user's
            default billing address.
    """

    user_id: int = Field(gt=0)
    cart_id: int = Field(gt=0)
    total_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    payment_method: Optional[str] = None
    delivery_address: Optional[int] = Field(default=None, gt=0)
    invoice_address: Optional[int] = Field(default=None, gt=0)


class UpdateOrderDTO(BaseModel):
    """Full replacement of an order's fields."""

    user_id: int = Field(gt=0)
    cart_id: int = Field(gt=0)
    payment_method: PaymentMethod
    delivery_address: Optional[int] = Field(default=None, gt=0)
    invoice_address: Optional[int] = Field(default=None, gt=0)
    total_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    order_date: dt.date


class OrderReadDTO(BaseModel):
    """Order representation returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    cart_id: int
    payment_method: PaymentMethod
    delivery_address: Optional[int] = None
    invoice_address: Optional[int] = None
    total_price: Decimal
    order_date: dt.date

    @field_serializer("total_price")
    def _total_as_str(self, v: Decimal) -> str:
        return f"{v:.2f}"


class OrderPageDTO(BaseModel):
    count: int
    page: int
    page_size: int
    results: list[OrderReadDTO]
