"""Pydantic schemas for orders.

This module exposes lightweight request/validation schemas used by the
orders API and the read schema used to render orders in responses.
"""

from pydantic import BaseModel, Field, field_validator

from .domain import Order


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        product: Product name. Surrounding whitespace is stripped and the
            result must not be empty.
        quantity: Positive integer indicating units requested. Booleans are
            rejected instead of being read as 0 or 1.
    """

    product: str = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0, strict=True)

    @field_validator("product")
    @classmethod
    def validate_product(cls, v: str) -> str:
        """Strip the product name and reject blank values.

        Raises:
            ValueError: When only whitespace was supplied.
        """
        v2 = v.strip()
        if not v2:
            raise ValueError("Product must not be blank")
        return v2


class UpdateOrderDTO(BaseModel):
    """Schema for changing the quantity of an order.

    The value is not range-checked here; the domain service decides whether
    a quantity is acceptable.
    """

    quantity: int = Field(strict=True)


class OrderReadDTO(BaseModel):
    """Schema used to render an order in responses."""

    id: int
    product: str
    quantity: int
    is_paid: bool

    @classmethod
    def from_order(cls, order: Order) -> "OrderReadDTO":
        return cls(
            id=order.id,
            product=order.product,
            quantity=order.quantity,
            is_paid=order.is_paid,
        )
