# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from app.domain.order_status import OrderStatus, PaymentStatus


class ItemIn(BaseModel):
    """Add a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (> 0)")
    quantity: int = Field(..., gt=0, description="Quantity to add (> 0)")


class QuantityIn(BaseModel):
    """Set a cart line quantity, 0 removes the line."""

    quantity: int = Field(..., ge=0)


class CartItemOut(BaseModel):
    product_id: int
    name: str
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    cart_id: int | None
    owner_kind: str
    owner_ref: str
    items: List[CartItemOut]
    total: Decimal
    expires_at: datetime | None = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=150, pattern=r"^[^@\s]+@[^@\s]+$")


class UserRead(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class AddressCreate(BaseModel):
    recipient: str = Field(..., min_length=1, max_length=150)
    line1: str = Field(..., min_length=1, max_length=200)
    line2: Optional[str] = Field(None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")


class AddressRead(AddressCreate):
    id: int
    user_id: int

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    """Admin payload, cost_price never leaves the admin surface."""

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    cost_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    slug: Optional[str] = Field(None, min_length=1, max_length=220)


class SlugUpdate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=220)


class ImageIn(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    primary: bool = False


class ProductImageOut(BaseModel):
    id: int
    url: str
    position: int
    is_primary: bool

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    slug: str
    price: Decimal
    is_active: bool
    images: List[ProductImageOut]


class CheckoutIn(BaseModel):
    address_id: int = Field(..., gt=0)


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    shipping_address: dict
    items: List[OrderItemOut]
    total: Decimal
    created_at: datetime


class AdvanceIn(BaseModel):
    next_status: OrderStatus


class ReportIssueIn(BaseModel):
    reason_code: str = Field(..., min_length=1, max_length=50)


class CanReviewOut(BaseModel):
    order_id: int
    eligible: bool


class ReviewCreate(BaseModel):
    order_id: int = Field(..., gt=0)
    product_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewOut(BaseModel):
    id: int
    user_id: int
    order_id: int
    product_id: int
    rating: int
    comment: Optional[str]
    approved: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
