from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _upper(v):
    if v is None:
        return None
    s = str(v).strip().upper()
    return s or None


class TotalsRequest(BaseModel):
    subtotal: Decimal = Field(ge=0)
    country_code: str
    shipping_type: Literal["standard", "express"] = "standard"
    coupon_code: Optional[str] = None
    gift_wrap: bool = False

    @field_validator("country_code", "coupon_code", mode="before")
    @classmethod
    def _codes_upper(cls, v):
        return _upper(v)


class CouponValidateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str = Field(min_length=1)
    subtotal: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("code", mode="before")
    @classmethod
    def _code_upper(cls, v):
        return (str(v or "")).strip().upper()


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class ShippingInfoIn(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class PrecomputedTotalsIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    country: str = "MX"
    shipping_type: Literal["standard", "express"] = "standard"
    coupon_code: Optional[str] = None
    gift_wrap: bool = False
    total: Optional[Decimal] = None
    payment_details: Optional[Dict[str, Any]] = None

    @field_validator("country", "coupon_code", mode="before")
    @classmethod
    def _codes_upper(cls, v):
        return _upper(v)


class ProcessOrderRequest(BaseModel):
    items: List[OrderItemIn] = Field(default_factory=list)
    payment_method: str
    shipping: ShippingInfoIn = Field(default_factory=ShippingInfoIn)
    totals: PrecomputedTotalsIn = Field(default_factory=PrecomputedTotalsIn)


class OrderStatusIn(BaseModel):
    status: str


class CouponCreate(BaseModel):
    code: str = Field(min_length=1, max_length=40)
    name: str
    description: Optional[str] = None
    discount_type: Literal["percentage", "fixed", "free_shipping"]
    discount_value: Decimal = Decimal("0")
    min_purchase: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    max_uses: Optional[int] = Field(default=None, gt=0)
    one_per_user: bool = False
    restricted_to_email: Optional[str] = None
    expires_at: Optional[datetime] = None


class ProductCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Decimal = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    image: Optional[str] = None
    is_featured: bool = False


class CartItemIn(BaseModel):
    product_id: int
    quantity: int = Field(default=1, gt=0)


class CartQtyIn(BaseModel):
    quantity: int
