# storefront/domain/schemas.py
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime


class CartStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class CartOwner(BaseModel):
    """Wlasciciel koszyka: zalogowany user albo guest."""

    identifier: str
    is_guest: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def user(cls, user_id: str) -> "CartOwner":
        return cls(identifier=user_id, is_guest=False)

    @classmethod
    def guest(cls, guest_id: str) -> "CartOwner":
        return cls(identifier=guest_id, is_guest=True)

    def __str__(self) -> str:
        kind = "guest" if self.is_guest else "user"
        return f"{kind}:{self.identifier}"


# ---------------------------------------------------------------------
# wejscie (DTO)
# ---------------------------------------------------------------------

class AddToCart(BaseModel):
    """Dodanie wariantu produktu do koszyka."""

    variation_id: str = Field(..., min_length=1, description="ID wariantu produktu")
    quantity: int = Field(..., gt=0, description="Ilosc (musi byc > 0)")


class UpdateCartItem(BaseModel):
    """Zmiana ilosci; quantity <= 0 usuwa pozycje."""

    item_id: str = Field(..., min_length=1)
    quantity: int


class UpdateQuantityIn(BaseModel):
    quantity: int


class RemoveFromCart(BaseModel):
    item_id: str = Field(..., min_length=1)


class GuestCart(BaseModel):
    """Dodanie do koszyka goscia."""

    guest_id: str = Field(..., min_length=1)
    variation_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class MergeGuestCart(BaseModel):
    guest_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------
# wyjscie (agregat koszyka)
# ---------------------------------------------------------------------

class ImageRead(BaseModel):
    id: str
    url: str
    variation_id: str
    created_at: datetime


class VariationRead(BaseModel):
    id: str
    product_id: str
    size: str | None = None
    color: str | None = None
    price: Decimal
    sale_price: Decimal
    stock: int
    images: List[ImageRead]
    created_at: datetime
    updated_at: datetime


class CartItemRead(BaseModel):
    id: str
    cart_id: str
    product_id: str
    variation_id: str
    variation: VariationRead
    quantity: int
    price: Decimal
    created_at: datetime
    updated_at: datetime


class CartRead(BaseModel):
    """Pelny agregat koszyka zwracany przez kazda operacje."""

    id: str
    user_id: str | None = None
    guest_id: str | None = None
    items: List[CartItemRead]
    total_amount: Decimal
    total_items: int
    status: CartStatus
    created_at: datetime
    updated_at: datetime
    last_activity: datetime
