# storefront/repos/cart_repo.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product_variation import ProductVariationModel
from storefront.domain.schemas import (
    CartItemRead,
    CartOwner,
    CartRead,
    CartStatus,
    ImageRead,
    VariationRead,
)


class CartRepo:
    """
    Store agregatu koszyka (Cart + CartItem).

    Wszystkie odczyty, ktore zasilaja pozniejszy zapis, ida przez te sama
    sesje (transakcje) co zapis.
    """

    def __init__(self, db: Session):
        self.db = db

    # carts

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def find_active_by_owner(self, owner: CartOwner) -> CartModel | None:
        owner_column = CartModel.guest_id if owner.is_guest else CartModel.user_id
        return self.db.execute(
            select(CartModel).where(
                owner_column == owner.identifier,
                CartModel.status == CartStatus.ACTIVE.value,
            )
        ).scalar_one_or_none()

    def create_active(self, owner: CartOwner) -> CartModel:
        cart = CartModel(
            user_id=None if owner.is_guest else owner.identifier,
            guest_id=owner.identifier if owner.is_guest else None,
            status=CartStatus.ACTIVE.value,
            total_amount=Decimal("0.00"),
            total_items=0,
            last_activity=datetime.now(timezone.utc),
        )
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_or_create_active(self, owner: CartOwner) -> CartModel:
        return self.find_active_by_owner(owner) or self.create_active(owner)

    def mark_completed(self, cart: CartModel) -> CartModel:
        cart.status = CartStatus.COMPLETED.value
        cart.last_activity = datetime.now(timezone.utc)
        self.db.flush()
        return cart

    def find_idle_active_carts(self, cutoff: datetime) -> List[CartModel]:
        return list(
            self.db.execute(
                select(CartModel)
                .where(
                    CartModel.status == CartStatus.ACTIVE.value,
                    CartModel.total_items > 0,
                    CartModel.last_activity < cutoff,
                )
                .order_by(CartModel.last_activity)
            ).scalars()
        )

    def find_idle_cart(self, cart_id: str, cutoff: datetime) -> CartModel | None:
        # warunek w SQL: SQLite zwraca naiwne daty
        return self.db.execute(
            select(CartModel).where(
                CartModel.id == cart_id,
                CartModel.status == CartStatus.ACTIVE.value,
                CartModel.last_activity < cutoff,
            )
        ).scalar_one_or_none()

    # items

    def get_item(self, item_id: str) -> CartItemModel | None:
        return self.db.get(CartItemModel, item_id)

    def find_item(self, cart_id: str, variation_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_variation_id == variation_id,
            )
        ).scalar_one_or_none()

    def list_items(self, cart_id: str, with_variation: bool = False) -> List[CartItemModel]:
        stmt = (
            select(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.created_at, CartItemModel.id)
        )
        if with_variation:
            stmt = stmt.options(
                selectinload(CartItemModel.variation).selectinload(ProductVariationModel.images)
            )
        return list(self.db.execute(stmt).scalars())

    def upsert_item(
        self,
        cart: CartModel,
        variation: ProductVariationModel,
        quantity: int,
        price: Decimal,
        existing: CartItemModel | None = None,
    ) -> CartItemModel:
        if existing is None:
            existing = CartItemModel(
                cart_id=cart.id,
                product_id=variation.product_id,
                product_variation_id=variation.id,
                quantity=quantity,
                price=price,
            )
            self.db.add(existing)
        else:
            existing.quantity = quantity
            existing.price = price

        self.db.flush()
        return existing

    def delete_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_all_items(self, cart_id: str) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


def map_cart(cart: CartModel, items: List[CartItemModel]) -> CartRead:
    """Wiersze ORM -> CartRead. Kazde pole nazwane jawnie."""
    return CartRead(
        id=cart.id,
        user_id=cart.user_id,
        guest_id=cart.guest_id,
        items=[map_item(item) for item in items],
        total_amount=Decimal(cart.total_amount),
        total_items=cart.total_items,
        status=CartStatus(cart.status),
        created_at=cart.created_at,
        updated_at=cart.updated_at,
        last_activity=cart.last_activity,
    )


def map_item(item: CartItemModel) -> CartItemRead:
    variation = item.variation
    return CartItemRead(
        id=item.id,
        cart_id=item.cart_id,
        product_id=item.product_id,
        variation_id=item.product_variation_id,
        variation=VariationRead(
            id=variation.id,
            product_id=variation.product_id,
            size=variation.size,
            color=variation.color,
            price=Decimal(variation.price),
            sale_price=Decimal(variation.sale_price),
            stock=variation.stock,
            images=[
                ImageRead(
                    id=image.id,
                    url=image.url,
                    variation_id=image.variation_id,
                    created_at=image.created_at,
                )
                for image in variation.images
            ],
            created_at=variation.created_at,
            updated_at=variation.updated_at,
        ),
        quantity=item.quantity,
        price=Decimal(item.price),
        created_at=item.created_at,
        updated_at=item.updated_at,
    )
