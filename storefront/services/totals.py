# storefront/services/totals.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.product_variation import ProductVariationModel
from storefront.domain.errors import NotFound
from storefront.domain.schemas import CartRead
from storefront.repos.cart_repo import CartRepo, map_cart

CENTS = Decimal("0.01")


def effective_price(variation: ProductVariationModel) -> Decimal:
    """Cena promocyjna jesli > 0, inaczej cena katalogowa."""
    sale_price = Decimal(variation.sale_price or 0)
    if sale_price > 0:
        return sale_price
    return Decimal(variation.price)


class TotalsRecalculator:
    """
    Jedyny zapisujacy total_items / total_amount.

    Odswieza snapshot ceny kazdej pozycji, przelicza sumy, stempluje
    last_activity i zwraca pelny agregat (koszyk + pozycje + warianty + zdjecia).
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)

    def recalculate(self, cart_id: str) -> CartRead:
        if not cart_id:
            raise NotFound("Cart id is required")

        cart = self.repo.get_cart(cart_id)
        if cart is None:
            raise NotFound(f"Cart {cart_id} not found")

        items = self.repo.list_items(cart_id, with_variation=True)

        total_items = 0
        total_amount = Decimal("0.00")
        for item in items:
            item.price = effective_price(item.variation)
            total_items += item.quantity
            total_amount += item.price * item.quantity

        cart.total_items = total_items
        cart.total_amount = total_amount.quantize(CENTS)
        cart.last_activity = datetime.now(timezone.utc)
        self.db.flush()

        return map_cart(cart, items)
