from storefront.data.database import Database
from storefront.domain.errors import ValidationError
from storefront.domain.schemas import (
    AddToCart,
    CartOwner,
    CartRead,
    GuestCart,
    MergeGuestCart,
    RemoveFromCart,
    UpdateCartItem,
)
from storefront.repos.cart_repo import CartRepo, map_cart
from storefront.services.cart_engine import CartTransactionEngine
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Fasada koszyka dla route handlerow i checkoutu (CQRS):
    commands (add, update, remove, clear, merge) ida przez CartTransactionEngine,
    query (get) tylko odczyt ze store'a.
    """

    def __init__(self, database: Database, engine: CartTransactionEngine | None = None):
        self.database = database
        self.engine = engine or CartTransactionEngine(database)

    #query - odczyt
    def get_cart(self, owner: CartOwner) -> CartRead | None:
        if owner is None or not owner.identifier:
            raise ValidationError("Identifier is required")

        with self.database.session() as db:
            repo = CartRepo(db)
            cart = repo.find_active_by_owner(owner)
            if cart is None:
                return None
            return map_cart(cart, repo.list_items(cart.id, with_variation=True))

    #commands
    def add_item(self, dto: AddToCart, owner: CartOwner) -> CartRead:
        return self.engine.add_item(owner, dto.variation_id, dto.quantity)

    def add_item_to_guest_cart(self, dto: GuestCart) -> CartRead:
        return self.engine.add_item(CartOwner.guest(dto.guest_id), dto.variation_id, dto.quantity)

    def update_item(self, dto: UpdateCartItem) -> CartRead:
        return self.engine.update_item(dto.item_id, dto.quantity)

    def remove_item(self, dto: RemoveFromCart) -> CartRead:
        return self.engine.remove_item(dto.item_id)

    def clear_cart(self, owner: CartOwner) -> CartRead:
        return self.engine.clear_cart(owner)

    def merge_guest_cart(self, dto: MergeGuestCart) -> CartRead:
        logger.info(f"Merging guest cart {dto.guest_id} into user {dto.user_id}")
        return self.engine.merge_guest_cart(dto.guest_id, dto.user_id)
