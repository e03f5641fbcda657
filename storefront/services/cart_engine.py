# storefront/services/cart_engine.py
from datetime import datetime

from sqlalchemy.orm import Session

from storefront.data.database import Database
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import InsufficientStock, NotFound, ValidationError
from storefront.domain.schemas import CartOwner, CartRead
from storefront.repos.cart_repo import CartRepo
from storefront.repos.inventory_repo import InventoryLedger
from storefront.services.totals import TotalsRecalculator, effective_price
from storefront.utils.retry import RetryPolicy, run_unit_of_work
from storefront.utils.settings import CART_TX_TIMEOUT_SECONDS, ITEM_TX_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _require_owner(owner: CartOwner | None) -> CartOwner:
    if owner is None or not owner.identifier:
        raise ValidationError("Identifier (user id or guest id) is required")
    return owner


class CartTransactionEngine:
    """
    Komendy modyfikujace koszyk i stany magazynowe.

    Kazda operacja: walidacja -> transakcja z limitem czasu -> odczyt
    wierszy -> korekta stocku -> zapis pozycji -> przeliczenie sum ->
    commit -> agregat. Cala transakcja jest powtarzana przez
    run_unit_of_work (3 proby, backoff 100ms/200ms/400ms).
    Zadnych lockow w procesie - spojnosc daje izolacja bazy + retry.
    """

    def __init__(
        self,
        database: Database,
        retry_policy: RetryPolicy | None = None,
        item_timeout: float = ITEM_TX_TIMEOUT_SECONDS,
        cart_timeout: float = CART_TX_TIMEOUT_SECONDS,
    ):
        self.database = database
        self.retry_policy = retry_policy or RetryPolicy()
        self.item_timeout = item_timeout
        self.cart_timeout = cart_timeout

    def _run(self, operation: str, body, timeout: float) -> CartRead:
        return run_unit_of_work(
            self.database,
            operation,
            body,
            timeout=timeout,
            policy=self.retry_policy,
        )

    # =====================================================
    # ADD
    # =====================================================
    def add_item(self, owner: CartOwner, variation_id: str, quantity: int) -> CartRead:
        owner = _require_owner(owner)
        if not variation_id:
            raise ValidationError("Product variation ID is required")
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        def body(db: Session) -> CartRead:
            repo = CartRepo(db)
            ledger = InventoryLedger(db)

            cart = repo.get_or_create_active(owner)
            variation = ledger.require_variation(variation_id, for_update=True)

            #wstepny check zanim szukamy istniejacej pozycji
            if variation.stock < quantity:
                raise InsufficientStock(variation_id, variation.stock, quantity)

            existing = repo.find_item(cart.id, variation_id)
            target = (existing.quantity if existing else 0) + quantity

            #finalny check na docelowej ilosci - ten jest wiazacy
            if variation.stock < target:
                raise InsufficientStock(variation_id, variation.stock, target)

            #rezerwujemy tylko nowo dodana ilosc, nie cala docelowa
            ledger.reserve(variation_id, quantity)
            repo.upsert_item(cart, variation, target, effective_price(variation), existing=existing)

            logger.info(
                f"Variation {variation_id} x{quantity} added to cart {cart.id} ({owner}), "
                f"item quantity now {target}"
            )
            return TotalsRecalculator(db).recalculate(cart.id)

        return self._run("add item", body, self.item_timeout)

    # =====================================================
    # UPDATE
    # =====================================================
    def update_item(self, item_id: str, quantity: int) -> CartRead:
        if not item_id:
            raise ValidationError("Cart item ID is required")
        if quantity is None:
            raise ValidationError("Quantity is required")

        def body(db: Session) -> CartRead:
            repo = CartRepo(db)
            ledger = InventoryLedger(db)

            item = repo.get_item(item_id)
            if item is None:
                raise NotFound(f"Cart item {item_id} not found")

            cart_id = item.cart_id

            if quantity <= 0:
                self._remove(repo, ledger, item)
            else:
                variation = ledger.require_variation(item.product_variation_id, for_update=True)
                diff = quantity - item.quantity

                #diff < 0 zawsze przechodzi i oddaje towar
                if variation.stock < diff:
                    raise InsufficientStock(variation.id, variation.stock, diff)

                if diff:
                    ledger.reserve(variation.id, diff)
                repo.upsert_item(item.cart, variation, quantity, effective_price(variation), existing=item)

                logger.info(f"Cart item {item_id} quantity changed by {diff:+d} to {quantity}")

            return TotalsRecalculator(db).recalculate(cart_id)

        return self._run("update item", body, self.item_timeout)

    # =====================================================
    # REMOVE
    # =====================================================
    def remove_item(self, item_id: str) -> CartRead:
        if not item_id:
            raise ValidationError("Cart item ID is required")

        def body(db: Session) -> CartRead:
            repo = CartRepo(db)
            ledger = InventoryLedger(db)

            item = repo.get_item(item_id)
            if item is None:
                raise NotFound(f"Cart item {item_id} not found")

            cart_id = item.cart_id
            self._remove(repo, ledger, item)
            return TotalsRecalculator(db).recalculate(cart_id)

        return self._run("remove item", body, self.item_timeout)

    @staticmethod
    def _remove(repo: CartRepo, ledger: InventoryLedger, item: CartItemModel) -> None:
        item_id = item.id
        variation_id = item.product_variation_id
        released = item.quantity

        repo.delete_item(item)
        ledger.release(variation_id, released)

        logger.info(f"Cart item {item_id} removed, {released} returned to variation {variation_id}")

    # =====================================================
    # CLEAR
    # =====================================================
    def clear_cart(self, owner: CartOwner) -> CartRead:
        owner = _require_owner(owner)

        def body(db: Session) -> CartRead:
            repo = CartRepo(db)

            cart = repo.find_active_by_owner(owner)
            if cart is None:
                raise NotFound(f"No active cart for {owner}")

            return self._empty(db, repo, cart.id)

        return self._run("clear cart", body, self.cart_timeout)

    def release_idle_cart(self, cart_id: str, cutoff: datetime) -> CartRead | None:
        """
        Oproznia koszyk tylko jesli nadal jest ACTIVE i bezczynny od `cutoff`.

        Stan sprawdzany w tej samej transakcji co zwrot stocku - koszyk
        odswiezony albo scalony po skanie zostaje nietkniety (None).
        """
        if not cart_id:
            raise ValidationError("Cart ID is required")

        def body(db: Session) -> CartRead | None:
            repo = CartRepo(db)

            cart = repo.find_idle_cart(cart_id, cutoff)
            if cart is None:
                logger.info(f"Cart {cart_id} no longer idle, skipped")
                return None

            return self._empty(db, repo, cart.id)

        return self._run("release idle cart", body, self.cart_timeout)

    @staticmethod
    def _empty(db: Session, repo: CartRepo, cart_id: str) -> CartRead:
        ledger = InventoryLedger(db)

        for item in repo.list_items(cart_id):
            ledger.release(item.product_variation_id, item.quantity)

        deleted = repo.delete_all_items(cart_id)
        logger.info(f"Cart {cart_id} cleared, {deleted} items released")

        return TotalsRecalculator(db).recalculate(cart_id)

    # =====================================================
    # MERGE
    # =====================================================
    def merge_guest_cart(self, guest_id: str, user_id: str) -> CartRead:
        """
        Przenosi zawartosc koszyka goscia do koszyka usera.

        Stock nie jest ruszany - rezerwacja przechodzi na usera razem z
        pozycja. Koszyk goscia przechodzi w COMPLETED (nie jest kasowany).
        """
        if not guest_id or not user_id:
            raise ValidationError("Guest ID and User ID are required for merging carts")

        def body(db: Session) -> CartRead:
            repo = CartRepo(db)
            ledger = InventoryLedger(db)

            guest_cart = repo.find_active_by_owner(CartOwner.guest(guest_id))
            if guest_cart is None:
                raise NotFound(f"Guest cart for {guest_id} not found or is not active")

            user_cart = repo.get_or_create_active(CartOwner.user(user_id))

            merged = 0
            for guest_item in repo.list_items(guest_cart.id):
                variation = ledger.get_variation(guest_item.product_variation_id)
                if variation is None:
                    # wariant zniknal z katalogu - pomijamy, nie przerywamy merge
                    logger.warning(
                        f"Skipping guest item {guest_item.id}: variation "
                        f"{guest_item.product_variation_id} no longer exists"
                    )
                    continue

                existing = repo.find_item(user_cart.id, variation.id)
                quantity = guest_item.quantity + (existing.quantity if existing else 0)
                repo.upsert_item(user_cart, variation, quantity, effective_price(variation), existing=existing)
                merged += 1

            repo.mark_completed(guest_cart)

            logger.info(
                f"Guest cart {guest_cart.id} merged into cart {user_cart.id} "
                f"of user {user_id} ({merged} items)"
            )
            return TotalsRecalculator(db).recalculate(user_cart.id)

        return self._run("merge guest cart", body, self.cart_timeout)
