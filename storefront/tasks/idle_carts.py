# storefront/tasks/idle_carts.py
from datetime import datetime, timedelta, timezone

from storefront.celery_worker import celery_app
from storefront.data.database import Database
from storefront.domain.errors import CartError
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_engine import CartTransactionEngine
from storefront.utils.settings import (
    CART_IDLE_TTL_SECONDS,
    DATABASE_URL,
    DB_ECHO,
    DB_ISOLATION_LEVEL,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def release_idle_carts(
    database: Database,
    engine: CartTransactionEngine,
    now: datetime | None = None,
    idle_for: timedelta = timedelta(seconds=CART_IDLE_TTL_SECONDS),
) -> int:
    """
    Zwalnia stock zarezerwowany przez porzucone koszyki.

    Koszyk zostaje ACTIVE (pusty). Bezczynnosc jest sprawdzana ponownie
    w transakcji zwalniajacej, wiec koszyk ruszony po skanie przetrwa.
    Blad na jednym koszyku nie przerywa calego przebiegu.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - idle_for

    with database.session() as db:
        cart_ids = [cart.id for cart in CartRepo(db).find_idle_active_carts(cutoff)]

    logger.info(f"Found {len(cart_ids)} idle carts (inactive since {cutoff.isoformat()})")

    released = 0
    for cart_id in cart_ids:
        try:
            if engine.release_idle_cart(cart_id, cutoff) is not None:
                released += 1
        except CartError as e:
            logger.warning(f"Failed to release idle cart {cart_id}: {e}")

    return released


@celery_app.task(name="storefront.tasks.idle_carts.release_idle_carts_task")
def release_idle_carts_task():
    logger.info("Release idle carts task started")

    database = Database(DATABASE_URL, echo=DB_ECHO, isolation_level=DB_ISOLATION_LEVEL)
    try:
        released = release_idle_carts(database, CartTransactionEngine(database))
        logger.info(f"Released {released} idle carts")
        return {"released": released}
    finally:
        database.dispose()
