# storefront/repos/inventory_repo.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.product_variation import ProductVariationModel
from storefront.domain.errors import InsufficientStock, NotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryLedger:
    """
    Stany magazynowe wariantow.

    Nigdy nie robi commita - kazda zmiana stocku idzie w tej samej
    transakcji co zmiana koszyka, ktora jej towarzyszy.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_variation(self, variation_id: str, for_update: bool = False) -> ProductVariationModel | None:
        if for_update:
            return self.db.get(ProductVariationModel, variation_id, with_for_update=True)
        return self.db.get(ProductVariationModel, variation_id)

    def require_variation(self, variation_id: str, for_update: bool = False) -> ProductVariationModel:
        variation = self.get_variation(variation_id, for_update=for_update)
        if variation is None:
            raise NotFound(f"Product variation {variation_id} not found")
        return variation

    def reserve(self, variation_id: str, delta: int) -> ProductVariationModel:
        """
        stock -= delta (delta > 0 rezerwuje, delta < 0 zwalnia).

        Warunkowy UPDATE: np. update set stock = stock - 3
        where id = 'v1' and stock - 3 >= 0 - 0 wierszy = brak towaru.
        """
        result = self.db.execute(
            update(ProductVariationModel)
            .where(
                ProductVariationModel.id == variation_id,
                ProductVariationModel.stock - delta >= 0,
            )
            .values(stock=ProductVariationModel.stock - delta)
            .execution_options(synchronize_session=False)
        )

        #odczyt w tej samej transakcji widzi wlasny zapis
        variation = self.db.get(ProductVariationModel, variation_id, populate_existing=True)
        if variation is None:
            raise NotFound(f"Product variation {variation_id} not found")

        if result.rowcount == 0:
            logger.info(
                f"Reservation of {delta} for variation {variation_id} rejected, "
                f"stock {variation.stock}"
            )
            raise InsufficientStock(variation_id, variation.stock, delta)

        return variation

    def release(self, variation_id: str, quantity: int) -> ProductVariationModel:
        return self.reserve(variation_id, -quantity)
