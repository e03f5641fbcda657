# storefront/data/models/product_variation.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class ProductVariationModel(Base):
    """
    Wariant produktu - encja katalogu. Koszyk czyta cene/promocje,
    stock zmienia tylko InventoryLedger.
    """

    __tablename__ = "product_variations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), nullable=False, index=True)

    size = Column(String(32), nullable=True)
    color = Column(String(32), nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=False, default=0)  # 0 = brak promocji
    stock = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    images = relationship(
        "ProductImageModel",
        back_populates="variation",
        cascade="all, delete-orphan",
        order_by="ProductImageModel.created_at",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_variations_stock_non_negative"),
    )


class ProductImageModel(Base):
    __tablename__ = "product_images"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    url = Column(String(512), nullable=False)
    variation_id = Column(
        String(36), ForeignKey("product_variations.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    variation = relationship("ProductVariationModel", back_populates="images")
