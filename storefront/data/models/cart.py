#storefront/data/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String, text
from sqlalchemy.orm import relationship

from storefront.data.database import Base

_ACTIVE_ONLY = text("status = 'ACTIVE'")


def _utcnow():
    return datetime.now(timezone.utc)


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    #dokladnie jeden wlasciciel: user albo guest
    user_id = Column(String(64), nullable=True)
    guest_id = Column(String(64), nullable=True)

    status = Column(String(20), nullable=False, default="ACTIVE")

    #pola wyliczane - pisze je tylko TotalsRecalculator
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_items = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    last_activity = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("(user_id IS NULL) <> (guest_id IS NULL)", name="ck_carts_single_owner"),
        #max jeden aktywny koszyk na wlasciciela
        Index(
            "uq_carts_active_user",
            "user_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index(
            "uq_carts_active_guest",
            "guest_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
    )
