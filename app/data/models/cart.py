#app/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)

    #owner is either SESSION:<token> or USER:<user id>, never both
    owner_kind = Column(String(10), nullable=False)
    owner_ref = Column(String(128), nullable=False)

    version = Column(Integer, nullable=False, default=1)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )

    __table_args__ = (
        UniqueConstraint("owner_kind", "owner_ref", name="u_cart_owner"),
        CheckConstraint("owner_kind IN ('SESSION', 'USER')", name="ck_cart_owner_kind"),
    )
