"""
SQLAlchemy database models.

- Products: catalog rows owned by the catalog subsystem; the cart only reads them.
- Carts: one row per user, created lazily on the first add.
- Cart items: one line per (cart, product). ``product_id`` is a weak reference
  with no foreign key, so a line survives the product being deleted and is
  pruned by the cart service on the next read.
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


class Product(Base):
    """Product catalog row. ``images`` holds any historical image shape."""
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=True, index=True)
    price = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "_id": self.id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "images": self.images,
        }


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    total = Column(Float, nullable=False, default=0.0)
    item_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy="selectin",
    )


class CartItem(Base):
    """
    Cart line. ``name``/``price``/``image`` are snapshots taken when the line
    was first added; ``product`` resolves the live catalog row (None if deleted).
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)
    image = Column(Text, nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
    product = relationship(
        "Product",
        primaryjoin="foreign(CartItem.product_id) == Product.id",
        viewonly=True,
        lazy="select",
    )
