"""
Cart persistence.

Every ``atomic_*`` mutation is a single conditional SQL statement on the cart
line (upsert with an increment, exact update, or delete), followed by a
recompute of the cart's stored totals in the same transaction. Two concurrent
adds for the same user/product therefore both land; neither reads a stale
quantity and overwrites the other.

``save`` is the one read-modify-write path and is only used for pruning lines
whose product was deleted.
"""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, selectinload

from storefront.models import Cart, CartItem
from storefront.utils.logger import get_logger

logger = get_logger("cart.repository")

# Dialects with INSERT ... ON CONFLICT support
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_carts = Cart.__table__
_items = CartItem.__table__


class CartRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_user_id(self, user_id: str) -> Optional[Cart]:
        stmt = (
            select(Cart)
            .where(Cart.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self._db.execute(stmt).scalars().first()

    def find_by_user_id_with_populate(self, user_id: str) -> Optional[Cart]:
        """Like ``find_by_user_id`` but each line's ``product`` is loaded (None if deleted)."""
        stmt = (
            select(Cart)
            .where(Cart.user_id == user_id)
            .options(selectinload(Cart.items).selectinload(CartItem.product))
            .execution_options(populate_existing=True)
        )
        return self._db.execute(stmt).scalars().first()

    # ------------------------------------------------------------------
    # Atomic mutations
    # ------------------------------------------------------------------

    def atomic_add_to_cart(
        self,
        user_id: str,
        product_id: str,
        name: str,
        price: float,
        image: str,
        quantity: int,
    ) -> Cart:
        """
        Increment the line for ``product_id`` by ``quantity`` or append it with
        the given snapshot fields. Creates the cart on first use.
        """
        logger.info("cart_repository: method=atomic_add_to_cart user_id=%s product_id=%s qty=%s", user_id, product_id, quantity)
        with self._transaction():
            self._db.execute(
                self._insert(_carts)
                .values(user_id=user_id, total=0.0, item_count=0)
                .on_conflict_do_nothing(index_elements=[_carts.c.user_id])
            )
            cart_id = self._cart_id(user_id)

            stmt = self._insert(_items).values(
                cart_id=cart_id,
                product_id=str(product_id),
                name=name or "",
                price=price or 0.0,
                image=image or "",
                quantity=quantity,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[_items.c.cart_id, _items.c.product_id],
                set_={"quantity": _items.c.quantity + stmt.excluded.quantity},
            )
            self._db.execute(stmt)
            self._recompute_totals(cart_id)
        return self.find_by_user_id(user_id)

    def atomic_update_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[Cart]:
        """Set the line's quantity exactly; ``quantity <= 0`` deletes the line."""
        logger.info("cart_repository: method=atomic_update_cart_item user_id=%s product_id=%s qty=%s", user_id, product_id, quantity)
        with self._transaction():
            cart_id = self._cart_id(user_id)
            if cart_id is None:
                return None
            line = (_items.c.cart_id == cart_id) & (_items.c.product_id == str(product_id))
            if quantity <= 0:
                self._db.execute(delete(_items).where(line))
            else:
                self._db.execute(update(_items).where(line).values(quantity=quantity))
            self._recompute_totals(cart_id)
        return self.find_by_user_id(user_id)

    def atomic_remove_from_cart(self, user_id: str, product_id: str) -> Optional[Cart]:
        logger.info("cart_repository: method=atomic_remove_from_cart user_id=%s product_id=%s", user_id, product_id)
        with self._transaction():
            cart_id = self._cart_id(user_id)
            if cart_id is None:
                return None
            self._db.execute(
                delete(_items).where(
                    (_items.c.cart_id == cart_id) & (_items.c.product_id == str(product_id))
                )
            )
            self._recompute_totals(cart_id)
        return self.find_by_user_id(user_id)

    def atomic_clear_cart(self, user_id: str) -> Optional[Cart]:
        logger.info("cart_repository: method=atomic_clear_cart user_id=%s", user_id)
        with self._transaction():
            cart_id = self._cart_id(user_id)
            if cart_id is None:
                return None
            self._db.execute(delete(_items).where(_items.c.cart_id == cart_id))
            self._recompute_totals(cart_id)
        return self.find_by_user_id(user_id)

    def save(self, cart: Cart) -> Cart:
        """
        Persist an already-mutated cart (lines dropped from ``cart.items`` are
        deleted). Stored totals are recomputed from the remaining snapshots.
        """
        logger.info("cart_repository: method=save user_id=%s", cart.user_id)
        with self._transaction():
            self._db.add(cart)
            self._db.flush()
            self._recompute_totals(cart.id)
        return cart

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self):
        try:
            yield
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

    def _insert(self, table):
        dialect = self._db.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect)
        if insert_fn is None:
            raise RuntimeError(f"Atomic cart upserts are not supported on dialect '{dialect}'")
        return insert_fn(table)

    def _cart_id(self, user_id: str) -> Optional[int]:
        return self._db.execute(
            select(_carts.c.id).where(_carts.c.user_id == user_id)
        ).scalar_one_or_none()

    def _recompute_totals(self, cart_id: int) -> None:
        line_total = (
            select(func.coalesce(func.sum(_items.c.price * _items.c.quantity), 0.0))
            .where(_items.c.cart_id == cart_id)
            .scalar_subquery()
        )
        unit_count = (
            select(func.coalesce(func.sum(_items.c.quantity), 0))
            .where(_items.c.cart_id == cart_id)
            .scalar_subquery()
        )
        self._db.execute(
            update(_carts)
            .where(_carts.c.id == cart_id)
            .values(total=line_total, item_count=unit_count)
        )
