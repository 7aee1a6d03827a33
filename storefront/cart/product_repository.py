"""Read-only product lookups for cart operations."""

from typing import Optional

from sqlalchemy.orm import Session

from storefront.models import Product


class ProductRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, product_id: str) -> Optional[Product]:
        if not product_id:
            return None
        return self._db.get(Product, str(product_id))
