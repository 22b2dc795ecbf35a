"""
Catalog operations over a JSONDocumentStore.

Every write loads the whole catalog, changes it, and flushes it back inside
the store's transaction. Reads load the file and return what they find.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from database import JSONDocumentStore, new_id
from schemas import (
    Catalog,
    Product,
    ProductIn,
    ProductUpdate,
    Review,
    ReviewIn,
    ReviewUpdate,
    present_fields,
)

Clock = Callable[[], datetime]


class NotFoundError(Exception):
    pass


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__("Product not found")
        self.product_id = product_id


class ReviewNotFound(NotFoundError):
    def __init__(self, product_id: str, review_id: str):
        super().__init__("Review not found")
        self.product_id = product_id
        self.review_id = review_id


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    # 2024-05-01T12:00:00.000Z
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _find_product(catalog: Catalog, product_id: str) -> int:
    for idx, product in enumerate(catalog.products):
        if product.id == product_id:
            return idx
    raise ProductNotFound(product_id)


class CatalogRepository:
    def __init__(self, store: JSONDocumentStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utc_now

    def _timestamp(self) -> str:
        return iso_timestamp(self.clock())

    def _later_than(self, previous: str) -> str:
        """Current timestamp, bumped past ``previous`` when the clock has not moved on."""
        stamp = self._timestamp()
        if stamp > previous:
            return stamp
        try:
            return iso_timestamp(parse_timestamp(previous) + timedelta(milliseconds=1))
        except ValueError:
            return stamp

    # ---------- Products ----------

    def list_products(self) -> List[Product]:
        return self.store.load().products

    def get_product(self, product_id: str) -> Product:
        catalog = self.store.load()
        return catalog.products[_find_product(catalog, product_id)]

    def create_product(self, payload: ProductIn) -> Product:
        product = Product(
            id=new_id(),
            name=payload.name,
            price=payload.price,
            stock=payload.stock or 0,
            image_url=payload.image_url or "",
            reviews=[],
        )
        with self.store.transaction() as catalog:
            catalog.products.append(product)
        return product

    def update_product(self, product_id: str, payload: ProductUpdate) -> Product:
        changes = present_fields(payload)
        with self.store.transaction() as catalog:
            idx = _find_product(catalog, product_id)
            updated = catalog.products[idx].model_copy(update=changes)
            catalog.products[idx] = updated
        return updated

    def delete_product(self, product_id: str) -> dict:
        with self.store.transaction() as catalog:
            catalog.products = [p for p in catalog.products if p.id != product_id]
        return {"success": True}

    # ---------- Reviews ----------

    def list_reviews(self, product_id: str) -> List[Review]:
        return self.get_product(product_id).reviews

    def add_review(self, product_id: str, payload: ReviewIn) -> Review:
        review = Review(
            id=new_id(),
            user=payload.user if payload.user is not None else "Guest",
            rating=payload.rating if payload.rating is not None else 5,
            comment=payload.comment if payload.comment is not None else "",
            images=payload.images or [],
            date=self._timestamp(),
        )
        with self.store.transaction() as catalog:
            product = catalog.products[_find_product(catalog, product_id)]
            product.reviews.append(review)
        return review

    def update_review(self, product_id: str, review_id: str, payload: ReviewUpdate) -> Review:
        changes = present_fields(payload)
        with self.store.transaction() as catalog:
            product = catalog.products[_find_product(catalog, product_id)]
            for idx, review in enumerate(product.reviews):
                if review.id == review_id:
                    break
            else:
                raise ReviewNotFound(product_id, review_id)
            changes["date"] = self._later_than(review.date)
            updated = review.model_copy(update=changes)
            product.reviews[idx] = updated
        return updated

    def delete_review(self, product_id: str, review_id: str) -> dict:
        with self.store.transaction() as catalog:
            product = catalog.products[_find_product(catalog, product_id)]
            product.reviews = [r for r in product.reviews if r.id != review_id]
        return {"success": True}
