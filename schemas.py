"""
Catalog Schemas

The whole catalog is persisted as one JSON document:

    {"products": [ {..., "reviews": [ {...}, ... ]}, ... ]}

Keys are written the way the storefront reads them, so the image url is
``imageUrl`` on disk and on the wire and ``image_url`` in Python.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union

Number = Union[int, float]


# Stored records

class Review(BaseModel):
    id: str = Field(..., description="Review id, unique within its product")
    user: str = Field("Guest", description="Display name of the reviewer")
    rating: Number = Field(5, description="Rating, not range checked")
    comment: str = ""
    images: List[str] = Field(default_factory=list, description="Image urls or paths")
    date: str = Field(..., description="ISO-8601 UTC timestamp of the last write")


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Product id")
    name: Optional[str] = Field(None, description="Display label")
    price: Optional[int] = Field(None, description="Price in minor currency units")
    stock: int = Field(0, description="Units in stock")
    image_url: str = Field("", alias="imageUrl")
    reviews: List[Review] = Field(default_factory=list)


class Catalog(BaseModel):
    products: List[Product] = Field(default_factory=list)


# Request payloads

class ProductIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    price: Optional[int] = None
    stock: Optional[int] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")


class ProductUpdate(ProductIn):
    pass


class ReviewIn(BaseModel):
    user: Optional[str] = None
    rating: Optional[Number] = None
    comment: Optional[str] = None
    images: Optional[List[str]] = None


class ReviewUpdate(ReviewIn):
    pass


def present_fields(payload: BaseModel) -> dict:
    """Fields the caller actually sent with a non-null value.

    ``0`` and ``""`` count as sent; only absent or null fields are dropped.
    """
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
