# learnshop/models/product.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Physical product sold by the training center (kits, tools, books).

    `stock` is a shared counter: checkout only ever adjusts it with a
    relative UPDATE (see CatalogRepository.decrement_stock), and under the
    default oversell policy it may become negative.
    """

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    description: str = ""
    price: float = Field(ge=0)
    image: str | None = None
    category: str = Field(default="general", index=True)
    rating: float = 4.5
    reviews_count: int = 0

    stock: int = Field(default=0, description="Units on hand; may be negative if oversold")

    features: str | None = Field(
        default=None,
        description="Free-form feature list",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
