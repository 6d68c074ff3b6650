# learnshop/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    Server-side cart line for an authenticated user.
    One user cannot have 2 rows for the same (item_type, item_id).

    Prices are not stored here: the cart view joins the catalog at read time.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "item_type", "item_id", name="uq_cart_owner_item"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        ondelete="CASCADE",
        index=True,
    )

    # course | product
    item_type: str = Field(index=True)
    item_id: int

    quantity: int = Field(
        default=1,
        gt=0,
        description="Must be >= 1",
    )

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
