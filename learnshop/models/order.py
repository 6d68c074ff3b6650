# learnshop/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Immutable once created except for `status`. `total_amount` is the
    snapshot computed at checkout and is never recomputed from the catalog.
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    total_amount: float = Field(
        description="Sum of price snapshot x quantity over the order lines",
    )

    # pending | processing | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
    )

    payment_method: str | None = None
    shipping_address: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    Name and price are snapshots taken at checkout so the order stays a
    historical record when the catalog changes.
    """

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(
        foreign_key="orders.id",
        ondelete="CASCADE",
        index=True,
    )

    item_id: int
    # course | product
    item_type: str

    item_name: str = Field(description="Catalog name at time of order")
    price: float = Field(description="Unit price at time of order")

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )
