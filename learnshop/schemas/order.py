# learnshop/schemas/order.py
import uuid
from datetime import datetime

from pydantic import field_validator

from learnshop.schemas.base import CamelModel, MessageResponse

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


class OrderCreate(CamelModel):
    """
    Payload for creating an order from the current cart.

    Backend derives:
      - user_id from token
      - status = 'pending'
      - total_amount from current catalog prices
      - items from cart
    """

    payment_method: str
    shipping_address: str | None = None

    @field_validator("payment_method")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("shipping_address")
    @classmethod
    def normalize_address(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderCreated(MessageResponse):
    order_id: int
    total_amount: float


class OrderItemRead(CamelModel):
    """
    Representation of a single order line (snapshotted name/price).
    """

    id: int
    order_id: int
    item_id: int
    item_type: str
    item_name: str
    price: float
    quantity: int


class OrderRead(CamelModel):
    """
    Order header plus a comma-separated summary of item names.
    """

    id: int
    user_id: uuid.UUID
    total_amount: float
    status: str
    payment_method: str | None
    shipping_address: str | None
    created_at: datetime
    updated_at: datetime
    items_summary: str | None = None


class AdminOrderRead(OrderRead):
    user_name: str | None = None
    user_email: str | None = None


class OrderWithItemsRead(OrderRead):
    items: list[OrderItemRead]


class OrderList(CamelModel):
    orders: list[OrderRead]


class AdminOrderList(CamelModel):
    orders: list[AdminOrderRead]


class OrderEnvelope(CamelModel):
    order: OrderWithItemsRead


class OrderStatusUpdate(CamelModel):
    """
    Admin payload to change order status. Checked against ORDER_STATUSES
    by the service so an unknown value is reported as "Invalid order status".
    """

    status: str
