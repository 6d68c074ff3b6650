# learnshop/schemas/cart.py
from typing import Literal

from pydantic import Field

from learnshop.schemas.base import CamelModel, MessageResponse

ItemType = Literal["course", "product"]


class CartItemRef(CamelModel):
    """
    Identifies one line of the cart.
    """

    item_id: int = Field(gt=0)
    item_type: ItemType


class CartItemAdd(CartItemRef):
    """
    Payload for adding to cart. Quantity defaults to 1.
    """

    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(CartItemRef):
    """
    Payload for overwriting the quantity of a line.

    quantity <= 0 removes the line.
    """

    quantity: int


class CartLineRead(CamelModel):
    """
    One cart line joined with the current catalog data.

    `id` is "<type>_<itemId>", stable across requests.
    """

    id: str
    name: str
    price: float
    image: str | None = None
    quantity: int
    type: ItemType
    item_id: int


class CartSummary(CamelModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total: float
    item_count: int


class CartMergeResult(MessageResponse):
    merged: int
