# learnshop/routers/cart.py
from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from learnshop.core.auth import get_current_user, require_auth
from learnshop.core.config import get_settings
from learnshop.core.errors import AuthorizationError
from learnshop.database import get_session
from learnshop.models.user import User
from learnshop.repositories.cart_repo import CartStore, GuestCartRegistry, SqlCartStore
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.schemas.base import MessageResponse
from learnshop.schemas.cart import (
    CartItemAdd,
    CartItemRef,
    CartItemUpdate,
    CartMergeResult,
    CartSummary,
)
from learnshop.services.cart_service import CartService

settings = get_settings()

router = APIRouter(prefix="/cart", tags=["Cart"])

catalog_repo = CatalogRepository()
service = CartService(catalog_repo)
guest_carts = GuestCartRegistry(
    max_carts=settings.GUEST_CART_MAX,
    idle_ttl=settings.GUEST_CART_TTL_SECONDS,
)

GUEST_TOKEN_HEADER = "X-Guest-Token"


def get_cart_store(
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
    guest_token: str | None = Header(default=None, alias=GUEST_TOKEN_HEADER),
) -> CartStore:
    """
    Pick the cart of the caller:
      - authenticated => server cart
      - guest token   => in-memory guest cart
      - neither       => 401
    """
    if current_user is not None:
        return SqlCartStore(session, current_user.id)
    if guest_token:
        return guest_carts.store_for(guest_token)
    raise AuthorizationError("Authentication or guest token required")


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    store: CartStore = Depends(get_cart_store),
):
    """
    Get the caller's cart with current catalog prices and totals.
    """
    return service.snapshot(session, store)


@router.post("/add", response_model=MessageResponse)
def add_to_cart(
    payload: CartItemAdd,
    session: Session = Depends(get_session),
    store: CartStore = Depends(get_cart_store),
):
    """
    Add an item to the cart, or increase its quantity.
    """
    line = service.add(session, store, payload.item_type, payload.item_id, payload.quantity)
    # a line holding exactly the requested quantity was just created
    if line.quantity == payload.quantity:
        return MessageResponse(message="Item added to cart")
    return MessageResponse(message="Cart quantity updated")


@router.put("/update", response_model=MessageResponse)
def update_cart_item(
    payload: CartItemUpdate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Overwrite the quantity of a line; quantity <= 0 removes it.
    """
    kept = service.set_quantity(store, payload.item_type, payload.item_id, payload.quantity)
    if not kept:
        return MessageResponse(message="Item removed from cart")
    return MessageResponse(message="Quantity updated")


@router.delete("/remove", response_model=MessageResponse)
def remove_cart_item(
    payload: CartItemRef,
    store: CartStore = Depends(get_cart_store),
):
    """
    Remove a line from the cart (404 if absent).
    """
    service.remove(store, payload.item_type, payload.item_id)
    return MessageResponse(message="Item removed from cart")


@router.delete("/clear", response_model=MessageResponse)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    """
    Clear the entire cart.
    """
    service.clear(store)
    return MessageResponse(message="Cart cleared")


@router.post("/merge", response_model=CartMergeResult)
def merge_guest_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    guest_token: str | None = Header(default=None, alias=GUEST_TOKEN_HEADER),
):
    """
    Move the guest cart named by the guest token into the caller's
    server cart. Called by the client right after login/registration.

    Best-effort: unmergeable lines are skipped, never an error.
    """
    if not guest_token:
        return CartMergeResult(message="No guest cart to merge", merged=0)

    merged = service.merge_guest_into(
        session,
        guest_carts.store_for(guest_token),
        SqlCartStore(session, current_user.id),
    )
    guest_carts.discard(guest_token)
    return CartMergeResult(message="Guest cart merged", merged=merged)
