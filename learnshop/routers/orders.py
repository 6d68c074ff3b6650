# learnshop/routers/orders.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from learnshop.core.auth import require_admin, require_auth
from learnshop.core.config import get_settings
from learnshop.database import get_session
from learnshop.models.user import User
from learnshop.repositories.cart_repo import SqlCartStore
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.repositories.enrollment_repo import EnrollmentRepository
from learnshop.repositories.order_repo import OrderRepository
from learnshop.schemas.base import MessageResponse
from learnshop.schemas.order import (
    AdminOrderList,
    OrderCreate,
    OrderCreated,
    OrderEnvelope,
    OrderList,
    OrderStatusUpdate,
)
from learnshop.services.cart_service import CartService
from learnshop.services.checkout_saga import CheckoutSaga
from learnshop.services.enrollment_service import EnrollmentService
from learnshop.services.order_service import OrderService

settings = get_settings()

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
catalog_repo = CatalogRepository()
enrollment_repo = EnrollmentRepository()
service = OrderService(order_repo)
saga = CheckoutSaga(
    order_repo,
    catalog_repo,
    CartService(catalog_repo),
    EnrollmentService(enrollment_repo, catalog_repo),
    allow_oversell=settings.ALLOW_OVERSELL,
)


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Create an order from the current user's cart.

    The order is reported as created once its record exists, even if an
    enrollment or stock step failed afterwards (those are logged).
    """
    result = saga.commit(
        session,
        current_user.id,
        SqlCartStore(session, current_user.id),
        payload.payment_method,
        payload.shipping_address,
    )
    return OrderCreated(
        message="Order created",
        order_id=result.order.id,
        total_amount=result.order.total_amount,
    )


@router.get("/my-orders", response_model=OrderList)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    List the authenticated user's orders with an items summary.
    """
    return OrderList(orders=service.list_user_orders(session, current_user.id))


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=AdminOrderList,
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    order_status: str | None = Query(default=None, alias="status"),
    page: int = 1,
    limit: int = 20,
):
    """
    List all orders (admin only), optionally filtered by status.
    """
    return AdminOrderList(
        orders=service.list_all_orders(session, status=order_status, page=page, limit=limit)
    )


@router.patch(
    "/{order_id}/status",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

    Allowed: pending, processing, shipped, delivered, cancelled.
    """
    service.update_status(session, order_id, payload.status)
    return MessageResponse(message="Order status updated")


# Declared last so "/my-orders" is not captured as an order id.
@router.get("/{order_id}", response_model=OrderEnvelope)
def get_my_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return OrderEnvelope(order=service.get_user_order(session, current_user.id, order_id))
