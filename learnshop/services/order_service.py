# learnshop/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from learnshop.core.errors import InvalidStatusError, NotFoundError
from learnshop.models.order import Order, OrderItem
from learnshop.models.user import User
from learnshop.repositories.order_repo import OrderRepository
from learnshop.schemas.order import (
    ORDER_STATUSES,
    AdminOrderRead,
    OrderItemRead,
    OrderRead,
    OrderWithItemsRead,
)

logger = logging.getLogger(__name__)


def summarize_items(items: list[OrderItem]) -> str | None:
    """Item names joined with ', ' (None for an order without lines)."""
    if not items:
        return None
    return ", ".join(item.item_name for item in items)


class OrderService:
    """
    Read side of orders and the admin status update.

    Orders are created only by CheckoutSaga; after that the only mutable
    field is `status`.
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    # -------- User-facing operations --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[OrderRead]:
        """
        List orders for the given user, newest first, with an items summary.
        """
        orders = self.order_repo.list_for_user(session, user_id)
        items = self.order_repo.items_by_order(session, [o.id for o in orders])
        return [
            self._order_dto(order, summarize_items(items.get(order.id, [])))
            for order in orders
        ]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: int,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order not found")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> list[AdminOrderRead]:
        """
        List all orders (admin only), optionally filtered by status.
        """
        skip = (max(page, 1) - 1) * limit
        rows = self.order_repo.list_all(session, status=status, skip=skip, limit=limit)
        items = self.order_repo.items_by_order(session, [order.id for order, _ in rows])
        return [
            self._admin_order_dto(order, user, summarize_items(items.get(order.id, [])))
            for order, user in rows
        ]

    def update_status(
        self,
        session: Session,
        order_id: int,
        new_status: str,
    ) -> Order:
        """
        Admin-only status update. Any known status may be set.
        """
        if new_status not in ORDER_STATUSES:
            raise InvalidStatusError()

        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")

        previous = order.status
        order.status = new_status
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info("Order %s status %s -> %s", order_id, previous, new_status)
        return order

    # -------- Helper DTO builders --------

    @staticmethod
    def _order_dto(order: Order, items_summary: str | None) -> OrderRead:
        return OrderRead(
            id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status,
            payment_method=order.payment_method,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items_summary=items_summary,
        )

    def _admin_order_dto(
        self,
        order: Order,
        user: User | None,
        items_summary: str | None,
    ) -> AdminOrderRead:
        base = self._order_dto(order, items_summary)
        return AdminOrderRead(
            **base.model_dump(),
            user_name=user.name if user else None,
            user_email=user.email if user else None,
        )

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        base = self._order_dto(order, summarize_items(items))
        return OrderWithItemsRead(
            **base.model_dump(),
            items=[
                OrderItemRead(
                    id=it.id,
                    order_id=it.order_id,
                    item_id=it.item_id,
                    item_type=it.item_type,
                    item_name=it.item_name,
                    price=it.price,
                    quantity=it.quantity,
                )
                for it in items
            ],
        )
