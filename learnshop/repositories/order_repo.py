# learnshop/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from learnshop.models.order import Order, OrderItem
from learnshop.models.user import User


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; the checkout saga decides where the order
        record ends and the side effects begin.
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> list[tuple[Order, User | None]]:
        stmt = select(Order, User).join(User, User.id == Order.user_id, isouter=True)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = (
            stmt.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: int) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: int,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        return list(session.exec(stmt).all())

    def items_by_order(
        self,
        session: Session,
        order_ids: list[int],
    ) -> dict[int, list[OrderItem]]:
        grouped: dict[int, list[OrderItem]] = {order_id: [] for order_id in order_ids}
        if not order_ids:
            return grouped
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.id)
        )
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
