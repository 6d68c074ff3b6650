# learnshop/services/checkout_saga.py
"""
Checkout saga: turns a cart into an order.

Flow:
    1. Resolve the cart against current catalog prices (nothing mutated yet).
       - empty cart            -> EmptyCartError
       - vanished catalog rows -> UnavailableItemsError
    2. Insert Order (status 'pending') + OrderItem snapshots, commit.
       From here on the purchase is recorded and is never rolled back.
    3. One step per line, each committed on its own:
       - course  -> ensure_enrollment (idempotent, +1 student on creation)
       - product -> decrement_stock (relative UPDATE, oversell policy)
    4. Clear the cart.

A failing step is rolled back alone, logged, and reported in the
CommitResult; it never aborts the steps after it nor the order itself.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from learnshop.core.errors import EmptyCartError, UnavailableItemsError
from learnshop.models.order import Order, OrderItem
from learnshop.repositories.cart_repo import CartStore
from learnshop.repositories.catalog_repo import COURSE, PRODUCT, CatalogRepository
from learnshop.repositories.order_repo import OrderRepository
from learnshop.services.cart_service import CartService
from learnshop.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)

STEP_ENROLL = "enroll"
STEP_DECREMENT_STOCK = "decrement_stock"
STEP_CLEAR_CART = "clear_cart"


class StepRejected(Exception):
    """A step that ran but whose outcome was refused (e.g. insufficient stock)."""


@dataclass
class StepResult:
    step: str
    ok: bool
    item_type: str | None = None
    item_id: int | None = None
    detail: str | None = None


@dataclass
class CommitResult:
    order: Order
    items: list[OrderItem]
    steps: list[StepResult] = field(default_factory=list)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if not s.ok]


class CheckoutSaga:
    def __init__(
        self,
        order_repo: OrderRepository,
        catalog_repo: CatalogRepository,
        cart_service: CartService,
        enrollment_service: EnrollmentService,
        allow_oversell: bool = True,
    ):
        self.order_repo = order_repo
        self.catalog_repo = catalog_repo
        self.cart_service = cart_service
        self.enrollment_service = enrollment_service
        self.allow_oversell = allow_oversell

    def commit(
        self,
        session: Session,
        user_id: uuid.UUID,
        store: CartStore,
        payment_method: str,
        shipping_address: str | None,
    ) -> CommitResult:
        # 1) Re-read the cart against current prices
        resolved, missing = self.cart_service.resolve_lines(session, store)
        if not resolved and not missing:
            raise EmptyCartError()
        if missing:
            raise UnavailableItemsError(
                extra=[
                    {"itemType": line.item_type, "itemId": line.item_id}
                    for line in missing
                ]
            )

        total_amount = 0.0
        for line, entry in resolved:
            total_amount += entry.price * line.quantity

        # 2) The order record: header + snapshotted lines in one commit
        order = self.order_repo.create_order(
            session,
            Order(
                user_id=user_id,
                total_amount=total_amount,
                status="pending",
                payment_method=payment_method,
                shipping_address=shipping_address,
            ),
        )
        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    item_id=line.item_id,
                    item_type=line.item_type,
                    item_name=entry.name,
                    price=entry.price,
                    quantity=line.quantity,
                )
                for line, entry in resolved
            ],
        )
        session.commit()
        order_id = order.id
        logger.info(
            "Order %s created for user %s: %d line(s), total %.2f",
            order_id,
            user_id,
            len(items),
            total_amount,
        )

        result = CommitResult(order=order, items=items)

        # 3) Side effects, one independent step per line
        for line, _entry in resolved:
            if line.item_type == COURSE:
                result.steps.append(
                    self._run_step(
                        session,
                        order_id,
                        STEP_ENROLL,
                        line.item_type,
                        line.item_id,
                        lambda course_id=line.item_id: self._enroll(session, user_id, course_id),
                    )
                )
            elif line.item_type == PRODUCT:
                result.steps.append(
                    self._run_step(
                        session,
                        order_id,
                        STEP_DECREMENT_STOCK,
                        line.item_type,
                        line.item_id,
                        lambda product_id=line.item_id, qty=line.quantity: self._decrement(
                            session, product_id, qty
                        ),
                    )
                )

        # 4) Clear the cart
        result.steps.append(
            self._run_step(session, order_id, STEP_CLEAR_CART, None, None, store.clear)
        )

        if result.failed_steps:
            logger.warning(
                "Order %s committed with %d failed step(s); manual reconciliation needed",
                order_id,
                len(result.failed_steps),
            )

        session.refresh(order)
        return result

    # ---- steps ----

    def _enroll(self, session: Session, user_id: uuid.UUID, course_id: int) -> str | None:
        created = self.enrollment_service.ensure_enrollment(session, user_id, course_id)
        return "created" if created else "already enrolled"

    def _decrement(self, session: Session, product_id: int, quantity: int) -> str | None:
        adjustment = self.catalog_repo.decrement_stock(
            session, product_id, quantity, allow_oversell=self.allow_oversell
        )
        if not adjustment.ok:
            raise StepRejected(adjustment.status)
        return f"stock={adjustment.new_stock}"

    def _run_step(
        self,
        session: Session,
        order_id: int,
        step: str,
        item_type: str | None,
        item_id: int | None,
        action: Callable[[], str | None],
    ) -> StepResult:
        try:
            detail = action()
            session.commit()
        except (SQLAlchemyError, StepRejected) as exc:
            session.rollback()
            logger.warning(
                "Order %s step %s failed for %s %s: %s",
                order_id,
                step,
                item_type,
                item_id,
                exc,
            )
            return StepResult(step, False, item_type, item_id, str(exc))

        logger.info(
            "Order %s step %s ok for %s %s (%s)",
            order_id,
            step,
            item_type,
            item_id,
            detail,
        )
        return StepResult(step, True, item_type, item_id, detail)