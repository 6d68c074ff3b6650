# learnshop/repositories/catalog_repo.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from learnshop.models.course import Course, Lesson
from learnshop.models.product import Product

logger = logging.getLogger(__name__)

COURSE = "course"
PRODUCT = "product"
ITEM_TYPES = (COURSE, PRODUCT)

STOCK_OK = "ok"
STOCK_INSUFFICIENT = "insufficient_stock"
STOCK_UNKNOWN_PRODUCT = "unknown_product"


@dataclass(frozen=True)
class CatalogEntry:
    """Current name/price/image of a catalog item (stock only for products)."""

    item_type: str
    item_id: int
    name: str
    price: float
    image: str | None
    stock: int | None = None


@dataclass(frozen=True)
class StockAdjustment:
    product_id: int
    status: str
    new_stock: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == STOCK_OK

    @property
    def oversold(self) -> bool:
        return self.new_stock is not None and self.new_stock < 0


class CatalogRepository:
    """
    Read access to courses/products for the cart and checkout, plus the
    two counter mutations checkout is allowed to make.

    - Pure DB operations, no FastAPI, no business rules.
    - Counters are adjusted with relative UPDATE statements so concurrent
      checkouts never overwrite each other's adjustment.
    """

    # ----- Lookups -----

    def get_course(self, session: Session, course_id: int) -> Course | None:
        return session.get(Course, course_id)

    def get_product(self, session: Session, product_id: int) -> Product | None:
        return session.get(Product, product_id)

    def resolve(
        self,
        session: Session,
        item_type: str,
        item_id: int,
    ) -> CatalogEntry | None:
        if item_type == COURSE:
            course = self.get_course(session, item_id)
            if course is None:
                return None
            return CatalogEntry(
                item_type=COURSE,
                item_id=course.id,
                name=course.title,
                price=course.price,
                image=course.image,
            )

        if item_type == PRODUCT:
            product = self.get_product(session, item_id)
            if product is None:
                return None
            return CatalogEntry(
                item_type=PRODUCT,
                item_id=product.id,
                name=product.name,
                price=product.price,
                image=product.image,
                stock=product.stock,
            )

        return None

    def list_courses(
        self,
        session: Session,
        category: str | None = None,
        level: str | None = None,
        search: str | None = None,
    ) -> list[Course]:
        stmt = select(Course)
        if category:
            stmt = stmt.where(Course.category == category)
        if level:
            stmt = stmt.where(Course.level == level)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                Course.title.like(pattern) | Course.description.like(pattern)
            )
        stmt = stmt.order_by(Course.created_at.desc(), Course.id.desc())
        return list(session.exec(stmt).all())

    def list_lessons(self, session: Session, course_id: int) -> list[Lesson]:
        stmt = (
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.order_index, Lesson.id)
        )
        return list(session.exec(stmt).all())

    def get_lesson(self, session: Session, lesson_id: int) -> Lesson | None:
        return session.get(Lesson, lesson_id)

    # ----- Counter mutations (no commit: caller owns the transaction) -----

    def decrement_stock(
        self,
        session: Session,
        product_id: int,
        quantity: int,
        allow_oversell: bool = True,
    ) -> StockAdjustment:
        """
        Decrease `products.stock` by `quantity` in a single UPDATE.

        allow_oversell=True : unconditional decrement, stock may go negative.
        allow_oversell=False: the UPDATE only matches when stock >= quantity;
                              otherwise nothing changes and the result status
                              is `insufficient_stock`.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(
                stock=Product.stock - quantity,
                updated_at=datetime.now(timezone.utc),
            )
        )
        if not allow_oversell:
            stmt = stmt.where(Product.stock >= quantity)

        result = session.exec(stmt)  # type: ignore[call-overload]
        session.flush()

        if result.rowcount == 0:
            if self.get_product(session, product_id) is None:
                return StockAdjustment(product_id=product_id, status=STOCK_UNKNOWN_PRODUCT)
            return StockAdjustment(product_id=product_id, status=STOCK_INSUFFICIENT)

        new_stock = session.exec(
            select(Product.stock).where(Product.id == product_id)
        ).one()
        adjustment = StockAdjustment(
            product_id=product_id,
            status=STOCK_OK,
            new_stock=new_stock,
        )
        if adjustment.oversold:
            logger.warning(
                "Product %s oversold: stock is now %s", product_id, new_stock
            )
        return adjustment

    def increment_students_count(self, session: Session, course_id: int) -> int:
        """
        Add one student to `courses.students_count`. Returns rows matched.
        """
        stmt = (
            update(Course)
            .where(Course.id == course_id)
            .values(students_count=Course.students_count + 1)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        session.flush()
        return result.rowcount
