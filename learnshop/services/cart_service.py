# learnshop/services/cart_service.py
import logging

from sqlmodel import Session

from learnshop.core.errors import CartLineNotFoundError, NotFoundError, ValidationError
from learnshop.repositories.cart_repo import CartLine, CartStore
from learnshop.repositories.catalog_repo import ITEM_TYPES, CatalogEntry, CatalogRepository
from learnshop.schemas.cart import CartLineRead, CartSummary

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Works on any CartStore (server cart or guest cart), so the routers
    never branch on whether the caller is authenticated.

    Responsibilities:
      - validate item type and catalog existence on add
      - quantity <= 0 on update means removal
      - join lines with the catalog at read time (no cached prices)
      - compute cart total and item count
      - merge a guest cart into a server cart after login
    """

    def __init__(self, catalog_repo: CatalogRepository):
        self.catalog_repo = catalog_repo

    # ---- internal helpers ----

    @staticmethod
    def _check_item_type(item_type: str) -> None:
        if item_type not in ITEM_TYPES:
            raise ValidationError("Invalid item type")

    def _require_item(self, session: Session, item_type: str, item_id: int) -> CatalogEntry:
        self._check_item_type(item_type)
        entry = self.catalog_repo.resolve(session, item_type, item_id)
        if entry is None:
            raise NotFoundError(f"{item_type.capitalize()} not found")
        return entry

    def resolve_lines(
        self,
        session: Session,
        store: CartStore,
    ) -> tuple[list[tuple[CartLine, CatalogEntry]], list[CartLine]]:
        """
        Join every line with the current catalog row.

        Returns (resolved, missing); `missing` holds lines whose catalog
        item no longer exists.
        """
        resolved: list[tuple[CartLine, CatalogEntry]] = []
        missing: list[CartLine] = []
        for line in store.lines():
            entry = self.catalog_repo.resolve(session, line.item_type, line.item_id)
            if entry is None:
                missing.append(line)
            else:
                resolved.append((line, entry))
        return resolved, missing

    # ---- public operations ----

    def add(
        self,
        session: Session,
        store: CartStore,
        item_type: str,
        item_id: int,
        quantity: int = 1,
    ) -> CartLine:
        """
        Add an item, or increase its quantity if already in the cart.

        Rules:
          - item must exist in the catalog
          - quantity >= 1, no upper bound, no stock check
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        self._require_item(session, item_type, item_id)
        return store.add(item_type, item_id, quantity)

    def set_quantity(
        self,
        store: CartStore,
        item_type: str,
        item_id: int,
        quantity: int,
    ) -> bool:
        """
        Overwrite the quantity of a line.

        quantity <= 0 removes the line (no error if it was absent) and
        returns False; otherwise returns True.
        """
        self._check_item_type(item_type)
        if quantity <= 0:
            store.remove(item_type, item_id)
            return False

        if not store.set_quantity(item_type, item_id, quantity):
            raise CartLineNotFoundError()
        return True

    def remove(self, store: CartStore, item_type: str, item_id: int) -> None:
        self._check_item_type(item_type)
        if not store.remove(item_type, item_id):
            raise CartLineNotFoundError()

    def clear(self, store: CartStore) -> None:
        store.clear()

    def snapshot(self, session: Session, store: CartStore) -> CartSummary:
        """
        Return the cart joined with current catalog data:
          - one CartLineRead per line (newest first)
          - total = sum(price * quantity)
          - item_count = sum(quantity)
        """
        resolved, missing = self.resolve_lines(session, store)
        for line in missing:
            logger.warning(
                "Cart line %s_%s refers to a missing catalog item; hidden from cart view",
                line.item_type,
                line.item_id,
            )

        items: list[CartLineRead] = []
        total = 0.0
        item_count = 0
        for line, entry in resolved:
            total += entry.price * line.quantity
            item_count += line.quantity
            items.append(
                CartLineRead(
                    id=f"{line.item_type}_{line.item_id}",
                    name=entry.name,
                    price=entry.price,
                    image=entry.image,
                    quantity=line.quantity,
                    type=line.item_type,
                    item_id=line.item_id,
                )
            )

        return CartSummary(items=items, total=total, item_count=item_count)

    def merge_guest_into(
        self,
        session: Session,
        guest_store: CartStore,
        server_store: CartStore,
    ) -> int:
        """
        Replay `add` for each guest line into the server cart, then clear
        the guest cart.

        Best-effort: a line that cannot be merged is logged and skipped,
        it never fails the caller. Returns the number of merged lines.
        """
        merged = 0
        for line in reversed(guest_store.lines()):
            try:
                self.add(session, server_store, line.item_type, line.item_id, line.quantity)
                merged += 1
            except Exception:
                session.rollback()
                logger.warning(
                    "Could not merge guest cart line %s_%s (qty %s)",
                    line.item_type,
                    line.item_id,
                    line.quantity,
                    exc_info=True,
                )
        guest_store.clear()
        return merged
