# learnshop/repositories/cart_repo.py
import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from learnshop.models.cart import CartItem

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    """Storage-agnostic view of one cart line."""

    item_type: str
    item_id: int
    quantity: int
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CartStore(Protocol):
    """
    Per-owner mapping of (item_type, item_id) -> quantity.

    Implementations are bound to one owner. Business rules (quantity <= 0
    means removal, catalog checks) live in CartService, not here.
    """

    def lines(self) -> list[CartLine]: ...

    def get(self, item_type: str, item_id: int) -> CartLine | None: ...

    def add(self, item_type: str, item_id: int, quantity: int) -> CartLine: ...

    def set_quantity(self, item_type: str, item_id: int, quantity: int) -> bool: ...

    def remove(self, item_type: str, item_id: int) -> bool: ...

    def clear(self) -> None: ...


class SqlCartStore:
    """
    Server-side cart of an authenticated user, persisted in `cart_items`.
    Each mutation commits on its own.
    """

    def __init__(self, session: Session, user_id: uuid.UUID):
        self.session = session
        self.user_id = user_id

    def _row(self, item_type: str, item_id: int) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == self.user_id,
            CartItem.item_type == item_type,
            CartItem.item_id == item_id,
        )
        return self.session.exec(stmt).first()

    @staticmethod
    def _to_line(row: CartItem) -> CartLine:
        return CartLine(
            item_type=row.item_type,
            item_id=row.item_id,
            quantity=row.quantity,
            added_at=row.added_at,
        )

    def lines(self) -> list[CartLine]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == self.user_id)
            .order_by(CartItem.added_at.desc(), CartItem.id.desc())
        )
        return [self._to_line(row) for row in self.session.exec(stmt).all()]

    def get(self, item_type: str, item_id: int) -> CartLine | None:
        row = self._row(item_type, item_id)
        return self._to_line(row) if row else None

    def add(self, item_type: str, item_id: int, quantity: int) -> CartLine:
        row = self._row(item_type, item_id)
        if row:
            row.quantity += quantity
            self.session.add(row)
            self.session.commit()
        else:
            row = CartItem(
                user_id=self.user_id,
                item_type=item_type,
                item_id=item_id,
                quantity=quantity,
            )
            self.session.add(row)
            try:
                self.session.commit()
            except IntegrityError:
                # the same line was inserted concurrently: add onto it
                self.session.rollback()
                row = self._row(item_type, item_id)
                if row is None:
                    raise
                row.quantity += quantity
                self.session.add(row)
                self.session.commit()
        self.session.refresh(row)
        return self._to_line(row)

    def set_quantity(self, item_type: str, item_id: int, quantity: int) -> bool:
        row = self._row(item_type, item_id)
        if row is None:
            return False
        row.quantity = quantity
        self.session.add(row)
        self.session.commit()
        return True

    def remove(self, item_type: str, item_id: int) -> bool:
        row = self._row(item_type, item_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.commit()
        return True

    def clear(self) -> None:
        stmt = select(CartItem).where(CartItem.user_id == self.user_id)
        for row in self.session.exec(stmt).all():
            self.session.delete(row)
        self.session.commit()


class GuestCartStore:
    """
    Ephemeral cart of an anonymous visitor, held in process memory.

    Only a handle: the lines live in the GuestCartRegistry, which creates
    them on the first `add` and may evict them when idle. Reads on a token
    that holds nothing return an empty cart without allocating one.
    """

    def __init__(self, token: str, registry: "GuestCartRegistry"):
        self.token = token
        self._registry = registry

    @staticmethod
    def _copy(line: CartLine) -> CartLine:
        return CartLine(line.item_type, line.item_id, line.quantity, line.added_at)

    def lines(self) -> list[CartLine]:
        with self._registry.lock:
            bucket = self._registry.bucket(self.token)
            if not bucket:
                return []
            # newest first: dicts keep insertion order
            return [self._copy(line) for line in reversed(list(bucket.values()))]

    def get(self, item_type: str, item_id: int) -> CartLine | None:
        with self._registry.lock:
            bucket = self._registry.bucket(self.token)
            line = bucket.get((item_type, item_id)) if bucket else None
            return self._copy(line) if line else None

    def add(self, item_type: str, item_id: int, quantity: int) -> CartLine:
        with self._registry.lock:
            bucket = self._registry.bucket(self.token, create=True)
            line = bucket.get((item_type, item_id))
            if line:
                line.quantity += quantity
            else:
                line = CartLine(item_type=item_type, item_id=item_id, quantity=quantity)
                bucket[(item_type, item_id)] = line
            return self._copy(line)

    def set_quantity(self, item_type: str, item_id: int, quantity: int) -> bool:
        with self._registry.lock:
            bucket = self._registry.bucket(self.token)
            line = bucket.get((item_type, item_id)) if bucket else None
            if line is None:
                return False
            line.quantity = quantity
            return True

    def remove(self, item_type: str, item_id: int) -> bool:
        with self._registry.lock:
            bucket = self._registry.bucket(self.token)
            if not bucket or bucket.pop((item_type, item_id), None) is None:
                return False
            if not bucket:
                self._registry.discard(self.token)
            return True

    def clear(self) -> None:
        self._registry.discard(self.token)


class GuestCartRegistry:
    """
    Holds the guest carts of this process, keyed by guest token.

    Bounded: carts idle for longer than `idle_ttl` seconds are dropped, and
    when more than `max_carts` exist the least recently used one goes.
    """

    def __init__(
        self,
        max_carts: int = 10_000,
        idle_ttl: float = 24 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_carts = max_carts
        self.idle_ttl = idle_ttl
        self._clock = clock
        # least recently used first
        self._carts: OrderedDict[str, dict[tuple[str, int], CartLine]] = OrderedDict()
        self._last_seen: dict[str, float] = {}
        self.lock = threading.RLock()

    def __len__(self) -> int:
        with self.lock:
            return len(self._carts)

    def store_for(self, token: str) -> GuestCartStore:
        return GuestCartStore(token, self)

    def bucket(
        self,
        token: str,
        create: bool = False,
    ) -> dict[tuple[str, int], CartLine] | None:
        """
        Lines of `token`, refreshed as most recently used.
        Unknown tokens give None unless `create` is set.
        """
        with self.lock:
            now = self._clock()
            self._evict_idle(now)

            bucket = self._carts.get(token)
            if bucket is None:
                if not create:
                    return None
                bucket = self._carts[token] = {}
                self._evict_overflow()
            else:
                self._carts.move_to_end(token)
            self._last_seen[token] = now
            return bucket

    def _evict_idle(self, now: float) -> None:
        while self._carts:
            token = next(iter(self._carts))
            if now - self._last_seen[token] < self.idle_ttl:
                break
            self._drop(token)
            logger.info("Guest cart %s expired after %ss idle", token, self.idle_ttl)

    def _evict_overflow(self) -> None:
        while len(self._carts) > self.max_carts:
            token = next(iter(self._carts))
            self._drop(token)
            logger.warning("Guest cart %s evicted: more than %d guest carts", token, self.max_carts)

    def _drop(self, token: str) -> None:
        self._carts.pop(token, None)
        self._last_seen.pop(token, None)

    def discard(self, token: str) -> None:
        with self.lock:
            self._drop(token)

    def reset(self) -> None:
        with self.lock:
            self._carts.clear()
            self._last_seen.clear()
