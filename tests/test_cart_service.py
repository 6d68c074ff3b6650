"""Cart operations against both the server cart and the guest cart."""

import pytest

from learnshop.core.errors import CartLineNotFoundError, NotFoundError, ValidationError
from learnshop.repositories.cart_repo import GuestCartRegistry, SqlCartStore
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.services.cart_service import CartService


@pytest.fixture()
def service():
    return CartService(CatalogRepository())


@pytest.fixture()
def store(session, user):
    return SqlCartStore(session, user.id)


@pytest.fixture()
def guest_store():
    return GuestCartRegistry().store_for("guest-abc")


class TestAdd:
    def test_add_creates_line_with_default_quantity(self, session, service, store, course):
        line = service.add(session, store, "course", course.id)

        assert line.quantity == 1
        assert store.get("course", course.id).quantity == 1

    def test_add_existing_line_increments_quantity(self, session, service, store, product):
        service.add(session, store, "product", product.id, 2)
        line = service.add(session, store, "product", product.id, 3)

        assert line.quantity == 5
        assert len(store.lines()) == 1

    def test_add_does_not_check_stock(self, session, service, store, product):
        line = service.add(session, store, "product", product.id, product.stock + 10)
        assert line.quantity == 13

    def test_add_unknown_item_is_not_found(self, session, service, store):
        with pytest.raises(NotFoundError):
            service.add(session, store, "product", 999)
        assert store.lines() == []

    def test_add_invalid_item_type_is_rejected(self, session, service, store, course):
        with pytest.raises(ValidationError):
            service.add(session, store, "voucher", course.id)

    def test_add_non_positive_quantity_is_rejected(self, session, service, store, course):
        with pytest.raises(ValidationError):
            service.add(session, store, "course", course.id, 0)


class TestSetQuantity:
    def test_overwrites_quantity(self, session, service, store, product):
        service.add(session, store, "product", product.id, 4)

        assert service.set_quantity(store, "product", product.id, 2) is True
        assert store.get("product", product.id).quantity == 2

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_removes_line(self, session, service, store, product, quantity):
        service.add(session, store, "product", product.id, 4)

        assert service.set_quantity(store, "product", product.id, quantity) is False
        assert store.get("product", product.id) is None

    def test_zero_quantity_on_absent_line_is_not_an_error(self, service, store, product):
        assert service.set_quantity(store, "product", product.id, 0) is False

    def test_positive_quantity_on_absent_line_is_not_found(self, service, store, product):
        with pytest.raises(CartLineNotFoundError):
            service.set_quantity(store, "product", product.id, 2)
        assert store.lines() == []


class TestRemoveAndClear:
    def test_remove_present_line(self, session, service, store, course):
        service.add(session, store, "course", course.id)
        service.remove(store, "course", course.id)
        assert store.lines() == []

    def test_remove_absent_line_is_not_found(self, service, store, course):
        with pytest.raises(CartLineNotFoundError):
            service.remove(store, "course", course.id)

    def test_clear_only_touches_owner_cart(self, session, service, store, other_user, course, product):
        other_store = SqlCartStore(session, other_user.id)
        service.add(session, store, "course", course.id)
        service.add(session, store, "product", product.id, 2)
        service.add(session, other_store, "product", product.id, 1)

        service.clear(store)

        assert store.lines() == []
        assert len(other_store.lines()) == 1


class TestSnapshot:
    def test_totals_follow_lines(self, session, service, store, course, product):
        service.add(session, store, "course", course.id)
        service.add(session, store, "product", product.id, 2)
        service.set_quantity(store, "product", product.id, 3)

        summary = service.snapshot(session, store)

        assert summary.total == course.price * 1 + product.price * 3
        assert summary.item_count == 4
        assert summary.total == sum(i.price * i.quantity for i in summary.items)

    def test_lines_carry_catalog_data_and_composite_id(self, session, service, store, product):
        service.add(session, store, "product", product.id, 2)

        [item] = service.snapshot(session, store).items

        assert item.id == f"product_{product.id}"
        assert item.name == "Digital Multimeter"
        assert item.price == 10.0
        assert item.type == "product"
        assert item.item_id == product.id

    def test_price_change_is_visible_at_next_read(self, session, service, store, product):
        service.add(session, store, "product", product.id, 2)

        product.price = 12.5
        session.add(product)
        session.commit()

        assert service.snapshot(session, store).total == 25.0

    def test_line_of_deleted_item_is_hidden(self, session, service, store, course, product):
        service.add(session, store, "course", course.id)
        service.add(session, store, "product", product.id, 2)

        session.delete(product)
        session.commit()

        summary = service.snapshot(session, store)
        assert [i.type for i in summary.items] == ["course"]
        assert summary.total == course.price

    def test_empty_cart(self, session, service, store):
        summary = service.snapshot(session, store)
        assert summary.items == []
        assert summary.total == 0
        assert summary.item_count == 0


class TestGuestCart:
    def test_guest_cart_has_the_same_rules(self, session, service, guest_store, product):
        service.add(session, guest_store, "product", product.id, 2)
        service.add(session, guest_store, "product", product.id, 1)
        service.set_quantity(guest_store, "product", product.id, 0)

        assert guest_store.lines() == []
        with pytest.raises(CartLineNotFoundError):
            service.remove(guest_store, "product", product.id)

    def test_same_token_shares_one_cart(self, session, service, course):
        registry = GuestCartRegistry()
        service.add(session, registry.store_for("tok"), "course", course.id)

        assert len(registry.store_for("tok").lines()) == 1
        assert registry.store_for("another").lines() == []

    def test_guest_snapshot_shape(self, session, service, guest_store, course, product):
        service.add(session, guest_store, "course", course.id)
        service.add(session, guest_store, "product", product.id, 2)

        summary = service.snapshot(session, guest_store)

        # newest first
        assert [i.id for i in summary.items] == [f"product_{product.id}", f"course_{course.id}"]
        assert summary.total == course.price + 20.0
        assert summary.item_count == 3


class TestMergeGuestIntoServer:
    def test_guest_lines_are_replayed_as_adds(self, session, service, store, guest_store, course, product):
        service.add(session, store, "product", product.id, 1)
        service.add(session, guest_store, "product", product.id, 2)
        service.add(session, guest_store, "course", course.id)

        merged = service.merge_guest_into(session, guest_store, store)

        assert merged == 2
        assert store.get("product", product.id).quantity == 3
        assert store.get("course", course.id).quantity == 1
        assert guest_store.lines() == []

    def test_unmergeable_line_is_skipped(self, session, service, store, guest_store, course):
        service.add(session, guest_store, "course", course.id)
        # written straight to the store, bypassing the catalog check
        guest_store.add("product", 424242, 1)

        merged = service.merge_guest_into(session, guest_store, store)

        assert merged == 1
        assert [(line.item_type, line.item_id) for line in store.lines()] == [("course", course.id)]
        assert guest_store.lines() == []


class TestSqlCartStoreConcurrentAdd:
    def test_insert_race_adds_onto_existing_line(self, session, store, product, monkeypatch):
        store.add("product", product.id, 2)

        real_row = store._row
        calls = []

        def _stale_then_real(item_type, item_id):
            calls.append(item_id)
            # first lookup misses the row a concurrent request inserted
            return None if len(calls) == 1 else real_row(item_type, item_id)

        monkeypatch.setattr(store, "_row", _stale_then_real)

        line = store.add("product", product.id, 3)

        assert line.quantity == 5
        assert len(store.lines()) == 1


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestGuestCartRegistry:
    def test_reads_do_not_allocate_a_cart(self, session, service):
        registry = GuestCartRegistry()
        for n in range(50):
            store = registry.store_for(f"guest-{n}")
            service.snapshot(session, store)
            service.set_quantity(store, "product", 1, 0)
            with pytest.raises(CartLineNotFoundError):
                service.remove(store, "product", 1)

        assert len(registry) == 0

    def test_cart_is_created_on_first_add(self, session, service, course):
        registry = GuestCartRegistry()
        service.add(session, registry.store_for("guest-1"), "course", course.id)
        assert len(registry) == 1

    def test_emptied_cart_is_released(self, session, service, course):
        registry = GuestCartRegistry()
        store = registry.store_for("guest-1")
        service.add(session, store, "course", course.id)

        service.remove(store, "course", course.id)
        assert len(registry) == 0

        service.add(session, store, "course", course.id)
        service.clear(store)
        assert len(registry) == 0

    def test_idle_carts_expire(self, session, service, course):
        clock = FakeClock()
        registry = GuestCartRegistry(idle_ttl=60, clock=clock)
        idle = registry.store_for("idle")
        active = registry.store_for("active")
        service.add(session, idle, "course", course.id)
        service.add(session, active, "course", course.id)

        clock.now += 40
        assert len(active.lines()) == 1  # refreshes "active" only
        clock.now += 40

        assert idle.lines() == []
        assert len(active.lines()) == 1
        assert len(registry) == 1

    def test_least_recently_used_cart_is_evicted_over_the_cap(self, session, service, course):
        clock = FakeClock()
        registry = GuestCartRegistry(max_carts=2, clock=clock)
        first = registry.store_for("first")
        second = registry.store_for("second")
        service.add(session, first, "course", course.id)
        clock.now += 1
        service.add(session, second, "course", course.id)
        clock.now += 1
        first.lines()  # "second" is now the least recently used

        service.add(session, registry.store_for("third"), "course", course.id)

        assert len(registry) == 2
        assert second.lines() == []
        assert len(first.lines()) == 1
