"""Tests for OrderStore: creation, edit, duplication and completion."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import InvalidStateError, NotFoundError, StoreError, ValidationError
from app.models import Order, OrderItem, OrderStatus, User, UserRole
from app.services.orders import normalize_items
from app.services.orders import store as store_module


def _items(view):
    return [(i.product, i.quantity) for i in view.items]


class TestNormalizeItems:
    def test_default_quantity(self):
        assert normalize_items([{"product": "Tea"}])[0].quantity == 1

    def test_quantity_coerced_to_at_least_one(self):
        specs = normalize_items([{"product": "Tea", "quantity": 0}, {"product": "Water", "quantity": -3}])
        assert [s.quantity for s in specs] == [1, 1]

    def test_product_trimmed(self):
        assert normalize_items([{"product": "  Tea "}])[0].product == "Tea"

    @pytest.mark.parametrize("items", [None, [], [{"quantity": 2}], [{"product": "  "}]])
    def test_invalid_items_rejected(self, items):
        with pytest.raises(ValidationError):
            normalize_items(items)

    def test_non_numeric_quantity_rejected(self):
        with pytest.raises(ValidationError):
            normalize_items([{"product": "Tea", "quantity": "two"}])


class TestCreateOrder:
    def test_persists_order_and_every_item(self, harness):
        order_id = harness.create(items=[
            {"product": "Tea", "quantity": 2},
            {"product": "Simit"},
            {"product": "Water", "quantity": 3},
        ])

        order = harness.query("get_order", order_id)
        assert order.status == OrderStatus.ACTIVE
        assert order.completed_at is None
        assert _items(order) == [("Tea", 2), ("Simit", 1), ("Water", 3)]
        assert harness.count(OrderItem) == 3

    def test_links_resolved_user(self, harness):
        order_id = harness.create(user_name="Admin")

        async def load(session):
            order = await session.get(Order, order_id)
            user = await session.get(User, order.user_id)
            return order.user_name, user.full_name, user.role
        assert harness.call(load) == ("Admin", "Admin", UserRole.ADMIN)

    def test_without_user_tracking(self, harness):
        order_id = harness.create(track_users=False)

        async def load(session):
            return (await session.get(Order, order_id)).user_id
        assert harness.call(load) is None
        assert harness.count(User) == 0

    def test_missing_note_stored_empty(self, harness):
        order_id = harness.create(note=None)
        assert harness.query("get_order", order_id).note == ""

    @pytest.mark.parametrize("kwargs", [
        {"user_name": ""},
        {"user_name": None},
        {"room": "  "},
        {"items": []},
    ])
    def test_missing_fields_rejected(self, harness, kwargs):
        with pytest.raises(ValidationError):
            harness.create(**kwargs)
        assert harness.count(Order) == 0

    def test_unknown_original_order_rejected(self, harness):
        with pytest.raises(ValidationError):
            harness.create(original_order_id=999)
        assert harness.count(Order) == 0
        assert harness.count(User) == 0

    def test_original_order_link(self, harness):
        first = harness.create()
        second = harness.create(original_order_id=first)
        assert harness.query("get_order", second).original_order_id == first

    def test_failure_rolls_back_everything(self, harness, monkeypatch):
        def broken_items(specs):
            return [OrderItem(product_name=None, quantity=1) for _ in specs]
        monkeypatch.setattr(store_module, "_build_items", broken_items)

        with pytest.raises(StoreError):
            harness.create()

        assert harness.count(Order) == 0
        assert harness.count(OrderItem) == 0
        assert harness.count(User) == 0


class TestEditOrder:
    def test_replaces_room_note_and_items(self, harness):
        order_id = harness.create(items=[{"product": "Tea", "quantity": 2}, {"product": "Toast"}])

        harness.store("edit_order", order_id, "14", "No sugar", [{"product": "Coffee", "quantity": 1}])

        order = harness.query("get_order", order_id)
        assert order.room == "14"
        assert order.note == "No sugar"
        assert _items(order) == [("Coffee", 1)]
        assert harness.count(OrderItem) == 1

    def test_unknown_order(self, harness):
        with pytest.raises(NotFoundError):
            harness.store("edit_order", 42, "14", "", [{"product": "Tea"}])

    def test_completed_order_is_not_editable(self, harness):
        order_id = harness.create(items=[{"product": "Tea", "quantity": 2}])
        harness.store("complete_order", order_id)

        with pytest.raises(InvalidStateError):
            harness.store("edit_order", order_id, "99", "late", [{"product": "Cake"}])

        order = harness.query("get_order", order_id)
        assert order.room == "12"
        assert _items(order) == [("Tea", 2)]

    def test_empty_items_rejected(self, harness):
        order_id = harness.create()
        with pytest.raises(ValidationError):
            harness.store("edit_order", order_id, "12", "", [])
        assert _items(harness.query("get_order", order_id)) == [("Tea", 2)]

    def test_failure_leaves_original_untouched(self, harness, monkeypatch):
        order_id = harness.create(note="original")

        def boom(self, items):
            raise SQLAlchemyError("replace failed")
        monkeypatch.setattr(Order, "replace_items", boom)

        with pytest.raises(StoreError):
            harness.store("edit_order", order_id, "99", "changed", [{"product": "Cake"}])

        order = harness.query("get_order", order_id)
        assert (order.room, order.note) == ("12", "original")
        assert _items(order) == [("Tea", 2)]


class TestDuplicateOrder:
    def test_copies_order_and_items(self, harness):
        source_id = harness.create(note="extra lemon", items=[{"product": "Tea", "quantity": 2}, {"product": "Simit"}])

        copy_id = harness.store("duplicate_order", source_id)

        source = harness.query("get_order", source_id)
        copy = harness.query("get_order", copy_id)
        assert copy_id != source_id
        assert copy.original_order_id == source_id
        assert copy.status == OrderStatus.ACTIVE
        assert copy.completed_at is None
        assert (copy.user_name, copy.room, copy.note) == (source.user_name, source.room, source.note)
        assert _items(copy) == _items(source)

    def test_completed_order_can_be_duplicated(self, harness):
        source_id = harness.create()
        harness.store("complete_order", source_id)

        copy = harness.query("get_order", harness.store("duplicate_order", source_id))
        assert copy.status == OrderStatus.ACTIVE
        assert harness.query("get_order", source_id).status == OrderStatus.COMPLETED

    def test_editing_copy_does_not_touch_source(self, harness):
        source_id = harness.create()
        copy_id = harness.store("duplicate_order", source_id)

        harness.store("edit_order", copy_id, "30", "", [{"product": "Cake", "quantity": 5}])

        assert _items(harness.query("get_order", source_id)) == [("Tea", 2)]
        assert _items(harness.query("get_order", copy_id)) == [("Cake", 5)]

    def test_repeatable(self, harness):
        source_id = harness.create()
        ids = {harness.store("duplicate_order", source_id) for _ in range(3)}
        assert len(ids) == 3
        assert harness.count(Order) == 4

    def test_keeps_user_link(self, harness):
        source_id = harness.create()
        copy_id = harness.store("duplicate_order", source_id)

        async def user_ids(session):
            return (await session.get(Order, source_id)).user_id, (await session.get(Order, copy_id)).user_id
        source_user, copy_user = harness.call(user_ids)
        assert source_user is not None and source_user == copy_user

    def test_unknown_order(self, harness):
        with pytest.raises(NotFoundError):
            harness.store("duplicate_order", 7)
        assert harness.count(Order) == 0


class TestCompleteOrder:
    def test_sets_status_and_timestamp(self, harness):
        order_id = harness.create()
        harness.store("complete_order", order_id)

        order = harness.query("get_order", order_id)
        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at is not None

    def test_strict_unknown_order(self, harness):
        with pytest.raises(NotFoundError):
            harness.store("complete_order", 404)

    def test_strict_rejects_second_completion(self, harness):
        order_id = harness.create()
        harness.store("complete_order", order_id)
        first_stamp = harness.query("get_order", order_id).completed_at

        with pytest.raises(InvalidStateError):
            harness.store("complete_order", order_id)
        assert harness.query("get_order", order_id).completed_at == first_stamp

    def test_permissive_unknown_order_is_noop(self, harness):
        harness.store("complete_order", 404, strict=False)
        assert harness.count(Order) == 0

    def test_permissive_restamps(self, harness):
        order_id = harness.create()
        harness.store("complete_order", order_id, strict=False)
        first_stamp = harness.query("get_order", order_id).completed_at

        harness.store("complete_order", order_id, strict=False)

        order = harness.query("get_order", order_id)
        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at >= first_stamp
