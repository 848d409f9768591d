import copy
import types
import unittest
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError

from apps.carts.context import SessionCart
from apps.carts.models import Cart, LineItem
from apps.carts.services import CartService
from apps.catalog.models import Product


class DummyAtomic:
    def __call__(self, *args, **kwargs):
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeCartRepository:
    def __init__(self):
        self._carts = {}
        self.items = {}
        self._pk = 1
        self._item_pk = 100
        self.fail_writes = False
        self.replace_calls = 0

    def create(self, **data):
        user = data.get("user")
        cart = types.SimpleNamespace(id=self._pk, user_id=getattr(user, "pk", None))
        self._carts[cart.id] = cart
        self.items[cart.id] = []
        self._pk += 1
        return cart

    def get(self, **filters):
        return self._carts.get(filters.get("id"))

    def replace_line_items(self, cart_id, items):
        self.replace_calls += 1
        if self.fail_writes:
            raise DatabaseError("write failed")
        for position, item in enumerate(items):
            if item.pk is None:
                item.pk = self._item_pk
                item.cart_id = cart_id
                self._item_pk += 1
            item.position = position
        self.items[cart_id] = list(items)
        return list(items)

    def seed(self, cart_id, *items):
        for item in items:
            item.cart_id = cart_id
        self.items[cart_id] = list(items)


class FakeLineItemRepository:
    def __init__(self, carts: FakeCartRepository):
        self.carts = carts

    def list_for_cart(self, cart_id):
        return list(self.carts.items.get(cart_id, []))

    def in_order(self, cart_id, ids):
        by_id = {item.pk: item for item in self.carts.items.get(cart_id, [])}
        return [by_id[i] for i in ids if i in by_id]

    def set_quantity(self, item, quantity):
        stored = self.carts.items.get(item.cart_id, [])
        for index, current in enumerate(stored):
            if current.pk == item.pk:
                updated = copy.copy(current)
                updated.quantity = quantity
                stored[index] = updated


class FakeProductRepository:
    def __init__(self, products):
        self._products = {p.id: p for p in products}

    def get_by_identifier(self, raw_id):
        try:
            return self._products.get(int(raw_id))
        except (TypeError, ValueError):
            return None


class FakeUserRepository:
    def __init__(self):
        self.calls = []

    def set_cart(self, user, cart):
        self.calls.append((user.pk, cart.id))
        user.cart_id = cart.id
        return user


def make_user(user_id, cart_id=None):
    return types.SimpleNamespace(pk=user_id, id=user_id, is_authenticated=True, cart_id=cart_id)


def make_line_item(item_id, product, quantity):
    item = LineItem.from_product(quantity, product)
    item.pk = item_id
    return item


class CartServiceUnitTests(unittest.TestCase):
    def setUp(self):
        self.widget = Product(id=1, title="Widget", price=Decimal("10.00"), image="w.png")
        self.gadget = Product(id=2, title="Gadget", price=Decimal("2.50"), image="")
        self.cart_repo = FakeCartRepository()
        self.line_item_repo = FakeLineItemRepository(self.cart_repo)
        self.user_repo = FakeUserRepository()
        self.service = CartService(
            carts=self.cart_repo,
            line_items=self.line_item_repo,
            products=FakeProductRepository([self.widget, self.gadget]),
            users=self.user_repo,
        )
        self.atomic_patcher = patch(
            "apps.carts.services.transaction.atomic", DummyAtomic()
        )
        self.atomic_patcher.start()

    def tearDown(self):
        self.atomic_patcher.stop()

    def _empty_cart(self, user=None) -> SessionCart:
        return self.service.attach(None, user)

    # --- attach ------------------------------------------------------------

    def test_attach_creates_empty_cart_for_anonymous_session(self):
        cart = self.service.attach(None, None)
        self.assertTrue(cart.is_populated)
        self.assertEqual(cart.items, ())
        self.assertIsNone(cart.user_id)
        self.assertEqual(self.user_repo.calls, [])

    def test_attach_treats_anonymous_user_object_as_anonymous(self):
        anonymous = types.SimpleNamespace(pk=None, is_authenticated=False)
        cart = self.service.attach(None, anonymous)
        self.assertIsNone(cart.user_id)
        self.assertEqual(self.user_repo.calls, [])

    def test_attach_creates_cart_owned_by_authenticated_user(self):
        user = make_user(7)
        cart = self.service.attach(None, user)
        self.assertEqual(cart.user_id, 7)
        self.assertEqual(self.user_repo.calls, [(7, cart.id)])
        self.assertEqual(user.cart_id, cart.id)

    def test_attach_loads_persistent_cart_for_user(self):
        existing = self.cart_repo.create(user=make_user(7))
        self.cart_repo.seed(existing.id, make_line_item(11, self.widget, 2))
        user = make_user(7, cart_id=existing.id)

        cart = self.service.attach(None, user)

        self.assertEqual(cart.id, existing.id)
        self.assertEqual([item.pk for item in cart.items], [11])
        self.assertEqual(self.user_repo.calls, [])

    def test_attach_replaces_stale_user_cart_reference(self):
        user = make_user(7, cart_id=999)
        cart = self.service.attach(None, user)
        self.assertNotEqual(cart.id, 999)
        self.assertEqual(user.cart_id, cart.id)

    def test_attach_resolves_session_ids_in_stored_order(self):
        existing = self.cart_repo.create()
        first = make_line_item(11, self.widget, 2)
        second = make_line_item(12, self.gadget, 1)
        self.cart_repo.seed(existing.id, first, second)
        stored = {"id": existing.id, "user": None, "lineItems": [12, 11]}

        cart = self.service.attach(stored, None)

        self.assertTrue(cart.is_populated)
        self.assertEqual([item.pk for item in cart.items], [12, 11])
        self.assertIs(cart.items[0], second)

    def test_attach_drops_line_items_that_no_longer_exist(self):
        existing = self.cart_repo.create()
        self.cart_repo.seed(existing.id, make_line_item(11, self.widget, 2))
        stored = {"id": existing.id, "lineItems": [11, 55]}

        cart = self.service.attach(stored, None)

        self.assertEqual(cart.line_item_ids, (11,))

    def test_attach_opens_new_cart_when_session_cart_vanished(self):
        stored = {"id": 404, "lineItems": [1, 2]}
        cart = self.service.attach(stored, None)
        self.assertNotEqual(cart.id, 404)
        self.assertEqual(cart.items, ())

    def test_attach_ignores_malformed_session_payload(self):
        cart = self.service.attach({"id": "not-a-number"}, None)
        self.assertEqual(cart.id, 1)
        self.assertEqual(cart.items, ())

    def test_attach_propagates_storage_failure(self):
        with patch.object(self.cart_repo, "create", side_effect=DatabaseError("down")):
            with self.assertRaises(DatabaseError):
                self.service.attach(None, make_user(3))
        self.assertEqual(self.user_repo.calls, [])

    # --- add ---------------------------------------------------------------

    def test_add_item_appends_snapshot_line_item(self):
        cart = self._empty_cart()
        updated, error = self.service.add_item(cart, "1", 2)
        self.assertIsNone(error)
        self.assertEqual(len(updated.items), 1)
        item = updated.items[0]
        self.assertEqual(item.product_id, 1)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.price, Decimal("10.00"))
        self.assertEqual(item.title, "Widget")
        self.assertEqual(self.cart_repo.items[cart.id], list(updated.items))

    def test_add_item_preserves_insertion_order(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 2, 1)
        cart, _ = self.service.add_item(cart, 1, 3)
        self.assertEqual([item.product_id for item in cart.items], [2, 1])
        self.assertEqual([item.position for item in cart.items], [0, 1])

    def test_add_item_unknown_product_halts_without_writing(self):
        cart = self._empty_cart()
        updated, error = self.service.add_item(cart, "999", 1)
        self.assertIsNone(updated)
        self.assertEqual(error.code, "PRODUCT_NOT_FOUND")
        self.assertEqual(error.status, 400)
        self.assertEqual(error.message, "Product not found")
        self.assertEqual(error.details, {"productId": "999"})
        self.assertEqual(self.cart_repo.replace_calls, 0)
        self.assertEqual(self.cart_repo.items[cart.id], [])

    def test_add_item_non_numeric_product_is_not_found(self):
        cart = self._empty_cart()
        _, error = self.service.add_item(cart, "abc", 1)
        self.assertEqual(error.code, "PRODUCT_NOT_FOUND")

    def test_add_item_storage_failure_leaves_context_untouched(self):
        cart = self._empty_cart()
        self.cart_repo.fail_writes = True
        with self.assertRaises(DatabaseError):
            self.service.add_item(cart, 1, 1)
        self.assertEqual(cart.items, ())

    # --- update ------------------------------------------------------------

    def test_update_quantity_changes_only_matching_item(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 1, 2)
        cart, _ = self.service.add_item(cart, 2, 1)

        updated, error = self.service.update_quantity(cart, "1", 5)

        self.assertIsNone(error)
        quantities = {item.product_id: item.quantity for item in updated.items}
        self.assertEqual(quantities, {1: 5, 2: 1})
        # The pre-update context is not mutated
        self.assertEqual(cart.items[0].quantity, 2)

    def test_update_quantity_targets_first_matching_entry(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 1, 2)
        cart, _ = self.service.add_item(cart, 1, 4)

        updated, _ = self.service.update_quantity(cart, 1, 9)

        self.assertEqual([item.quantity for item in updated.items], [9, 4])

    def test_update_quantity_missing_product_returns_error(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 2, 1)

        updated, error = self.service.update_quantity(cart, "1", 5)

        self.assertIsNone(updated)
        self.assertEqual(error.code, "LINE_ITEM_NOT_FOUND")
        self.assertEqual(error.status, 400)
        self.assertTrue(error.message.startswith("Product not found in line items (1 was not found in ["))
        self.assertIn("product 2 x1", error.message)
        self.assertEqual(self.cart_repo.items[cart.id][0].quantity, 1)

    def test_update_quantity_reload_failure_raises(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 1, 1)
        self.cart_repo._carts.clear()
        with self.assertRaises(Cart.DoesNotExist):
            self.service.update_quantity(cart, 1, 2)

    # --- remove ------------------------------------------------------------

    def test_remove_item_deletes_first_matching_entry(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 1, 2)
        cart, _ = self.service.add_item(cart, 2, 1)

        updated, error = self.service.remove_item(cart, "1")

        self.assertIsNone(error)
        self.assertEqual([item.product_id for item in updated.items], [2])
        self.assertEqual([item.position for item in updated.items], [0])
        self.assertEqual(len(cart.items), 2)

    def test_remove_last_item_leaves_empty_cart(self):
        cart = self._empty_cart()
        cart, _ = self.service.add_item(cart, 1, 2)
        updated, _ = self.service.remove_item(cart, 1)
        self.assertEqual(updated.items, ())
        self.assertEqual(self.cart_repo.items[cart.id], [])

    def test_remove_missing_product_returns_error(self):
        cart = self._empty_cart()
        updated, error = self.service.remove_item(cart, "7")
        self.assertIsNone(updated)
        self.assertEqual(error.code, "LINE_ITEM_NOT_FOUND")
        self.assertEqual(
            error.message, "Product not found in line items (7 was not found in [])"
        )
        self.assertEqual(self.cart_repo.replace_calls, 0)
