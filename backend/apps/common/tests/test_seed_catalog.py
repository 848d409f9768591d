from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from apps.carts.models import Cart
from apps.catalog.models import Product
from apps.common.management.commands.seed_catalog import PRODUCTS


class SeedCatalogCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        out = StringIO()
        call_command("seed_catalog", stdout=out)
        self.assertEqual(Product.objects.count(), len(PRODUCTS))
        self.assertIn(f"{len(PRODUCTS)} created", out.getvalue())

        out = StringIO()
        call_command("seed_catalog", stdout=out)
        self.assertEqual(Product.objects.count(), len(PRODUCTS))
        self.assertIn("0 created", out.getvalue())

    def test_flush_removes_carts(self):
        Cart.objects.create()
        call_command("seed_catalog", "--flush", stdout=StringIO())
        self.assertFalse(Cart.objects.exists())

    def test_new_products_do_not_collide_with_seeded_ids(self):
        call_command("seed_catalog", stdout=StringIO())
        product = Product.objects.create(title="Extra", price="1.00")
        self.assertNotIn(product.id, [row[0] for row in PRODUCTS])
