from django.core.management.base import BaseCommand
from django.core.management.color import no_style
from django.db import connection, transaction

from apps.carts.models import Cart, LineItem
from apps.catalog.models import Product

PRODUCTS = [
    (
        1,
        "Fjallraven - Foldsack No. 1 Backpack, Fits 15 Laptops",
        "109.95",
        "Your perfect pack for everyday use and walks in the forest.",
        "https://fakestoreapi.com/img/81fPKd-2AYL._AC_SL1500_t.png",
    ),
    (
        2,
        "Mens Casual Premium Slim Fit T-Shirts",
        "22.30",
        "Slim-fitting style, contrast raglan long sleeve, three-button henley placket.",
        "https://fakestoreapi.com/img/71-3HjGNDUL._AC_SY879._SX._UX._SY._UY_t.png",
    ),
    (
        3,
        "Mens Cotton Jacket",
        "55.99",
        "Great outerwear jacket for Spring/Autumn/Winter.",
        "https://fakestoreapi.com/img/71li-ujtlUL._AC_UX679_t.png",
    ),
    (
        4,
        "John Hardy Women's Legends Naga Gold & Silver Dragon Station Chain Bracelet",
        "695.00",
        "From our Legends Collection, the Naga was inspired by the mythical water dragon.",
        "https://fakestoreapi.com/img/71pWzhdJNwL._AC_UL640_QL65_ML3_t.png",
    ),
    (
        5,
        "WD 2TB Elements Portable External Hard Drive - USB 3.0",
        "64.00",
        "USB 3.0 and USB 2.0 compatibility, fast data transfers.",
        "https://fakestoreapi.com/img/61IBBVJvSDL._AC_SY879_t.png",
    ),
]


def reset_sequences(models):
    """Reset database sequences for given models (PostgreSQL, etc.)."""
    sql_list = connection.ops.sequence_reset_sql(no_style(), models)
    if not sql_list:
        return
    with connection.cursor() as cursor:
        for sql in sql_list:
            cursor.execute(sql)


class Command(BaseCommand):
    help = "Seed demo products so the cart endpoints can be exercised locally."

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush",
            action="store_true",
            help="Delete existing carts and products before seeding",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["flush"]:
            self.stdout.write("Flushing carts and products...")
            LineItem.objects.all().delete()
            Cart.objects.all().delete()
            Product.objects.all().delete()

        self.stdout.write("Seeding products...")
        created_count = 0
        for pid, title, price, description, image in PRODUCTS:
            _, created = Product.objects.update_or_create(
                id=pid,
                defaults=dict(
                    title=title,
                    price=price,
                    description=description,
                    image=image,
                ),
            )
            created_count += int(created)

        # Explicit ids were inserted; move the sequence past them.
        reset_sequences([Product])

        self.stdout.write(
            self.style.SUCCESS(
                f"Catalog seed completed ({created_count} created, {len(PRODUCTS) - created_count} updated)."
            )
        )
