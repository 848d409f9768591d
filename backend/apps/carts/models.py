from django.conf import settings
from django.db import models
from django.utils import timezone


class Cart(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="carts",
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        owner = self.user_id if self.user_id is not None else "anonymous"
        return f"Cart {self.id} for {owner}"


class LineItem(models.Model):
    cart = models.ForeignKey(
        Cart, on_delete=models.CASCADE, related_name="line_items"
    )
    # Nullable so the snapshot survives removal of the product itself
    product = models.ForeignKey(
        "catalog.Product", on_delete=models.SET_NULL, null=True, related_name="+"
    )
    title = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    image = models.TextField(blank=True, default="")
    quantity = models.PositiveIntegerField()
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "cart_line_items"
        ordering = ("position", "id")
        indexes = [
            models.Index(fields=["cart", "position"], name="line_item_cart_pos_idx"),
        ]

    @classmethod
    def from_product(cls, quantity: int, product) -> "LineItem":
        """Build an unsaved line item, snapshotting the product's current title, price and image."""
        return cls(
            product=product,
            title=product.title,
            price=product.price,
            image=getattr(product, "image", "") or "",
            quantity=int(quantity),
        )

    def __str__(self):
        return f"LineItem {self.id} (product {self.product_id} x{self.quantity})"
