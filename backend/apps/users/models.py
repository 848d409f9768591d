from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    # Persistent cart reference; lets a signed-in shopper resume the same cart
    # from any new session.
    cart = models.OneToOneField(
        "carts.Cart",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    def __str__(self):
        return self.username
