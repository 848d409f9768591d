from __future__ import annotations

from apps.catalog.repositories import ProductRepository
from apps.users.repositories import UserRepository

from .repositories import CartRepository, LineItemRepository
from .services import CartService


def build_cart_service() -> CartService:
    return CartService(
        carts=CartRepository(),
        line_items=LineItemRepository(),
        products=ProductRepository(),
        users=UserRepository(),
    )
