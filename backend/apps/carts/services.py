from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from django.db import transaction
from rest_framework import status

from apps.common import get_logger
from .context import SessionCart
from .models import Cart, LineItem
from .protocols import (
    CartRepositoryProtocol,
    LineItemRepositoryProtocol,
    ProductRepositoryProtocol,
    UserRepositoryProtocol,
)

logger = get_logger(__name__).bind(component="carts", layer="service")


@dataclass(frozen=True)
class CartError:
    """Failure returned (not raised) by cart operations; views map it to a response."""

    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    status: int = status.HTTP_400_BAD_REQUEST

    @classmethod
    def product_not_found(cls, product_id: Any) -> "CartError":
        return cls(
            "PRODUCT_NOT_FOUND",
            "Product not found",
            {"productId": str(product_id)},
        )

    @classmethod
    def line_item_not_found(cls, product_id: Any, cart: SessionCart) -> "CartError":
        return cls(
            "LINE_ITEM_NOT_FOUND",
            (
                f"Product not found in line items ({product_id} was not found in "
                f"{cart.describe_items()})"
            ),
            {"productId": str(product_id), "lineItems": list(cart.line_item_ids)},
        )


CartResult = Tuple[Optional[SessionCart], Optional[CartError]]


def _is_authenticated(user) -> bool:
    return bool(
        user is not None
        and getattr(user, "is_authenticated", False)
        and getattr(user, "pk", None) is not None
    )


class CartService:
    def __init__(
        self,
        carts: CartRepositoryProtocol,
        line_items: LineItemRepositoryProtocol,
        products: ProductRepositoryProtocol,
        users: UserRepositoryProtocol,
    ):
        self.carts = carts
        self.line_items = line_items
        self.products = products
        self.users = users
        self.logger = logger.bind(service="CartService")

    # --- attachment -------------------------------------------------------

    def attach(self, stored: Optional[Mapping[str, Any]], user=None) -> SessionCart:
        """
        Resolve the cart for a request from its session payload.

        Sessions without a (decodable) cart reference get the user's persisted
        cart or a fresh one; sessions holding a reference get their line items
        resolved from ids to rows. The result is always populated.
        """
        context = SessionCart.from_session(stored) if stored else None
        if context is None:
            if stored:
                self.logger.warning("Discarding malformed session cart", stored=stored)
            return self.open_cart(user)
        populated = self.populate(context)
        if populated is None:
            self.logger.warning(
                "Session cart no longer exists; opening a new one", cart_id=context.id
            )
            return self.open_cart(user)
        return populated

    def open_cart(self, user=None) -> SessionCart:
        authed = _is_authenticated(user)
        stored_cart_id = getattr(user, "cart_id", None) if authed else None
        if stored_cart_id is not None:
            cart = self.carts.get(id=stored_cart_id)
            if cart is not None:
                self.logger.debug(
                    "Loaded persistent cart for user", user_id=user.pk, cart_id=cart.id
                )
                return SessionCart.from_cart(cart, self.line_items.list_for_cart(cart.id))
            self.logger.warning(
                "User cart reference is stale", user_id=user.pk, cart_id=stored_cart_id
            )
        with transaction.atomic():
            cart: Cart = self.carts.create(user=user if authed else None)
            if authed:
                self.users.set_cart(user, cart)
        self.logger.info(
            "Cart created for session",
            cart_id=cart.id,
            user_id=user.pk if authed else None,
        )
        return SessionCart.from_cart(cart, [])

    def populate(self, context: SessionCart) -> Optional[SessionCart]:
        """Convert an unresolved session cart into a resolved one; ``None`` if the cart is gone."""
        if context.is_populated:
            return context
        cart = self.carts.get(id=context.id)
        if cart is None:
            return None
        ids = context.line_item_ids
        items = self.line_items.in_order(cart.id, ids)
        if len(items) != len(ids):
            resolved = {item.id for item in items}
            self.logger.warning(
                "Dropping unresolvable line items from session cart",
                cart_id=cart.id,
                missing=[i for i in ids if i not in resolved],
            )
        return SessionCart.from_cart(cart, items)

    def reload(self, cart_id: int) -> SessionCart:
        cart = self.carts.get(id=cart_id)
        if cart is None:
            raise Cart.DoesNotExist(f"Cart {cart_id} disappeared while being updated")
        return SessionCart.from_cart(cart, self.line_items.list_for_cart(cart.id))

    # --- line item operations --------------------------------------------

    def add_item(self, cart: SessionCart, product_id: Any, quantity: int) -> CartResult:
        self.logger.debug(
            "Adding item to cart", cart_id=cart.id, product_id=product_id, quantity=quantity
        )
        product = self.products.get_by_identifier(product_id)
        if product is None:
            self.logger.warning(
                "Add to cart rejected: product missing",
                cart_id=cart.id,
                product_id=product_id,
            )
            return None, CartError.product_not_found(product_id)
        line_item = LineItem.from_product(quantity, product)
        items = list(cart.items) + [line_item]
        with transaction.atomic():
            persisted = self.carts.replace_line_items(cart.id, items)
        self.logger.info(
            "Line item added",
            cart_id=cart.id,
            line_item_id=line_item.id,
            product_id=product.pk,
            quantity=line_item.quantity,
        )
        return cart.with_items(persisted), None

    def update_quantity(
        self, cart: SessionCart, product_id: Any, quantity: int
    ) -> CartResult:
        match = cart.find_by_product(product_id)
        if match is None:
            self.logger.warning(
                "Quantity update rejected: product not in cart",
                cart_id=cart.id,
                product_id=product_id,
            )
            return None, CartError.line_item_not_found(product_id, cart)
        _, line_item = match
        with transaction.atomic():
            self.line_items.set_quantity(line_item, quantity)
        reloaded = self.reload(cart.id)
        self.logger.info(
            "Line item quantity updated",
            cart_id=cart.id,
            line_item_id=line_item.id,
            quantity=quantity,
        )
        return reloaded, None

    def remove_item(self, cart: SessionCart, product_id: Any) -> CartResult:
        match = cart.find_by_product(product_id)
        if match is None:
            self.logger.warning(
                "Removal rejected: product not in cart",
                cart_id=cart.id,
                product_id=product_id,
            )
            return None, CartError.line_item_not_found(product_id, cart)
        index, line_item = match
        remaining = [item for i, item in enumerate(cart.items) if i != index]
        with transaction.atomic():
            persisted = self.carts.replace_line_items(cart.id, remaining)
        self.logger.info(
            "Line item removed", cart_id=cart.id, line_item_id=line_item.id
        )
        return cart.with_items(persisted), None
