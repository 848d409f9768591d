"""Per-request cart context and its session encoding.

A cart's line items exist in one of two forms:

* ``UnresolvedLineItems``: bare line-item ids, the only form kept in the
  session between requests;
* ``ResolvedLineItems``: the full ``LineItem`` rows, which handlers work on.

``CartAttachmentMiddleware`` turns the former into the latter before any cart
view runs, and views hand the ``SessionCart`` to the service explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union, TYPE_CHECKING

from django.conf import settings

if TYPE_CHECKING:
    from apps.carts.models import Cart, LineItem


class CartNotPopulatedError(RuntimeError):
    """Raised when line items are read before the session cart was resolved."""


@dataclass(frozen=True)
class UnresolvedLineItems:
    ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ResolvedLineItems:
    items: Tuple["LineItem", ...] = ()

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(item.id for item in self.items)


LineItems = Union[UnresolvedLineItems, ResolvedLineItems]


@dataclass(frozen=True)
class SessionCart:
    id: int
    user_id: Optional[int] = None
    line_items: LineItems = UnresolvedLineItems()

    @property
    def is_populated(self) -> bool:
        return isinstance(self.line_items, ResolvedLineItems)

    @property
    def items(self) -> Tuple["LineItem", ...]:
        if not isinstance(self.line_items, ResolvedLineItems):
            raise CartNotPopulatedError(f"Cart {self.id} line items are not resolved")
        return self.line_items.items

    @property
    def line_item_ids(self) -> Tuple[int, ...]:
        return self.line_items.ids

    def with_items(self, items: Iterable["LineItem"]) -> "SessionCart":
        return replace(self, line_items=ResolvedLineItems(tuple(items)))

    def find_by_product(self, product_id: Any) -> Optional[Tuple[int, "LineItem"]]:
        """Index and line item of the first entry referencing ``product_id``.

        Product references are compared as strings so JSON numbers and
        numeric strings match alike.
        """
        wanted = str(product_id)
        for index, item in enumerate(self.items):
            if item.product_id is not None and str(item.product_id) == wanted:
                return index, item
        return None

    def describe_items(self) -> str:
        if not self.is_populated:
            return "[" + ", ".join(str(i) for i in self.line_item_ids) + "]"
        return "[" + ", ".join(str(item) for item in self.items) + "]"

    def to_session(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user_id,
            "lineItems": list(self.line_item_ids),
        }

    @classmethod
    def from_session(cls, raw: Any) -> Optional["SessionCart"]:
        """Decode the session payload; malformed payloads decode to ``None``."""
        if not isinstance(raw, Mapping):
            return None
        try:
            cart_id = int(raw["id"])
            user_id = raw.get("user")
            user_id = int(user_id) if user_id is not None else None
            ids = tuple(int(i) for i in raw.get("lineItems") or ())
        except (KeyError, TypeError, ValueError):
            return None
        return cls(id=cart_id, user_id=user_id, line_items=UnresolvedLineItems(ids))

    @classmethod
    def from_cart(cls, cart: "Cart", items: Iterable["LineItem"]) -> "SessionCart":
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            line_items=ResolvedLineItems(tuple(items)),
        )


def session_key() -> str:
    return getattr(settings, "CART_SESSION_KEY", "cart")


def load_session_cart(session) -> Optional[SessionCart]:
    return SessionCart.from_session(session.get(session_key()))


def store_session_cart(request, cart: SessionCart) -> None:
    """Attach ``cart`` to the request and persist its reference in the session."""
    request.cart = cart
    encoded = cart.to_session()
    key = session_key()
    if request.session.get(key) != encoded:
        request.session[key] = encoded
