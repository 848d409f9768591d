from __future__ import annotations

from typing import Any, Iterable, List, Optional, Protocol, Sequence, TYPE_CHECKING

from .models import Cart, LineItem

if TYPE_CHECKING:
    from apps.catalog.models import Product
    from apps.users.models import User


class CartRepositoryProtocol(Protocol):
    def get(self, **filters) -> Optional[Cart]:
        ...

    def create(self, **data) -> Cart:
        ...

    def replace_line_items(self, cart_id: int, items: Sequence[LineItem]) -> List[LineItem]:
        ...


class LineItemRepositoryProtocol(Protocol):
    def list_for_cart(self, cart_id: int) -> Iterable[LineItem]:
        ...

    def in_order(self, cart_id: int, ids: Sequence[int]) -> List[LineItem]:
        ...

    def set_quantity(self, item: LineItem, quantity: int) -> None:
        ...


class ProductRepositoryProtocol(Protocol):
    def get_by_identifier(self, raw_id: Any) -> Optional["Product"]:
        ...


class UserRepositoryProtocol(Protocol):
    def set_cart(self, user: "User", cart: Cart) -> "User":
        ...
