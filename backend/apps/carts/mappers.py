from typing import Iterable, List, Optional

from .context import SessionCart
from .dtos import CartDTO, LineItemDTO
from .models import LineItem


class LineItemMapper:
    @staticmethod
    def to_dto(item: LineItem) -> LineItemDTO:
        return LineItemDTO(
            id=item.id,
            product_id=item.product_id,
            title=item.title,
            price=str(item.price),
            image=item.image,
            quantity=item.quantity,
        )

    def many_to_dto(self, items: Iterable[LineItem]) -> List[LineItemDTO]:
        return [self.to_dto(i) for i in items]


class CartMapper:
    def __init__(self, line_item_mapper: Optional[LineItemMapper] = None) -> None:
        self.line_item_mapper = line_item_mapper or LineItemMapper()

    def to_dto(self, cart: SessionCart) -> CartDTO:
        # SessionCart.items refuses unresolved carts, so only populated carts map
        return CartDTO(
            id=cart.id,
            user_id=cart.user_id,
            line_items=self.line_item_mapper.many_to_dto(cart.items),
        )
