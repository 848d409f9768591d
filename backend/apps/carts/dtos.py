from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LineItemDTO:
    id: int
    product_id: Optional[int]
    title: str
    price: str
    image: str
    quantity: int


@dataclass
class CartDTO:
    id: int
    user_id: Optional[int]
    line_items: List[LineItemDTO]


"""DTO dataclasses only. Mapping logic lives in mappers.py."""
