from apps.common.repository import GenericRepository
from .models import Product


class ProductRepository(GenericRepository[Product]):
    """Read-only product lookups used by the cart service."""

    def __init__(self):
        super().__init__(Product)
