from apps.common.repository import GenericRepository
from .models import User


class UserRepository(GenericRepository[User]):
    def __init__(self):
        super().__init__(User)

    def set_cart(self, user: User, cart) -> User:
        user.cart = cart
        user.save(update_fields=["cart"])
        return user
