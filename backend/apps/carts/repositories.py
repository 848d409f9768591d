from typing import List, Sequence

from django.utils import timezone

from apps.common.repository import GenericRepository
from .models import Cart, LineItem


class CartRepository(GenericRepository[Cart]):
    def __init__(self):
        super().__init__(Cart)

    def replace_line_items(self, cart_id: int, items: Sequence[LineItem]) -> List[LineItem]:
        """
        Persist ``items`` as the cart's complete, ordered line-item sequence.
        Unsaved items are inserted, rows missing from ``items`` are deleted and
        positions are rewritten to match list order.
        """
        keep_ids = [item.pk for item in items if item.pk is not None]
        LineItem.objects.filter(cart_id=cart_id).exclude(pk__in=keep_ids).delete()
        for position, item in enumerate(items):
            if item.pk is None:
                item.cart_id = cart_id
                item.position = position
                item.save()
            elif item.position != position:
                item.position = position
                item.save(update_fields=["position"])
        self.model.objects.filter(pk=cart_id).update(updated_at=timezone.now())
        return list(items)


class LineItemRepository(GenericRepository[LineItem]):
    def __init__(self):
        super().__init__(LineItem)

    def list_for_cart(self, cart_id: int):
        return self.model.objects.filter(cart_id=cart_id).order_by("position", "id")

    def in_order(self, cart_id: int, ids: Sequence[int]) -> List[LineItem]:
        """Fetch the given line items of a cart in the order of ``ids``; unknown ids are skipped."""
        if not ids:
            return []
        found = {
            item.pk: item
            for item in self.model.objects.filter(cart_id=cart_id, pk__in=list(ids))
        }
        return [found[i] for i in ids if i in found]

    def set_quantity(self, item: LineItem, quantity: int) -> None:
        self.model.objects.filter(pk=item.pk).update(quantity=quantity)
