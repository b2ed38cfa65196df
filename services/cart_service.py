"""
Cart store for RollWithdraw

The cart is an explicit state container over a client's local storage. Every
mutation writes the full list back under a single key, and a new store
rehydrates from that key.
"""
from typing import List, Optional
import logging

from pydantic import ValidationError

from config.app_config import CART_STORAGE_KEY
from config.plan_catalog import CatalogPlan, get_plan, is_subscription_tier
from models.cart import CartItem
from services.client_storage import ClientStorage

logger = logging.getLogger(__name__)


def catalog_line(item: CartItem) -> CartItem:
    """Catalog plans always carry the catalog name and price, whatever the client sent."""
    plan = get_plan(item.id)
    if not plan:
        return item
    return item.model_copy(update={"name": plan["name"], "price": plan["price"]})


class CartStore:
    def __init__(self, storage: ClientStorage, key: str = CART_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._items: List[CartItem] = self._rehydrate()

    def _rehydrate(self) -> List[CartItem]:
        saved = self.storage.get_item(self.key) or []
        try:
            return [CartItem(**item) for item in saved]
        except (TypeError, ValidationError) as e:
            logger.warning(f"Dropping malformed saved cart: {e}")
            return []

    def _persist(self) -> None:
        self.storage.set_item(self.key, [item.model_dump() for item in self._items])

    @property
    def items(self) -> List[CartItem]:
        return [item.model_copy() for item in self._items]

    @property
    def is_empty(self) -> bool:
        return not self._items

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.id == item_id:
                return item.model_copy()
        return None

    def add_to_cart(self, item: CartItem) -> None:
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[index] = existing.model_copy(
                    update={"quantity": existing.quantity + item.quantity}
                )
                break
        else:
            self._items.append(item.model_copy())
        self._persist()

    def add_plan(self, plan: CatalogPlan) -> bool:
        """Add a catalog plan once; returns False if it is already in the cart."""
        if self.get_item(plan["id"]) is not None:
            return False
        self.add_to_cart(CartItem(id=plan["id"], name=plan["name"], price=plan["price"], quantity=1))
        return True

    def remove_from_cart(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self._persist()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(item_id)
            return
        self._items = [
            item.model_copy(update={"quantity": quantity}) if item.id == item_id else item
            for item in self._items
        ]
        self._persist()

    def get_total_price(self) -> float:
        return sum(item.price * item.quantity for item in self._items)

    def clear_cart(self) -> None:
        self._items = []
        self._persist()

    def subscription_items(self) -> List[CartItem]:
        return [item for item in self._items if is_subscription_tier(item.id)]
