from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass
class CartItem:
    product_id: str
    quantity: int


@dataclass
class Cart:
    cart_id: str
    items: List[CartItem] = field(default_factory=list)


@dataclass
class _LockEntry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class CartStore:
    """
    In-memory carts keyed by cart id. Nothing survives a restart.

    Callers wrap each read-modify-write in ``locked(cart_id)``; the lock is
    re-entrant so a mutation can re-price the cart while still holding it.

    Only non-empty carts are kept: reads never create a cart, and a cart is
    dropped once its last item goes. Per-cart locks live only while some
    caller holds or waits on them.
    """

    def __init__(self) -> None:
        self._carts: Dict[str, Cart] = {}
        self._locks: Dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def locked(self, cart_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(cart_id)
            if entry is None:
                entry = self._locks[cart_id] = _LockEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0 and self._locks.get(cart_id) is entry:
                    del self._locks[cart_id]

    def get_items(self, cart_id: str) -> List[CartItem]:
        cart = self._carts.get(cart_id)
        return list(cart.items) if cart else []

    def find_item(self, cart_id: str, product_id: str) -> Optional[CartItem]:
        for it in self.get_items(cart_id):
            if it.product_id == product_id:
                return it
        return None

    def upsert_item(self, cart_id: str, product_id: str, quantity: int) -> CartItem:
        existing = self.find_item(cart_id, product_id)
        if existing:
            existing.quantity = quantity
            return existing
        item = CartItem(product_id=product_id, quantity=quantity)
        self._carts.setdefault(cart_id, Cart(cart_id=cart_id)).items.append(item)
        return item

    def remove_item(self, cart_id: str, product_id: str) -> bool:
        cart = self._carts.get(cart_id)
        if cart is None:
            return False
        for i, it in enumerate(cart.items):
            if it.product_id == product_id:
                del cart.items[i]
                if not cart.items:
                    del self._carts[cart_id]
                return True
        return False

    def clear(self, cart_id: str) -> None:
        self._carts.pop(cart_id, None)

    def __len__(self) -> int:
        return len(self._carts)

    def reset(self) -> None:
        with self._guard:
            self._carts.clear()
            self._locks.clear()


cart_store = CartStore()
