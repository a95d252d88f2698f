"""Persistence contract and the in-process implementation.

Every backend exposes the same operations over users, products and orders.
Inputs are the camelCase mappings the HTTP layer receives; each backend
validates them through ``parser`` before committing, so records in a store
always satisfy the entity invariants (all three description languages
present, quantity >= 1, a known status, ...).
"""

from __future__ import annotations

import copy
import itertools
import os
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from ..logging import get_logger
from .constants import ORDER_STATUSES
from .db import SQLiteStorage
from .errors import ValidationError
from .models import Order, Product, User, utcnow
from .parser import (
    merge_order,
    merge_product,
    parse_order_input,
    parse_order_update,
    parse_product_input,
    parse_product_update,
    parse_user_input,
)


LOG = get_logger("catalog-storage")

SQLITE_URL_PREFIX = "sqlite:///"
SQLITE_SUFFIXES = (".db", ".sqlite", ".sqlite3")


class Storage(Protocol):
    # Users
    def create_user(self, data: Mapping[str, Any]) -> User: ...
    def get_user(self, user_id: str) -> Optional[User]: ...
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    # Products
    def create_product(self, data: Mapping[str, Any]) -> Product: ...
    def get_products(self) -> List[Product]: ...
    def get_product(self, product_id: str) -> Optional[Product]: ...
    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]: ...
    def delete_product(self, product_id: str) -> bool: ...

    # Orders
    def create_order(self, data: Mapping[str, Any]) -> Order: ...
    def get_orders(self) -> List[Order]: ...
    def get_order(self, order_id: str) -> Optional[Order]: ...
    def get_orders_by_product(self, product_id: str) -> List[Order]: ...
    def update_order(self, order_id: str, patch: Mapping[str, Any]) -> Optional[Order]: ...
    def delete_order(self, order_id: str) -> bool: ...

    def count_summary(self) -> Dict[str, Any]: ...


class MemoryStorage:
    """Dict-backed store living in process memory.

    Callers always receive copies; mutation goes through the update methods.
    Records created within the same clock tick keep their insertion order
    when listed newest-first.
    """

    def __init__(self, *, clock: Callable[[], Any] = utcnow) -> None:
        self._clock = clock
        self._users: Dict[str, User] = {}
        self._products: Dict[str, Product] = {}
        self._orders: Dict[str, Order] = {}
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()

    def _newest_first(self, records: List[Any]) -> List[Any]:
        ordered = sorted(records, key=lambda r: (r.created_at, self._seq.get(r.id, 0)), reverse=True)
        return copy.deepcopy(ordered)

    def _track(self, record_id: str) -> None:
        self._seq[record_id] = next(self._counter)

    # ---------- users ----------
    def create_user(self, data: Mapping[str, Any]) -> User:
        fields = parse_user_input(data)
        if self.get_user_by_username(fields["username"]) is not None:
            raise ValidationError(f"username already exists: {fields['username']}", code="username_taken")
        user = User(id=str(uuid.uuid4()), **fields)
        self._users[user.id] = user
        return copy.deepcopy(user)

    def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return copy.deepcopy(user)
        return None

    # ---------- products ----------
    def create_product(self, data: Mapping[str, Any]) -> Product:
        fields = parse_product_input(data)
        product = Product(id=str(uuid.uuid4()), created_at=self._clock(), **fields)
        self._products[product.id] = product
        self._track(product.id)
        LOG.info("Created product id=%s name=%r", product.id, product.name)
        return copy.deepcopy(product)

    def get_products(self) -> List[Product]:
        return self._newest_first(list(self._products.values()))

    def get_product(self, product_id: str) -> Optional[Product]:
        product = self._products.get(product_id)
        return copy.deepcopy(product) if product else None

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        existing = self._products.get(product_id)
        if existing is None:
            return None
        updated = merge_product(existing, parse_product_update(patch))
        self._products[product_id] = updated
        return copy.deepcopy(updated)

    def delete_product(self, product_id: str) -> bool:
        removed = self._products.pop(product_id, None)
        if removed is None:
            return False
        self._seq.pop(product_id, None)
        LOG.info("Deleted product id=%s", product_id)
        return True

    # ---------- orders ----------
    def create_order(self, data: Mapping[str, Any]) -> Order:
        fields = parse_order_input(data)
        order = Order(id=str(uuid.uuid4()), created_at=self._clock(), **fields)
        self._orders[order.id] = order
        self._track(order.id)
        LOG.info("Created order id=%s product=%s status=%s", order.id, order.product_id, order.status)
        return copy.deepcopy(order)

    def get_orders(self) -> List[Order]:
        return self._newest_first(list(self._orders.values()))

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order else None

    def get_orders_by_product(self, product_id: str) -> List[Order]:
        matches = [o for o in self._orders.values() if o.product_id == product_id]
        matches.sort(key=lambda o: self._seq.get(o.id, 0))
        return copy.deepcopy(matches)

    def update_order(self, order_id: str, patch: Mapping[str, Any]) -> Optional[Order]:
        existing = self._orders.get(order_id)
        if existing is None:
            return None
        updated = merge_order(existing, parse_order_update(patch))
        self._orders[order_id] = updated
        if updated.status != existing.status:
            LOG.info("Order id=%s status %s -> %s", order_id, existing.status, updated.status)
        return copy.deepcopy(updated)

    def delete_order(self, order_id: str) -> bool:
        removed = self._orders.pop(order_id, None)
        if removed is None:
            return False
        self._seq.pop(order_id, None)
        LOG.info("Deleted order id=%s", order_id)
        return True

    def count_summary(self) -> Dict[str, Any]:
        by_status = {status: 0 for status in ORDER_STATUSES}
        for order in self._orders.values():
            by_status[order.status] = by_status.get(order.status, 0) + 1
        return {
            "products": len(self._products),
            "orders": len(self._orders),
            "ordersByStatus": by_status,
        }


def sqlite_path_from_url(database_url: str) -> Optional[str]:
    url = database_url.strip()
    if url.startswith(SQLITE_URL_PREFIX):
        return url[len(SQLITE_URL_PREFIX):] or None
    if url.lower().endswith(SQLITE_SUFFIXES) and "://" not in url:
        return url
    return None


def open_storage(database_url: Optional[str] = None) -> Storage:
    """Pick a backend from a connection string.

    ``None``/empty → in-memory; ``sqlite:///path`` or a ``*.db``/``*.sqlite3``
    path → SQLite. Other schemes are not supported and fall back to memory.
    """
    if not database_url or not database_url.strip():
        LOG.info("No DATABASE_URL configured; using in-memory storage")
        return MemoryStorage()
    path = sqlite_path_from_url(database_url)
    if path is None:
        LOG.warning("Unsupported DATABASE_URL scheme (%s); using in-memory storage", database_url.split(":", 1)[0])
        return MemoryStorage()
    return SQLiteStorage(os.path.abspath(os.path.expanduser(path)))
