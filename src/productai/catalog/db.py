from __future__ import annotations

import json
import os
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from ..logging import get_logger
from .constants import ORDER_STATUSES
from .errors import ValidationError
from .models import Order, Product, User, format_timestamp, parse_timestamp, utcnow
from .parser import (
    merge_order,
    merge_product,
    parse_order_input,
    parse_order_update,
    parse_product_input,
    parse_product_update,
    parse_user_input,
)


LOG = get_logger("catalog-db")

ORDER_STATUS_ENUM_SQL = ", ".join(f"'{value}'" for value in ORDER_STATUSES)


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
  id        TEXT PRIMARY KEY,
  username  TEXT NOT NULL UNIQUE,
  password  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
  id            TEXT PRIMARY KEY,
  name          TEXT NOT NULL,
  image_url     TEXT NOT NULL,
  descriptions  TEXT NOT NULL,        -- JSON {{ar, en, fr}}
  benefits      TEXT NOT NULL,        -- JSON {{ar: [], en: [], fr: []}}
  features      TEXT NOT NULL,
  price         TEXT,
  category      TEXT,
  created_at    TEXT NOT NULL         -- ISO-8601 UTC, millisecond precision
);

-- product_id is a weak reference: no foreign key, deleting a product keeps its orders
CREATE TABLE IF NOT EXISTS orders (
  id                   TEXT PRIMARY KEY,
  product_id           TEXT NOT NULL,
  customer_name        TEXT NOT NULL,
  customer_phone       TEXT NOT NULL,
  customer_address     TEXT,
  customer_city        TEXT,
  notes                TEXT,
  quantity             INTEGER NOT NULL DEFAULT 1 CHECK(quantity >= 1),
  status               TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ({ORDER_STATUS_ENUM_SQL})),
  confirmation_script  TEXT,
  language             TEXT NOT NULL DEFAULT 'ar',
  created_at           TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_created ON products(created_at);
CREATE INDEX IF NOT EXISTS idx_orders_created   ON orders(created_at);
CREATE INDEX IF NOT EXISTS idx_orders_product   ON orders(product_id);
"""

PRODUCT_COLUMNS = ("id", "name", "image_url", "descriptions", "benefits", "features", "price", "category", "created_at")
ORDER_COLUMNS = (
    "id",
    "product_id",
    "customer_name",
    "customer_phone",
    "customer_address",
    "customer_city",
    "notes",
    "quantity",
    "status",
    "confirmation_script",
    "language",
    "created_at",
)


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class SQLiteStorage:
    """SQLite-backed catalogue; the durable alternative to MemoryStorage.

    - Ensures schema on construction.
    - Every operation opens its own connection; updates read and write the
      record inside one immediate transaction.
    """

    def __init__(self, db_path: str, *, clock: Callable[[], Any] = utcnow) -> None:
        folder = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(folder, exist_ok=True)
        self.db_path = os.path.abspath(db_path)
        self._clock = clock
        LOG.info(f"Catalog DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.DatabaseError:
                # Non-fatal; continue with schema creation
                LOG.debug("Could not switch journal mode to WAL")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.debug("Catalog DB schema ensured.")

    # --------------- row mapping ---------------
    @staticmethod
    def _row_to_product(row: Optional[sqlite3.Row]) -> Optional[Product]:
        if row is None:
            return None
        return Product(
            id=row["id"],
            name=row["name"],
            image_url=row["image_url"],
            descriptions=json.loads(row["descriptions"]),
            benefits=json.loads(row["benefits"]),
            features=json.loads(row["features"]),
            price=row["price"],
            category=row["category"],
            created_at=parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_order(row: Optional[sqlite3.Row]) -> Optional[Order]:
        if row is None:
            return None
        values: Dict[str, Any] = {col: row[col] for col in ORDER_COLUMNS}
        values["created_at"] = parse_timestamp(values["created_at"])
        return Order(**values)

    @staticmethod
    def _product_values(p: Product) -> tuple:
        return (
            p.id,
            p.name,
            p.image_url,
            _dump(p.descriptions),
            _dump(p.benefits),
            _dump(p.features),
            p.price,
            p.category,
            format_timestamp(p.created_at),
        )

    @staticmethod
    def _order_values(o: Order) -> tuple:
        return (
            o.id,
            o.product_id,
            o.customer_name,
            o.customer_phone,
            o.customer_address,
            o.customer_city,
            o.notes,
            o.quantity,
            o.status,
            o.confirmation_script,
            o.language,
            format_timestamp(o.created_at),
        )

    # --------------- users ---------------
    def create_user(self, data: Mapping[str, Any]) -> User:
        fields = parse_user_input(data)
        user = User(id=str(uuid.uuid4()), **fields)
        with self.connect() as conn:
            try:
                conn.execute(
                    "INSERT INTO users (id, username, password) VALUES (?, ?, ?);",
                    (user.id, user.username, user.password),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"username already exists: {user.username}", code="username_taken") from exc
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self.connect() as conn:
            row = conn.execute("SELECT id, username, password FROM users WHERE id = ?;", (user_id,)).fetchone()
        return User(**dict(row)) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self.connect() as conn:
            row = conn.execute("SELECT id, username, password FROM users WHERE username = ?;", (username,)).fetchone()
        return User(**dict(row)) if row else None

    # --------------- products ---------------
    def create_product(self, data: Mapping[str, Any]) -> Product:
        fields = parse_product_input(data)
        product = Product(id=str(uuid.uuid4()), created_at=self._clock(), **fields)
        placeholders = ", ".join("?" for _ in PRODUCT_COLUMNS)
        with self.connect() as conn:
            conn.execute(
                f"INSERT INTO products ({', '.join(PRODUCT_COLUMNS)}) VALUES ({placeholders});",
                self._product_values(product),
            )
            conn.commit()
        LOG.info("Created product id=%s name=%r", product.id, product.name)
        return product

    def get_products(self) -> List[Product]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM products ORDER BY created_at DESC, rowid DESC;").fetchall()
        return [self._row_to_product(r) for r in rows]

    def get_product(self, product_id: str) -> Optional[Product]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM products WHERE id = ?;", (product_id,)).fetchone()
        return self._row_to_product(row)

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        changes = parse_product_update(patch)
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            existing = self._row_to_product(conn.execute("SELECT * FROM products WHERE id = ?;", (product_id,)).fetchone())
            if existing is None:
                conn.rollback()
                return None
            updated = merge_product(existing, changes)
            assignments = ", ".join(f"{col} = ?" for col in PRODUCT_COLUMNS[1:])
            conn.execute(
                f"UPDATE products SET {assignments} WHERE id = ?;",
                (*self._product_values(updated)[1:], product_id),
            )
            conn.commit()
        return updated

    def delete_product(self, product_id: str) -> bool:
        with self.connect() as conn:
            cur = conn.execute("DELETE FROM products WHERE id = ?;", (product_id,))
            conn.commit()
            deleted = cur.rowcount > 0
        if deleted:
            LOG.info("Deleted product id=%s", product_id)
        return deleted

    # --------------- orders ---------------
    def create_order(self, data: Mapping[str, Any]) -> Order:
        fields = parse_order_input(data)
        order = Order(id=str(uuid.uuid4()), created_at=self._clock(), **fields)
        placeholders = ", ".join("?" for _ in ORDER_COLUMNS)
        with self.connect() as conn:
            conn.execute(
                f"INSERT INTO orders ({', '.join(ORDER_COLUMNS)}) VALUES ({placeholders});",
                self._order_values(order),
            )
            conn.commit()
        LOG.info("Created order id=%s product=%s status=%s", order.id, order.product_id, order.status)
        return order

    def get_orders(self) -> List[Order]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM orders ORDER BY created_at DESC, rowid DESC;").fetchall()
        return [self._row_to_order(r) for r in rows]

    def get_order(self, order_id: str) -> Optional[Order]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM orders WHERE id = ?;", (order_id,)).fetchone()
        return self._row_to_order(row)

    def get_orders_by_product(self, product_id: str) -> List[Order]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM orders WHERE product_id = ? ORDER BY rowid;", (product_id,)).fetchall()
        return [self._row_to_order(r) for r in rows]

    def update_order(self, order_id: str, patch: Mapping[str, Any]) -> Optional[Order]:
        changes = parse_order_update(patch)
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            existing = self._row_to_order(conn.execute("SELECT * FROM orders WHERE id = ?;", (order_id,)).fetchone())
            if existing is None:
                conn.rollback()
                return None
            updated = merge_order(existing, changes)
            assignments = ", ".join(f"{col} = ?" for col in ORDER_COLUMNS[1:])
            conn.execute(
                f"UPDATE orders SET {assignments} WHERE id = ?;",
                (*self._order_values(updated)[1:], order_id),
            )
            conn.commit()
        if updated.status != existing.status:
            LOG.info("Order id=%s status %s -> %s", order_id, existing.status, updated.status)
        return updated

    def delete_order(self, order_id: str) -> bool:
        with self.connect() as conn:
            cur = conn.execute("DELETE FROM orders WHERE id = ?;", (order_id,))
            conn.commit()
            deleted = cur.rowcount > 0
        if deleted:
            LOG.info("Deleted order id=%s", order_id)
        return deleted

    def count_summary(self) -> Dict[str, Any]:
        with self.connect() as conn:
            products = conn.execute("SELECT COUNT(*) FROM products;").fetchone()[0]
            rows = conn.execute("SELECT status, COUNT(*) AS n FROM orders GROUP BY status;").fetchall()
        by_status = {status: 0 for status in ORDER_STATUSES}
        for row in rows:
            by_status[row["status"]] = int(row["n"])
        return {
            "products": int(products),
            "orders": sum(by_status.values()),
            "ordersByStatus": by_status,
        }
