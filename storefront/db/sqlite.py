from __future__ import annotations

import json
import os
import secrets
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from storefront.constants import MSG_INSUFFICIENT_STOCK, MSG_PRODUCT_NOT_FOUND

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")

_COLUMNS = "id, title, description, price_amount, price_currency, seller, images, stock"


def new_object_id() -> str:
    return secrets.token_hex(12)


def _row_to_product(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "_id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "price": {"amount": row["price_amount"], "currency": row["price_currency"]},
        "seller": row["seller"],
        "images": json.loads(row["images"] or "[]"),
        "stock": row["stock"],
    }


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class CatalogDB:
    """Product documents in one sqlite table; a fresh connection per call."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        dirname = os.path.dirname(self.db_path)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        conn = self._connect()
        try:
            with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
                conn.executescript(f.read())
            conn.commit()
        finally:
            conn.close()

    def insert_product(
        self,
        title: str,
        description: Optional[str],
        price: Dict[str, Any],
        seller: str,
        images: Optional[List[Dict[str, Any]]] = None,
        stock: Optional[int] = None,
    ) -> Dict[str, Any]:
        pid = new_object_id()
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT INTO products({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?)",
                (
                    pid,
                    title,
                    description,
                    float(price["amount"]),
                    price["currency"],
                    seller,
                    json.dumps(images or []),
                    stock,
                ),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_product(pid)  # type: ignore[return-value]

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {_COLUMNS} FROM products WHERE id = ?", (product_id,)).fetchone()
            return _row_to_product(row) if row else None
        finally:
            conn.close()

    def list_products(
        self,
        q: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        seller: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        where: List[str] = []
        params: List[Any] = []

        terms = (q or "").split()
        if terms:
            # any term in title or description
            parts = []
            for t in terms:
                parts.append("(title LIKE ? ESCAPE '\\' OR IFNULL(description, '') LIKE ? ESCAPE '\\')")
                params.extend([_like(t), _like(t)])
            where.append("(" + " OR ".join(parts) + ")")
        if min_price is not None:
            where.append("price_amount >= ?")
            params.append(min_price)
        if max_price is not None:
            where.append("price_amount <= ?")
            params.append(max_price)
        if seller is not None:
            where.append("seller = ?")
            params.append(seller)

        sql = f"SELECT {_COLUMNS} FROM products"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY seq LIMIT ? OFFSET ?"
        params.extend([limit, skip])

        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [_row_to_product(r) for r in rows]
        finally:
            conn.close()

    def update_product(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        sets: List[str] = []
        params: List[Any] = []
        if "title" in fields:
            sets.append("title = ?")
            params.append(fields["title"])
        if "description" in fields:
            sets.append("description = ?")
            params.append(fields["description"])
        if "price" in fields:
            sets.extend(["price_amount = ?", "price_currency = ?"])
            params.extend([float(fields["price"]["amount"]), fields["price"]["currency"]])

        if sets:
            conn = self._connect()
            try:
                conn.execute(f"UPDATE products SET {', '.join(sets)} WHERE id = ?", (*params, product_id))
                conn.commit()
            finally:
                conn.close()
        return self.get_product(product_id)

    def delete_product(self, product_id: str) -> bool:
        conn = self._connect()
        try:
            cur = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    def reserve_stock(self, product_id: str, qty: int) -> Tuple[bool, str, Optional[int]]:
        """
        Takes qty units off the product's stock.
        Returns (ok, err, remaining); remaining is None for unlimited stock.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT stock FROM products WHERE id = ?", (product_id,)).fetchone()
            if not row:
                conn.execute("ROLLBACK")
                return False, MSG_PRODUCT_NOT_FOUND, None

            stock = row["stock"]
            if stock is None:
                conn.execute("ROLLBACK")
                return True, "", None
            if stock < qty:
                conn.execute("ROLLBACK")
                return False, MSG_INSUFFICIENT_STOCK, int(stock)

            remaining = int(stock) - qty
            conn.execute("UPDATE products SET stock = ? WHERE id = ?", (remaining, product_id))
            conn.commit()
            return True, "", remaining
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
