"""SQLite storage for exchanges and their standing orders."""

import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Sequence

from loguru import logger

from ..core.types import (
    ZERO,
    FundsDelta,
    OrderDelta,
    OrderSide,
    PersistenceError,
    WorkingBuyOrder,
    WorkingSellOrder,
)
from .models import ExchangeRecord, OrderRecord
from .repository import OrderRepository

_ORDER_COLUMNS = """
    o.id, o.exchange_id, o.side, o.kind, o.time, o.amount, o.price,
    e.name, e.available_crypto, e.available_euro
"""


class Database(OrderRepository):
    """SQLite implementation of the order repository.

    Amounts and prices are stored as TEXT and read back as Decimal so no
    precision is lost between runs.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    async def connect(self):
        """Connect to database."""
        try:
            self.connection = sqlite3.connect(self.db_path)
            self.connection.execute("PRAGMA foreign_keys = ON")
            await self._create_tables()
            logger.info(f"Connected to database: {self.db_path}")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Disconnect from database."""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("Disconnected from database")

    async def _create_tables(self):
        """Create database tables if they don't exist."""
        cursor = self._cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS exchanges (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                available_crypto TEXT NOT NULL,
                available_euro TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                exchange_id TEXT NOT NULL,
                side TEXT NOT NULL,
                kind TEXT NOT NULL,
                time TEXT NOT NULL,
                amount TEXT NOT NULL,
                price TEXT NOT NULL,
                FOREIGN KEY (exchange_id) REFERENCES exchanges (id) ON DELETE CASCADE
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_side ON orders (side)")

        self.connection.commit()
        logger.debug("Database tables created/verified")

    def _cursor(self) -> sqlite3.Cursor:
        if not self.connection:
            raise PersistenceError("Database is not connected")
        return self.connection.cursor()

    def _commit_unless_in_transaction(self):
        if not self._in_transaction:
            self.connection.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit everything done inside the block at once, or nothing."""
        self._cursor()
        if self._in_transaction:
            raise PersistenceError("Nested transactions are not supported")

        self._in_transaction = True
        try:
            yield
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            logger.error(f"Transaction rolled back: {e}")
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(str(e)) from e
        finally:
            self._in_transaction = False

    async def _fetch_orders(self, side: OrderSide) -> List[sqlite3.Row]:
        cursor = self._cursor()
        cursor.execute(f"""
            SELECT {_ORDER_COLUMNS}
            FROM orders o
            JOIN exchanges e ON e.id = o.exchange_id
            WHERE o.side = ?
            ORDER BY o.rowid
        """, (side.value,))
        return cursor.fetchall()

    @staticmethod
    def _order_from_row(row) -> OrderRecord:
        return OrderRecord(
            id=row[0],
            exchange_id=row[1],
            side=OrderSide.parse(row[2]),
            kind=row[3],
            time=datetime.fromisoformat(row[4]),
            amount=Decimal(row[5]),
            price=Decimal(row[6]),
        )

    async def fetch_sorted_asks(self) -> List[WorkingBuyOrder]:
        """Sell orders, cheapest first; equal prices keep insertion order."""
        working = []
        for row in await self._fetch_orders(OrderSide.SELL):
            record = self._order_from_row(row)
            working.append(WorkingBuyOrder(
                order=record.to_standing_order(),
                exchange_id=record.exchange_id,
                exchange_name=row[7],
                remaining_amount=record.amount,
                exchange_crypto=Decimal(row[8]),
            ))
        return sorted(working, key=lambda w: w.order.price)

    async def fetch_sorted_bids(self) -> List[WorkingSellOrder]:
        """Buy orders, highest price first; equal prices keep insertion order."""
        working = []
        for row in await self._fetch_orders(OrderSide.BUY):
            record = self._order_from_row(row)
            working.append(WorkingSellOrder(
                order=record.to_standing_order(),
                exchange_id=record.exchange_id,
                exchange_name=row[7],
                remaining_amount=record.amount,
                exchange_funds=Decimal(row[9]),
            ))
        return sorted(working, key=lambda w: w.order.price, reverse=True)

    async def _get_exchange(self, exchange_id: str) -> Optional[ExchangeRecord]:
        cursor = self._cursor()
        cursor.execute("""
            SELECT id, name, available_crypto, available_euro
            FROM exchanges WHERE id = ?
        """, (exchange_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return ExchangeRecord(
            id=row[0],
            name=row[1],
            available_crypto=Decimal(row[2]),
            available_euro=Decimal(row[3]),
        )

    async def _update_balances(self, exchange: ExchangeRecord):
        self._cursor().execute("""
            UPDATE exchanges SET available_crypto = ?, available_euro = ?
            WHERE id = ?
        """, (str(exchange.available_crypto), str(exchange.available_euro), exchange.id))

    async def apply_crypto_deltas(self, deltas: Dict[str, Decimal]) -> None:
        for exchange_id, crypto_used in deltas.items():
            exchange = await self._get_exchange(exchange_id)
            if exchange is None:
                logger.warning(f"Exchange {exchange_id} not found, skipping crypto update")
                continue
            exchange.available_crypto -= crypto_used
            await self._update_balances(exchange)
        self._commit_unless_in_transaction()

    async def apply_funds_deltas(self, deltas: Dict[str, FundsDelta]) -> None:
        for exchange_id, delta in deltas.items():
            exchange = await self._get_exchange(exchange_id)
            if exchange is None:
                logger.warning(f"Exchange {exchange_id} not found, skipping funds update")
                continue
            exchange.available_crypto += delta.crypto_gained
            exchange.available_euro -= delta.fiat_spent
            await self._update_balances(exchange)
        self._commit_unless_in_transaction()

    async def apply_order_deltas(self, deltas: Sequence[OrderDelta]) -> None:
        cursor = self._cursor()
        for delta in deltas:
            if delta.new_remaining_amount <= ZERO:
                cursor.execute("DELETE FROM orders WHERE id = ?", (delta.order_id,))
            else:
                cursor.execute("UPDATE orders SET amount = ? WHERE id = ?",
                               (str(delta.new_remaining_amount), delta.order_id))
        self._commit_unless_in_transaction()

    async def list_exchanges(self) -> List[ExchangeRecord]:
        cursor = self._cursor()
        cursor.execute("""
            SELECT id, name, available_crypto, available_euro
            FROM exchanges ORDER BY name
        """)
        return [
            ExchangeRecord(id=row[0], name=row[1],
                           available_crypto=Decimal(row[2]), available_euro=Decimal(row[3]))
            for row in cursor.fetchall()
        ]

    async def count_orders(self, exchange_id: Optional[str] = None) -> int:
        cursor = self._cursor()
        if exchange_id is None:
            cursor.execute("SELECT COUNT(*) FROM orders")
        else:
            cursor.execute("SELECT COUNT(*) FROM orders WHERE exchange_id = ?", (exchange_id,))
        return cursor.fetchone()[0]

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        cursor = self._cursor()
        cursor.execute("""
            SELECT id, exchange_id, side, kind, time, amount, price
            FROM orders WHERE id = ?
        """, (order_id,))
        row = cursor.fetchone()
        return self._order_from_row(row) if row else None

    async def insert_exchange(self, exchange: ExchangeRecord, orders: Sequence[OrderRecord]) -> None:
        """Insert an exchange together with its order book."""
        cursor = self._cursor()
        try:
            cursor.execute("""
                INSERT INTO exchanges (id, name, available_crypto, available_euro)
                VALUES (?, ?, ?, ?)
            """, (exchange.id, exchange.name, str(exchange.available_crypto), str(exchange.available_euro)))
            cursor.executemany("""
                INSERT INTO orders (id, exchange_id, side, kind, time, amount, price)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                (o.id, exchange.id, o.side.value, o.kind, o.time.isoformat(), str(o.amount), str(o.price))
                for o in orders
            ])
            self._commit_unless_in_transaction()
        except sqlite3.Error as e:
            if not self._in_transaction:
                self.connection.rollback()
            logger.error(f"Failed to insert exchange {exchange.name}: {e}")
            raise PersistenceError(f"Failed to insert exchange {exchange.name}: {e}") from e

    async def clear(self) -> bool:
        try:
            cursor = self._cursor()
            cursor.execute("DELETE FROM orders")
            cursor.execute("DELETE FROM exchanges")
            self.connection.commit()
            logger.info("Database cleared")
            return True
        except (sqlite3.Error, PersistenceError) as e:
            if self.connection:
                self.connection.rollback()
            logger.error(f"Failed to clear database: {e}")
            return False
