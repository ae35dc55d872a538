"""Loading of exchange order books from JSON seed files."""

import json
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from ..core.types import OrderSide, SeedDataError
from .models import ExchangeRecord, OrderRecord
from .repository import OrderRepository


class SeedResult(Enum):
    """Outcome of a seeding attempt."""
    DATA_SEEDED = "data_seeded"
    DATA_ALREADY_EXISTS = "data_already_exists"
    SEED_DATA_NOT_FOUND = "seed_data_not_found"


def _parse_time(value: str) -> datetime:
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _parse_order(entry: Dict[str, Any], side: OrderSide, exchange_id: str) -> OrderRecord:
    try:
        order = entry.get("Order", entry)
        return OrderRecord(
            id=str(order.get("Id") or uuid.uuid4()),
            exchange_id=exchange_id,
            side=side,
            kind=str(order.get("Kind", "Limit")),
            time=_parse_time(str(order["Time"])),
            amount=Decimal(str(order["Amount"])),
            price=Decimal(str(order["Price"])),
        )
    except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise SeedDataError(f"Invalid order entry {entry!r}: {e}") from e


def parse_order_book(data: Dict[str, Any]) -> Tuple[ExchangeRecord, List[OrderRecord]]:
    """Map one decoded order book document to an exchange and its orders."""
    try:
        funds = data["AvailableFunds"]
        exchange = ExchangeRecord(
            id=str(uuid.uuid4()),
            name=str(data["Id"]),
            available_crypto=Decimal(str(funds["Crypto"])),
            available_euro=Decimal(str(funds["Euro"])),
        )
    except (KeyError, TypeError, ArithmeticError) as e:
        raise SeedDataError(f"Invalid order book header: {e}") from e

    book = data.get("OrderBook") or {}
    orders = [_parse_order(b, OrderSide.BUY, exchange.id) for b in book.get("Bids", [])]
    orders.extend(_parse_order(a, OrderSide.SELL, exchange.id) for a in book.get("Asks", []))
    return exchange, orders


def load_order_book(path: Path) -> Optional[Tuple[ExchangeRecord, List[OrderRecord]]]:
    """Load a single seed file, returning None if it cannot be used."""
    if not path.is_file():
        logger.warning(f"The file with the path {path} does not exist")
        return None

    try:
        with open(path, "r") as f:
            data = json.load(f, parse_float=Decimal, parse_int=Decimal)
        return parse_order_book(data)
    except (OSError, json.JSONDecodeError, SeedDataError) as e:
        logger.error(f"Error while loading order book {path}: {e}")
        return None


class DataSeeder:
    """Seeds the store from a directory of order book files."""

    def __init__(self, repository: OrderRepository, directory: str, pattern: str = "*.json"):
        self.repository = repository
        self.directory = Path(directory)
        self.pattern = pattern

    def load_seed_data(self) -> List[Tuple[ExchangeRecord, List[OrderRecord]]]:
        if not self.directory.is_dir():
            logger.warning(f"Directory with data to seed into database not found: {self.directory}")
            return []

        books = []
        for path in sorted(self.directory.glob(self.pattern)):
            book = load_order_book(path)
            if book is not None:
                books.append(book)
        return books

    async def seed_database(self) -> SeedResult:
        if await self.repository.list_exchanges():
            logger.info("Data already exists in database, no seeding")
            return SeedResult.DATA_ALREADY_EXISTS

        books = self.load_seed_data()
        if not books:
            logger.error("Loading of seeding data failed, no seeding")
            return SeedResult.SEED_DATA_NOT_FOUND

        for exchange, orders in books:
            await self.repository.insert_exchange(exchange, orders)
            logger.info(f"Seeded exchange {exchange.name} with {len(orders)} orders")

        return SeedResult.DATA_SEEDED
