"""Test seeding and resetting the store from order book files."""

import asyncio
import copy
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from crypto_exchange.core.reset import ResetService
from crypto_exchange.core.types import OrderDelta, OrderSide, SeedDataError
from crypto_exchange.storage.db import Database
from crypto_exchange.storage.seeder import DataSeeder, SeedResult, load_order_book, parse_order_book

from sample_data import SAMPLE_ORDER_BOOKS, write_order_books

D = Decimal


class TestParseOrderBook:
    """Test mapping of order book documents."""

    def test_parse_exchange_and_orders(self):
        exchange, orders = parse_order_book(SAMPLE_ORDER_BOOKS["exchange-a"])

        assert exchange.name == "exchange-a"
        assert exchange.id != "exchange-a"
        assert exchange.available_crypto == D("5.0")
        assert exchange.available_euro == D("200000")

        bid, ask = orders
        assert bid.id == "a-bid-1"
        assert bid.side is OrderSide.BUY
        assert ask.side is OrderSide.SELL
        assert ask.price == D("50000")
        assert ask.amount == D("2.0")
        assert ask.time.year == 2024
        assert ask.time.utcoffset().total_seconds() == 0
        assert all(o.exchange_id == exchange.id for o in orders)

    def test_each_parse_gets_new_exchange_id(self):
        first, _ = parse_order_book(SAMPLE_ORDER_BOOKS["exchange-a"])
        second, _ = parse_order_book(SAMPLE_ORDER_BOOKS["exchange-a"])

        assert first.id != second.id

    def test_missing_order_book_means_no_orders(self):
        exchange, orders = parse_order_book({"Id": "empty", "AvailableFunds": {"Crypto": 1, "Euro": 2}})

        assert exchange.available_euro == D("2")
        assert orders == []

    def test_missing_funds_raises(self):
        with pytest.raises(SeedDataError):
            parse_order_book({"Id": "broken"})

    def test_bad_order_raises(self):
        book = copy.deepcopy(SAMPLE_ORDER_BOOKS["exchange-a"])
        book["OrderBook"]["Asks"][0]["Order"]["Price"] = "not a number"

        with pytest.raises(SeedDataError):
            parse_order_book(book)


class TestLoadOrderBook:
    """Test reading seed files."""

    def test_load_keeps_exact_decimals(self, tmp_path):
        path = tmp_path / "book.json"
        path.write_text("""{"Id": "x", "AvailableFunds": {"Crypto": 0.1, "Euro": 10.05},
            "OrderBook": {"Bids": [], "Asks": [{"Order": {"Id": "o1", "Time": "2024-03-01T09:12:41Z",
            "Type": "Sell", "Kind": "Limit", "Amount": 0.30000001, "Price": 57226.46}}]}}""")

        exchange, orders = load_order_book(path)

        assert exchange.available_crypto == D("0.1")
        assert exchange.available_euro == D("10.05")
        assert orders[0].amount == D("0.30000001")
        assert orders[0].price == D("57226.46")

    def test_missing_file_returns_none(self, tmp_path):
        assert load_order_book(tmp_path / "missing.json") is None

    def test_invalid_json_returns_none(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        assert load_order_book(path) is None


class TestDataSeeder:
    """Test seeding the store."""

    def test_seed_empty_database(self, tmp_path):
        """Test that every seed file becomes an exchange with its orders."""
        seed_dir = tmp_path / "seed"
        seed_dir.mkdir()
        write_order_books(seed_dir)

        async def run():
            db = Database(str(tmp_path / "db.sqlite"))
            await db.connect()
            try:
                result = await DataSeeder(db, str(seed_dir)).seed_database()
                return result, await db.list_exchanges(), await db.count_orders()
            finally:
                await db.disconnect()

        result, exchanges, orders = asyncio.run(run())

        assert result is SeedResult.DATA_SEEDED
        assert [e.name for e in exchanges] == ["exchange-a", "exchange-b"]
        assert orders == 4

    def test_existing_data_not_reseeded(self):
        repo = MagicMock()
        repo.list_exchanges = AsyncMock(return_value=[object()])
        repo.insert_exchange = AsyncMock()

        result = asyncio.run(DataSeeder(repo, "unused").seed_database())

        assert result is SeedResult.DATA_ALREADY_EXISTS
        repo.insert_exchange.assert_not_called()

    def test_missing_directory(self, tmp_path):
        repo = MagicMock()
        repo.list_exchanges = AsyncMock(return_value=[])

        result = asyncio.run(DataSeeder(repo, str(tmp_path / "nowhere")).seed_database())

        assert result is SeedResult.SEED_DATA_NOT_FOUND

    def test_unusable_files_are_skipped(self, tmp_path):
        write_order_books(tmp_path, {"good": SAMPLE_ORDER_BOOKS["exchange-b"]})
        (tmp_path / "bad.json").write_text("[]")
        (tmp_path / "notes.txt").write_text("ignored")

        books = DataSeeder(MagicMock(), str(tmp_path)).load_seed_data()

        assert len(books) == 1
        assert books[0][0].name == "exchange-b"


class TestResetService:
    """Test resetting the store to its seed data."""

    def test_reset_restores_seed_state(self, tmp_path):
        """Test that a reset undoes earlier trades."""
        seed_dir = tmp_path / "seed"
        seed_dir.mkdir()
        write_order_books(seed_dir)

        async def run():
            db = Database(str(tmp_path / "db.sqlite"))
            await db.connect()
            try:
                seeder = DataSeeder(db, str(seed_dir))
                await seeder.seed_database()
                asks = await db.fetch_sorted_asks()
                await db.apply_order_deltas([OrderDelta(asks[0].order.id, D("0"))])
                result = await ResetService(db, seeder).reset_database()
                return result, await db.count_orders()
            finally:
                await db.disconnect()

        result, orders = asyncio.run(run())

        assert result.success is True
        assert result.message == "The database was re-seeded"
        assert orders == 4

    def test_clear_failure(self):
        repo = MagicMock()
        repo.clear = AsyncMock(return_value=False)
        seeder = MagicMock()
        seeder.seed_database = AsyncMock()

        result = asyncio.run(ResetService(repo, seeder).reset_database())

        assert result.success is False
        assert result.message == "The database could not be cleared and was not re-seeded"
        seeder.seed_database.assert_not_called()

    def test_seed_failure(self):
        repo = MagicMock()
        repo.clear = AsyncMock(return_value=True)
        seeder = MagicMock()
        seeder.seed_database = AsyncMock(return_value=SeedResult.SEED_DATA_NOT_FOUND)

        result = asyncio.run(ResetService(repo, seeder).reset_database())

        assert result.success is False
        assert result.message == "The database could not be seeded, please check the logs."
