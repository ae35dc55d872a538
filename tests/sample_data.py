"""Sample order books and working orders for testing the allocators."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

from crypto_exchange.core.types import OrderSide, StandingOrder, WorkingBuyOrder, WorkingSellOrder

ORDER_TIME = datetime(2024, 3, 1, 9, 12, 41, tzinfo=timezone.utc)

_ids = count(1)


def _order(side: OrderSide, price, amount, order_id=None) -> StandingOrder:
    return StandingOrder(
        id=order_id or f"order-{next(_ids)}",
        time=ORDER_TIME,
        side=side,
        kind="Limit",
        amount=Decimal(str(amount)),
        price=Decimal(str(price)),
    )


def make_ask(exchange: str, price, amount, crypto, order_id=None) -> WorkingBuyOrder:
    """Ask on ``exchange`` (also used as its id) with the exchange's crypto."""
    order = _order(OrderSide.SELL, price, amount, order_id)
    return WorkingBuyOrder(
        order=order,
        exchange_id=exchange,
        exchange_name=exchange,
        remaining_amount=order.amount,
        exchange_crypto=Decimal(str(crypto)),
    )


def make_bid(exchange: str, price, amount, funds, order_id=None) -> WorkingSellOrder:
    """Bid on ``exchange`` (also used as its id) with the exchange's euro funds."""
    order = _order(OrderSide.BUY, price, amount, order_id)
    return WorkingSellOrder(
        order=order,
        exchange_id=exchange,
        exchange_name=exchange,
        remaining_amount=order.amount,
        exchange_funds=Decimal(str(funds)),
    )


# Order book documents in seed file format
SAMPLE_ORDER_BOOKS = {
    "exchange-a": {
        "Id": "exchange-a",
        "AvailableFunds": {"Crypto": 5.0, "Euro": 200000},
        "OrderBook": {
            "Bids": [
                {"Order": {"Id": "a-bid-1", "Time": "2024-03-01T09:12:41.512Z", "Type": "Buy",
                           "Kind": "Limit", "Amount": 2.0, "Price": 52000}},
            ],
            "Asks": [
                {"Order": {"Id": "a-ask-1", "Time": "2024-03-01T09:12:40.004Z", "Type": "Sell",
                           "Kind": "Limit", "Amount": 2.0, "Price": 50000}},
            ],
        },
    },
    "exchange-b": {
        "Id": "exchange-b",
        "AvailableFunds": {"Crypto": 3.0, "Euro": 200000},
        "OrderBook": {
            "Bids": [
                {"Order": {"Id": "b-bid-1", "Time": "2024-03-01T09:13:02.117Z", "Type": "Buy",
                           "Kind": "Limit", "Amount": 2.0, "Price": 50000}},
            ],
            "Asks": [
                {"Order": {"Id": "b-ask-1", "Time": "2024-03-01T09:13:01.008Z", "Type": "Sell",
                           "Kind": "Limit", "Amount": 1.0, "Price": 51000}},
            ],
        },
    },
}


def write_order_books(directory, books=None):
    """Write order book documents as JSON seed files into ``directory``."""
    books = books if books is not None else SAMPLE_ORDER_BOOKS
    for name, book in books.items():
        (directory / f"{name}.json").write_text(json.dumps(book))
    return directory
