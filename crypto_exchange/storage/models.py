"""Data models for the exchange/order store."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.types import ZERO, OrderSide, StandingOrder


@dataclass
class ExchangeRecord:
    """Exchange row model."""
    id: str = ""
    name: str = ""
    available_crypto: Decimal = ZERO
    available_euro: Decimal = ZERO


@dataclass
class OrderRecord:
    """Standing order row model."""
    id: str = ""
    exchange_id: str = ""
    side: OrderSide = OrderSide.BUY
    kind: str = "Limit"
    time: Optional[datetime] = None
    amount: Decimal = ZERO
    price: Decimal = ZERO

    def to_standing_order(self) -> StandingOrder:
        return StandingOrder(
            id=self.id,
            time=self.time,
            side=self.side,
            kind=self.kind,
            amount=self.amount,
            price=self.price,
        )
