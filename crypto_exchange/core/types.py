"""
Shared types and data structures for order allocation.
Kept free of storage and service imports so both layers can depend on it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

ZERO = Decimal("0")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Convert a user supplied amount to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class CryptoExchangeError(Exception):
    """Base class for errors raised by this package."""
    pass


class PersistenceError(CryptoExchangeError):
    """Raised when balance/order deltas could not be committed."""
    pass


class SeedDataError(CryptoExchangeError):
    """Raised when an order book seed file is malformed."""
    pass


class OrderSide(Enum):
    """Side of a standing order or of a trade request."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: str) -> "OrderSide":
        return cls(value.strip().lower())


class AllocationStatus(Enum):
    """Outcome of one allocation call."""
    FILLED = "filled"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    INVALID_AMOUNT = "invalid_amount"


@dataclass
class StandingOrder:
    """Limit order resting on one exchange's order book."""
    id: str
    time: datetime
    side: OrderSide
    kind: str
    amount: Decimal
    price: Decimal


@dataclass
class WorkingBuyOrder:
    """An ask paired with the available crypto of the exchange it rests on."""
    order: StandingOrder
    exchange_id: str
    exchange_name: str
    remaining_amount: Decimal
    exchange_crypto: Decimal

    @property
    def liquidity(self) -> Decimal:
        return self.exchange_crypto


@dataclass
class WorkingSellOrder:
    """A bid paired with the available fiat funds of the exchange it rests on."""
    order: StandingOrder
    exchange_id: str
    exchange_name: str
    remaining_amount: Decimal
    exchange_funds: Decimal

    @property
    def liquidity(self) -> Decimal:
        return self.exchange_funds


WorkingOrder = Union[WorkingBuyOrder, WorkingSellOrder]


@dataclass(frozen=True)
class FundsDelta:
    """Per-exchange balance change produced by a sell allocation."""
    crypto_gained: Decimal = ZERO
    fiat_spent: Decimal = ZERO

    def __add__(self, other: "FundsDelta") -> "FundsDelta":
        return FundsDelta(
            crypto_gained=self.crypto_gained + other.crypto_gained,
            fiat_spent=self.fiat_spent + other.fiat_spent,
        )


@dataclass(frozen=True)
class OrderDelta:
    """New remaining amount of a consumed standing order (deleted when <= 0)."""
    order_id: str
    new_remaining_amount: Decimal


@dataclass(frozen=True)
class Execution:
    """A single fill against one standing order."""
    side: OrderSide
    order_id: str
    order_time: datetime
    exchange_id: str
    exchange_name: str
    price: Decimal
    amount: Decimal
    money: Decimal  # cost for buys, proceeds for sells

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value,
            "order_id": self.order_id,
            "order_time": self.order_time.isoformat(),
            "exchange_id": self.exchange_id,
            "exchange_name": self.exchange_name,
            "price": str(self.price),
            "amount": str(self.amount),
            "money": str(self.money),
        }


@dataclass
class AllocationResult:
    """Aggregate outcome of a buy or sell request."""
    side: OrderSide
    status: AllocationStatus
    requested_amount: Decimal
    total_amount: Decimal
    total_money: Decimal
    remaining_amount: Decimal
    executions: List[Execution] = field(default_factory=list)
    error_message: Optional[str] = None
    persisted: bool = False

    @property
    def success(self) -> bool:
        return self.status is AllocationStatus.FILLED

    @property
    def average_price(self) -> Decimal:
        if self.total_amount <= ZERO:
            return ZERO
        return self.total_money / self.total_amount

    @classmethod
    def invalid(cls, side: OrderSide, requested: Decimal, message: str) -> "AllocationResult":
        """Zero-valued unsuccessful result for a rejected request."""
        return cls(
            side=side,
            status=AllocationStatus.INVALID_AMOUNT,
            requested_amount=requested,
            total_amount=ZERO,
            total_money=ZERO,
            remaining_amount=ZERO,
            error_message=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value,
            "status": self.status.value,
            "success": self.success,
            "requested_amount": str(self.requested_amount),
            "total_amount": str(self.total_amount),
            "total_money": str(self.total_money),
            "remaining_amount": str(self.remaining_amount),
            "error_message": self.error_message,
            "persisted": self.persisted,
            "executions": [e.to_dict() for e in self.executions],
        }
