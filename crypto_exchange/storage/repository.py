"""Order repository interface used by the order service."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import AsyncContextManager, Dict, List, Sequence

from ..core.types import FundsDelta, OrderDelta, WorkingBuyOrder, WorkingSellOrder
from .models import ExchangeRecord, OrderRecord


class OrderRepository(ABC):
    """Persistence collaborator for allocation.

    Snapshots are read once per call; deltas are pushed inside
    ``transaction()`` so balance and order updates commit together.
    """

    @abstractmethod
    async def fetch_sorted_asks(self) -> List[WorkingBuyOrder]:
        """Asks joined with exchange crypto, ascending by price."""
        pass

    @abstractmethod
    async def fetch_sorted_bids(self) -> List[WorkingSellOrder]:
        """Bids joined with exchange fiat funds, descending by price."""
        pass

    @abstractmethod
    async def apply_crypto_deltas(self, deltas: Dict[str, Decimal]) -> None:
        """Subtract consumed crypto from each exchange."""
        pass

    @abstractmethod
    async def apply_funds_deltas(self, deltas: Dict[str, FundsDelta]) -> None:
        """Add gained crypto and subtract spent fiat for each exchange."""
        pass

    @abstractmethod
    async def apply_order_deltas(self, deltas: Sequence[OrderDelta]) -> None:
        """Update remaining amounts, deleting orders that reached zero."""
        pass

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Atomic unit for the delta pushes; rolls back on error.

        Any failure inside or at commit must surface as ``PersistenceError``
        so the order service can still return the computed result.
        """
        pass

    @abstractmethod
    async def list_exchanges(self) -> List[ExchangeRecord]:
        pass

    @abstractmethod
    async def insert_exchange(self, exchange: ExchangeRecord, orders: Sequence[OrderRecord]) -> None:
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Remove all exchanges and orders."""
        pass
