"""Buy and sell Bitcoin at the best prices available across exchanges."""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from loguru import logger

from ..config import AllocatorConfig
from ..storage.repository import OrderRepository
from .allocator import AllocationPlan, BuySide, SellSide, plan_buy, plan_sell, validate_amount
from .types import Amount, AllocationResult, PersistenceError, to_decimal


class OrderService:
    """Runs allocations against a repository snapshot and commits the deltas.

    Each call reads the sorted order snapshot, allocates in memory and pushes
    the resulting balance and order deltas inside one repository transaction.
    Calls on the same instance are serialized so that no two allocations work
    from the same snapshot. Callers sharing a store across processes must
    provide their own mutual exclusion.
    """

    def __init__(self, repository: OrderRepository, config: Optional[AllocatorConfig] = None):
        self.repository = repository
        self.config = config or AllocatorConfig()
        self._lock = asyncio.Lock()

    async def buy(self, amount: Amount) -> AllocationResult:
        """Buy ``amount`` BTC from the cheapest asks first."""
        target = to_decimal(amount)
        rejected = validate_amount(BuySide(), target)
        if rejected is not None:
            return rejected

        async with self._lock:
            asks = await self.repository.fetch_sorted_asks()
            logger.info(f"Buying {target} BTC against {len(asks)} asks")
            plan = plan_buy(target, asks)
            await self._commit(plan, self.repository.apply_crypto_deltas)

        return plan.result

    async def sell(self, amount: Amount) -> AllocationResult:
        """Sell ``amount`` BTC into the highest bids first."""
        target = to_decimal(amount)
        rejected = validate_amount(SellSide(), target)
        if rejected is not None:
            return rejected

        async with self._lock:
            bids = await self.repository.fetch_sorted_bids()
            logger.info(f"Selling {target} BTC against {len(bids)} bids")
            plan = plan_sell(target, bids, self.config.amount_decimals)
            await self._commit(plan, self.repository.apply_funds_deltas)

        return plan.result

    async def _commit(self, plan: AllocationPlan,
                      apply_exchange_deltas: Callable[[Dict], Awaitable[None]]) -> None:
        """Push exchange and order deltas atomically.

        A failed commit is logged and leaves ``persisted`` False; the computed
        result is still returned to the caller and nothing is retried.
        """
        try:
            async with self.repository.transaction():
                await apply_exchange_deltas(plan.exchange_deltas)
                await self.repository.apply_order_deltas(plan.order_deltas)
        except PersistenceError as e:
            logger.error(f"Failed to persist {plan.result.side.value} allocation: {e}")
            plan.result.persisted = False
            return

        plan.result.persisted = True
        if self.config.log_executions:
            for execution in plan.result.executions:
                logger.info(f"Executed {execution.side.value} {execution.amount} BTC @ {execution.price} "
                            f"on {execution.exchange_name}")
