"""
Greedy price-priority allocation of a trade request across exchanges.

The buy and sell allocators share one loop. Each pass scans the price-sorted
working orders from the top, takes as much as possible from the first order
whose exchange still has liquidity, then restarts the scan. The loop ends
when the request is filled or a full pass takes nothing.

A side strategy supplies what differs between the two directions:
the per-order amount bound, how much exchange liquidity a fill uses, and
how fills accumulate into per-exchange balance deltas.
"""

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .types import (
    ZERO,
    Amount,
    AllocationResult,
    AllocationStatus,
    Execution,
    FundsDelta,
    OrderDelta,
    OrderSide,
    StandingOrder,
    WorkingBuyOrder,
    WorkingOrder,
    WorkingSellOrder,
    to_decimal,
)

@dataclass
class AllocationPlan:
    """Allocation result plus the deltas that must be persisted for it."""
    result: AllocationResult
    exchange_deltas: Dict[str, Any] = field(default_factory=dict)
    order_deltas: List[OrderDelta] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.exchange_deltas or self.order_deltas)


@dataclass
class _Slot:
    """Mutable per-call view of one working order."""
    order: StandingOrder
    exchange_id: str
    exchange_name: str
    remaining: Decimal


class BuySide:
    """Consumes asks, cheapest first, bounded by exchange crypto."""

    side = OrderSide.BUY
    invalid_message = "Bitcoin amount to buy must be greater than 0"

    def amount_bound(self, liquidity: Decimal, price: Decimal) -> Decimal:
        return liquidity

    def liquidity_used(self, amount: Decimal, money: Decimal) -> Decimal:
        return amount

    def accumulate(self, deltas: Dict[str, Decimal], exchange_id: str,
                   amount: Decimal, money: Decimal) -> None:
        deltas[exchange_id] = deltas.get(exchange_id, ZERO) + amount

    def shortfall_message(self, done: Decimal, remaining: Decimal) -> str:
        return f"Only {done} Bitcoin could be purchased. Remaining needed: {remaining}"


class SellSide:
    """Consumes bids, highest first, bounded by exchange fiat funds.

    The funds bound is funds / price rounded toward zero at full context
    precision, so bound * price never exceeds the funds. With ``amount_decimals``
    set, the bound is further truncated to whole multiples of
    10 ** -amount_decimals BTC.
    """

    side = OrderSide.SELL
    invalid_message = "Bitcoin amount to sell must be greater than 0"

    def __init__(self, amount_decimals: Optional[int] = None):
        self.unit = None if amount_decimals is None else Decimal(1).scaleb(-amount_decimals)

    def amount_bound(self, liquidity: Decimal, price: Decimal) -> Decimal:
        if price <= ZERO:
            return ZERO
        if self.unit is not None:
            return (liquidity // (price * self.unit)) * self.unit
        with localcontext() as ctx:
            ctx.rounding = ROUND_FLOOR
            return liquidity / price

    def liquidity_used(self, amount: Decimal, money: Decimal) -> Decimal:
        return money

    def accumulate(self, deltas: Dict[str, FundsDelta], exchange_id: str,
                   amount: Decimal, money: Decimal) -> None:
        deltas[exchange_id] = deltas.get(exchange_id, FundsDelta()) + FundsDelta(amount, money)

    def shortfall_message(self, done: Decimal, remaining: Decimal) -> str:
        return f"Only {done} Bitcoin could be sold. Remaining unsold: {remaining}"


def validate_amount(side, amount: Decimal) -> Optional[AllocationResult]:
    """Return a rejection result for a non-positive or non-finite amount, else None."""
    if amount.is_finite() and amount > ZERO:
        return None
    logger.info(f"Bitcoin amount to {side.side.value} must be greater than 0, but is {amount}")
    return AllocationResult.invalid(side.side, amount, side.invalid_message)


def allocate(side, target_amount: Amount, working_orders: Sequence[WorkingOrder]) -> AllocationPlan:
    """Run the shared allocation loop for one side.

    ``working_orders`` must already be in price priority order. The inputs are
    not mutated; all consumption happens on per-call copies, so two calls with
    the same snapshot produce the same plan.
    """
    target = to_decimal(target_amount)
    rejected = validate_amount(side, target)
    if rejected is not None:
        return AllocationPlan(result=rejected)

    slots = [
        _Slot(
            order=w.order,
            exchange_id=w.exchange_id,
            exchange_name=w.exchange_name,
            remaining=w.remaining_amount,
        )
        for w in working_orders
    ]
    # One liquidity figure per exchange, shared by all of its orders
    liquidity: Dict[str, Decimal] = {}
    for w in working_orders:
        liquidity.setdefault(w.exchange_id, w.liquidity)

    executions: List[Execution] = []
    exchange_deltas: Dict[str, Any] = {}
    touched: Dict[str, _Slot] = {}
    remaining = target
    total_money = ZERO

    while remaining > ZERO:
        found = False

        for slot in slots:
            available = liquidity[slot.exchange_id]
            if slot.remaining <= ZERO or available <= ZERO:
                continue

            price = slot.order.price
            bound = side.amount_bound(available, price)
            take = min(remaining, slot.remaining, bound)
            if take <= ZERO:
                continue

            money = take * price
            executions.append(Execution(
                side=side.side,
                order_id=slot.order.id,
                order_time=slot.order.time,
                exchange_id=slot.exchange_id,
                exchange_name=slot.exchange_name,
                price=price,
                amount=take,
                money=money,
            ))
            logger.debug(f"{side.side.value}: {take} @ {price} on {slot.exchange_name} (order {slot.order.id})")

            remaining -= take
            total_money += money
            slot.remaining -= take
            # A take at the bound leaves at most rounding residue on the exchange
            if take == bound:
                liquidity[slot.exchange_id] = ZERO
            else:
                liquidity[slot.exchange_id] = available - side.liquidity_used(take, money)
            side.accumulate(exchange_deltas, slot.exchange_id, take, money)
            touched.setdefault(slot.order.id, slot)

            found = True
            break

        if not found:
            break

    filled = remaining <= ZERO
    done = target - remaining
    result = AllocationResult(
        side=side.side,
        status=AllocationStatus.FILLED if filled else AllocationStatus.INSUFFICIENT_LIQUIDITY,
        requested_amount=target,
        total_amount=done,
        total_money=total_money,
        remaining_amount=max(remaining, ZERO),
        executions=executions,
        error_message=None if filled else side.shortfall_message(done, remaining),
    )
    order_deltas = [OrderDelta(order_id, slot.remaining) for order_id, slot in touched.items()]

    if filled:
        logger.info(f"{side.side.value} of {target} BTC filled with {len(executions)} executions, "
                    f"total {total_money}")
    else:
        logger.warning(result.error_message)

    return AllocationPlan(result=result, exchange_deltas=exchange_deltas, order_deltas=order_deltas)


def plan_buy(target_amount: Amount, sorted_asks: Sequence[WorkingBuyOrder]) -> AllocationPlan:
    """Plan a buy against asks sorted by ascending price."""
    return allocate(BuySide(), target_amount, sorted_asks)


def plan_sell(target_amount: Amount, sorted_bids: Sequence[WorkingSellOrder],
              amount_decimals: Optional[int] = None) -> AllocationPlan:
    """Plan a sell against bids sorted by descending price."""
    return allocate(SellSide(amount_decimals), target_amount, sorted_bids)


def allocate_buy(target_amount: Amount, sorted_asks: Sequence[WorkingBuyOrder]) -> AllocationResult:
    return plan_buy(target_amount, sorted_asks).result


def allocate_sell(target_amount: Amount, sorted_bids: Sequence[WorkingSellOrder],
                  amount_decimals: Optional[int] = None) -> AllocationResult:
    return plan_sell(target_amount, sorted_bids, amount_decimals).result
