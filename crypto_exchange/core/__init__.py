"""Core allocation logic for cross-exchange order matching."""

from .types import (
    AllocationResult,
    AllocationStatus,
    Execution,
    FundsDelta,
    OrderDelta,
    OrderSide,
    StandingOrder,
    WorkingBuyOrder,
    WorkingSellOrder,
)
from .allocator import AllocationPlan, allocate_buy, allocate_sell, plan_buy, plan_sell
from .order_service import OrderService
from .reset import ResetResult, ResetService

__all__ = [
    'AllocationResult',
    'AllocationStatus',
    'Execution',
    'FundsDelta',
    'OrderDelta',
    'OrderSide',
    'StandingOrder',
    'WorkingBuyOrder',
    'WorkingSellOrder',
    'AllocationPlan',
    'allocate_buy',
    'allocate_sell',
    'plan_buy',
    'plan_sell',
    'OrderService',
    'ResetResult',
    'ResetService'
]
