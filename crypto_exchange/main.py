"""Command line entry point for the cross-exchange order allocator."""

import asyncio
import sys
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, Tuple

import click
from loguru import logger

from .config import Config, LoggingConfig, get_config
from .core.order_service import OrderService
from .core.reset import ResetService
from .core.types import AllocationResult, OrderSide
from .storage.db import Database
from .storage.seeder import DataSeeder


def setup_logging(config: LoggingConfig):
    """Configure loguru sinks."""
    logger.remove()
    logger.add(sys.stderr, level=config.level,
               format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
    if config.log_file:
        logger.add(config.log_file, level=config.file_level,
                   format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")


class AmountType(click.ParamType):
    """Bitcoin amount parsed as Decimal."""
    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid amount", param, ctx)
        if not amount.is_finite():
            self.fail(f"{value!r} is not a valid amount", param, ctx)
        return amount


AMOUNT = AmountType()


@asynccontextmanager
async def open_store(config: Config) -> AsyncIterator[Tuple[Database, DataSeeder]]:
    """Connect to the database and seed it if it is empty."""
    db = Database(config.storage.db_path)
    seeder = DataSeeder(db, config.seed.directory, config.seed.pattern)
    await db.connect()
    try:
        if config.seed.seed_on_startup:
            await seeder.seed_database()
        yield db, seeder
    finally:
        await db.disconnect()


def print_result(result: AllocationResult):
    """Print an allocation result in console form."""
    verb = "Purchased" if result.side is OrderSide.BUY else "Sold"
    money_label = "Total Cost" if result.side is OrderSide.BUY else "Total Received"
    money_word = "Cost" if result.side is OrderSide.BUY else "Received"

    if result.success:
        print(f"{result.side.value.capitalize()} order executed successfully!")
        print(f"Total Bitcoin {verb}: {result.total_amount:.8f} BTC")
        print(f"{money_label}: {result.total_money:.2f} EUR")
        print(f"Average Price: {result.average_price:.2f} EUR per BTC")
    else:
        print(f"{result.side.value.capitalize()} order failed!")
        print(f"Bitcoin {verb}: {result.total_amount:.8f} BTC")
        print(f"{money_label}: {result.total_money:.2f} EUR")
        if result.error_message:
            print(f"Error: {result.error_message}")

    if result.executions:
        print()
        print("Executed Orders:")
        for execution in result.executions:
            print(f"    Exchange ID:   {execution.exchange_id}")
            print(f"    Exchange Name: {execution.exchange_name}")
            print(f"    Amount:        {execution.amount:.8f} BTC")
            print(f"    Price:         {execution.price:.2f} EUR")
            print(f"    {money_word + ':':<15}{execution.money:.2f} EUR")
            print()

    if result.executions and not result.persisted:
        print("Warning: the executions could not be saved, balances were not updated.")


def _run_allocation(config: Config, side: OrderSide, amount: Decimal) -> AllocationResult:
    async def allocate():
        async with open_store(config) as (db, _):
            service = OrderService(db, config.allocator)
            if side is OrderSide.BUY:
                return await service.buy(amount)
            return await service.sell(amount)

    try:
        return asyncio.run(allocate())
    except Exception as e:
        logger.error(f"{side.value.capitalize()} failed: {e}")
        sys.exit(1)


@click.group()
@click.option('--config', 'config_path', default='config.yaml',
              help='Path to config file (defaults are used when it does not exist)')
@click.pass_context
def cli(ctx, config_path):
    """Cross-exchange Bitcoin order allocator."""
    config = get_config(config_path)
    setup_logging(config.logging)
    ctx.obj = config


@cli.command()
@click.argument('amount', type=AMOUNT)
@click.pass_obj
def buy(config, amount):
    """Buy AMOUNT Bitcoin at the lowest prices across exchanges."""
    print(f"Executing buy order for {amount:.8f} Bitcoin...")
    print()
    result = _run_allocation(config, OrderSide.BUY, amount)
    print_result(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.argument('amount', type=AMOUNT)
@click.pass_obj
def sell(config, amount):
    """Sell AMOUNT Bitcoin at the highest prices across exchanges."""
    print(f"Executing sell order for {amount:.8f} Bitcoin...")
    print()
    result = _run_allocation(config, OrderSide.SELL, amount)
    print_result(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.pass_obj
def reset(config):
    """Clear the database and seed it with the original order books."""
    async def run_reset():
        async with open_store(config) as (db, seeder):
            return await ResetService(db, seeder).reset_database()

    print("Attempting to reset the database and seed it with original data ...")
    print()
    result = asyncio.run(run_reset())
    print(result.message)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.pass_obj
def exchanges(config):
    """List exchanges with their balances and open order counts."""
    async def show_exchanges():
        async with open_store(config) as (db, _):
            rows = []
            for exchange in await db.list_exchanges():
                rows.append((exchange, await db.count_orders(exchange.id)))
            return rows

    rows = asyncio.run(show_exchanges())
    if not rows:
        print("No exchanges found.")
        return

    for exchange, order_count in rows:
        print(f"{exchange.name}: {exchange.available_crypto:.8f} BTC, "
              f"{exchange.available_euro:.2f} EUR, {order_count} orders")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
