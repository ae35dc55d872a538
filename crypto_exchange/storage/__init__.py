"""Storage for exchanges and standing orders."""

from .db import Database
from .models import ExchangeRecord, OrderRecord
from .repository import OrderRepository
from .seeder import DataSeeder, SeedResult, load_order_book, parse_order_book

__all__ = [
    'Database',
    'ExchangeRecord',
    'OrderRecord',
    'OrderRepository',
    'DataSeeder',
    'SeedResult',
    'load_order_book',
    'parse_order_book'
]
