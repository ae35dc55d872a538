"""Reset of the exchange store to its seed data."""

from dataclasses import dataclass

from loguru import logger

from ..storage.repository import OrderRepository
from ..storage.seeder import DataSeeder, SeedResult


@dataclass
class ResetResult:
    """Outcome of a database reset."""
    success: bool
    message: str


class ResetService:
    """Clears all exchanges and orders, then re-seeds them."""

    def __init__(self, repository: OrderRepository, seeder: DataSeeder):
        self.repository = repository
        self.seeder = seeder

    async def reset_database(self) -> ResetResult:
        if not await self.repository.clear():
            return ResetResult(False, "The database could not be cleared and was not re-seeded")

        seed_result = await self.seeder.seed_database()
        if seed_result is SeedResult.DATA_SEEDED:
            logger.info("Database reset to seed data")
            return ResetResult(True, "The database was re-seeded")

        logger.error(f"Re-seeding after reset failed: {seed_result.value}")
        return ResetResult(False, "The database could not be seeded, please check the logs.")
