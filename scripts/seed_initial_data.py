import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Type, List

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

# --- Path Setup ---
# Lets the script run from the project root without an editable install.
# Example command from project root: `python scripts/seed_initial_data.py`
try:
    import dblocator
except ImportError:
    sys.path.append(str(Path(__file__).resolve().parent.parent / "src"))

from dblocator.core.config import settings
from dblocator.db.init_db import seed_database_roles
from dblocator.dao.directory.database_type_dao import DatabaseTypeDao
from dblocator.models import DatabaseType
from dblocator.schemas.directory.database_type_schemas import DatabaseTypeCreate

# --- Setup Logging ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Data Loading and Validation Helper ---
SEED_DATA_DIR = Path(__file__).resolve().parent.parent / "seed_data"

def _load_and_validate_data(file_name: str, schema: Type[BaseModel]) -> List[BaseModel]:
    """
    Loads a JSON list from seed_data/ and validates every item against ``schema``.
    """
    path = SEED_DATA_DIR / file_name
    if not path.exists():
        logger.error(f"Seed data file not found: {path}")
        raise FileNotFoundError(f"Seed data file not found: {path}")

    logger.info(f"  - Loading and validating {file_name}...")
    data = json.loads(path.read_text())
    try:
        return [schema.model_validate(item) for item in data]
    except ValidationError as e:
        logger.critical(f"FATAL: Validation failed for {file_name}. See details below.")
        for error in e.errors():
            logger.critical(f"  - Location: {error['loc']} | Error: {error['msg']}")
        raise

# --- Seeding steps (in dependency order) ---

async def _seed_database_roles(db: AsyncSession):
    await seed_database_roles(db)

async def _seed_database_types(db: AsyncSession):
    dao = DatabaseTypeDao(db)
    for item in _load_and_validate_data("database_types.json", DatabaseTypeCreate):
        if await dao.get_by_name(item.name):
            logger.info(f"  - Database type '{item.name}' exists, skipping.")
            continue
        await dao.add(DatabaseType(name=item.name))

# --- Main Orchestrator ---

async def seed_all_data(db: AsyncSession):
    """Every step only inserts what is missing, so the script can be re-run."""
    logger.info("Starting database seeding process...")

    seeding_steps = [
        ("Database Roles", _seed_database_roles),
        ("Database Types", _seed_database_types),
    ]

    for name, step_func in seeding_steps:
        logger.info(f"Step: Seeding {name}...")
        await step_func(db)
        logger.info(f"Step: {name} seeded successfully.")

    logger.info("Database seeding process completed successfully.")

# --- Main execution block ---

async def main():
    """Runs the seeding orchestrator within a single transaction."""
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with AsyncSessionLocal() as db:
            async with db.begin():
                await seed_all_data(db)
    except Exception:
        logger.critical("FATAL ERROR during seeding: the transaction has been rolled back.", exc_info=True)
        sys.exit(1)
    finally:
        await engine.dispose()

if __name__ == "__main__":
    logger.info("Running seed script as a standalone process...")
    asyncio.run(main())
