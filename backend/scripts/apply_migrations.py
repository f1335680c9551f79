"""Apply every SQL file under backend/migrations in name order.

Usage: python scripts/apply_migrations.py
"""

import asyncio
import sys
from pathlib import Path

from roster.infra.postgres import close_pool, get_pool

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


async def main() -> None:
    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not files:
        print(f"No migrations found in {MIGRATIONS_DIR}")
        return
    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            for path in files:
                print(f"Executing {path.name}...")
                async with conn.transaction():
                    await conn.execute(path.read_text(encoding="utf-8"))
    finally:
        await close_pool()
    print("Migrations applied successfully.")


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
