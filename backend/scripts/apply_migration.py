import asyncio
import sys
from pathlib import Path

# Ensure backend path is in sys.path
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from bookswap.infra.postgres import close_pool, get_pool

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"


def _targets(names: list[str]) -> list[Path]:
    if names:
        return [MIGRATIONS_DIR / name for name in names]
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


async def apply_migrations(names: list[str]) -> int:
    pool = await get_pool()
    try:
        for path in _targets(names):
            if not path.exists():
                print(f"Migration file not found: {path}")
                return 1
            print(f"Applying migration: {path.name}")
            sql = path.read_text(encoding="utf-8")
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(sql)
        print("Migrations applied successfully.")
        return 0
    finally:
        await close_pool()


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    sys.exit(asyncio.run(apply_migrations(sys.argv[1:])))
