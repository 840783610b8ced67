from __future__ import annotations

import os, sys
from dataclasses import asdict

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig

async def main() -> None:
    cfg = load_config()

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))
    await db.ping()
    await db.ensure_schema()
    await db.close()

    print(f"OK: DB pool ping succeeded, schema ensured on {cfg.mysql.database}.")

if __name__ == "__main__":
    asyncio.run(main())
