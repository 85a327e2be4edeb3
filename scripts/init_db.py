#!/usr/bin/env python3
"""Create the knowledge and ledger tables and the vector search function.

On PostgreSQL this also enables pgvector and installs
``match_knowledge_chunks``, sized to ``EMBEDDING_DIMENSIONS`` (which follows
``EMBEDDING_PROVIDER`` unless set). Safe to re-run.

Usage:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from dotenv import load_dotenv

env_path = project_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)

from sqlalchemy import text


async def main() -> None:
    from copilot import models  # noqa: F401  (registers tables)
    from copilot.core.config import get_settings
    from copilot.core.database import Base, engine
    from copilot.knowledge.vector_store import match_function_sql

    dimensions = get_settings().embedding_dimensions

    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text("create extension if not exists vector"))
        await conn.run_sync(Base.metadata.create_all)
        print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

        if engine.dialect.name == "postgresql":
            # The argument type changes with the dimensions, so replace would overload
            await conn.execute(text("drop function if exists match_knowledge_chunks(vector, int, text, text[])"))
            await conn.execute(text(match_function_sql(dimensions)))
            print(f"Installed function: match_knowledge_chunks (vector({dimensions}))")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
