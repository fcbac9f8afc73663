"""SQLite schema management (code-first approach).

Each feature module contributes its CREATE TABLE / CREATE INDEX statements
through the module registry; ``init_db`` applies them idempotently.
"""

import logging

from src.core.db_client import get_connection
from src.core.module_registry import get_all_indexes, get_all_seed_statements, get_all_table_schemas


logger = logging.getLogger(__name__)


async def init_db(*, db_path: str | None = None) -> None:
    """Create all registered tables, indexes, and seed rows (idempotent)."""
    from src.modules import register_default_modules

    register_default_modules()

    conn = await get_connection(db_path=db_path, writer=True)

    tables = get_all_table_schemas()
    for table_name, ddl in tables.items():
        await conn.execute(ddl)
        logger.debug("Ensured table %s", table_name)

    for index_sql in get_all_indexes():
        await conn.execute(index_sql)

    for statement in get_all_seed_statements():
        await conn.execute(statement)

    logger.info("Database schema initialized", extra={"tables": list(tables)})
