"""Schema migrations for the phaser database.

Versions are applied in ascending order and recorded one row each in
``schema_version``. A fresh file goes straight from 0 to ``CURRENT_VERSION``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from phaser.logging_config import log_storage

from ..schema import CURRENT_VERSION, get_migration_sql, get_pending_versions

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


async def ensure_schema(db: Database) -> int:
    """Bring the schema of ``db`` up to ``CURRENT_VERSION``.

    Returns:
        The schema version after migrating

    Raises:
        RuntimeError: If a version has no SQL or its SQL fails
    """
    start = await db.get_schema_version()
    pending = get_pending_versions(start)
    if not pending:
        return start

    logger.info(f"Migrating schema v{start} -> v{CURRENT_VERSION}")
    for version in pending:
        sql = get_migration_sql(version)
        if sql is None:
            raise RuntimeError(f"No migration SQL for version {version}")
        try:
            await db.executescript(sql)
            await db.set_schema_version(version)
        except Exception as e:
            log_storage(logger, f"migrate v{version}", db.path, success=False, details=str(e))
            raise RuntimeError(f"Migration v{version} failed: {e}") from e
        log_storage(logger, f"migrate v{version}", db.path)

    return await db.get_schema_version()
