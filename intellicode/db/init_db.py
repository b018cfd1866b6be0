from sqlalchemy import inspect
import logging

from intellicode.db.base import Base, engine

logger = logging.getLogger("db")

def init_db(bind=None):
    """Create any missing tables. Existing tables are left untouched."""
    bind = bind or engine
    existing = set(inspect(bind).get_table_names())
    missing = [table.name for table in Base.metadata.sorted_tables if table.name not in existing]

    Base.metadata.create_all(bind=bind)
    if missing:
        logger.info(f"Created tables: {', '.join(missing)}")
    else:
        logger.info("Database schema up to date")
    return missing

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
