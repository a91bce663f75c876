import logging

from .store import ProspectStore, InMemoryProspectStore, new_external_key
from .database import SqliteProspectStore, DATABASE_FILE

logger = logging.getLogger(__name__)


def create_store(settings) -> ProspectStore:
    """Build the store backend named in StoreSettings."""
    if settings.store.backend == "memory":
        logger.info("Using in-memory prospect store")
        return InMemoryProspectStore()

    return SqliteProspectStore(settings.store.database_file).init()


__all__ = [
    "ProspectStore",
    "InMemoryProspectStore",
    "SqliteProspectStore",
    "DATABASE_FILE",
    "new_external_key",
    "create_store",
]
