from classpkg.db.engine import DEFAULT_DATABASE_URL, database_url
from classpkg.db.engine import get_engine as _get_engine
from classpkg.db.memory import InMemoryClassStore, InMemoryState
from classpkg.db.sql import SqlClassStore
from classpkg.db.tables import metadata

__all__ = [
    "DEFAULT_DATABASE_URL",
    "InMemoryClassStore",
    "InMemoryState",
    "SqlClassStore",
    "_get_engine",
    "database_url",
    "metadata",
]
