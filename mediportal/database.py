"""
Connection to the remote row store.

Each entity cluster lives in its own MongoDB collection (see `mediportal.api`). The
connection is optional: with no `DATABASE_URL` configured, `get_database` returns None
and the application runs offline.
"""
# mediportal/database.py

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from mediportal.config import Settings


def get_database(settings: Settings) -> Optional[Database]:
    """Connects to the configured database.

    Args:
        settings (Settings): The application settings.

    Returns:
        Database or None: The database handle, or None in offline mode.
    """
    if settings.offline:
        return None
    client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
    return client[settings.database_name]
