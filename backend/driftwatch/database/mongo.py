from __future__ import annotations

"""
MongoDB connection helpers.
"""

import logging

from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

_client: MongoClient | None = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        # Import settings lazily to ensure env vars are loaded
        from driftwatch.config import settings

        _client = MongoClient(settings.MONGODB_URI)
        logger.info("Initialized MongoClient for database %s", settings.MONGODB_DB_NAME)
    return _client


def get_database() -> Database:
    from driftwatch.config import settings

    client = get_client()
    return client[settings.MONGODB_DB_NAME]


def get_db():
    db = get_database()
    try:
        yield db
    finally:
        # PyMongo manages connection pooling automatically; nothing to close here.
        pass
