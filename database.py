"""
Persistence

Each named collection (doctors, patients, consultations, settings) is saved
and loaded as a whole JSON-compatible value under its key.
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

from pymongo import MongoClient

logger = logging.getLogger(__name__)

DOCTORS = "doctors"
PATIENTS = "patients"
CONSULTATIONS = "consultations"
SETTINGS = "settings"
KEYS = (DOCTORS, PATIENTS, CONSULTATIONS, SETTINGS)

STORE_COLLECTION = "store"

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


class MemoryStore:
    """In-process store; values are deep-copied in and out."""

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def load(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self):
        return sorted(self._data)


class MongoStore:
    """One document per key: {"_id": key, "value": ...}."""

    name = "mongodb"

    def __init__(self, database):
        self.database = database
        self.collection = database[STORE_COLLECTION]

    def load(self, key: str) -> Optional[Any]:
        doc = self.collection.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    def save(self, key: str, value: Any) -> None:
        self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)

    def keys(self):
        return sorted(doc["_id"] for doc in self.collection.find({}, {"_id": 1}))


def default_store():
    if db is not None:
        return MongoStore(db)
    logger.warning("DATABASE_URL/DATABASE_NAME not set, records will only be kept in memory")
    return MemoryStore()
