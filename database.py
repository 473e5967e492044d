"""
MongoDB access for the House Rental API.

The connection is held by an explicit ``Database`` handle: build it with a URL
and a database name, ``connect()`` it once at startup, hand it to the
repositories, and ``close()`` it on shutdown.

Collections follow the schema models: the lowercased class name of each model
in ``schemas`` is the collection name.
"""
from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import UnavailableError

log = logging.getLogger(__name__)

PROPERTY = "property"
USER = "user"
CONTACT_MESSAGE = "contactmessage"


def store_operation(func):
    """Report store failures as ``UnavailableError``.

    ``DuplicateKeyError`` passes through untouched so callers can turn it into
    a conflict.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            log.exception("Store operation %s failed", func.__qualname__)
            raise UnavailableError(str(e)) from e

    return wrapper


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    def __init__(self, url: str, name: str, client: Optional[MongoClient] = None):
        self.url = url
        self.name = name
        self._client = client
        self._owns_client = client is None
        self._db = None

    @property
    def connected(self) -> bool:
        return self._db is not None

    def connect(self) -> "Database":
        if self._db is not None:
            return self
        try:
            if self._client is None:
                self._client = MongoClient(self.url, serverSelectionTimeoutMS=5000)
                self._client.admin.command("ping")
            self._db = self._client[self.name]
            self.ensure_indexes()
        except PyMongoError as e:
            log.error("Could not connect to MongoDB at %s: %s", self.url, e)
            raise UnavailableError(f"Database unavailable: {e}") from e
        log.info("Connected to MongoDB database %s", self.name)
        return self

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._db = None
        log.info("MongoDB connection closed")

    def ensure_indexes(self) -> None:
        self[PROPERTY].create_index([("id", ASCENDING)], unique=True)
        self[USER].create_index([("email", ASCENDING)], unique=True)
        self[CONTACT_MESSAGE].create_index([("created_at", DESCENDING)])
        self[CONTACT_MESSAGE].create_index([("user_email", ASCENDING)])

    def __getitem__(self, collection_name: str) -> Collection:
        if self._db is None:
            raise UnavailableError("Database unavailable: not connected")
        return self._db[collection_name]

    # Helpers

    @store_operation
    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        """Insert one document, stamping ``created_at``/``updated_at``.

        Returns the generated ``_id`` as a string.
        """
        if isinstance(data, BaseModel):
            doc = data.model_dump()
        else:
            doc = dict(data)
        now = utcnow()
        doc.setdefault("created_at", now)
        doc.setdefault("updated_at", now)
        inserted = self[collection_name].insert_one(doc)
        return str(inserted.inserted_id)

    @store_operation
    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[dict] = None,
        sort: Optional[list[tuple[str, int]]] = None,
        limit: Optional[int] = None,
        projection: Optional[dict] = None,
    ) -> list[dict[str, Any]]:
        cursor = self[collection_name].find(filter_dict or {}, projection)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)


def stringify_id(doc: dict[str, Any]) -> dict[str, Any]:
    """Expose Mongo's ``_id`` as a string ``id``."""
    out = dict(doc)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out
