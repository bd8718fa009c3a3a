"""
Database Helper Functions

MongoDB access for the users, foods and orders collections. A single
``Store`` is built at startup by ``connect`` and handed to the app; route
handlers reach it through the ``get_store`` dependency.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import Request
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "foods", "orders")


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        payload = data.model_dump(exclude_none=True)
    else:
        payload = dict(data)
    # Ids are always assigned by the server
    payload.pop("_id", None)
    return payload


def _object_id(_id: str) -> ObjectId:
    # Raises bson.errors.InvalidId for anything that is not a 24-char hex id
    return ObjectId(_id)


class Store:
    """Collection handles for one database."""

    def __init__(self, db: Database):
        self.db = db
        self.users = db["users"]
        self.foods = db["foods"]
        self.orders = db["orders"]

    def _collection(self, name: str):
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return getattr(self, name)

    def ensure_indexes(self) -> None:
        self.users.create_index("email", unique=True)

    # CRUD helpers

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        payload = _to_dict(data)
        result = self._collection(collection_name).insert_one(payload)
        return str(result.inserted_id)

    def get_documents(self, collection_name: str, filter_dict: Optional[dict] = None, sort: Optional[list] = None) -> List[dict]:
        cursor = self._collection(collection_name).find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        return [serialize_doc(doc) for doc in cursor]

    def get_document_by_id(self, collection_name: str, _id: str) -> Optional[dict]:
        doc = self._collection(collection_name).find_one({"_id": _object_id(_id)})
        return serialize_doc(doc)

    def find_one(self, collection_name: str, filter_dict: Dict[str, Any]) -> Optional[dict]:
        return serialize_doc(self._collection(collection_name).find_one(filter_dict))

    def delete_document(self, collection_name: str, _id: str) -> int:
        result = self._collection(collection_name).delete_one({"_id": _object_id(_id)})
        return result.deleted_count

    def ping(self) -> None:
        self.db.client.admin.command("ping")


def connect(settings: Settings) -> Store:
    if not settings.database_url:
        raise RuntimeError("Database not available. Set DATABASE_URL, or DB_USER, DB_PASS and DB_HOST.")
    client = MongoClient(settings.database_url)
    store = Store(client[settings.database_name])
    store.ping()
    store.ensure_indexes()
    logger.info("Connected to MongoDB database %r", settings.database_name)
    return store


def get_store(request: Request) -> Store:
    return request.app.state.store


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
