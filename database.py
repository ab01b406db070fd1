"""
MongoDB access for the Funko Pop API.

A Store wraps one collection and only knows how to find, create, update and
delete documents by key. pymongo is blocking, so every call is pushed to the
threadpool and awaited. Keys arrive as strings; a string that can never be an
ObjectId raises MalformedIdentifier instead of reaching the driver.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi.concurrency import run_in_threadpool
from pymongo import MongoClient, ReturnDocument

from config import Settings
from errors import MalformedIdentifier

logger = logging.getLogger(__name__)


def to_obj_id(id_str: Any) -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise MalformedIdentifier()


class Store:
    def __init__(self, collection):
        self.collection = collection

    async def find_all(self, query: Optional[Dict] = None, limit: int = 0) -> List[Dict]:
        def run():
            cursor = self.collection.find(query or {})
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)
        return await run_in_threadpool(run)

    async def find_by_key(self, key: Any) -> Optional[Dict]:
        oid = to_obj_id(key)
        return await run_in_threadpool(self.collection.find_one, {"_id": oid})

    async def find_one(self, query: Dict) -> Optional[Dict]:
        return await run_in_threadpool(self.collection.find_one, query)

    async def create(self, doc: Dict) -> Dict:
        res = await run_in_threadpool(self.collection.insert_one, doc)
        return {"_id": res.inserted_id, **{k: v for k, v in doc.items() if k != "_id"}}

    async def update_by_key(self, key: Any, fields: Dict) -> Optional[Dict]:
        oid = to_obj_id(key)
        return await run_in_threadpool(
            self.collection.find_one_and_update,
            {"_id": oid},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    async def push_by_key(self, key: Any, field: str, value: Any) -> Optional[Dict]:
        oid = to_obj_id(key)
        return await run_in_threadpool(
            self.collection.find_one_and_update,
            {"_id": oid},
            {"$push": {field: value}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_by_key(self, key: Any) -> Optional[Dict]:
        oid = to_obj_id(key)
        return await run_in_threadpool(self.collection.find_one_and_delete, {"_id": oid})

    async def count(self, query: Optional[Dict] = None) -> int:
        return await run_in_threadpool(self.collection.count_documents, query or {})


class Database:
    """The three stores the API works with, built from one pymongo database handle."""

    def __init__(self, db):
        self.db = db
        self.funkopops = Store(db["funkopop"])
        self.reviews = Store(db["review"])
        self.users = Store(db["user"])

    def ensure_indexes(self) -> None:
        self.db["user"].create_index("email", unique=True)
        self.db["review"].create_index("productId")
        logger.info("Indexes ensured on %s", self.db.name)


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url)
    return Database(client[settings.database_name])
