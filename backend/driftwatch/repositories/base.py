"""Generic MongoDB repository."""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

T = TypeVar("T", bound=BaseModel)

SortSpec = Optional[Sequence[Tuple[str, int]]]


class BaseRepository(Generic[T]):
    """Thin typed wrapper over a single collection."""

    def __init__(self, db: Database, collection_name: str, model_class: Type[T]):
        self.db = db
        self.collection: Collection = db[collection_name]
        self.model_class = model_class

    @staticmethod
    def _to_object_id(value: str | ObjectId | None) -> Optional[ObjectId]:
        if value is None or isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(value)
        except (InvalidId, TypeError):
            return None

    def _to_model(self, doc: Optional[Dict[str, Any]]) -> Optional[T]:
        if doc is None:
            return None
        return self.model_class.model_validate(doc)

    def find_by_id(self, entity_id: str | ObjectId) -> Optional[T]:
        oid = self._to_object_id(entity_id)
        if oid is None:
            return None
        return self._to_model(self.collection.find_one({"_id": oid}))

    def find_one(self, query: Dict[str, Any]) -> Optional[T]:
        return self._to_model(self.collection.find_one(query))

    def find_many(
        self,
        query: Dict[str, Any],
        sort: SortSpec = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[T]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [self.model_class.model_validate(doc) for doc in cursor]

    def count(self, query: Dict[str, Any]) -> int:
        return self.collection.count_documents(query)

    def insert_one(self, entity: T | Dict[str, Any]) -> T:
        if isinstance(entity, BaseModel):
            doc = entity.to_mongo() if hasattr(entity, "to_mongo") else entity.model_dump(by_alias=True)
        else:
            doc = dict(entity)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self.model_class.model_validate(doc)

    def update_one(self, entity_id: str | ObjectId, updates: Dict[str, Any]) -> Optional[T]:
        oid = self._to_object_id(entity_id)
        if oid is None:
            return None
        updates = {**updates, "updated_at": datetime.now(timezone.utc)}
        doc = self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)
