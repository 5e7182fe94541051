"""
Backing media for the thread store.

Both backends hold whole thread records (messages embedded). The JSON
backend rewrites the complete collection on every write; the Mongo backend
replaces one document per thread.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List
import asyncio
import json
import logging
import os
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from app.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


class ThreadBackend(ABC):
    """Durable medium holding serialized thread records"""

    @abstractmethod
    async def load(self) -> List[dict]:
        """Return every stored thread record"""

    @abstractmethod
    async def save(self, record: dict) -> None:
        """Insert or replace one thread record"""

    @abstractmethod
    async def delete(self, thread_id: str) -> None:
        """Remove one thread record"""


class JsonFileBackend(ThreadBackend):
    """Whole-collection snapshot kept in a single JSON file"""

    def __init__(self, path: str):
        self.path = Path(path)
        self._records: Dict[str, dict] = {}

    async def load(self) -> List[dict]:
        if not self.path.exists():
            self._records = {}
            return []

        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            data = json.loads(raw)
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading threads from {self.path}: {e}")
            data = []

        if not isinstance(data, list):
            logger.warning(f"Ignoring {self.path}: expected a list of threads")
            data = []

        self._records = {
            record["id"]: record
            for record in data
            if isinstance(record, dict) and record.get("id")
        }
        return list(self._records.values())

    async def save(self, record: dict) -> None:
        records = dict(self._records)
        records[record["id"]] = record
        await self._write(records)
        self._records = records

    async def delete(self, thread_id: str) -> None:
        records = {key: value for key, value in self._records.items() if key != thread_id}
        await self._write(records)
        self._records = records

    async def _write(self, records: Dict[str, dict]) -> None:
        payload = json.dumps(list(records.values()), indent=2, ensure_ascii=False)
        try:
            await asyncio.to_thread(self._replace_file, payload)
        except OSError as e:
            logger.error(f"Error saving threads to {self.path}: {e}")
            raise StorageUnavailableError()

    def _replace_file(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.path)


class MongoThreadBackend(ThreadBackend):
    """One document per thread in a MongoDB collection"""

    def __init__(self, db: AsyncIOMotorDatabase, collection: str = "threads"):
        self.collection = db[collection]

    async def create_indexes(self) -> None:
        try:
            await self.collection.create_index("id", unique=True)
            await self.collection.create_index([("updatedAt", -1)])
        except PyMongoError as e:
            logger.error(f"Error creating thread indexes: {e}")
            raise StorageUnavailableError()
        logger.info("✓ Created indexes for 'threads' collection")

    async def load(self) -> List[dict]:
        try:
            return [doc async for doc in self.collection.find({}, {"_id": 0})]
        except PyMongoError as e:
            logger.error(f"Error loading threads from MongoDB: {e}")
            raise StorageUnavailableError()

    async def save(self, record: dict) -> None:
        try:
            await self.collection.replace_one({"id": record["id"]}, dict(record), upsert=True)
        except PyMongoError as e:
            logger.error(f"Error saving thread {record['id']} to MongoDB: {e}")
            raise StorageUnavailableError()

    async def delete(self, thread_id: str) -> None:
        try:
            await self.collection.delete_one({"id": thread_id})
        except PyMongoError as e:
            logger.error(f"Error deleting thread {thread_id} from MongoDB: {e}")
            raise StorageUnavailableError()
