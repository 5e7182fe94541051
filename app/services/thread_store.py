from datetime import datetime, timezone
from typing import Dict, List, Optional
import asyncio
import logging
from bson import ObjectId
from pydantic import ValidationError
from app.core.exceptions import ThreadNotFoundError
from app.models.thread import MessageRole, Thread, ThreadMessage
from app.schemas.thread import MessageCreate, ThreadCreate, ThreadUpdate
from app.services.storage import ThreadBackend

logger = logging.getLogger(__name__)

DEFAULT_THREAD_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 50
TITLE_TRUNCATION_MARKER = "..."


def derive_title(content: str) -> str:
    """Title derived from the first user message of a thread"""
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_MAX_LENGTH] + TITLE_TRUNCATION_MARKER
    return content


class ThreadStore:
    """
    Durable keyed storage of threads.

    All threads live in an in-memory index loaded lazily from the backend.
    Every operation runs under one lock, so mutations are applied one at a
    time: each works on a copy of the thread, flushes it to the backend and
    only then replaces the indexed record. Callers always receive copies.
    """

    def __init__(self, backend: ThreadBackend):
        self.backend = backend
        self._threads: Dict[str, Thread] = {}
        self._loaded = False
        self._lock = asyncio.Lock()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return

        threads: Dict[str, Thread] = {}
        for record in await self.backend.load():
            try:
                thread = Thread.model_validate(record)
            except ValidationError as e:
                logger.warning(f"Skipping malformed thread record {record.get('id')}: {e}")
                continue
            threads[thread.id] = thread

        self._threads = threads
        self._loaded = True
        logger.info(f"Loaded {len(threads)} threads")

    async def _commit(self, thread: Thread) -> None:
        await self.backend.save(thread.model_dump(mode="json", by_alias=True, exclude_none=True))
        self._threads[thread.id] = thread

    def _get(self, thread_id: str) -> Thread:
        thread = self._threads.get(thread_id)
        if thread is None:
            raise ThreadNotFoundError(thread_id)
        return thread

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    async def list_threads(self) -> List[Thread]:
        """All threads, most recently active first"""
        async with self._lock:
            await self._ensure_loaded()
            threads = sorted(self._threads.values(), key=lambda t: t.updated_at, reverse=True)
            return [thread.model_copy(deep=True) for thread in threads]

    async def get_thread(self, thread_id: str) -> Thread:
        async with self._lock:
            await self._ensure_loaded()
            return self._get(thread_id).model_copy(deep=True)

    async def get_thread_messages(self, thread_id: str) -> List[ThreadMessage]:
        """Messages of a thread, or an empty list if it does not exist"""
        async with self._lock:
            await self._ensure_loaded()
            thread = self._threads.get(thread_id)
            if thread is None:
                return []
            return [message.model_copy(deep=True) for message in thread.messages]

    async def create_thread(self, data: Optional[ThreadCreate] = None) -> Thread:
        data = data or ThreadCreate()
        async with self._lock:
            await self._ensure_loaded()
            now = self._now()
            thread = Thread(
                id=str(ObjectId()),
                title=data.title or DEFAULT_THREAD_TITLE,
                created_at=now,
                updated_at=now,
            )

            if data.initial_message:
                thread.messages.append(ThreadMessage(
                    id=str(ObjectId()),
                    role=data.initial_message.role,
                    content=data.initial_message.content,
                    model=data.initial_message.model,
                    timestamp=now,
                ))

            await self._commit(thread)
            logger.info(f"Created thread {thread.id}")
            return thread.model_copy(deep=True)

    async def update_thread(self, thread_id: str, data: ThreadUpdate) -> Thread:
        async with self._lock:
            await self._ensure_loaded()
            thread = self._get(thread_id).model_copy(deep=True)

            if data.title is not None:
                thread.title = data.title
            thread.updated_at = max(self._now(), thread.updated_at)

            await self._commit(thread)
            return thread.model_copy(deep=True)

    async def delete_thread(self, thread_id: str) -> None:
        async with self._lock:
            await self._ensure_loaded()
            self._get(thread_id)
            await self.backend.delete(thread_id)
            del self._threads[thread_id]
            logger.info(f"Deleted thread {thread_id}")

    async def add_message(self, thread_id: str, message: MessageCreate) -> ThreadMessage:
        """Append a message, bump updatedAt and derive the title from the first user message"""
        async with self._lock:
            await self._ensure_loaded()
            thread = self._get(thread_id).model_copy(deep=True)

            # Message timestamp and updatedAt are the same instant; never earlier than the last one
            now = max(self._now(), thread.updated_at)
            thread_message = ThreadMessage(
                id=str(ObjectId()),
                role=message.role,
                content=message.content,
                model=message.model,
                timestamp=now,
            )
            thread.messages.append(thread_message)
            thread.updated_at = now

            if (
                thread.title == DEFAULT_THREAD_TITLE
                and message.role == MessageRole.USER
                and message.content.strip()
            ):
                thread.title = derive_title(message.content)
                logger.info(f"Derived title for thread {thread_id}")

            await self._commit(thread)
            return thread_message.model_copy(deep=True)
