from typing import AsyncIterator, List, Optional
import asyncio
import logging
import httpx
from app.core.config import settings
from app.core.exceptions import GatewayError, InvalidRequestError, StorageUnavailableError, ThreadNotFoundError
from app.models.thread import MessageRole
from app.schemas.chat import ChatRequest, DoneEvent, StreamEvent, TextDeltaEvent, parts_to_flat_text
from app.schemas.thread import MessageCreate
from app.services.gateway import GatewayClient, GatewayStream
from app.services.models import ModelDirectory, resolve_model
from app.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class ChatTurn:
    """A turn whose gateway stream is open and ready to be relayed"""

    def __init__(self, store: ThreadStore, stream: GatewayStream, thread_id: Optional[str], model_id: str):
        self.store = store
        self.stream = stream
        self.thread_id = thread_id
        self.model_id = model_id

    async def events(self) -> AsyncIterator[StreamEvent]:
        """
        Forward gateway events as they arrive, then persist the assistant reply.

        Only a fully drained stream is persisted. A gateway failure or a client
        disconnect ends the stream without a done event and leaves the user
        message as the last one in the thread.
        """
        text_chunks: List[str] = []
        try:
            async for event in self.stream.events():
                if isinstance(event, TextDeltaEvent):
                    text_chunks.append(event.delta)
                yield event
        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Client disconnected from stream for thread {self.thread_id}")
            raise
        except (httpx.HTTPError, GatewayError) as e:
            logger.error(f"Stream from {self.model_id} failed for thread {self.thread_id}: {e}")
            return
        except Exception:
            logger.exception(f"Unexpected error relaying stream from {self.model_id} for thread {self.thread_id}")
            return
        finally:
            await self.stream.aclose()

        message_id = None
        if self.thread_id:
            try:
                message = await self.store.add_message(self.thread_id, MessageCreate(
                    role=MessageRole.ASSISTANT,
                    content="".join(text_chunks),
                    model=self.model_id,
                ))
            except StorageUnavailableError as e:
                logger.critical(f"Thread storage unavailable, assistant reply for thread {self.thread_id} lost: {e.message}")
                return
            except ThreadNotFoundError:
                logger.warning(f"Thread {self.thread_id} was deleted before the assistant reply was stored")
                return
            message_id = message.id

        logger.info(f"Completed turn for thread {self.thread_id} with {self.model_id}")
        yield DoneEvent(thread_id=self.thread_id, message_id=message_id, model=self.model_id)


class StreamRelay:
    def __init__(
        self,
        store: ThreadStore,
        directory: ModelDirectory,
        gateway: GatewayClient,
        system_prompt: str = settings.SYSTEM_PROMPT,
        search_model_id: str = settings.SEARCH_MODEL_ID,
        default_model_id: str = settings.DEFAULT_MODEL_ID
    ):
        self.store = store
        self.directory = directory
        self.gateway = gateway
        self.system_prompt = system_prompt
        self.search_model_id = search_model_id
        self.default_model_id = default_model_id

    async def start_turn(self, request: ChatRequest) -> ChatTurn:
        """
        Prepare one chat turn up to the point where streaming can begin.

        The user message is persisted before the gateway is called, so it survives
        any later failure. Errors raised here happen before any bytes reach the
        client and are returned as structured responses.
        """
        if request.message.role != MessageRole.USER:
            raise InvalidRequestError("Chat message must have the user role")

        text = parts_to_flat_text(request.message.parts)
        if not text.strip():
            raise InvalidRequestError("Message text is required")

        history = []
        if request.thread_id:
            thread = await self.store.get_thread(request.thread_id)
            history = [{"role": message.role.value, "content": message.content} for message in thread.messages]

        models = await self.directory.list_models(language_only=True)
        model_id = resolve_model(
            request.model,
            request.web_search,
            models,
            search_model_id=self.search_model_id,
            default_model_id=self.default_model_id,
        )
        logger.info(f"Resolved model {request.model!r} (webSearch={request.web_search}) to {model_id}")

        if request.thread_id:
            await self.store.add_message(request.thread_id, MessageCreate(
                role=MessageRole.USER,
                content=text,
                model=model_id,
            ))

        messages = history + [{"role": MessageRole.USER.value, "content": text}]
        stream = await self.gateway.open_stream(model_id, messages, self.system_prompt)
        logger.info(f"Starting stream from {model_id} for thread {request.thread_id}")
        return ChatTurn(self.store, stream, request.thread_id, model_id)
