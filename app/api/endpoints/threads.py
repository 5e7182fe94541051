from fastapi import APIRouter, Depends, status
from app.api.deps import get_thread_store
from app.core.exceptions import InvalidRequestError
from app.schemas.thread import (
    AddMessageRequest, DeleteResponse, MessageCreate, MessageResponse,
    ThreadCreate, ThreadListResponse, ThreadResponse, ThreadUpdate
)
from app.services.thread_store import ThreadStore

router = APIRouter(tags=["Threads"])

@router.get("",
    response_model=ThreadListResponse,
    description="List all threads",
    responses={
        200: {"description": "Threads, most recently active first"},
        500: {"description": "Thread storage unavailable"}
    })
async def list_threads(
    store: ThreadStore = Depends(get_thread_store)
) -> ThreadListResponse:
    threads = await store.list_threads()
    return ThreadListResponse(threads=threads)

@router.get("/{thread_id}",
    response_model=ThreadResponse,
    description="Get a thread with all its messages",
    responses={
        200: {"description": "Thread details"},
        404: {"description": "Thread not found"}
    })
async def get_thread(
    thread_id: str,
    store: ThreadStore = Depends(get_thread_store)
) -> ThreadResponse:
    thread = await store.get_thread(thread_id)
    return ThreadResponse(thread=thread)

@router.post("",
    response_model=ThreadResponse,
    status_code=status.HTTP_201_CREATED,
    description="Create a new thread",
    responses={
        201: {"description": "Thread created successfully"},
        500: {"description": "Thread storage unavailable"}
    })
async def create_thread(
    thread_data: ThreadCreate,
    store: ThreadStore = Depends(get_thread_store)
) -> ThreadResponse:
    """
    Create a new thread.
    Optionally seed it with one initial message.
    """
    thread = await store.create_thread(thread_data)
    return ThreadResponse(thread=thread)

@router.put("/{thread_id}",
    response_model=ThreadResponse,
    description="Update thread details",
    responses={
        200: {"description": "Thread updated"},
        404: {"description": "Thread not found"}
    })
async def update_thread(
    thread_id: str,
    thread_data: ThreadUpdate,
    store: ThreadStore = Depends(get_thread_store)
) -> ThreadResponse:
    thread = await store.update_thread(thread_id, thread_data)
    return ThreadResponse(thread=thread)

@router.delete("/{thread_id}",
    response_model=DeleteResponse,
    description="Delete a thread",
    responses={
        200: {"description": "Thread deleted"},
        404: {"description": "Thread not found"}
    })
async def delete_thread(
    thread_id: str,
    store: ThreadStore = Depends(get_thread_store)
) -> DeleteResponse:
    """
    Delete a thread and all its messages. This cannot be undone.
    """
    await store.delete_thread(thread_id)
    return DeleteResponse(success=True)

@router.post("/{thread_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    description="Append a message to a thread",
    responses={
        201: {"description": "Message added"},
        400: {"description": "Role or content missing"},
        404: {"description": "Thread not found"}
    })
async def add_message(
    thread_id: str,
    message_data: AddMessageRequest,
    store: ThreadStore = Depends(get_thread_store)
) -> MessageResponse:
    if not message_data.role or not message_data.content or not message_data.content.strip():
        raise InvalidRequestError("Role and content are required")

    message = await store.add_message(thread_id, MessageCreate(
        role=message_data.role,
        content=message_data.content,
        model=message_data.model,
    ))
    return MessageResponse(message=message)
