from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from app.api.deps import get_stream_relay
from app.schemas.chat import ChatRequest
from app.services.chat import StreamRelay

router = APIRouter(tags=["Chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}

@router.post("",
    description="Stream a chat response",
    responses={
        200: {"description": "Streaming response"},
        400: {"description": "Empty message or no models available"},
        404: {"description": "Thread not found"},
        429: {"description": "Gateway rate limit (code RATE_LIMIT)"},
        503: {"description": "Model gateway unavailable"}
    })
async def stream_chat(
    request: ChatRequest,
    relay: StreamRelay = Depends(get_stream_relay)
):
    """
    Stream the assistant's reply to one user message.

    When threadId is given the user message is stored before the model is called
    and the assistant reply is stored once the stream completes. Events are sent
    as server-sent events: text-delta, reasoning-delta, source-url and a final done.
    Failures after streaming has begun end the stream without a done event.
    """
    turn = await relay.start_turn(request)

    async def event_generator():
        async for event in turn.events():
            yield f"data: {event.model_dump_json(by_alias=True, exclude_none=True)}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS
    )
