import json
import httpx
import pytest
from fastapi.testclient import TestClient
from app.api.deps import get_model_directory, get_stream_relay, get_thread_store
from app.main import app
from app.services.chat import StreamRelay
from app.services.gateway import GatewayClient
from app.services.models import ModelDirectory
from app.services.storage import JsonFileBackend
from app.services.thread_store import ThreadStore

GATEWAY_URL = "https://gateway.test/v1"

MODELS = [
    {"id": "openai/gpt-4o", "name": "GPT-4o", "type": "language"},
    {"id": "perplexity/sonar", "name": "Sonar", "type": "language"},
    {"id": "openai/dall-e-3", "name": "DALL-E 3", "type": "image"},
]


def text_chunk(text):
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def sse_body(*chunks):
    frames = "".join(f"data: {json.dumps(chunk)}\n\n" for chunk in chunks)
    return (frames + "data: [DONE]\n\n").encode()


def parse_events(body: str):
    return [
        json.loads(frame[len("data: "):])
        for frame in body.split("\n\n")
        if frame.startswith("data: ")
    ]


class FailingStream(httpx.AsyncByteStream):
    """Emits the given chunks, then drops the connection"""

    def __init__(self, *chunks):
        self.frames = [f"data: {json.dumps(chunk)}\n\n".encode() for chunk in chunks]
        self.closed = False

    async def __aiter__(self):
        for frame in self.frames:
            yield frame
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self):
        self.closed = True


class TrackingStream(httpx.AsyncByteStream):
    """Well-formed event stream that records whether it was closed"""

    def __init__(self, *chunks):
        self.frames = [frame + b"\n\n" for frame in sse_body(*chunks).split(b"\n\n") if frame]
        self.closed = False

    async def __aiter__(self):
        for frame in self.frames:
            yield frame

    async def aclose(self):
        self.closed = True


class FakeGateway:
    """Scripted gateway served through httpx.MockTransport"""

    def __init__(self):
        self.models = list(MODELS)
        self.chunks = [text_chunk("Hel"), text_chunk("lo")]
        self.status_code = 200
        self.models_status_code = 200
        self.stream = None
        self.model_requests = 0
        self.completion_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/models"):
            self.model_requests += 1
            if self.models_status_code != 200:
                return httpx.Response(self.models_status_code, json={"error": "unavailable"})
            return httpx.Response(200, json={"object": "list", "data": self.models})

        self.completion_requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream refused"}})

        headers = {"content-type": "text/event-stream"}
        if self.stream is not None:
            return httpx.Response(200, stream=self.stream, headers=headers)
        return httpx.Response(200, content=sse_body(*self.chunks), headers=headers)

    def client(self) -> GatewayClient:
        return GatewayClient(GATEWAY_URL, api_key="test-key", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def threads_file(tmp_path):
    return tmp_path / "threads.json"


@pytest.fixture
def store(threads_file):
    return ThreadStore(JsonFileBackend(str(threads_file)))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def relay(store, gateway):
    gateway_client = gateway.client()
    return StreamRelay(
        store,
        ModelDirectory(gateway_client, cache_ttl=300),
        gateway_client,
        system_prompt="You are a helpful assistant",
        search_model_id="perplexity/sonar",
        default_model_id="openai/gpt-4o",
    )


@pytest.fixture
def client(store, relay):
    app.dependency_overrides[get_thread_store] = lambda: store
    app.dependency_overrides[get_model_directory] = lambda: relay.directory
    app.dependency_overrides[get_stream_relay] = lambda: relay
    yield TestClient(app)
    app.dependency_overrides.clear()
