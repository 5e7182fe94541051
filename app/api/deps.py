from app.services.chat import StreamRelay
from app.services.models import ModelDirectory
from app.services.thread_store import ThreadStore

def get_thread_store() -> ThreadStore:
    from app.main import app  # Local import to avoid circular dependency
    return app.thread_store

def get_model_directory() -> ModelDirectory:
    from app.main import app  # Local import to avoid circular dependency
    return app.model_directory

def get_stream_relay() -> StreamRelay:
    from app.main import app  # Local import to avoid circular dependency
    return app.stream_relay
