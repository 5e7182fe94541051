from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient
from app.core.config import settings
from app.api.endpoints import chat, models, threads
from app.services.chat import StreamRelay
from app.services.gateway import GatewayClient
from app.services.models import ModelDirectory
from app.services.storage import JsonFileBackend, MongoThreadBackend
from app.services.thread_store import ThreadStore
import logging

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Chat Relay")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS_LIST,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(models.router, prefix="/api/models")
app.include_router(chat.router, prefix="/api/chat")
app.include_router(threads.router, prefix="/api/threads")


@app.get("/")
async def root():
    return {"message": "Hello World"}

@app.get("/health")
async def health_check():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

@app.on_event("startup")
async def startup_services():
    if settings.STORAGE_BACKEND == "mongo":
        app.mongodb_client = AsyncIOMotorClient(settings.MONGODB_URL)
        backend = MongoThreadBackend(app.mongodb_client[settings.DATABASE_NAME])
        await backend.create_indexes()
    else:
        backend = JsonFileBackend(settings.THREADS_FILE)
    logger.info(f"Using {settings.STORAGE_BACKEND} thread storage")

    app.thread_store = ThreadStore(backend)
    app.gateway = GatewayClient(
        settings.AI_GATEWAY_BASE_URL,
        api_key=settings.AI_GATEWAY_API_KEY,
        timeout=settings.GATEWAY_TIMEOUT
    )
    if not settings.AI_GATEWAY_API_KEY:
        logger.warning("AI_GATEWAY_API_KEY not configured. Gateway requests will be unauthenticated.")

    app.model_directory = ModelDirectory(app.gateway, cache_ttl=settings.MODELS_CACHE_TTL)
    app.stream_relay = StreamRelay(
        app.thread_store,
        app.model_directory,
        app.gateway,
        system_prompt=settings.SYSTEM_PROMPT,
        search_model_id=settings.SEARCH_MODEL_ID,
        default_model_id=settings.DEFAULT_MODEL_ID
    )

@app.on_event("shutdown")
async def shutdown_services():
    if hasattr(app, 'gateway'):
        await app.gateway.aclose()

    if hasattr(app, 'mongodb_client'):
        app.mongodb_client.close()
