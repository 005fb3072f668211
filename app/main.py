from typing import Any, cast
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.category_cache import CategoryCache
from app.core.errors import register_exception_handlers
from app.api import admin, auth, categories, comments, posts, upload
from app.db import create_db_and_tables
from app.middleware.context import RequestContextMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if not settings.SECRET_KEY:
        logger.warning("SECRET_KEY is not set - tokens cannot be issued safely")
    create_db_and_tables()
    logger.info(
        "API starting",
        project=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
        storage_backend=settings.STORAGE_BACKEND,
    )
    yield
    logger.info("API shutting down")


app = FastAPI(title=settings.PROJECT_NAME, openapi_url=f"{settings.API_PREFIX}/openapi.json", lifespan=lifespan)

# Process-wide category listing cache, handed to routes via deps.get_category_cache
app.state.category_cache = CategoryCache(ttl_seconds=settings.CATEGORY_CACHE_TTL_SECONDS)

register_exception_handlers(app)

# Set all CORS enabled origins
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    settings.FRONTEND_URL,  # Dynamic from env
]

# Clean up duplicates and empty strings
origins = list(set([o for o in origins if o]))

# Trust X-Forwarded-* from the reverse proxy so client IPs are real
app.add_middleware(cast(Any, ProxyHeadersMiddleware), trusted_hosts=["*"])

# GZip compression for responses > 1KB
app.add_middleware(cast(Any, GZipMiddleware), minimum_size=1000)

app.add_middleware(cast(Any, RequestContextMiddleware))

app.add_middleware(
    cast(Any, CORSMiddleware),
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
app.include_router(posts.router, prefix=f"{settings.API_PREFIX}/posts", tags=["posts"])
app.include_router(comments.router, prefix=f"{settings.API_PREFIX}/comments", tags=["comments"])
app.include_router(categories.router, prefix=f"{settings.API_PREFIX}/categories", tags=["categories"])
app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["admin"])
app.include_router(upload.router, prefix=f"{settings.API_PREFIX}/upload", tags=["upload"])

# Locally stored uploads; urls are /uploads/<file>
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "healthy"}
