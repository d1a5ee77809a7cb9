import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduhive.api import bookmarks, comments, follow, mentions, notification, posts, profiles, reports
from eduhive.core.config import settings
from eduhive.core.exceptions import CustomHTTPException, http_exception_handler, validation_exception_handler
from eduhive.core.llm import LLMClient
from eduhive.crud.profile import ensure_assistant_profile
from eduhive.db.database import AsyncSessionLocal, async_engine, init_db
from eduhive.utils.cache import TTLCache, start_cache_cleanup

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    async with AsyncSessionLocal() as db:
        await ensure_assistant_profile(db)
    if not app.state.llm.configured:
        logger.warning("LLM_API_KEY is not set; assistant replies are disabled")

    cleanup_task = asyncio.create_task(start_cache_cleanup(app.state.cache))
    yield
    cleanup_task.cancel()
    await async_engine.dispose()


app = FastAPI(
    title=settings.PROJECT_TITLE,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.PROJECT_VERSION,
    openapi_url=settings.OPENAPI_URL,
    docs_url=settings.DOCS_URL,
    lifespan=lifespan
)

app.state.cache = TTLCache(default_ttl=settings.FEED_CACHE_TTL_SECONDS)
app.state.llm = LLMClient.from_settings()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."}
    )

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(CustomHTTPException, http_exception_handler)

# API Routers
api_router = APIRouter(prefix="/api")
api_router.include_router(bookmarks.router, tags=["Bookmarks"])
api_router.include_router(comments.router, tags=["Comments"])
api_router.include_router(follow.router, tags=["Follow"])
api_router.include_router(mentions.router, tags=["Mentions"])
api_router.include_router(notification.router, tags=["Notifications"])
api_router.include_router(posts.router, tags=["Posts"])
api_router.include_router(profiles.router, tags=["Profiles"])
api_router.include_router(reports.router, tags=["Reports"])
app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def health_check():
    return {
        "status": "healthy",
        "version": settings.PROJECT_VERSION,
        "docs": settings.DOCS_URL
    }
