import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cloudbox.core.config import Settings, get_settings
from cloudbox.core.database import Database
from cloudbox.core.redis import RedisClient
from cloudbox.core.security import IdentityVerifier, build_identity_verifier
from cloudbox.core.storage import BlobStore, build_blob_store
from cloudbox.api.middleware import RequestLogMiddleware, UploadSizeLimitMiddleware
from cloudbox.api.v1.router import api_router
from cloudbox.utils.exceptions import CloudBoxException

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger("cloudbox").setLevel(settings.LOG_LEVEL.upper())


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(CloudBoxException)
    async def cloudbox_exception_handler(request: Request, exc: CloudBoxException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": _validation_message(exc)}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"}
        )


def create_app(
    settings: Optional[Settings] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle"""
        logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
        await app.state.db.create_all()
        await app.state.blob_store.ensure_ready()
        await app.state.cache.connect()

        yield

        logger.info("Shutting down")
        await app.state.cache.disconnect()
        await app.state.db.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.db = Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.blob_store = blob_store or build_blob_store(settings)
    app.state.cache = RedisClient(settings.REDIS_URL, default_expire=settings.SHARE_CACHE_TTL_SECONDS)
    app.state.identity_verifier = identity_verifier or build_identity_verifier(settings)

    register_exception_handlers(app)

    app.add_middleware(UploadSizeLimitMiddleware, max_file_size=settings.MAX_FILE_SIZE_BYTES)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/api/docs",
            "health": "/health",
            "api": "/api"
        }

    @app.get("/health")
    async def health_check():
        try:
            await app.state.db.ping()
            database_status = "healthy"
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            database_status = "unhealthy"

        try:
            await app.state.blob_store.ensure_ready()
            storage_status = "healthy"
        except (CloudBoxException, OSError) as e:
            logger.warning(f"Storage health check failed: {e}")
            storage_status = "unhealthy"

        if app.state.cache.url:
            cache_status = "healthy" if await app.state.cache.ping() else "unhealthy"
        else:
            cache_status = "disabled"

        healthy = database_status == "healthy" and storage_status == "healthy"
        return {
            "status": "healthy" if healthy else "degraded",
            "services": {
                "database": database_status,
                "storage": storage_status,
                "cache": cache_status
            }
        }

    return app


def run():
    settings = get_settings()
    uvicorn.run(
        "cloudbox.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
