import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings, get_settings
from .database import Database
from .exceptions import PortalError, UnauthorizedError
from .routers import auth_router, profile_router

logger = logging.getLogger(__name__)


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Add no-cache headers to API responses (not static files)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]) or "body",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"message": "Invalid input", "errors": errors})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        os.makedirs(settings.uploads_dir, exist_ok=True)
        database = Database(settings)
        await database.init_models()
        app.state.database = database
        logger.info("%s started", settings.app_name)
        yield
        # Shutdown
        await database.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Account and profile API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,  # Disable docs in production
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings

    # CORS middleware - uses origins from environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(NoCacheMiddleware)

    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(auth_router)
    app.include_router(profile_router)

    # Uploaded photos and resumes
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")

    @app.get("/")
    async def root():
        return {"message": settings.app_name, "status": "running", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint for load balancer"""
        return {"status": "healthy"}

    return app


app = create_app()
