from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.exceptions import WatermarkExportError
from ..core.factories import ServiceContext, ServiceContextFactory
from ..core.logging_config import get_logger
from .routes import router

logger = get_logger("watermark-export.api")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid value")
    return f"Invalid {location}: {message}" if location else message


def create_app(context: Optional[ServiceContext] = None) -> FastAPI:
    """Build the HTTP app around an explicit service context."""
    context = context or ServiceContextFactory.create()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting watermark export service")
        yield
        logger.info("Shutting down watermark export service")
        context.close()

    app = FastAPI(title="Watermark Export API", version="0.1.0", lifespan=lifespan)
    app.state.context = context

    @app.exception_handler(WatermarkExportError)
    async def export_error_handler(request: Request, exc: WatermarkExportError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})

    app.include_router(router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
