# app/main.py
import logging
import os
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.modules.router import router as modules_router
from core.config import Services, settings, wire_services
from core.logging import configure_logging, get_logger

configure_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

INTERNAL_ERROR = "Internal server error"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else INTERNAL_ERROR
        return _error(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        fields = {str(part) for err in exc.errors() for part in err.get("loc", ())}
        message = "Message is required" if "message" in fields else "Invalid request"
        return _error(400, message)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return _error(500, INTERNAL_ERROR)


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(title="Invoice Chat API", version="1.0.0")
    wire_services(app, services)
    install_error_handlers(app)
    app.include_router(modules_router)

    # Middleware to log every request
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.2f}ms)")
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app.state.services.settings.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.api_route("/healthz", methods=["GET", "HEAD"], include_in_schema=False)
    async def healthz():
        return JSONResponse({"status": "ok"})

    @app.on_event("startup")
    async def startup_event():
        """Application startup event handler."""
        logger.info("Starting Invoice Chat API...")
        from app.services.memory.init_db import init_database

        if not await init_database():
            logger.warning("Database tables could not be created; persistence steps will degrade")
        logger.info("Application startup completed successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Invoice Chat API stopped")

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app.main:app", host="0.0.0.0", port=port)
