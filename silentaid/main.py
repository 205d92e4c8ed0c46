from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from silentaid.config import Settings, get_settings
from silentaid.logging_config import configure_logging
from silentaid.routes.contacts import router as contacts_router
from silentaid.routes.dashboard import router as dashboard_router
from silentaid.routes.sos import router as sos_router
from silentaid.schemas import InvalidPayload
from silentaid.store import DocumentStore, StoreError, build_store

logger = structlog.get_logger(__name__)


# ---------------- ERROR HANDLERS ----------------

async def invalid_payload_handler(request: Request, exc: InvalidPayload):
    logger.info("request_rejected", path=request.url.path, reason=exc.message)
    return JSONResponse(status_code=400, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("request_rejected", path=request.url.path, reason="malformed body")
    return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def store_error_handler(request: Request, exc: StoreError):
    logger.error("store_failure", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# ---------------- APP ----------------

def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(title="SilentAid SOS Backend")
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidPayload, invalid_payload_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/", response_class=PlainTextResponse)
    def health_check():
        return "SilentAid SOS backend is running"

    app.include_router(contacts_router)
    app.include_router(sos_router)
    app.include_router(dashboard_router)

    return app


def run():
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger.info("server_starting", port=settings.port, storage=settings.storage_backend)
    uvicorn.run("silentaid.main:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
