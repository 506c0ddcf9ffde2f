from __future__ import annotations

import logging
import os
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from ops.structured_logger import setup_logging
from telephony.errors import TelephonyError
from utils.request_context import clear_request_context, set_request_id, set_tenant_id

from app.routers.health import router as health_router
from app.routers.messaging import router as messaging_router
from app.routers.settings import router as settings_router
from app.routers.twilio_webhooks import router as twilio_webhooks_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="Leadline Telephony API", version="1.0.0")
log = logging.getLogger("leadline.api")


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    set_request_id(rid)
    set_tenant_id(request.query_params.get("tenantId") or request.query_params.get("tenant_id") or "")
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(TelephonyError)
async def telephony_error_handler(request: Request, exc: TelephonyError):
    rid = _get_request_id(request)
    log.warning(
        "telephony_error",
        extra={
            "extra": {
                "event": "telephony_error",
                "error_type": type(exc).__name__,
                "error_code": exc.code,
                "status_code": exc.http_status,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.code, "detail": exc.public_message, "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    rid = _get_request_id(request)
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = _get_request_id(request)
    log.warning(
        "validation_error",
        extra={
            "extra": {
                "event": "validation_error",
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(), "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _get_request_id(request)
    log.error(
        "internal_unhandled_exception",
        extra={
            "extra": {
                "event": "internal_unhandled_exception",
                "error_type": type(exc).__name__,
                "message": str(exc),
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_unhandled_exception", "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


app.include_router(health_router, tags=["health"])
app.include_router(messaging_router, prefix="/api", tags=["sms"])
app.include_router(settings_router, prefix="/api", tags=["settings"])
app.include_router(twilio_webhooks_router, prefix="/api", tags=["twilio"])
