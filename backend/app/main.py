"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.push import router as push_router
from app.core.config import settings
from app.core.errors import PushServiceError
from app.core.logging import configure_logging
from app.core.security import ADMIN_HEADER, get_admin_gate
from app.observability.client import init_opik

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(log_level=settings.log_level)
    init_opik()
    gate_factory = app.dependency_overrides.get(get_admin_gate, get_admin_gate)
    if not gate_factory().configured:
        logger.warning("ADMIN_API_KEY is not set; privileged push endpoints will refuse requests")
    logger.info("%s started", settings.app_name)
    yield
    logger.info("%s stopped", settings.app_name)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", ADMIN_HEADER, REQUEST_ID_HEADER],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _error_response(request: Request, status_code: int, error) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": error,
            "requestId": getattr(request.state, "request_id", None) or "",
        },
    )


@app.exception_handler(PushServiceError)
async def push_service_error_handler(request: Request, exc: PushServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s: %s context=%s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            exc.context,
        )
    return _error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        {"message": "Invalid request data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error")


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


app.include_router(push_router)
