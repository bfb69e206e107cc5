"""
TAPE 16 Serial Service - HTTP Boundary
======================================
FastAPI server for serial issuance, self-service resend and refund
revocation.

Endpoints:
  - GET  /healthz
  - POST /stripe/webhook                  (Stripe-Signature required)
  - POST /resend-serial                   { orderId, email }
  - POST /stripe/create-checkout-session  { successUrl?, cancelUrl? }
  - OPTIONS *                             (CORS preflight, 204)

Every body is JSON with "ok"; errors are {"ok": false, "error": "..."}.

pip install fastapi uvicorn pydantic structlog stripe redis sendgrid
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import APIRouter, BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from tape16.api.container import ServiceContainer
from tape16.config import ServiceConfig, config as default_config
from tape16.errors import InvalidInput, SerialServiceError
from tape16.pipeline.issuance import clean_string
from tape16.services.notifications import NotificationDispatcher
from tape16.services.stripe_client import StripeProcessor
from tape16.storage import IKeyValueStore, RedisKeyValueStore

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

logger = structlog.get_logger().bind(component="server")


# =============================================================================
# CORS / PATHS
# =============================================================================

def cors_headers(allowed_origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allowed_origin or "*",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type,Stripe-Signature",
        "Access-Control-Max-Age": "86400",
    }


def normalize_path(path: str) -> str:
    if not path:
        return "/"
    collapsed = re.sub(r"/+", "/", path)
    if len(collapsed) > 1 and collapsed.endswith("/"):
        return collapsed[:-1]
    return collapsed


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


# =============================================================================
# ROUTES
# =============================================================================

router = APIRouter()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def read_json_object(request: Request) -> Optional[dict]:
    """Parsed JSON object body, or None when the body is not one."""
    try:
        payload = await request.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


@router.get("/healthz")
async def healthz(request: Request):
    return {"ok": True, "service": get_container(request).config.service_name}


@router.post("/stripe/webhook")
async def stripe_webhook(request: Request, background_tasks: BackgroundTasks):
    """Raw body is read untouched; verification needs the exact bytes."""
    raw_body = await request.body()
    signature = request.headers.get("stripe-signature", "")
    return await get_container(request).webhooks.process(raw_body, signature, background_tasks)


@router.post("/resend-serial")
async def resend_serial(request: Request, background_tasks: BackgroundTasks):
    payload = await read_json_object(request)
    if payload is None:
        raise InvalidInput("Invalid JSON payload")

    result = await get_container(request).issuance.resend_serial(
        order_id=payload.get("orderId"),
        email=payload.get("email"),
        background=background_tasks,
    )
    return {"ok": True, "message": result.message, "emailQueued": result.email_queued}


@router.post("/stripe/create-checkout-session")
async def create_checkout_session(request: Request):
    container = get_container(request)
    payload = await read_json_object(request) or {}

    origin_base = container.config.public_site_origin
    success_url = clean_string(payload.get("successUrl")) or f"{origin_base}/tape16/?checkout=success"
    cancel_url = clean_string(payload.get("cancelUrl")) or f"{origin_base}/tape16/?checkout=cancel"

    session = await container.processor.create_checkout_session(success_url, cancel_url)
    return {"ok": True, "url": session["url"], "id": session["id"]}


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(
    config: Optional[ServiceConfig] = None,
    store: Optional[IKeyValueStore] = None,
    processor: Optional[StripeProcessor] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    config = config or default_config
    container = ServiceContainer(config, store=store, processor=processor, notifier=notifier)
    headers = cors_headers(config.allowed_origin)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("service_starting", service=config.service_name,
                    stripe_configured=container.processor.configured,
                    email_configured=container.notifier.configured)
        yield
        if isinstance(container.store, RedisKeyValueStore):
            await container.store.close()
        logger.info("service_stopped", service=config.service_name)

    app = FastAPI(
        title="TAPE 16 Serial Service",
        description="Serial issuance, resend and refund revocation",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.container = container
    app.include_router(router)

    @app.middleware("http")
    async def boundary(request: Request, call_next):
        """Path normalisation, CORS preflight, CORS headers, timing."""
        start = time.perf_counter()
        request.scope["path"] = normalize_path(request.scope.get("path", ""))

        if request.method.upper() == "OPTIONS":
            return Response(status_code=204, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        response.headers["X-Response-Time-Ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
        return response

    @app.exception_handler(SerialServiceError)
    async def service_error_handler(request: Request, exc: SerialServiceError):
        logger.warning("request_failed", path=request.url.path,
                       status=int(exc.status_code), error=exc.message)
        return error_response(int(exc.status_code), exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods both read as "Not found"
        if exc.status_code in (404, 405):
            return error_response(404, "Not found")
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        # Runs outside the middleware stack, so CORS headers are added here
        logger.error("unhandled_error", path=request.url.path,
                     error_type=type(exc).__name__, exc_info=exc)
        response = error_response(500, "Internal error")
        response.headers.update(headers)
        return response

    return app


app = create_app()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "tape16.api.server:app",
        host=default_config.host,
        port=default_config.port,
        reload=default_config.debug,
        log_level="info",
    )
