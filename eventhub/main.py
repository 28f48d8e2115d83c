import logging
import os
import random
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import settings
from .database import create_tables
from .exceptions import ApiError, ImageValidationError, RedirectRequired
from .models import User
from .routers.account import router as account_router
from .routers.admin import router as admin_router
from .routers.api_auth import router as api_auth_router
from .routers.contact import router as contact_router
from .routers.events import router as events_router
from .routers.health import router as health_router
from .routers.members import router as members_router
from .routers.oauth import router as oauth_router
from .routers.provider_api import router as provider_api_router
from .services.session_auth import optional_login, pop_flash
from .utils import api_output

# Configure logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(
    title="EventHub",
    description="""
# EventHub API

Members sign up, manage their profile and photos, and host, join, comment
on and rate events at venues.

## Authentication

- **Member API** (`/api/...`): every call needs the `apikey` (query string,
  header or JSON body). Member routes also need the token returned by
  `POST /api/signup` or `POST /api/login`:
  `Authorization: JWT <token>` (`Bearer` is accepted too).
- **Web** (`/login`, `/account`, `/auth/...`): session cookie, with
  Facebook and Google sign-in and Foursquare authorization.

## Responses

`/api` responses are wrapped as
`{"status": {"type": "success" | "error", "message": ...}, ...data}`.

## Uploads

Photos: JPEG or PNG, 2MB max, resized to 320x240 unless `width`/`height`
are given.
""",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health_router)
app.include_router(api_auth_router)
app.include_router(members_router)
app.include_router(events_router)
app.include_router(provider_api_router)
app.include_router(account_router)
app.include_router(contact_router)
app.include_router(oauth_router)
app.include_router(admin_router)

# Serve uploaded photos
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

# CORS for UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Signed session cookie for web login and OAuth state
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    max_age=settings.session_max_age_seconds,
    same_site="lax",
)

# Prometheus metrics
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", [
                        "method", "route", "status"])
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)
)


def _is_api(request: Request) -> bool:
    return request.url.path == "/api" or request.url.path.startswith("/api/")


def _route_of(request: Request) -> str:
    return getattr(request.scope.get("route"), "path", request.url.path)


@app.middleware("http")
async def add_request_id_and_errors(request: Request, call_next):
    request_id = str(uuid.uuid4())
    # Lightweight JSON log (sample all in debug, sample a fraction in prod)
    if settings.debug or random.random() < settings.log_sample_rate:
        logger.info({
            "event": "request",
            "method": request.method,
            "path": request.url.path,
            "rid": request_id,
        })
    try:
        start = time.perf_counter()
        response = await call_next(request)
        REQUEST_LATENCY.observe(time.perf_counter() - start)
        REQUEST_COUNT.labels(method=request.method,
                             route=_route_of(request), status=response.status_code).inc()
        response.headers["X-Request-ID"] = request_id
        return response
    except Exception:
        logger.exception(f"Unhandled error rid={request_id}")
        REQUEST_COUNT.labels(method=request.method,
                             route=_route_of(request), status=500).inc()
        body = {
            "error": {
                "code": "internal_server_error",
                "message": "Internal Server Error",
            },
            "request_id": request_id,
        }
        return JSONResponse(status_code=500, content=body, headers={"X-Request-ID": request_id})


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=api_output("error", exc.message))


@app.exception_handler(StarletteHTTPException)
async def envelope_http_exception_handler(request: Request, exc: StarletteHTTPException):
    if not _is_api(request):
        return await http_exception_handler(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=api_output("error", exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def envelope_validation_handler(request: Request, exc: RequestValidationError):
    if not _is_api(request):
        return await request_validation_exception_handler(request, exc)
    errors = [
        {
            "param": str(error["loc"][-1]) if error.get("loc") else None,
            "msg": error["msg"].removeprefix("Value error, "),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=422, content=api_output("error", errors))


@app.exception_handler(ImageValidationError)
async def image_validation_handler(request: Request, exc: ImageValidationError):
    if _is_api(request):
        return JSONResponse(status_code=exc.status_code, content=api_output("error", str(exc)))
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(RedirectRequired)
async def redirect_required_handler(request: Request, exc: RedirectRequired):
    return RedirectResponse(exc.location, status_code=302)


@app.get("/")
async def home(request: Request, user: Optional[User] = Depends(optional_login)):
    return {
        "title": "Home",
        "user": {"id": user.id, "email": user.email, "name": user.name} if user else None,
        "flash": pop_flash(request),
    }


@app.get("/metrics")
async def metrics(request: Request):
    # In dev/debug mode, expose metrics without auth
    if not settings.debug:
        token = request.headers.get("X-Metrics-Token")
        if not settings.metrics_token or token != settings.metrics_token:
            return JSONResponse(status_code=403, content={"detail": "Forbidden"})
    data = generate_latest()
    return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)
