# blog_api/main.py

import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api import __version__
from blog_api.config import get_settings
from blog_api.database import check_connection, close_client
from blog_api.logging_config import configure_logging, request_id_var
from blog_api.responses import ApiError, ApiErrors, error_response_for_path, validation_message
from blog_api.routers import friends_router, proxy_router, upload_router
from blog_api.services.remote_fetch import close_remote_fetcher

settings = get_settings()
configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

app = FastAPI(title="Blog API", version=__version__)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(friends_router)
app.include_router(upload_router)
app.include_router(proxy_router)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(ApiError)
def handle_api_error(request: Request, exc: ApiError):
    return error_response_for_path(request.url.path, exc)


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    return error_response_for_path(request.url.path, ApiErrors.validation_error(validation_message(exc.errors())))


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    error = ApiError(str(exc.detail), code=exc.status_code, status_code=exc.status_code)
    return error_response_for_path(request.url.path, error)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    """Tag every log line of a request with the same ID (honours X-Request-ID)."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.on_event("shutdown")
def shutdown() -> None:
    close_remote_fetcher()
    close_client()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    database = "ok" if check_connection() else "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": "blog-api",
        "version": __version__,
        "database": database,
    }


@app.get("/")
def root() -> dict:
    return {
        "service": "Blog API",
        "endpoints": ["/api/friends", "/api/upload", "/api/proxy-content", "/api/proxy-image", "/health"],
    }
