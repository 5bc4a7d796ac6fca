import time
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings, validate_runtime_config
from .domain.errors import DomainError
from .infrastructure import db
from .infrastructure.logging_setup import configure_logging
from .infrastructure.metrics import (
    metrics_endpoint,
    http_requests_total,
    http_request_duration_seconds
)
from .interfaces.http.ratelimit import limiter
from .interfaces.http.routers import auth as auth_router
from .interfaces.http.routers import courses as courses_router

VERSION = "0.1.0"

configure_logging()
logger = structlog.get_logger()

app = FastAPI(title="SkillHub Backend", version=VERSION)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def observe_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    # label by route template so /api/courses/{course_id} is one series
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    http_requests_total.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    http_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(elapsed)

    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(elapsed * 1000, 2),
    )
    return response


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("domain_error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


@app.on_event("startup")
def on_startup():
    logger.info("Starting SkillHub backend", version=VERSION, env=settings.APP_ENV)
    if validate_runtime_config():
        logger.warning("default_secret_key_in_use", hint="set SECRET_KEY before deploying")
    db.init_db()
    logger.info("Database connection established")


@app.get("/")
def root():
    return {"message": "SkillHub Backend API is running!"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()


app.include_router(auth_router.router)
app.include_router(courses_router.router)
