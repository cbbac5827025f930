"""
MediCycle Backend - pharmacy inventory and surplus redistribution.

ARCHITECTURE:
- React client: dashboard, marketplace, approvals
- FastAPI backend: auth, expiry risk, redistribution workflow
- SQL database via SQLAlchemy: source of truth for all state

WORKFLOW:
- Owners list surplus batches on the market
- Other users request them; the owner accepts or rejects
- Ownership moves only on acceptance, in one transaction
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from medicycle.api.routes import auth, inventory, redistribute, transactions, forecast, admin
from medicycle.core.config import settings
from medicycle.core.logging_config import configure_logging
from medicycle.core.rate_limiter import RateLimitMiddleware, RateLimiter
from medicycle.db.init_db import init_db

logger = logging.getLogger("medicycle")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    if any(err.get("type") == "missing" for err in errors):
        return "Required fields missing"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.info(f"Validation failed on {request.method} {request.url.path}: {message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.warning(f"Route not found: {request.method} {request.url.path}")
            return JSONResponse(status_code=404, content={"detail": "Route not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Server Error"})

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Server Error"})


def create_app(init_database: bool = True, limiter: RateLimiter = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        if init_database:
            logger.info("Initializing database...")
            init_db()
            logger.info("Database initialized")
        yield

    app = FastAPI(
        title="MediCycle API",
        description="Pharmacy inventory with expiry risk and surplus redistribution.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "x-auth-token"],
        max_age=600,
    )
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    @app.middleware("http")
    async def log_and_secure(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(inventory.router, prefix="/api/inventory", tags=["inventory"])
    app.include_router(redistribute.router, prefix="/api/redistribute", tags=["redistribute"])
    app.include_router(transactions.router, prefix="/api/transactions", tags=["transactions"])
    app.include_router(forecast.router, prefix="/api/forecast", tags=["forecast"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "MediCycle Backend Running"

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
