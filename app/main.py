from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings, DEFAULT_JWT_SECRET
from app.core.database import init_db, close_db, AsyncSessionLocal
from app.core.exceptions import PlatformError, error_response
from app.core.logging_config import logger
from app.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.core.security import TokenService
from app.api.v1.router import api_router
from app.db.seed_data import ensure_super_admin
from app.services.email_service import EmailService


async def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
        if settings.is_production:
            errors.append("JWT_SECRET_KEY is not set or using default value")
        else:
            warnings.append("JWT_SECRET_KEY is using the default value - do not deploy like this")

    if not (settings.SMTP_USER and settings.SMTP_PASSWORD):
        warnings.append("SMTP credentials not set - OTP and welcome emails will not be delivered")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    await validate_critical_config()

    await init_db()
    logger.info("[Startup] Database tables ready")

    if settings.CREATE_DEFAULT_SUPER_ADMIN:
        async with AsyncSessionLocal() as session:
            await ensure_super_admin(session)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Role-based exam and learning platform for super admins, teachers and students",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False  # Prevent 307 redirects that break CORS
)

# Process-wide services, resolved per request by app.modules.auth.dependencies
app.state.limiter = limiter
app.state.token_service = TokenService.from_settings()
app.state.email_service = EmailService()

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add middleware (order matters - last added runs first)
# 1. Default rate limit for every route
app.add_middleware(SlowAPIMiddleware)

# 2. Request logging
app.add_middleware(RequestLoggingMiddleware)

# 3. Security headers
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)

# 4. Request size limit
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)

# 5. CORS - Origins from CORS_ORIGINS_STR in .env
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(PlatformError)
async def platform_error_handler(request: Request, exc: PlatformError):
    details = exc.details or None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, details=details),
    )


def jsonable_errors(errors: list) -> list:
    """Input values may be arbitrary objects; keep only JSON primitives"""
    for error in errors:
        value = error["value"]
        if not isinstance(value, (str, int, float, bool, type(None), list, dict)):
            error["value"] = str(value)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append({
            "field": ".".join(location) or "body",
            "message": str(error.get("msg", "")).removeprefix("Value error, "),
            "value": error.get("input"),
        })

    return JSONResponse(
        status_code=400,
        content=error_response("Validation failed", errors=jsonable_errors(errors)),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    logger.warning(f"[Database] Integrity error on {request.url.path}: {type(exc.orig).__name__}")

    if "foreign key" in message:
        return JSONResponse(
            status_code=400,
            content=error_response("Invalid reference to related record"),
        )

    return JSONResponse(
        status_code=409,
        content=error_response("A record with this information already exists"),
    )


@app.exception_handler(NoResultFound)
async def no_result_handler(request: Request, exc: NoResultFound):
    return JSONResponse(status_code=404, content=error_response("Record not found"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")

    details = {"error": str(exc), "type": type(exc).__name__} if settings.is_development else None
    message = "Internal server error" if settings.is_production else str(exc) or "Internal server error"
    return JSONResponse(
        status_code=500,
        content=error_response(message, details=details),
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "OK",
        "message": f"{settings.APP_NAME} is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to the {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
