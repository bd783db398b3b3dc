import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from classifieds.config import get_settings
from classifieds.database import SessionLocal, is_transient_error
from classifieds.errors import DomainError, Unavailable
from classifieds.routers import admin, applications, auth, company, files, health, listings, messages, users

logger = logging.getLogger(__name__)

settings = get_settings()


def _scheduler_enabled() -> bool:
    # Only start scheduler in production or if explicitly enabled
    # This prevents duplicate schedulers during development with --reload
    return settings.environment == "production" or settings.enable_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.bootstrap_admin:
        from classifieds.services.admin import ensure_admin_user

        db = SessionLocal()
        try:
            ensure_admin_user(db)
        finally:
            db.close()

    if _scheduler_enabled():
        from classifieds.scheduler import start_scheduler
        start_scheduler()
    yield
    if _scheduler_enabled():
        from classifieds.scheduler import shutdown_scheduler
        shutdown_scheduler()


app = FastAPI(
    title="Classifieds",
    description="Jobs, houses, cars and items marketplace API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(applications.router, prefix="/api", tags=["applications"])
app.include_router(listings.jobs, prefix="/api/jobs", tags=["jobs"])
app.include_router(listings.houses, prefix="/api/houses", tags=["houses"])
app.include_router(listings.cars, prefix="/api/cars", tags=["cars"])
app.include_router(listings.items, prefix="/api/items", tags=["items"])
app.include_router(files.router, prefix="/api/files", tags=["files"])
app.include_router(company.router, prefix="/api/company", tags=["company"])
app.include_router(messages.router, prefix="/api/messages", tags=["messages"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])


# Error handlers
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Render service-layer errors as {"detail", "code"} with the mapped status."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Connection-level failures that escaped the retry wrapper become 503s."""
    if is_transient_error(exc):
        logger.warning("Database unavailable: %s %s", request.method, request.url.path)
        unavailable = Unavailable()
        return JSONResponse(status_code=unavailable.status_code, content=unavailable.to_dict())

    logger.exception(
        "Database error: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with a generic JSON 500."""
    # Log the exception with request context for debugging
    logger.exception(
        "Unhandled exception: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
