import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.api import auth, vehicles, maintenance, reminders
from app.core.config import settings
from app.core.database import check_database_health, init_db
from app.core.errors import ServicebokError, StorageUnavailable
from app.core.rate_limit import RateLimitMiddleware
from app.core.redis_client import check_redis_health

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(
    title="Servicebok API",
    description="Vehicle maintenance log: vehicles, service events, itemized costs and reminders",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting middleware
app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServicebokError)
async def servicebok_error_handler(request: Request, exc: ServicebokError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    # Drop the "body"/"path"/"query" prefix from the location
    location = [str(part) for part in first.get("loc", ())[1:]]
    body = {"code": "validation_error", "message": first.get("msg", "Invalid input")}
    if location:
        body["field"] = ".".join(location)
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError):
    logger.error(f"Storage unavailable on {request.method} {request.url.path}: {exc}")
    error = StorageUnavailable()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(vehicles.router, prefix="/api/vehicles", tags=["Vehicles"])
app.include_router(maintenance.router, prefix="/api", tags=["Maintenance"])
app.include_router(reminders.router, prefix="/api", tags=["Reminders"])


@app.get("/")
async def root():
    return {"message": "Servicebok API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    database = check_database_health()
    cache = check_redis_health()
    return {
        "status": "healthy" if database["connected"] else "unhealthy",
        "database": database,
        "cache": cache,
    }
