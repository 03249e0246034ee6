"""
ReliefLine - FastAPI application

Disaster relief coordination: needs and pledges, missing people,
volunteers and service requests.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from db import create_db_and_tables
from errors import ReliefError
from logging_config import get_logger, setup_logging
from routers import admin, auth, needs, people, registry, service_requests, stats, volunteers

setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("ReliefLine API starting up")
    yield
    logger.info("ReliefLine API shutting down")


app = FastAPI(title="ReliefLine", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReliefError)
async def relief_error_handler(request: Request, exc: ReliefError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
def read_root():
    """Health check endpoint."""
    return {"status": "healthy", "service": "ReliefLine API", "version": app.version}


@app.get("/health")
def health_check():
    settings = get_settings()
    return {
        "status": "healthy",
        "database": settings.database_url.split(":", 1)[0],
        "reopen_cooldown_hours": settings.reopen_cooldown_hours,
    }


app.include_router(auth.router, prefix="/auth")
app.include_router(needs.router, prefix="/needs")
app.include_router(people.router, prefix="/people")
app.include_router(volunteers.router, prefix="/volunteers")
app.include_router(service_requests.router, prefix="/service-requests")
app.include_router(registry.router, prefix="/registry")
app.include_router(stats.router, prefix="/stats")
app.include_router(admin.router, prefix="/admin")
