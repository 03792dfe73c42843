"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import database
from app.errors import StructuralFaultError
from app.logging_config import setup_logging
from app.routers import adhoc_goals, auth, goal_logs, goals, migrations, status_flags

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB and ensure indexes on startup; disconnect on shutdown."""
    await database.connect()
    await database.ensure_indexes()
    yield
    await database.disconnect()


app = FastAPI(
    title="Goal Planner API",
    description="Quarterly, weekly and daily goal planning with carry-over between quarters",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (auth, goals, migrations, status_flags, goal_logs, adhoc_goals):
    app.include_router(module.router)


@app.exception_handler(StructuralFaultError)
async def structural_fault_handler(request: Request, exc: StructuralFaultError):
    """Report corrupted goal data as a server error and log it."""
    logger.error("Structural fault on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "STRUCTURAL_FAULT", "message": str(exc)}},
    )


@app.get("/")
async def root():
    """Service banner."""
    return {"status": "ok", "message": "Goal Planner API"}


@app.get("/health")
async def health():
    """Liveness check; does not touch the database."""
    return {"status": "healthy"}
