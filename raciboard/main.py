"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from raciboard.api.v1 import profiles, subtasks, tasks
from raciboard.config import settings
from raciboard.core.logging import configure_logging
from raciboard.database import close_db, init_db
from raciboard.dependencies import event_broker


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging(settings)
    await init_db()
    yield
    # Shutdown
    if hasattr(event_broker, "aclose"):
        await event_broker.aclose()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tasks.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["tasks"])
app.include_router(subtasks.router, prefix=f"{settings.API_V1_PREFIX}/subtasks", tags=["subtasks"])
app.include_router(profiles.router, prefix=f"{settings.API_V1_PREFIX}/profiles", tags=["profiles"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}
