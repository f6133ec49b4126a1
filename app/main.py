"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import create_tables
from app.routers import enrichment, friends, lists, profiles, saved
from app.services.redis_client import redis_client
from app.utils.analytics import AnalyticsMiddleware, shutdown_analytics


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Production schemas are managed outside the app
    if settings.environment == "development":
        await create_tables()
    yield
    await redis_client.close()
    shutdown_analytics()


# Create FastAPI app
app = FastAPI(
    title="haze API",
    description="Backend API for haze - save and share restaurant recommendations",
    version="1.0.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AnalyticsMiddleware)

# Include routers
app.include_router(enrichment.router, prefix="/api/v1")
app.include_router(saved.router, prefix="/api/v1")
app.include_router(profiles.router, prefix="/api/v1")
app.include_router(friends.router, prefix="/api/v1")
app.include_router(lists.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to haze API",
        "version": "1.0.0",
        "docs": "/docs" if settings.environment == "development" else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
