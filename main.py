"""
Transit Dashboard Backend - Main Application

Operations dashboard metrics for the transit ticketing platform.
Aggregates companies, vehicles and bookings from the ticketing API into
role-scoped revenue, booking and fleet metrics, with a 5 minute cache.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
import logging

from transit_dash.config import LOG_LEVEL, TICKETING_API_BASE_URL, TICKETING_API_TOKEN
from transit_dash.routers import dashboard
from transit_dash.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting Transit Dashboard Backend...")
    start_scheduler()
    yield
    # Shutdown
    logger.info("Shutting down Transit Dashboard Backend...")
    stop_scheduler()


# Initialize FastAPI app
app = FastAPI(
    title="Transit Dashboard API",
    description="Role-scoped dashboard metrics over the ticketing API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
def read_root():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Transit Dashboard Backend",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "ticketing_api_url": TICKETING_API_BASE_URL,
        "auth_configured": bool(TICKETING_API_TOKEN)
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
