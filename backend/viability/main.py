import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .database import Base, engine
from .routes.discovery import router as discovery_router
from .routes.projects import router as projects_router


# Load environment variables from .env file
load_dotenv()

_DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:3001"


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    Base.metadata.create_all(bind=engine)
    print("Starting Business Viability API")
    print(f"   OpenAI Key:  {' Configured' if os.getenv('OPENAI_API_KEY') else ' Not set (discovery and embeddings disabled)'}")
    print(f"   Brave Key:   {' Configured' if os.getenv('BRAVE_SEARCH_API_KEY') else ' Not set (web search disabled)'}")
    print(f"   Broker:      {os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')}")
    print("   Ready to research business ideas!")

    yield

    print("Shutting down Business Viability API")


app = FastAPI(
    title="Business Viability API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(discovery_router)
app.include_router(projects_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Business Viability API",
        "version": "0.1.0",
        "description": "Market research discovery, ingestion and retrieval for business ideas",
        "docs": "/docs",
        "endpoints": {
            "discover": "POST /discovery/urls - Discover source URLs for an idea",
            "ingest": "POST /discovery/ingest - Ingest confirmed URLs",
            "status": "GET /discovery/status/{job_id} - Poll an ingestion job",
            "viability": "POST /projects/{project_id}/viability - Generate a viability report",
            "health": "GET /health - Service health check"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "business-viability-api",
        "version": "0.1.0"
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "viability.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "true").lower() == "true",
    )
