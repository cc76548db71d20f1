"""
FastAPI application for the StudyShelf search service.
"""

import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .models import ErrorResponse
from .routes import router, init_search_engine, shutdown_search_engine
from ..search.errors import SearchError
from config.search_config import LOG_CONFIG, API_CONFIG, DATABASE_PATH, ENVIRONMENT, DEBUG

logging.config.dictConfig(LOG_CONFIG)
logger = logging.getLogger('api')


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the materials database for the lifetime of the app."""
    logger.info(f"Starting search API ({ENVIRONMENT}), database at {DATABASE_PATH}")
    init_search_engine(db_path=DATABASE_PATH)
    yield
    shutdown_search_engine()
    logger.info("Search API stopped")


app = FastAPI(
    title="StudyShelf Search API",
    description="Keyword and semantic search over shared study materials",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if DEBUG else None,
    redoc_url=None
)

# Expo dev servers
app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CONFIG['cors_origins'],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def root():
    return {
        "service": "studyshelf-search",
        "version": __version__,
        "search": "/api/v1/search",
        "trending": "/api/v1/trending",
        "health": "/api/v1/health",
    }


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    body = ErrorResponse(error="No such endpoint", code="NOT_FOUND", details={"path": request.url.path})
    return JSONResponse(status_code=404, content=body.model_dump())


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    body = ErrorResponse(
        error="Materials are temporarily unavailable",
        code="SEARCH_ERROR",
        details={"message": str(exc)} if DEBUG else None
    )
    return JSONResponse(status_code=503, content=body.model_dump())


def run():
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "studyshelf.api.main:app",
        host=API_CONFIG['host'],
        port=API_CONFIG['port'],
        reload=API_CONFIG['reload'],
        log_level=API_CONFIG['log_level']
    )


if __name__ == "__main__":
    run()
