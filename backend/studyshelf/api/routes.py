"""
FastAPI route handlers for the material search API.
"""

import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, HTTPException, Query, Depends
from fastapi.responses import JSONResponse

from .models import (
    SearchRequest,
    SearchResponse,
    TrendingResponse,
    HealthResponse,
    ErrorResponse,
    TRENDING_MAX_LIMIT
)
from ..search.errors import FallbackExhausted, RetrievalError
from ..search.query_tracker import QueryTracker
from ..search.search_engine import SearchEngine
from ..search.semantic_scorer import SemanticScorer
from ..storage.database import Database, init_database
from ..storage.materials_store import SQLiteMaterialsStore
from config.search_config import TRENDING_CONFIG

logger = logging.getLogger('api')

# Global instances (created on startup)
database: Optional[Database] = None
search_engine: Optional[SearchEngine] = None
query_tracker: Optional[QueryTracker] = None
materials_store: Optional[SQLiteMaterialsStore] = None

# Track service start time
service_start_time = datetime.now()


# ============================================================================
# Dependency Injection
# ============================================================================

def get_search_engine() -> SearchEngine:
    """Get the global search engine instance."""
    if search_engine is None:
        raise HTTPException(
            status_code=503,
            detail="Search engine not initialized"
        )
    return search_engine


def get_query_tracker() -> QueryTracker:
    """Get the global query tracker instance."""
    if query_tracker is None:
        raise HTTPException(
            status_code=503,
            detail="Query tracker not initialized"
        )
    return query_tracker


def get_materials_store() -> SQLiteMaterialsStore:
    """Get the global materials store instance."""
    if materials_store is None:
        raise HTTPException(
            status_code=503,
            detail="Materials store not initialized"
        )
    return materials_store


# ============================================================================
# API Router
# ============================================================================

router = APIRouter(prefix="/api/v1", tags=["search"])


# ============================================================================
# Search Endpoints
# ============================================================================

@router.post(
    "/search",
    response_model=SearchResponse,
    responses={503: {"model": ErrorResponse}}
)
async def search_materials(
    request: SearchRequest,
    engine: SearchEngine = Depends(get_search_engine),
    tracker: QueryTracker = Depends(get_query_tracker)
):
    """
    Search study materials.

    Ranks keyword candidates by weighted field matches, blended with semantic
    similarity when the similarity service is configured and reachable.
    Degrades to keyword-only ranking, then to an unranked keyword search.
    """
    logger.info(
        f"Search request: query='{request.query}', category={request.category}, "
        f"sub_category={request.sub_category}, limit={request.limit}, "
        f"candidate_limit={request.candidate_limit}"
    )

    try:
        outcome = await engine.search_with_details(
            request.query,
            limit=request.limit,
            candidate_limit=request.candidate_limit,
            category=request.category,
            sub_category=request.sub_category
        )
    except FallbackExhausted as e:
        logger.error(f"Search failed: {e} (last error: {e.last_error})", exc_info=True)
        raise HTTPException(
            status_code=503,
            detail={
                "error": "Search is temporarily unavailable",
                "code": "SEARCH_UNAVAILABLE",
                "details": {"message": str(e.last_error or e)}
            }
        )

    tracker.save_query(request.query, request.user_id)

    return {
        "results": [m.to_dict() for m in outcome.results],
        "total": len(outcome.results),
        "mode": outcome.mode,
        "semantic_used": outcome.semantic_used,
        "query_time_ms": outcome.query_time_ms,
        "query": outcome.query
    }


# ============================================================================
# Trending Endpoints
# ============================================================================

@router.get("/trending", response_model=TrendingResponse)
async def get_trending(
    limit: int = Query(
        TRENDING_CONFIG['default_limit'], ge=1, le=TRENDING_MAX_LIMIT,
        description="Maximum queries to return"
    ),
    tracker: QueryTracker = Depends(get_query_tracker)
):
    """
    Get trending search queries.

    Most frequent queries of the last week, padded with suggestions.
    """
    queries = await tracker.trending(limit)

    logger.info(f"Retrieved {len(queries)} trending searches")

    return {
        "queries": queries,
        "total": len(queries)
    }


# ============================================================================
# Health Check Endpoint
# ============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(
    engine: SearchEngine = Depends(get_search_engine),
    store: SQLiteMaterialsStore = Depends(get_materials_store)
):
    """
    Health check endpoint.

    Returns service status and basic metrics.
    """
    uptime = (datetime.now() - service_start_time).total_seconds()

    try:
        material_count = store.count_materials()
        db_connected = True
    except RetrievalError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": str(e)
            }
        )

    semantic_configured = engine.semantic_scorer.is_configured

    return {
        "status": "healthy",
        "database_connected": db_connected,
        "material_count": material_count,
        "semantic_configured": semantic_configured,
        "uptime_seconds": int(uptime)
    }


# ============================================================================
# Initialization
# ============================================================================

def init_search_engine(db_path: str, semantic_scorer: Optional[SemanticScorer] = None):
    """
    Initialize the global search engine instance.

    This should be called during application startup.
    """
    global database, search_engine, query_tracker, materials_store

    logger.info("Initializing search engine...")

    try:
        database = init_database(db_path)
        connection = database.connect()

        materials_store = SQLiteMaterialsStore(connection)
        search_engine = SearchEngine(materials_store, semantic_scorer=semantic_scorer)
        query_tracker = QueryTracker(connection)

        logger.info("Search engine initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize search engine: {e}")
        raise


def shutdown_search_engine():
    """
    Cleanup search engine on shutdown.

    This should be called during application shutdown.
    """
    global database, search_engine, query_tracker, materials_store

    search_engine = None
    query_tracker = None
    materials_store = None

    if database:
        logger.info("Closing database...")
        database.close()
        database = None
