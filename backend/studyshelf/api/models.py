"""
Pydantic models for API requests and responses.
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator

from config.search_config import RETRIEVAL_CONFIG, TRENDING_CONFIG


# ============================================================================
# Search Models
# ============================================================================

class SearchRequest(BaseModel):
    """Search request body."""

    query: str = Field(..., max_length=500, description="Search query")
    limit: int = Field(
        RETRIEVAL_CONFIG['default_limit'], ge=1, le=100,
        description="Maximum results to return"
    )
    candidate_limit: int = Field(
        RETRIEVAL_CONFIG['default_candidate_limit'], ge=1, le=500,
        description="Maximum candidates ranked"
    )
    category: Optional[str] = Field(None, description="Filter by material category")
    sub_category: Optional[str] = Field(None, description="Filter by material subcategory")
    user_id: Optional[str] = Field(None, description="Searching user, recorded for trending")

    @field_validator('category', 'sub_category')
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty filters as absent."""
        if v is not None and not v.strip():
            return None
        return v


class SearchResponse(BaseModel):
    """Search response."""

    results: List[Dict[str, Any]] = Field(..., description="Material records in ranked order")
    total: int = Field(..., description="Number of results returned")
    mode: str = Field(..., description="Ranking mode: hybrid, lexical or fallback")
    semantic_used: bool = Field(..., description="Whether semantic scores contributed")
    query_time_ms: int = Field(..., description="Query execution time in milliseconds")
    query: str = Field(..., description="Search query as executed")


# ============================================================================
# Trending Models
# ============================================================================

class TrendingResponse(BaseModel):
    """Trending searches response."""

    queries: List[str] = Field(..., description="Trending search queries")
    total: int = Field(..., description="Number of queries returned")


TRENDING_MAX_LIMIT = max(50, TRENDING_CONFIG['default_limit'])


# ============================================================================
# Health Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    database_connected: bool = Field(..., description="Database connection status")
    material_count: int = Field(..., description="Materials in the store")
    semantic_configured: bool = Field(..., description="Whether semantic scoring is enabled")
    uptime_seconds: Optional[int] = Field(None, description="Service uptime in seconds")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
