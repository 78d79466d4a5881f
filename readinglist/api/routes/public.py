"""
Public API Routes

Anonymised community statistics and search. No session required.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from readinglist.api.dependencies import get_aggregation_service
from readinglist.api.schemas import CommunityStatsResponse, ErrorResponse, PublicSearchResponse
from readinglist.services.aggregation_service import PublicAggregationService

router = APIRouter(prefix="/books/public", tags=["public"])


@router.get("", response_model=CommunityStatsResponse)
def community_stats(
    aggregation: PublicAggregationService = Depends(get_aggregation_service),
):
    """Most popular books, genres and authors across every reading list."""
    return CommunityStatsResponse.from_stats(aggregation.community_stats())


@router.get(
    "/search",
    response_model=PublicSearchResponse,
    responses={400: {"model": ErrorResponse, "description": "Query shorter than 2 characters"}},
)
def search(
    q: Optional[str] = Query(None, description="At least 2 characters"),
    genre: Optional[str] = Query(None, description="Exact genre"),
    aggregation: PublicAggregationService = Depends(get_aggregation_service),
):
    """Search titles and authors across every reading list."""
    return PublicSearchResponse.from_results(aggregation.search(q, genre=genre))
