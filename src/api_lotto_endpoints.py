"""
Lotto API Endpoints
===================

Recent draws, windowed statistics and Gemini-backed number recommendations.
"""

from typing import Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from src.exceptions import (
    DiscoveryError,
    InsufficientHistoryError,
    LottoServiceError,
    RecommendationError,
    ValidationError,
)
from src.orchestrator import LottoAnalysisOrchestrator, RECENT_DISPLAY_COUNT

lotto_router = APIRouter(prefix="/api/v1/lotto", tags=["lotto"])

# Global components (injected from the main API)
orchestrator: Optional[LottoAnalysisOrchestrator] = None


def set_lotto_components(lotto_orchestrator: LottoAnalysisOrchestrator):
    """Set the shared orchestrator for lotto endpoints."""
    global orchestrator
    orchestrator = lotto_orchestrator


def _get_orchestrator() -> LottoAnalysisOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Lotto service is not initialized")
    return orchestrator


def _to_http_exception(error: LottoServiceError) -> HTTPException:
    if isinstance(error, ValidationError):
        status_code, code = 400, "invalid_input"
    elif isinstance(error, DiscoveryError):
        status_code, code = 503, "latest_draw_unavailable"
    elif isinstance(error, InsufficientHistoryError):
        status_code, code = 503, "insufficient_history"
    elif isinstance(error, RecommendationError):
        status_code, code = 502, "recommendation_failed"
    else:
        status_code, code = 500, "internal_error"
    return HTTPException(status_code=status_code, detail={"code": code, "message": error.message})


# Pydantic models for request/response
class DrawResponse(BaseModel):
    draw_no: int
    draw_date: str
    numbers: List[int]
    bonus: int
    sum: int
    even_count: int
    odd_count: int


class RecentDrawsResponse(BaseModel):
    draws: List[DrawResponse]
    count: int


class AnalysisResponse(BaseModel):
    latest_draw_no: int
    window_size: int
    statistics: Dict
    display_summary: str
    prompt_summary: str


class RecommendationRequest(BaseModel):
    include_numbers: Optional[Union[List[int], str]] = Field(None, description="반드시 포함할 숫자 (최대 6개)")
    exclude_numbers: Optional[Union[List[int], str]] = Field(None, description="반드시 제외할 숫자")
    draws: Optional[int] = Field(None, description="분석할 회차 수 (5-100)")


class LottoSetResponse(BaseModel):
    numbers: List[int]
    reasoning: str


class RecommendationResponse(BaseModel):
    recommended_sets: List[LottoSetResponse]
    predicted_sum_range: str
    predicted_even_odd_ratio: str
    include_numbers: List[int]
    exclude_numbers: List[int]
    averages: Dict
    display_summary: str


@lotto_router.get("/draws/recent", response_model=RecentDrawsResponse)
def get_recent_draws(count: int = Query(RECENT_DISPLAY_COUNT, ge=1, le=20, description="Number of draws")):
    """Most recent draws, newest first."""
    try:
        draws = _get_orchestrator().get_recent_draws(count)
    except LottoServiceError as e:
        logger.error(f"Recent draws request failed: {e.message}")
        raise _to_http_exception(e)

    return RecentDrawsResponse(draws=[DrawResponse(**d.to_dict()) for d in draws], count=len(draws))


@lotto_router.get("/analysis", response_model=AnalysisResponse)
def get_analysis(draws: Optional[int] = Query(None, description="Number of draws to analyze (5-100)")):
    """Aggregate statistics and summaries over the trailing window."""
    try:
        result = _get_orchestrator().analyze(draws)
    except LottoServiceError as e:
        logger.error(f"Analysis request failed: {e.message}")
        raise _to_http_exception(e)

    return AnalysisResponse(**result.to_dict())


@lotto_router.post("/recommendations", response_model=RecommendationResponse)
def post_recommendations(request: RecommendationRequest):
    """Validate constraints, summarize history and return Gemini recommendations."""
    try:
        result = _get_orchestrator().recommend(
            include=request.include_numbers,
            exclude=request.exclude_numbers,
            window=request.draws,
        )
    except LottoServiceError as e:
        logger.error(f"Recommendation request failed: {e.message}")
        raise _to_http_exception(e)

    recommendation = result.recommendation
    return RecommendationResponse(
        recommended_sets=[LottoSetResponse(**s.model_dump()) for s in recommendation.recommended_sets],
        predicted_sum_range=recommendation.predicted_sum_range,
        predicted_even_odd_ratio=recommendation.predicted_even_odd_ratio,
        include_numbers=result.constraints.include_numbers,
        exclude_numbers=result.constraints.exclude_numbers,
        averages=result.analysis.statistics.to_dict(),
        display_summary=result.analysis.display_summary,
    )
