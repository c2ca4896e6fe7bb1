from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from loguru import logger

from src.analytics_engine import compute_aggregate_statistics, process_draws
from src.config import LottoConfig, get_lotto_config
from src.constraints import (
    MIN_ANALYSIS_WINDOW,
    NumberConstraints,
    NumberInput,
    validate_analysis_window,
    validate_constraints,
)
from src.draw_models import AggregateStatistics, ProcessedDrawRecord
from src.exceptions import InsufficientHistoryError
from src.gemini_service import (
    LottoRecommendationService,
    RecommendationOutput,
    create_recommendation_service,
)
from src.loader import DrawLoader
from src.summary_formatter import format_display_summary, format_historical_summary

RECENT_DISPLAY_COUNT = 5


@dataclass(frozen=True)
class AnalysisResult:
    latest_draw_no: int
    window_size: int
    draws: List[ProcessedDrawRecord]
    statistics: AggregateStatistics
    display_summary: str
    prompt_summary: str

    def to_dict(self) -> Dict:
        return {
            'latest_draw_no': self.latest_draw_no,
            'window_size': self.window_size,
            'statistics': self.statistics.to_dict(),
            'display_summary': self.display_summary,
            'prompt_summary': self.prompt_summary,
        }


@dataclass(frozen=True)
class RecommendationResult:
    analysis: AnalysisResult
    constraints: NumberConstraints
    recommendation: RecommendationOutput


class LottoAnalysisOrchestrator:
    """
    Runs the request pipeline: discovery, windowed retrieval, aggregate
    statistics, summary formatting and, for recommendations, the Gemini call.
    """

    def __init__(self, loader: DrawLoader,
                 recommendation_service_factory: Optional[Callable[[], LottoRecommendationService]] = None,
                 config: Optional[LottoConfig] = None):
        self.loader = loader
        self.config = config or loader.config or get_lotto_config()
        self._service_factory = recommendation_service_factory
        self._recommendation_service: Optional[LottoRecommendationService] = None

    def _get_recommendation_service(self) -> LottoRecommendationService:
        if self._recommendation_service is None:
            factory = self._service_factory or create_recommendation_service
            self._recommendation_service = factory()
        return self._recommendation_service

    def get_recent_draws(self, count: int = RECENT_DISPLAY_COUNT,
                         now: Optional[datetime] = None) -> List[ProcessedDrawRecord]:
        """
        Latest processed draws for display.

        Raises:
            DiscoveryError: If the latest draw cannot be determined
            InsufficientHistoryError: If no draw at all could be fetched
        """
        draws, latest_draw_no = self.loader.get_most_recent_draws(count, now)
        if not draws and count > 0:
            raise InsufficientHistoryError(required=1, available=0)
        logger.info(f"Loaded {len(draws)} recent draws up to {latest_draw_no}")
        return process_draws(draws)

    def analyze(self, window: Optional[int] = None, now: Optional[datetime] = None,
                min_required: int = MIN_ANALYSIS_WINDOW) -> AnalysisResult:
        """
        Fetch the trailing window and summarize it.

        Raises:
            ValidationError: If the window is outside 5-100
            DiscoveryError: If the latest draw cannot be determined
            InsufficientHistoryError: If fewer than ``min_required`` draws came back
        """
        window_size = validate_analysis_window(window, self.config.default_window)

        draws, latest_draw_no = self.loader.get_most_recent_draws(window_size, now)
        if len(draws) < min_required:
            logger.error(f"Only {len(draws)} draws available for analysis (need {min_required})")
            raise InsufficientHistoryError(required=min_required, available=len(draws))

        processed = process_draws(draws)
        statistics = compute_aggregate_statistics(processed, window_size)

        return AnalysisResult(
            latest_draw_no=latest_draw_no,
            window_size=window_size,
            draws=processed,
            statistics=statistics,
            display_summary=format_display_summary(statistics),
            prompt_summary=format_historical_summary(statistics, window_size),
        )

    def recommend(self, include: NumberInput = None, exclude: NumberInput = None,
                  window: Optional[int] = None, now: Optional[datetime] = None) -> RecommendationResult:
        """
        Validate constraints, analyze history and ask Gemini for number sets.

        Input is validated before any network activity.

        Raises:
            ValidationError, DiscoveryError, InsufficientHistoryError, RecommendationError
        """
        constraints = validate_constraints(include, exclude)
        validate_analysis_window(window, self.config.default_window)

        analysis = self.analyze(window, now)
        service = self._get_recommendation_service()
        recommendation = service.recommend(analysis.prompt_summary, constraints)

        return RecommendationResult(
            analysis=analysis,
            constraints=constraints,
            recommendation=recommendation,
        )
