"""
Pipeline tests for LottoAnalysisOrchestrator with a fake upstream and a
fake Gemini model.
"""

from datetime import datetime

import pytest

from conftest import FakeGeminiModel, FakeSession
from src.config import LottoConfig
from src.date_utils import DateManager
from src.exceptions import (
    DiscoveryError,
    InsufficientHistoryError,
    RecommendationError,
    ValidationError,
)
from src.gemini_service import LottoRecommendationService
from src.orchestrator import LottoAnalysisOrchestrator

NOW = datetime(2026, 10, 17, 12, 0)
ESTIMATE = DateManager.estimate_draw_index(NOW)


@pytest.fixture()
def build(make_loader):
    def _build(session, model=None):
        created = []

        def factory():
            service = LottoRecommendationService(model=model or FakeGeminiModel())
            created.append(service)
            return service

        orchestrator = LottoAnalysisOrchestrator(
            loader=make_loader(session), recommendation_service_factory=factory
        )
        orchestrator.created_services = created
        return orchestrator
    return _build


def test_recent_draws_are_processed_newest_first(build):
    orchestrator = build(FakeSession(latest=ESTIMATE))
    draws = orchestrator.get_recent_draws(5, now=NOW)

    assert [d.draw_no for d in draws] == list(range(ESTIMATE, ESTIMATE - 5, -1))
    assert all(list(d.sorted_numbers) == sorted(d.sorted_numbers) for d in draws)


def test_analyze_window(build):
    orchestrator = build(FakeSession(latest=ESTIMATE))
    result = orchestrator.analyze(10, now=NOW)

    assert result.latest_draw_no == ESTIMATE
    assert result.window_size == 10
    assert result.statistics.analyzed_draws_count == 10
    assert result.statistics.last_draw_no == ESTIMATE
    assert result.statistics.first_draw_no == ESTIMATE - 9
    assert result.prompt_summary.startswith(f"최근 10회차 중 10회차 ({ESTIMATE - 9}회 ~ {ESTIMATE}회)")
    assert result.display_summary.startswith("최근 10회차")


def test_analyze_uses_configured_default_window(build):
    orchestrator = build(FakeSession(latest=ESTIMATE))
    assert orchestrator.analyze(now=NOW).window_size == orchestrator.config.default_window


def test_analyze_with_holes_degrades(build):
    session = FakeSession(latest=ESTIMATE, missing={ESTIMATE - 3, ESTIMATE - 4})
    result = build(session).analyze(10, now=NOW)

    assert result.statistics.analyzed_draws_count == 8
    assert result.prompt_summary.startswith("최근 10회차 중 8회차")


def test_analyze_with_too_few_draws(build):
    session = FakeSession(latest=ESTIMATE, missing=set(range(ESTIMATE - 8, ESTIMATE - 2)))
    with pytest.raises(InsufficientHistoryError) as exc_info:
        build(session).analyze(10, now=NOW)
    assert exc_info.value.required == 5
    assert exc_info.value.available == 4


def test_analyze_rejects_window_before_network(build):
    session = FakeSession(latest=ESTIMATE)
    with pytest.raises(ValidationError):
        build(session).analyze(4, now=NOW)
    assert session.calls == []


def test_discovery_failure_propagates(build):
    with pytest.raises(DiscoveryError):
        build(FakeSession(latest=0)).analyze(10, now=NOW)


def test_recommend(build):
    model = FakeGeminiModel()
    orchestrator = build(FakeSession(latest=ESTIMATE), model=model)

    result = orchestrator.recommend(include="3, 11", exclude=[45], window=12, now=NOW)

    assert result.constraints.include_numbers == [3, 11]
    assert result.constraints.exclude_numbers == [45]
    assert len(result.recommendation.recommended_sets) == 5
    assert result.analysis.window_size == 12
    assert result.analysis.prompt_summary.strip() in model.prompts[0]
    assert "- 포함할 숫자: 3, 11" in model.prompts[0]


def test_recommend_service_is_created_once(build):
    orchestrator = build(FakeSession(latest=ESTIMATE))
    orchestrator.recommend(window=5, now=NOW)
    orchestrator.recommend(window=5, now=NOW)
    assert len(orchestrator.created_services) == 1


@pytest.mark.parametrize("include,exclude", [
    (list(range(1, 8)), None),
    ([5], [5]),
    ("1,x", None),
])
def test_recommend_validates_before_network(build, include, exclude):
    session = FakeSession(latest=ESTIMATE)
    orchestrator = build(session)

    with pytest.raises(ValidationError):
        orchestrator.recommend(include=include, exclude=exclude, now=NOW)

    assert session.calls == []
    assert orchestrator.created_services == []


def test_recommend_rejects_bad_window_before_network(build):
    session = FakeSession(latest=ESTIMATE)
    with pytest.raises(ValidationError):
        build(session).recommend(window=101, now=NOW)
    assert session.calls == []


def test_recommendation_failure_propagates(build):
    orchestrator = build(FakeSession(latest=ESTIMATE), model=FakeGeminiModel(text="{}"))
    with pytest.raises(RecommendationError):
        orchestrator.recommend(window=5, now=NOW)


def test_default_service_factory_needs_gemini_key(make_loader, monkeypatch):
    monkeypatch.setattr("src.gemini_service.get_lotto_config", lambda: LottoConfig(gemini_api_key=None))
    session = FakeSession(latest=ESTIMATE)
    orchestrator = LottoAnalysisOrchestrator(loader=make_loader(session))

    with pytest.raises(RecommendationError):
        orchestrator.recommend(window=5, now=NOW)
    # analysis ran before the service was built
    assert session.calls
