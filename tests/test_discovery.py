"""
Latest-draw discovery: calendar estimate, bounded downward scan, fallback.
"""

from dataclasses import replace
from datetime import datetime

import pytest
import requests

from conftest import FakeSession
from src.date_utils import DateManager
from src.exceptions import DiscoveryError

NOW = datetime(2026, 10, 17, 12, 0)


@pytest.fixture()
def estimate():
    return DateManager.estimate_draw_index(NOW)


def test_estimate_is_exact_on_known_draw_date():
    # Draw 1000 was held on 2022-01-29
    assert DateManager.estimate_draw_index(datetime(2022, 1, 29, 21, 0)) == 1000
    assert DateManager.estimate_draw_index(datetime(2022, 1, 28, 21, 0)) == 999


def test_latest_is_the_estimate_itself(make_loader, estimate):
    session = FakeSession(latest=estimate)
    assert make_loader(session).discover_latest_draw_index(NOW) == estimate
    assert session.calls == [estimate]


def test_finds_latest_within_twenty_without_fallback(make_loader, estimate):
    session = FakeSession(latest=estimate - 19)
    loader = make_loader(session)

    assert loader.discover_latest_draw_index(NOW) == estimate - 19
    assert session.calls == list(range(estimate, estimate - 20, -1))
    assert loader.config.fallback_draw_no not in session.calls


def test_fetch_errors_count_as_no_data_during_scan(make_loader, estimate):
    session = FakeSession(
        latest=estimate - 1,
        errors={estimate - 1: requests.exceptions.ConnectionError("reset")},
    )
    assert make_loader(session).discover_latest_draw_index(NOW) == estimate - 2


def test_falls_back_when_estimate_drifted(make_loader, lotto_config, estimate):
    latest = estimate - 30
    config = replace(lotto_config, fallback_draw_no=latest + 5)
    session = FakeSession(latest=latest)

    assert make_loader(session, config).discover_latest_draw_index(NOW) == latest
    # 20 estimate probes, then fallback, fallback-1, ... down to latest
    assert session.calls[:20] == list(range(estimate, estimate - 20, -1))
    assert session.calls[20:] == list(range(latest + 5, latest - 1, -1))


def test_fails_when_both_scans_exhaust(make_loader, lotto_config, estimate):
    # fallback scan range stays clear of the estimate scan so nothing is served from cache
    latest = estimate - 30
    config = replace(lotto_config, fallback_draw_no=estimate + 100)
    session = FakeSession(latest=latest)

    with pytest.raises(DiscoveryError) as exc_info:
        make_loader(session, config).discover_latest_draw_index(NOW)

    assert "최신 회차 번호를 확인할 수 없습니다" in str(exc_info.value)
    assert len(session.calls) == 40


def test_scan_never_probes_non_positive_indices(make_loader, lotto_config):
    config = replace(lotto_config, fallback_draw_no=3)
    session = FakeSession(latest=0)

    with pytest.raises(DiscoveryError):
        make_loader(session, config).discover_latest_draw_index(datetime(2003, 1, 4))

    assert all(draw_no > 0 for draw_no in session.calls)
