import json
import os
import sys
from types import SimpleNamespace

import pytest
import requests

# Ensure repository root is on sys.path so `import src.*` works during tests
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.config import LottoConfig  # noqa: E402
from src.draw_cache import DrawCache  # noqa: E402
from src.draw_models import DrawRecord, ProcessedDrawRecord  # noqa: E402
from src.loader import DrawLoader  # noqa: E402


def draw_numbers(draw_no: int) -> list:
    """Six distinct deterministic numbers in 1-45 for a draw number."""
    return [((draw_no + k * 7) % 45) + 1 for k in range(6)]


def make_payload(draw_no: int, numbers=None, bonus=None, draw_date="2026-01-03"):
    numbers = numbers if numbers is not None else draw_numbers(draw_no)
    payload = {
        "returnValue": "success",
        "drwNo": draw_no,
        "drwNoDate": draw_date,
        "bnusNo": bonus if bonus is not None else ((draw_no + 42) % 45) + 1,
        "totSellamnt": 111843656000,
        "firstWinamnt": 2389413750,
    }
    for i, n in enumerate(numbers, start=1):
        payload[f"drwtNo{i}"] = n
    return payload


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


def raw_response(body: bytes, status_code=200):
    """A real requests Response carrying an arbitrary body."""
    response = requests.models.Response()
    response.status_code = status_code
    response._content = body
    response.encoding = "utf-8"
    return response


class FakeSession:
    """
    Stand-in for requests.Session keyed by draw number.

    Draws up to ``latest`` answer with a success payload, later ones with
    the upstream failure marker. ``responses`` and ``errors`` override
    single draw numbers.
    """

    def __init__(self, latest=0, responses=None, errors=None, missing=()):
        self.latest = latest
        self.responses = dict(responses or {})
        self.errors = dict(errors or {})
        self.missing = set(missing)
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        draw_no = int(url.rsplit("=", 1)[1])
        self.calls.append(draw_no)
        if draw_no in self.errors:
            raise self.errors[draw_no]
        if draw_no in self.responses:
            return self.responses[draw_no]
        if draw_no <= self.latest and draw_no not in self.missing:
            return FakeResponse(make_payload(draw_no))
        return FakeResponse({"returnValue": "fail"})

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def lotto_config():
    return LottoConfig(fallback_draw_no=1000, fetch_workers=1)


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def draw_cache(fake_clock, lotto_config):
    return DrawCache(ttl_seconds=lotto_config.cache_ttl_seconds, clock=fake_clock)


@pytest.fixture()
def make_loader(draw_cache, lotto_config):
    def _make(session, config=None):
        return DrawLoader(cache=draw_cache, config=config or lotto_config, session=session)
    return _make


def make_draw(draw_no, numbers, bonus=45, draw_date="2026-01-03"):
    return DrawRecord(draw_no=draw_no, draw_date=draw_date, numbers=tuple(numbers), bonus=bonus)


def make_processed(draw_no, total, even_count, numbers=(1, 2, 3, 4, 5, 6)):
    """Processed record with hand-picked statistics, bypassing derivation."""
    return ProcessedDrawRecord(
        draw=make_draw(draw_no, numbers),
        sorted_numbers=tuple(sorted(numbers)),
        total=total,
        even_count=even_count,
        odd_count=6 - even_count,
    )


def recommendation_reply(sets=None):
    """JSON text shaped like a Gemini recommendation reply."""
    sets = sets if sets is not None else [
        [3, 11, 19, 27, 34, 42],
        [5, 12, 18, 26, 33, 41],
        [1, 9, 17, 25, 36, 44],
        [7, 14, 21, 28, 35, 40],
        [2, 13, 20, 29, 31, 45],
    ]
    return json.dumps({
        "recommended_sets": [
            {"numbers": numbers, "reasoning": "최근 출현 빈도와 구간 비율을 고려한 조합"}
            for numbers in sets
        ],
        "predicted_sum_range": "135-145",
        "predicted_even_odd_ratio": "3:3 또는 4:2",
    }, ensure_ascii=False)


class FakeGeminiModel:
    """Records prompts and answers with a canned reply (or raises)."""

    model_name = "fake-gemini"

    def __init__(self, text=None, error=None):
        self.text = recommendation_reply() if text is None else text
        self.error = error
        self.prompts = []

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)
