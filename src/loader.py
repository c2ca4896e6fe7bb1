import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from loguru import logger

from src.config import LottoConfig, get_lotto_config
from src.date_utils import DateManager
from src.draw_cache import DrawCache
from src.draw_models import (
    MAX_NUMBER,
    MIN_NUMBER,
    NUMBERS_PER_DRAW,
    DrawFetchResult,
    DrawRecord,
    DrawStatus,
)
from src.exceptions import DiscoveryError, FetchError


DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
    "Referer": "https://www.dhlottery.co.kr/",
}

NUMBER_FIELDS = [f"drwtNo{i}" for i in range(1, NUMBERS_PER_DRAW + 1)]


# ============================================================================
# HTTP SESSION
# ============================================================================

def create_session(config: LottoConfig) -> requests.Session:
    """HTTP session with urllib3-level retries and exponential backoff."""
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)

    retry_strategy = Retry(
        total=config.retry_total,
        backoff_factor=config.retry_backoff,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["HEAD", "GET", "OPTIONS"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


# ============================================================================
# PAYLOAD PARSING
# ============================================================================

def _valid_ball(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and MIN_NUMBER <= value <= MAX_NUMBER


def parse_draw_payload(draw_no: int, data) -> DrawFetchResult:
    """
    Classify an upstream JSON payload.

    A payload only counts as a draw when the success flag is set and every
    primary number, the bonus number, the draw number and the date are
    present and in range. Anything else that is still a JSON object is
    reported as NOT_FOUND, so partial records never reach callers.

    Raises:
        FetchError: If the payload is not a JSON object
    """
    if not isinstance(data, dict):
        raise FetchError(draw_no, f"unexpected payload type {type(data).__name__}")

    not_found = DrawFetchResult(draw_no=draw_no, status=DrawStatus.NOT_FOUND)

    if data.get("returnValue") != "success":
        return not_found

    numbers = [data.get(name) for name in NUMBER_FIELDS]
    bonus = data.get("bnusNo")
    if not all(_valid_ball(n) for n in numbers) or not _valid_ball(bonus):
        logger.warning(f"Draw {draw_no}: incomplete numbers in upstream payload {numbers} + {bonus}")
        return not_found

    if data.get("drwNo") != draw_no:
        logger.warning(f"Draw {draw_no}: upstream returned drwNo={data.get('drwNo')!r}")
        return not_found

    draw_date = data.get("drwNoDate")
    if not isinstance(draw_date, str) or not DateManager.validate_date_format(draw_date):
        logger.warning(f"Draw {draw_no}: missing or invalid drwNoDate {draw_date!r}")
        return not_found

    if len(set(numbers)) != NUMBERS_PER_DRAW or bonus in numbers:
        # Tolerated, never repaired
        logger.warning(f"Draw {draw_no}: duplicate numbers in upstream record {numbers} + {bonus}")

    return DrawFetchResult(
        draw_no=draw_no,
        status=DrawStatus.SUCCESS,
        draw=DrawRecord(draw_no=draw_no, draw_date=draw_date, numbers=tuple(numbers), bonus=bonus),
    )


# ============================================================================
# DRAW LOADER
# ============================================================================

class DrawLoader:
    """
    Fetches draws by number through a shared TTL cache, discovers the latest
    published draw and assembles trailing windows of history.

    ``session`` serves sequential calls. Parallel window fetches give every
    worker thread its own session from ``session_factory``, since a
    requests.Session is not safe to share across threads.
    """

    def __init__(self, cache: DrawCache, config: Optional[LottoConfig] = None,
                 session: Optional[requests.Session] = None,
                 session_factory: Optional[Callable[[], requests.Session]] = None):
        self.cache = cache
        self.config = config or get_lotto_config()
        self.session = session or create_session(self.config)
        self.session_factory = session_factory or (lambda: create_session(self.config))

    # ------------------------------------------------------------------
    # Fetch-with-cache
    # ------------------------------------------------------------------

    def fetch_draw(self, draw_no: int) -> DrawFetchResult:
        """
        Fetch one draw, consulting the cache first.

        Both SUCCESS and NOT_FOUND results are cached for the configured TTL.
        Transport and parse failures are not cached.

        Args:
            draw_no: Positive draw number

        Returns:
            DrawFetchResult: SUCCESS with a DrawRecord, or NOT_FOUND

        Raises:
            ValueError: If draw_no is not a positive integer (no network call)
            FetchError: On transport failure or malformed response
        """
        return self._fetch(draw_no, self.session)

    def _fetch(self, draw_no: int, session: requests.Session) -> DrawFetchResult:
        if not isinstance(draw_no, int) or isinstance(draw_no, bool) or draw_no <= 0:
            raise ValueError(f"draw_no must be a positive integer, got {draw_no!r}")

        entry = self.cache.get(draw_no)
        if entry is not None:
            logger.debug(f"Cache hit for draw {draw_no} ({entry.value.status.value})")
            return entry.value

        result = self._request_draw(draw_no, session)
        self.cache.set(draw_no, result, ttl=self.config.cache_ttl_seconds)
        return result

    def _request_draw(self, draw_no: int, session: requests.Session) -> DrawFetchResult:
        url = self.config.api_url.format(draw_no=draw_no)
        start_time = time.time()

        try:
            response = session.get(
                url, timeout=(self.config.connect_timeout, self.config.read_timeout)
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.warning(f"Draw {draw_no}: upstream timeout: {e}")
            raise FetchError(draw_no, "timeout") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Draw {draw_no}: request failed: {type(e).__name__}: {e}")
            raise FetchError(draw_no, f"request failed: {type(e).__name__}") from e

        try:
            data = response.json()
        except ValueError as e:
            # requests.JSONDecodeError is a ValueError; dhlottery answers HTML when it is unhappy
            logger.warning(f"Draw {draw_no}: response is not valid JSON: {e}")
            raise FetchError(draw_no, "invalid JSON") from e

        try:
            result = parse_draw_payload(draw_no, data)
        except FetchError as e:
            logger.warning(f"Draw {draw_no}: {e.reason}")
            raise

        response_time_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Draw {draw_no}: {result.status.value} in {response_time_ms}ms")
        return result

    def _probe(self, draw_no: int) -> bool:
        """True when draw_no is a published draw; fetch errors count as no data."""
        try:
            return self.fetch_draw(draw_no).found
        except FetchError as e:
            logger.warning(f"Discovery probe for draw {draw_no} failed: {e.reason}")
            return False

    # ------------------------------------------------------------------
    # Latest-draw discovery
    # ------------------------------------------------------------------

    def _scan_down(self, start: int, label: str) -> Optional[int]:
        attempts = self.config.discovery_max_attempts
        for offset in range(attempts):
            candidate = start - offset
            if candidate <= 0:
                break
            if self._probe(candidate):
                logger.info(f"Latest draw confirmed at {candidate} ({label} scan, attempt {offset + 1}/{attempts})")
                return candidate
        logger.warning(f"{label.capitalize()} scan from {start} found no published draw in {attempts} attempts")
        return None

    def discover_latest_draw_index(self, now: Optional[datetime] = None) -> int:
        """
        Find the most recent published draw number.

        Scans downward from the calendar estimate, then from the configured
        fallback draw number when the estimate has drifted too far.

        Args:
            now: Reference time for the calendar estimate

        Returns:
            int: Latest published draw number

        Raises:
            DiscoveryError: If neither scan confirms a draw
        """
        estimate = DateManager.estimate_draw_index(now)
        logger.info(f"Discovering latest draw from estimate {estimate}")

        latest = self._scan_down(estimate, "estimate")
        if latest is not None:
            return latest

        fallback = self.config.fallback_draw_no
        logger.warning(
            f"Calendar estimate {estimate} did not confirm a draw, retrying from fallback {fallback}. "
            f"LOTTO_FALLBACK_DRAW_NO may need updating."
        )
        latest = self._scan_down(fallback, "fallback")
        if latest is not None:
            return latest

        logger.error(f"Latest draw discovery failed (estimate={estimate}, fallback={fallback})")
        raise DiscoveryError()

    # ------------------------------------------------------------------
    # Windowed history
    # ------------------------------------------------------------------

    def _fetch_for_window(self, draw_no: int,
                          session: Optional[requests.Session] = None) -> Tuple[int, Optional[DrawRecord]]:
        try:
            result = self._fetch(draw_no, session or self.session)
        except FetchError as e:
            logger.warning(f"Skipping draw {draw_no}: fetch failed ({e.reason})")
            return draw_no, None
        if not result.found:
            logger.warning(f"Skipping draw {draw_no}: not available upstream")
            return draw_no, None
        return draw_no, result.draw

    def get_recent_draws(self, count: int, latest_draw_no: int) -> Tuple[List[DrawRecord], int]:
        """
        Collect up to ``count`` draws walking down from ``latest_draw_no``.

        Missing or failed draws are skipped and logged, never padded, so the
        result may be shorter than ``count``.

        Args:
            count: Number of draw indices to attempt
            latest_draw_no: Newest draw number to start from

        Returns:
            Tuple of (draws newest-first, number of indices attempted)
        """
        indices = [latest_draw_no - i for i in range(max(0, count)) if latest_draw_no - i > 0]

        if self.config.fetch_workers > 1 and len(indices) > 1:
            fetched = self._fetch_parallel(indices)
        else:
            fetched = [self._fetch_for_window(draw_no) for draw_no in indices]

        draws: List[DrawRecord] = []
        seen = set()
        for draw_no, draw in sorted(fetched, key=lambda item: item[0], reverse=True):
            if draw is None or draw_no in seen:
                continue
            seen.add(draw_no)
            draws.append(draw)

        if len(draws) < len(indices):
            logger.warning(
                f"Window from draw {latest_draw_no}: {len(draws)}/{len(indices)} draws available"
            )
        else:
            logger.info(f"Window from draw {latest_draw_no}: fetched {len(draws)} draws")

        return draws, len(indices)

    def _fetch_parallel(self, indices: List[int]) -> List[Tuple[int, Optional[DrawRecord]]]:
        local = threading.local()
        worker_sessions: List[requests.Session] = []

        def fetch_in_worker(draw_no: int) -> Tuple[int, Optional[DrawRecord]]:
            session = getattr(local, "session", None)
            if session is None:
                session = self.session_factory()
                local.session = session
                worker_sessions.append(session)
            return self._fetch_for_window(draw_no, session)

        try:
            with ThreadPoolExecutor(max_workers=self.config.fetch_workers) as executor:
                return list(executor.map(fetch_in_worker, indices))
        finally:
            for session in worker_sessions:
                session.close()

    def get_most_recent_draws(self, count: int, now: Optional[datetime] = None) -> Tuple[List[DrawRecord], int]:
        """
        Discover the latest draw and return the trailing window from it.

        Returns:
            Tuple of (draws newest-first, latest draw number)

        Raises:
            DiscoveryError: If the latest draw cannot be determined
        """
        latest_draw_no = self.discover_latest_draw_index(now)
        draws, _ = self.get_recent_draws(count, latest_draw_no)
        return draws, latest_draw_no

    def cache_stats(self) -> Dict:
        return {"entries": len(self.cache), "ttl_seconds": self.config.cache_ttl_seconds}


def create_draw_loader(config: Optional[LottoConfig] = None,
                       cache: Optional[DrawCache] = None) -> DrawLoader:
    """Build a DrawLoader with its own cache unless one is supplied."""
    config = config or get_lotto_config()
    cache = cache if cache is not None else DrawCache(ttl_seconds=config.cache_ttl_seconds)
    return DrawLoader(cache=cache, config=config)
