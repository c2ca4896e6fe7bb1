# Lotto Service Configuration - CENTRALIZED
"""
Centralized configuration for the lotto statistics service.

Values resolve in this order: environment variable, ``config/config.ini``
(section ``[lotto]``), module default. The fallback draw number is a
manually maintained recent-known-good index and must be bumped by an
operator from time to time; set LOTTO_FALLBACK_DRAW_NO instead of editing
the code.
"""

import os
import configparser
from dataclasses import dataclass
from typing import Optional
from loguru import logger

DEFAULT_API_URL = "https://www.dhlottery.co.kr/common.do?method=getLottoNumber&drwNo={draw_no}"

# Recent known-good draw (2026-09-05)
DEFAULT_FALLBACK_DRAW_NO = 1240

# 6 hours
DEFAULT_CACHE_TTL_SECONDS = 6 * 60 * 60

DEFAULT_DISCOVERY_MAX_ATTEMPTS = 20
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 10.0
DEFAULT_RETRY_TOTAL = 3
DEFAULT_RETRY_BACKOFF = 0.5
DEFAULT_FETCH_WORKERS = 1
DEFAULT_ANALYSIS_WINDOW = 24
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"

CONFIG_INI_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "config.ini")


@dataclass(frozen=True)
class LottoConfig:
    api_url: str = DEFAULT_API_URL
    fallback_draw_no: int = DEFAULT_FALLBACK_DRAW_NO
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    discovery_max_attempts: int = DEFAULT_DISCOVERY_MAX_ATTEMPTS
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    retry_total: int = DEFAULT_RETRY_TOTAL
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    fetch_workers: int = DEFAULT_FETCH_WORKERS
    default_window: int = DEFAULT_ANALYSIS_WINDOW
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL


# Cached configuration
_lotto_config: Optional[LottoConfig] = None


def _read_ini(path: str) -> dict:
    parser = configparser.ConfigParser()
    if not os.path.exists(path):
        return {}
    parser.read(path, encoding="utf-8")
    if not parser.has_section("lotto"):
        logger.warning(f"{path} has no [lotto] section, ignoring it")
        return {}
    # configparser lowercases keys
    return {key.upper(): value for key, value in parser.items("lotto")}


def _lookup(name: str, ini_values: dict, default, cast):
    raw = os.getenv(name)
    source = "environment"
    if raw is None:
        raw = ini_values.get(name)
        source = "config.ini"
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {name} from {source}: {raw!r}, using default {default!r}")
        return default


def load_lotto_config(ini_path: str = CONFIG_INI_PATH) -> LottoConfig:
    """
    Build a LottoConfig from environment variables and config.ini.

    Args:
        ini_path: Path to an optional INI file with a [lotto] section

    Returns:
        LottoConfig: Resolved configuration
    """
    ini_values = _read_ini(ini_path)

    config = LottoConfig(
        api_url=_lookup("LOTTO_API_URL", ini_values, DEFAULT_API_URL, str),
        fallback_draw_no=_lookup("LOTTO_FALLBACK_DRAW_NO", ini_values, DEFAULT_FALLBACK_DRAW_NO, int),
        cache_ttl_seconds=_lookup("LOTTO_CACHE_TTL_SECONDS", ini_values, DEFAULT_CACHE_TTL_SECONDS, float),
        discovery_max_attempts=_lookup(
            "LOTTO_DISCOVERY_MAX_ATTEMPTS", ini_values, DEFAULT_DISCOVERY_MAX_ATTEMPTS, int
        ),
        connect_timeout=_lookup("LOTTO_CONNECT_TIMEOUT", ini_values, DEFAULT_CONNECT_TIMEOUT, float),
        read_timeout=_lookup("LOTTO_READ_TIMEOUT", ini_values, DEFAULT_READ_TIMEOUT, float),
        retry_total=_lookup("LOTTO_RETRY_TOTAL", ini_values, DEFAULT_RETRY_TOTAL, int),
        retry_backoff=_lookup("LOTTO_RETRY_BACKOFF", ini_values, DEFAULT_RETRY_BACKOFF, float),
        fetch_workers=max(1, _lookup("LOTTO_FETCH_WORKERS", ini_values, DEFAULT_FETCH_WORKERS, int)),
        default_window=_lookup("LOTTO_DEFAULT_WINDOW", ini_values, DEFAULT_ANALYSIS_WINDOW, int),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or ini_values.get("GEMINI_API_KEY"),
        gemini_model=_lookup("GEMINI_MODEL", ini_values, DEFAULT_GEMINI_MODEL, str),
    )

    logger.info(
        f"Lotto config loaded (fallback_draw_no={config.fallback_draw_no}, "
        f"cache_ttl={config.cache_ttl_seconds}s, workers={config.fetch_workers})"
    )
    return config


def get_lotto_config() -> LottoConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _lotto_config

    if _lotto_config is None:
        _lotto_config = load_lotto_config()
    return _lotto_config


def reset_lotto_config() -> None:
    """Drop the cached configuration so the next call re-reads it."""
    global _lotto_config
    _lotto_config = None
