from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api_lotto_endpoints import lotto_router, set_lotto_components
from src.config import get_lotto_config
from src.date_utils import DateManager
from src.draw_cache import DrawCache
from src.loader import create_draw_loader
from src.orchestrator import LottoAnalysisOrchestrator

# --- Shared components ---
# One cache per process; every request sees the same entries.
config = get_lotto_config()
draw_cache = DrawCache(ttl_seconds=config.cache_ttl_seconds)
draw_loader = create_draw_loader(config=config, cache=draw_cache)
orchestrator = LottoAnalysisOrchestrator(loader=draw_loader, config=config)

APP_START_TIME_UTC = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    global APP_START_TIME_UTC
    APP_START_TIME_UTC = datetime.now(timezone.utc)
    set_lotto_components(orchestrator)
    logger.info(f"Lotto API started (fallback draw {config.fallback_draw_no}, cache TTL {config.cache_ttl_seconds}s)")
    yield
    logger.info(f"Lotto API shutting down ({len(draw_cache)} cached draws dropped)")
    draw_cache.clear()


app = FastAPI(
    title="Lotto 6/45 Statistics API",
    version="1.0.0",
    description="로또 6/45 과거 당첨 번호 통계 및 추천 API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(lotto_router)


@app.get("/api/v1/health")
def health():
    """Liveness plus cache and calendar info."""
    estimated_draw_no = DateManager.estimate_draw_index()
    return {
        "status": "ok",
        "started_at": APP_START_TIME_UTC.isoformat() if APP_START_TIME_UTC else None,
        "cache": draw_loader.cache_stats(),
        "estimated_draw_no": estimated_draw_no,
        "estimated_draw_date": DateManager.calculate_draw_date(estimated_draw_no),
        "fallback_draw_no": config.fallback_draw_no,
    }
