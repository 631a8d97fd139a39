import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slotfeed.serving.api_schemas import (
    FeedSlot, FeedStatsModel, FeedResponse, FeedEvent
)
from slotfeed.serving.feed_core import FeedEngine, create_engine
from slotfeed.data.schemas import FeedResult
from slotfeed.data.validators import InvalidFeedRequest
from slotfeed.config.feed_config import FeedConfig
from slotfeed.config.settings import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Slot-Roll Feed API",
    description="Per-slot pool selection over random, trending and personalized pools",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state (initialized on startup)
feed_engine: Optional[FeedEngine] = None


@app.on_event("startup")
async def startup_event():
    """
    Wire stores and the feed engine on startup.
    """
    global feed_engine
    
    config = FeedConfig(PROFILE_CACHE_TTL_SECONDS=settings.profile_cache_ttl_seconds)
    logger.info("Loading feed engine from %s (seed=%s)", settings.data_dir, settings.seed)
    feed_engine = create_engine(
        settings.data_dir,
        config=config,
        seed=settings.seed,
        signal_timeout=settings.signal_timeout_seconds
    )
    logger.info("Server ready")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Release the signal worker pool.
    """
    global feed_engine
    
    if feed_engine is not None and feed_engine.caller is not None:
        feed_engine.caller.shutdown()
        logger.info("Signal workers shut down")
    feed_engine = None


@app.exception_handler(InvalidFeedRequest)
async def invalid_feed_request_handler(request: Request, exc: InvalidFeedRequest):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _require_engine() -> FeedEngine:
    if feed_engine is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return feed_engine


def _to_response(result: FeedResult, algorithm: str) -> FeedResponse:
    return FeedResponse(
        user_id=result.requester_id,
        algorithm=algorithm,
        slots=[
            FeedSlot(
                position=e.position,
                item_id=e.item_id,
                pool=e.pool,
                rolled_pool=e.rolled_pool,
                roll_value=e.roll_value
            )
            for e in result.entries
        ],
        stats=FeedStatsModel(
            total_slots=result.stats.total_slots,
            filled_slots=result.stats.filled_slots,
            pool_distribution=result.stats.pool_distribution,
            expected_distribution=result.stats.expected_distribution
        ),
        next_cursor=result.next_cursor
    )


@app.get("/")
def root():
    return {"message": "Slot-Roll Feed API", "status": "online"}


@app.get("/health")
def health_check():
    return {"status": "healthy" if feed_engine is not None else "starting"}


@app.get("/feed", response_model=FeedResponse)
def personalized_feed(
    user_id: str = Query(..., min_length=1, description="ID of the requesting user"),
    limit: int = Query(settings.default_slot_count, ge=1, le=settings.max_slot_count),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
):
    """
    Authenticated feed: 10% RANDOM, 10% TRENDING, 80% PERSONALIZED per slot.
    """
    engine = _require_engine()
    result = engine.generate_feed(user_id, limit, cursor=cursor)
    return _to_response(result, "slot-roll-personalized")


@app.get("/feed/public", response_model=FeedResponse)
def public_feed(
    limit: int = Query(settings.default_slot_count, ge=1, le=settings.max_slot_count),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
):
    """
    Anonymous feed: 30% RANDOM, 70% TRENDING per slot.
    """
    engine = _require_engine()
    result = engine.generate_feed(None, limit, cursor=cursor)
    return _to_response(result, "slot-roll-public")


@app.post("/events", status_code=204)
def feed_event(event: FeedEvent):
    """
    Relationship / mute / block mutation: drops the affected cached profiles.
    """
    engine = _require_engine()
    if engine.invalidation is not None:
        engine.invalidation.handle(event.kind, event.actor_id, event.target_id)


if __name__ == "__main__":
    uvicorn.run(
        "slotfeed.serving.api_main:app",
        host=settings.host,
        port=settings.port,
        reload=False
    )
