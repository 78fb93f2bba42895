import logging
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
import uvicorn
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from starlette.responses import Response

from src.videocache.auction import AuctionManager
from src.videocache.config import EngineConfig
from src.videocache.engine import VideoCacheEngine
from src.videocache.schema import Bid

# --- Metrics ---
REQUEST_COUNT = Counter('videocache_http_requests_total', 'HTTP requests served', ['route'])
ERROR_COUNT = Counter('videocache_http_errors_total', 'HTTP errors', ['type'])


class VideoBid(BaseModel):
    requestId: str
    bidder: str
    adId: str
    ttl: int
    vastXml: Optional[str] = None
    vastUrl: Optional[str] = None
    vastImpUrl: Optional[Union[str, List[str]]] = None
    customCacheKey: Optional[str] = None


class CachedBid(BaseModel):
    adId: str
    bidder: str
    videoCacheKey: Optional[str] = None
    vastUrl: Optional[str] = None


def create_app(engine_config: Optional[EngineConfig] = None, engine: Optional[VideoCacheEngine] = None) -> FastAPI:
    engine_config = engine_config or EngineConfig.from_env()
    logging.basicConfig(level=engine_config.log_level, format=engine_config.log_format)

    app = FastAPI(title="Video Cache Engine", version="1.0.0")
    auctions = engine.auction_manager if engine is not None else AuctionManager()
    engine = engine or VideoCacheEngine(auction_manager=auctions, engine_config=engine_config)
    app.state.engine = engine

    @app.on_event("startup")
    async def startup_event():
        logging.info(f"Starting up {engine_config.service_name}...")

    @app.on_event("shutdown")
    async def shutdown_event():
        logging.info("Shutting down...")
        await engine.aclose()

    @app.get("/metrics")
    async def metrics():
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for k8s/LB."""
        return {
            "status": "healthy",
            "service": engine_config.service_name,
            "use_local": engine_config.cache.use_local,
            "pending": engine.batcher.pending,
        }

    @app.post("/auctions/{auction_id}/bids", status_code=202)
    async def submit_bid(auction_id: str, body: VideoBid):
        """Queue a video bid for caching. It shows up in the auction once stored."""
        REQUEST_COUNT.labels(route="submit_bid").inc()
        if not body.vastXml and not body.vastUrl:
            ERROR_COUNT.labels(type="no_vast").inc()
            raise HTTPException(status_code=422, detail="Either vastXml or vastUrl is required")

        auction = auctions.get_or_create(auction_id)
        bid = Bid(auctionId=auction_id, **body.model_dump())
        engine.cache_video_bid(auction, bid, lambda: logging.debug(f"Bid {bid.adId} added to auction {auction_id}"))
        return {"queued": True, "adId": bid.adId}

    @app.get("/auctions/{auction_id}/bids", response_model=List[CachedBid])
    async def list_bids(auction_id: str):
        REQUEST_COUNT.labels(route="list_bids").inc()
        auction = auctions.get(auction_id)
        if auction is None:
            raise HTTPException(status_code=404, detail="Unknown auction")
        return [
            CachedBid(adId=b.adId, bidder=b.bidder, videoCacheKey=b.videoCacheKey, vastUrl=b.vastUrl)
            for b in auction.getBidsReceived()
        ]

    @app.post("/auctions/{auction_id}/expire")
    async def expire_auction(auction_id: str):
        REQUEST_COUNT.labels(route="expire").inc()
        if not auctions.expire(auction_id):
            raise HTTPException(status_code=404, detail="Unknown auction")
        return {"expired": auction_id}

    @app.get("/cache-url/{uuid}")
    async def cache_url(uuid: str):
        return {"url": engine.get_cache_url(uuid)}

    @app.get("/vast")
    async def combined_vast(adTagUrl: str = Query(...)):
        """Ad server wrapper with the locally cached bid VAST spliced in."""
        REQUEST_COUNT.labels(route="vast").inc()
        vast = await engine.resolve_via_ad_server(adTagUrl)
        if vast is None:
            ERROR_COUNT.labels(type="fetch_error").inc()
            raise HTTPException(status_code=404, detail="No combined VAST available")
        return Response(vast, media_type="application/xml")

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
