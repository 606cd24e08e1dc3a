import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

# Load env vars early
load_dotenv()

# Local imports
from pricing_tools.cache import CACHE_DURATION_HOURS
from utils.logger import get_logger
from .config import load_settings
from .models import CacheStatsResponse, HealthResponse, MessageResponse, NoResultsResponse, PriceRequest
from .service import SoldPriceService, build_service

logger = get_logger("api")

app = FastAPI(title="eBay Sold Price API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_price_service: Optional[SoldPriceService] = None


def get_price_service() -> SoldPriceService:
    """Process-wide pipeline instance, built on first request."""
    global _price_service
    if _price_service is None:
        _price_service = build_service(load_settings())
    return _price_service


async def _price_response(service: SoldPriceService, query: str) -> JSONResponse:
    try:
        result = await service.lookup(query)
    except Exception as e:
        logger.exception(f"API error: {e}")
        return JSONResponse({"error": str(e)}, status_code=500)

    if result is None:
        return JSONResponse(NoResultsResponse(query=query).model_dump())
    return JSONResponse(result.to_dict())


# ------------------------------------------------------------
# HEALTH
# ------------------------------------------------------------
@app.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health(service: SoldPriceService = Depends(get_price_service)):
    return HealthResponse(
        status="ok",
        cacheSize=len(service.cache),
        hasToken=service.has_token,
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )


# ------------------------------------------------------------
# CACHE
# ------------------------------------------------------------
@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(service: SoldPriceService = Depends(get_price_service)):
    stats = service.cache.stats()
    return CacheStatsResponse(
        totalEntries=stats.total_entries,
        validEntries=stats.valid_entries,
        cacheDurationHours=CACHE_DURATION_HOURS,
    )


@app.post("/cache/clear", response_model=MessageResponse)
async def cache_clear(service: SoldPriceService = Depends(get_price_service)):
    service.cache.clear()
    logger.info("Cache cleared")
    return MessageResponse(message="Cache cleared")


# ------------------------------------------------------------
# SOLD PRICE LOOKUP
# ------------------------------------------------------------
@app.post("/api/ebay-price")
async def ebay_price_post(request: Request, service: SoldPriceService = Depends(get_price_service)):
    # Bodies that are absent, not JSON, or carry a non-string query all count as missing input
    raw = await request.body()
    try:
        body = PriceRequest.model_validate_json(raw or b"{}")
    except ValidationError:
        body = None

    query = body.query if body else None
    if not query:
        return JSONResponse({"error": "Missing query parameter"}, status_code=400)
    return await _price_response(service, query)


@app.get("/api/ebay-price")
async def ebay_price_get(q: Optional[str] = None, service: SoldPriceService = Depends(get_price_service)):
    if not q:
        return JSONResponse(
            {"error": "Missing q parameter", "usage": "/api/ebay-price?q=product+name"},
            status_code=400,
        )
    return await _price_response(service, q)


# ------------------------------------------------------------
# STARTUP
# ------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logger.info(f"🚀 eBay SOLD Price API running on port {settings.port}")
    logger.info(f"Health: http://localhost:{settings.port}/health")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
