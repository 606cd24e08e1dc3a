from typing import Optional

from pydantic import BaseModel


class PriceRequest(BaseModel):
    query: Optional[str] = None


class NoResultsResponse(BaseModel):
    message: str = "No results found"
    query: str


class HealthResponse(BaseModel):
    status: str
    cacheSize: int
    hasToken: Optional[bool] = None
    timestamp: str


class CacheStatsResponse(BaseModel):
    totalEntries: int
    validEntries: int
    cacheDurationHours: int


class MessageResponse(BaseModel):
    message: str
