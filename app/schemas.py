from pydantic import BaseModel, Field
from typing import Optional

from app.ingestion.schema import Game


class ScoreboardResponse(BaseModel):
    league: str
    label: str
    games: list[Game]
    last_updated: str = Field(alias="lastUpdated")
    refresh_interval: int = Field(alias="refreshInterval")
    notice: Optional[str] = None
    dates: Optional[list[str]] = None

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    error: str
    status: Optional[int] = None
    detail: Optional[str] = None


class NewsArticle(BaseModel):
    id: str
    title: str
    summary: str
    league: str
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    author: Optional[str] = None
    url: Optional[str] = None

    class Config:
        populate_by_name = True


class NewsResponse(BaseModel):
    articles: list[NewsArticle]
    refresh_interval: int = Field(alias="refreshInterval")

    class Config:
        populate_by_name = True


class LeagueOut(BaseModel):
    key: str
    label: str
    sport: str
