"""Internal data contract for normalized scoreboard games."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

GameState = Literal["pre", "in", "post"]
HomeAway = Literal["home", "away"]


class TeamScore(BaseModel):
    id: str
    display_name: str = Field(alias="displayName")
    short_display_name: str = Field(alias="shortDisplayName")
    abbreviation: str
    logo: Optional[str] = None
    # None means "not played / not provided"; never coerced to 0.
    score: Optional[int] = None
    record: Optional[str] = None
    home_away: HomeAway = Field(alias="homeAway")

    class Config:
        populate_by_name = True


class GameStatus(BaseModel):
    state: GameState
    detail: str
    short_detail: str = Field(alias="shortDetail")

    class Config:
        populate_by_name = True


class Game(BaseModel):
    """
    A single normalized competition, as served to clients.
    """

    id: str
    # ISO-8601 UTC instant, or the raw upstream text when it could not be parsed.
    start_time: str = Field(alias="startTime")
    venue: Optional[str] = None
    broadcast: Optional[str] = None
    note: Optional[str] = None
    status: GameStatus
    home: TeamScore
    away: TeamScore

    class Config:
        populate_by_name = True
