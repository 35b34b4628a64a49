"""
Unified game schema served by every sport route.
"""

from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


Sport = Literal["nba", "nfl", "football", "cbb", "cfb", "mma"]

SUPPORTED_SPORTS: Tuple[str, ...] = ("nba", "nfl", "football", "cbb", "cfb", "mma")


class TeamRef(BaseModel):
    """One side of a game: a team, or a fighter for MMA."""

    id: Union[int, str]
    name: str
    abbr: Optional[str] = None


class Score(BaseModel):
    home: Optional[int] = None
    away: Optional[int] = None


class UnifiedGame(BaseModel):
    """Provider-independent game record."""

    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    sport: Sport
    date: str
    datetime_utc: Optional[str] = Field(default=None, alias="datetimeUtc")
    status: Optional[str] = None
    home: TeamRef
    away: TeamRef
    score: Score

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
