"""
balldontlie NBA game normalization.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .models import Score, TeamRef, UnifiedGame


class BalldontlieTeam(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    full_name: str
    abbreviation: str
    city: Optional[str] = None
    name: Optional[str] = None
    conference: Optional[str] = None
    division: Optional[str] = None

    def ref(self) -> TeamRef:
        return TeamRef(id=self.id, name=self.full_name, abbr=self.abbreviation)


class BalldontlieGame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    date: str
    datetime: Optional[str] = None
    season: Optional[int] = None
    status: Optional[str] = None
    period: Optional[int] = None
    time: Optional[str] = None
    postseason: bool = False
    home_team_score: Optional[int] = None
    visitor_team_score: Optional[int] = None
    home_team: BalldontlieTeam
    visitor_team: BalldontlieTeam


def map_balldontlie_game(raw: Any) -> UnifiedGame:
    """Map one raw balldontlie game onto the unified schema.

    Raises pydantic's ``ValidationError`` when required fields are missing.
    """
    game = BalldontlieGame.model_validate(raw)
    return UnifiedGame(
        id=game.id,
        sport="nba",
        date=game.date,
        datetime_utc=game.datetime,
        status=game.status,
        home=game.home_team.ref(),
        away=game.visitor_team.ref(),
        score=Score(home=game.home_team_score, away=game.visitor_team_score),
    )
