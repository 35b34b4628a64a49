"""
ESPN scoreboard event normalization.

Scoreboard competitors come in two shapes: team sports carry a ``team``
object, MMA carries an ``athlete``. Each shape is parsed into its own model
and turned into a :class:`TeamRef`; anything else falls back to the bare
competitor fields.
"""

from __future__ import annotations

import math
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .models import Score, TeamRef, UnifiedGame


class _EspnModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


class EspnTeam(_EspnModel):
    id: Optional[str] = None
    uid: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    name: Optional[str] = None
    short_display_name: Optional[str] = Field(default=None, alias="shortDisplayName")
    abbreviation: Optional[str] = None


class EspnAthlete(_EspnModel):
    id: Optional[str] = None
    uid: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    full_name: Optional[str] = Field(default=None, alias="fullName")


class _Competitor(_EspnModel):
    home_away: Optional[str] = Field(default=None, alias="homeAway")
    score: Optional[Any] = None

    def score_value(self) -> Optional[int]:
        return to_int_or_none(self.score)


class TeamCompetitor(_Competitor):
    kind: Literal["team"] = "team"
    team: EspnTeam

    def side(self) -> TeamRef:
        team = self.team
        return TeamRef(
            id=first_text(team.id, team.uid) or "team",
            name=first_text(team.display_name, team.name, team.short_display_name) or "Team",
            abbr=first_text(team.abbreviation),
        )


class AthleteCompetitor(_Competitor):
    kind: Literal["athlete"] = "athlete"
    athlete: EspnAthlete

    def side(self) -> TeamRef:
        athlete = self.athlete
        return TeamRef(
            id=first_text(athlete.id, athlete.uid) or "athlete",
            name=first_text(athlete.display_name, athlete.full_name) or "Fighter",
            abbr=None,
        )


class BareCompetitor(_Competitor):
    kind: Literal["bare"] = "bare"
    id: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")

    def side(self) -> TeamRef:
        return TeamRef(id=first_text(self.id) or "side", name=first_text(self.display_name) or "Side", abbr=None)


Competitor = Union[TeamCompetitor, AthleteCompetitor, BareCompetitor]


class EspnStatusType(_EspnModel):
    description: Optional[str] = None
    short_detail: Optional[str] = Field(default=None, alias="shortDetail")
    name: Optional[str] = None


class EspnStatus(_EspnModel):
    type: Optional[EspnStatusType] = None

    @field_validator("type", mode="before")
    @classmethod
    def _drop_malformed_type(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class EspnCompetition(_EspnModel):
    id: Optional[str] = None
    date: Optional[str] = None
    status: Optional[EspnStatus] = None
    competitors: List[Any] = Field(default_factory=list)

    @field_validator("competitors", mode="before")
    @classmethod
    def _competitors_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @field_validator("status", mode="before")
    @classmethod
    def _drop_malformed_status(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    def status_text(self) -> Optional[str]:
        status_type = self.status.type if self.status else None
        if status_type is None:
            return None
        return first_text(status_type.description, status_type.short_detail, status_type.name)


class EspnEvent(_EspnModel):
    id: Optional[str] = None
    date: Optional[str] = None
    competitions: List[Any] = Field(default_factory=list)

    @field_validator("competitions", mode="before")
    @classmethod
    def _competitions_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


def first_text(*values: Any) -> Optional[str]:
    """Return the first value that is a non-blank string, stripped."""
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def to_int_or_none(value: Any) -> Optional[int]:
    """Parse ESPN score strings ("21", " 3 ") into ints; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def parse_competitor(raw: Any) -> Competitor:
    """Pick the competitor variant from the shape of the payload."""
    if not isinstance(raw, dict):
        return BareCompetitor()

    try:
        if isinstance(raw.get("team"), dict):
            return TeamCompetitor.model_validate(raw)
        if isinstance(raw.get("athlete"), dict):
            return AthleteCompetitor.model_validate(raw)
        return BareCompetitor.model_validate(raw)
    except PydanticValidationError:
        return BareCompetitor(homeAway=raw.get("homeAway") if isinstance(raw.get("homeAway"), str) else None)


def _parse_competition(event: EspnEvent) -> Optional[EspnCompetition]:
    if not event.competitions or not isinstance(event.competitions[0], dict):
        return None
    try:
        return EspnCompetition.model_validate(event.competitions[0])
    except PydanticValidationError:
        return None


def map_espn_event(raw: Any, sport: str, day: str) -> UnifiedGame:
    """Map one raw scoreboard event onto the unified schema."""
    try:
        event = EspnEvent.model_validate(raw if isinstance(raw, dict) else {})
    except PydanticValidationError:
        event = EspnEvent()

    competition = _parse_competition(event)
    competitors = [parse_competitor(c) for c in competition.competitors] if competition else []

    home_c = next((c for c in competitors if c.home_away == "home"), None)
    if home_c is None and competitors:
        home_c = competitors[0]
    away_c = next((c for c in competitors if c.home_away == "away"), None)
    if away_c is None and len(competitors) > 1:
        away_c = competitors[1]

    home = home_c.side() if home_c else TeamRef(id="home", name="Home")
    away = away_c.side() if away_c else TeamRef(id="away", name="Away")

    game_id = first_text(event.id, competition.id if competition else None)
    if game_id is None:
        game_id = f"{sport}-{day}-{home.id}-{away.id}"

    return UnifiedGame(
        id=game_id,
        sport=sport,
        date=day,
        datetime_utc=first_text(event.date, competition.date if competition else None),
        status=competition.status_text() if competition else None,
        home=home,
        away=away,
        score=Score(
            home=home_c.score_value() if home_c else None,
            away=away_c.score_value() if away_c else None,
        ),
    )
