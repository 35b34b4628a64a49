"""
Normalization of heterogeneous upstream payloads into the unified game schema.
"""

from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger

from .balldontlie import BalldontlieGame, map_balldontlie_game
from .espn import map_espn_event, parse_competitor
from .models import SUPPORTED_SPORTS, Score, Sport, TeamRef, UnifiedGame


logger = get_logger("schedule.normalization")


def normalize_games(sport: str, raw_items: Any, day: str) -> List[Dict[str, Any]]:
    """Normalize a cached or freshly fetched raw payload for ``sport``.

    Items that cannot be parsed are skipped and logged rather than failing
    the whole response.
    """
    if not isinstance(raw_items, list):
        logger.warning("Upstream payload is not a list", sport=sport, payload_type=type(raw_items).__name__)
        return []

    games: List[Dict[str, Any]] = []
    for raw in raw_items:
        try:
            if sport == "nba":
                game = map_balldontlie_game(raw)
            else:
                game = map_espn_event(raw, sport, day)
        except PydanticValidationError as exc:
            logger.warning("Skipping malformed upstream game", sport=sport, error=str(exc))
            continue
        games.append(game.to_dict())
    return games


__all__ = [
    "BalldontlieGame",
    "SUPPORTED_SPORTS",
    "Score",
    "Sport",
    "TeamRef",
    "UnifiedGame",
    "map_balldontlie_game",
    "map_espn_event",
    "normalize_games",
    "parse_competitor",
]
