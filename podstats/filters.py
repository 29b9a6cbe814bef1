from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from podstats.config import ALL_PLAYERS, DEFAULT_SORT_KEY, SORT_KEYS


SORT_KEY_ALIASES = {"win_rate": "winrate", "win rate": "winrate", "total_games": "games"}


@dataclass(frozen=True)
class DashboardFilters:
    player: str = ALL_PLAYERS
    include_unplayed: bool = False
    sort_key: str = DEFAULT_SORT_KEY


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def normalize_sort_key(value: object) -> str:
    key = str(value or "").strip().lower()
    key = SORT_KEY_ALIASES.get(key, key)
    return key if key in SORT_KEYS else DEFAULT_SORT_KEY


def normalize_filters(raw: dict, *, available_players: Optional[Iterable[str]] = None) -> DashboardFilters:
    players = list(available_players or [])

    player = str(raw.get("player") or ALL_PLAYERS).strip()
    if player != ALL_PLAYERS and player not in players:
        player = ALL_PLAYERS

    return DashboardFilters(
        player=player,
        include_unplayed=_as_bool(raw.get("include_unplayed", False)),
        sort_key=normalize_sort_key(raw.get("sort_key")),
    )
