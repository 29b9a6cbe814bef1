from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Sequence

from podstats.config import ALL_PLAYERS, ARCHIDEKT_DECK_URL
from podstats.filters import DashboardFilters
from podstats.metrics_overview import win_rate
from podstats.models import Deck


SORT_VALUES: Dict[str, Callable[[Deck], int]] = {
    "games": lambda d: d.games,
    "wins": lambda d: d.wins,
    "winrate": lambda d: win_rate(d.wins, d.games),
}


def filter_and_sort(
    decks: Sequence[Deck],
    player: str = ALL_PLAYERS,
    include_unplayed: bool = False,
    sort_key: str = "games",
) -> List[Deck]:
    """Decks for one player (or everyone), highest ``sort_key`` first.

    Ties on the sort key fall back to ascending deck id.
    """
    if sort_key not in SORT_VALUES:
        raise ValueError(f"unknown sort key {sort_key!r}; expected one of {sorted(SORT_VALUES)}")
    value = SORT_VALUES[sort_key]

    selected = list(decks) if player == ALL_PLAYERS else [d for d in decks if d.player == player]
    if not include_unplayed:
        selected = [d for d in selected if d.games > 0]
    return sorted(selected, key=lambda d: (-value(d), d.id))


def deck_row(deck: Deck, images: Mapping[str, str]) -> Dict[str, Any]:
    row = asdict(deck)
    row["themes"] = list(deck.themes)
    row["win_rate"] = win_rate(deck.wins, deck.games)
    row["image_url"] = images.get(deck.commander)
    row["deck_url"] = ARCHIDEKT_DECK_URL.format(ref=deck.external_ref) if deck.external_ref else None
    return row


def compute_deck_table(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dataset = ctx["dataset"]
    filtered: List[Deck] = ctx.get("filtered_decks", [])
    images: Mapping[str, str] = ctx.get("images", {})
    return {
        "filters": asdict(filters),
        "rows": [deck_row(d, images) for d in filtered],
        "shown": len(filtered),
        "total": len(dataset.decks),
    }


def compute_sessions(ctx: Dict[str, Any]) -> Dict[str, Any]:
    sessions = list(ctx["dataset"].sessions)
    dated = sorted((s for s in sessions if s.date is not None), key=lambda s: s.date, reverse=True)
    undated = [s for s in sessions if s.date is None]
    rows = []
    for s in dated + undated:
        row = asdict(s)
        row["date"] = s.date.isoformat() if isinstance(s.date, datetime) else None
        rows.append(row)
    return {"count": len(sessions), "rows": rows}
