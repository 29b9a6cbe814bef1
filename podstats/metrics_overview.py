from __future__ import annotations

from collections import Counter
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from podstats.charts import player_breakdown_chart, to_vega_spec
from podstats.config import COLOR_NAMES, DOMINANT_MIN_GAMES
from podstats.data import round_half_up
from podstats.filters import DashboardFilters
from podstats.models import Deck, PlayerStats


DECK_FRAME_COLUMNS = ["id", "commander", "player", "themes", "games", "wins", "losses", "power", "external_ref"]


def win_rate(wins: int, games: int) -> int:
    """Integer win percentage, rounded half-up; 0 when no games were played."""
    if not games:
        return 0
    return int(round_half_up(100 * wins / games))


def decks_frame(decks: Sequence[Deck]) -> pd.DataFrame:
    if not decks:
        return pd.DataFrame(columns=DECK_FRAME_COLUMNS)
    return pd.DataFrame([asdict(d) for d in decks], columns=DECK_FRAME_COLUMNS)


def per_player_breakdown(decks: Sequence[Deck], players: Sequence[str]) -> List[PlayerStats]:
    df = decks_frame(decks)
    grouped = (
        df.groupby("player", sort=False)
        .agg(deck_count=("id", "size"), total_games=("games", "sum"), total_wins=("wins", "sum"))
        .reindex(list(players), fill_value=0)
    )
    return [
        PlayerStats(
            player=str(player),
            deck_count=int(r.deck_count),
            total_games=int(r.total_games),
            total_wins=int(r.total_wins),
        )
        for player, r in grouped.iterrows()
    ]


def top_by_wins(stats: Sequence[PlayerStats]) -> Optional[PlayerStats]:
    ranked = sorted(stats, key=lambda s: s.total_wins, reverse=True)
    return ranked[0] if ranked else None


def top_by_games(stats: Sequence[PlayerStats]) -> Optional[PlayerStats]:
    ranked = sorted(stats, key=lambda s: s.total_games, reverse=True)
    return ranked[0] if ranked else None


def most_played_color(decks: Sequence[Deck], colors_by_commander: Mapping[str, Sequence[str]]) -> Optional[Dict[str, Any]]:
    # Unplayed decks still count once.
    tally: Counter = Counter()
    for deck in decks:
        for code in colors_by_commander.get(deck.commander) or ():
            tally[code] += max(deck.games, 1)
    if not tally:
        return None
    code, count = tally.most_common(1)[0]
    return {"code": code, "color": COLOR_NAMES.get(code, code), "count": int(count)}


def most_popular_theme(decks: Sequence[Deck]) -> Optional[Dict[str, Any]]:
    tally: Counter = Counter()
    for deck in decks:
        tally.update(dict.fromkeys(deck.themes, 1))
    if not tally:
        return None
    theme, count = tally.most_common(1)[0]
    return {"theme": theme, "count": int(count)}


def most_dominant(decks: Sequence[Deck], *, min_games: int = DOMINANT_MIN_GAMES) -> Optional[Deck]:
    eligible = [d for d in decks if d.games >= min_games]
    ranked = sorted(eligible, key=lambda d: win_rate(d.wins, d.games), reverse=True)
    return ranked[0] if ranked else None


def never_played_count(decks: Sequence[Deck]) -> int:
    return sum(1 for d in decks if d.games == 0)


def _player_summary(stats: Optional[PlayerStats]) -> Optional[Dict[str, Any]]:
    return asdict(stats) if stats is not None else None


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dataset = ctx["dataset"]
    decks = list(dataset.decks)
    stats: List[PlayerStats] = ctx.get("player_stats", [])
    colors: Mapping[str, Sequence[str]] = ctx.get("colors", {})

    dominant = most_dominant(decks)
    dominant_payload = None
    if dominant is not None:
        dominant_payload = {
            "id": dominant.id,
            "commander": dominant.commander,
            "player": dominant.player,
            "games": dominant.games,
            "wins": dominant.wins,
            "win_rate": win_rate(dominant.wins, dominant.games),
        }

    charts: Dict[str, Any] = {}
    if stats:
        charts["player_breakdown"] = to_vega_spec(player_breakdown_chart(stats))

    return {
        "filters": asdict(filters),
        "kpis": {
            "sessions": len(dataset.sessions),
            "decks": len(decks),
            "top_winner": _player_summary(top_by_wins(stats)),
            "most_active": _player_summary(top_by_games(stats)),
        },
        "superlatives": {
            "most_played_color": most_played_color(decks, colors),
            "most_popular_theme": most_popular_theme(decks),
            "most_dominant": dominant_payload,
            "never_played": never_played_count(decks),
        },
        "player_breakdown": [asdict(s) for s in stats],
        "charts": charts,
    }
