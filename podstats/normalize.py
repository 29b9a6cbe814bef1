from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from podstats.config import (
    DECKS_TABLE,
    DELIMITED_COLUMNS,
    GAME_PLAYERS_TABLE,
    GAMES_TABLE,
    PLACEHOLDER,
    PLAYERS_TABLE,
)
from podstats.data import Row, excel_serial_to_datetime
from podstats.errors import MissingColumn
from podstats.models import Dataset, Deck, Session


logger = logging.getLogger(__name__)

DECK_COLUMNS = ["DeckID", "Commander", "PlayerName", "Theme", "EstPower", "ArchidektID"]
TOTAL_COLUMNS = {"games": ("Total Games", "Games"), "wins": ("Wins",), "losses": ("Losses",)}
PARTICIPATION_COLUMNS = ["DeckID", "WinFlag"]
SESSION_COLUMNS = ["GameID", "Date", "Location", "TotalPlayers", "Notes"]


def frame_with_columns(rows: Sequence[Row], table: str, columns: Iterable[str]) -> pd.DataFrame:
    """Build a frame from reader rows, adding any absent expected column as all-None."""
    df = pd.DataFrame(list(rows), dtype=object)
    for col in columns:
        if col in df.columns:
            continue
        if rows:
            logger.info("%s; using defaults", MissingColumn(table, col))
        df[col] = None
    return df.astype(object).where(df.notna(), None)


def text_or_none(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def deck_key(value: object) -> Optional[str]:
    return text_or_none(value)


def to_number(value: object) -> Optional[float]:
    if value is None:
        return None
    num = pd.to_numeric(value, errors="coerce")
    if pd.isna(num) or not np.isfinite(num):
        return None
    return float(num)


def as_count(value: object) -> int:
    num = to_number(value)
    if num is None or num < 0:
        return 0
    return int(num)


def split_themes(value: object) -> Tuple[str, ...]:
    raw = text_or_none(value)
    if raw is None:
        return ()
    themes = [t.strip() for t in raw.split(",")]
    return tuple(dict.fromkeys(t for t in themes if t))


def win_flag(value: object) -> Optional[bool]:
    """1 -> win, 0 -> loss, anything else -> neither."""
    if isinstance(value, bool):
        return value
    num = to_number(value)
    if num == 1:
        return True
    if num == 0:
        return False
    return None


def unique_names(values: Iterable[object]) -> List[str]:
    names = (text_or_none(v) for v in values)
    return list(dict.fromkeys(n for n in names if n))


# ---------------- Joins ----------------
def tally_participation(rows: Sequence[Row]) -> Dict[str, Dict[str, int]]:
    """Group participation rows by deck id into games/wins/losses."""
    df = frame_with_columns(rows, GAME_PLAYERS_TABLE, PARTICIPATION_COLUMNS)
    if df.empty:
        return {}
    df["deck_id"] = df["DeckID"].map(deck_key)
    df = df.dropna(subset=["deck_id"])
    if df.empty:
        return {}
    flags = df["WinFlag"].map(win_flag)
    df["win"] = flags.eq(True).astype(int)
    df["loss"] = flags.eq(False).astype(int)
    grouped = df.groupby("deck_id", sort=False).agg(games=("win", "size"), wins=("win", "sum"), losses=("loss", "sum"))
    return {
        str(deck_id): {"games": int(r.games), "wins": int(r.wins), "losses": int(r.losses)}
        for deck_id, r in grouped.iterrows()
    }


def _row_totals(row: Mapping[str, object]) -> Dict[str, int]:
    totals = {}
    for field_name, columns in TOTAL_COLUMNS.items():
        value = next((row.get(c) for c in columns if row.get(c) is not None), None)
        totals[field_name] = as_count(value)
    return totals


def build_decks(
    rows: Sequence[Row],
    stats: Mapping[str, Dict[str, int]],
    *,
    table: str = DECKS_TABLE,
    columns: Sequence[str] = DECK_COLUMNS,
) -> List[Deck]:
    df = frame_with_columns(rows, table, columns)
    if df.empty:
        return []
    # Last row wins; the surviving deck keeps its id's first position.
    # Rows without an id never collide: they are keyed by row position.
    latest: Dict[object, Row] = {}
    for pos, row in enumerate(df.to_dict(orient="records")):
        key = deck_key(row.get("DeckID"))
        latest[key if key is not None else pos] = row

    decks: List[Deck] = []
    for key, row in latest.items():
        has_id = isinstance(key, str)
        deck_id = key if has_id else PLACEHOLDER
        totals = (stats.get(deck_id) if has_id else None) or _row_totals(row)
        ref = text_or_none(row.get("ArchidektID"))
        decks.append(
            Deck(
                id=deck_id,
                commander=text_or_none(row.get("Commander")) or PLACEHOLDER,
                player=text_or_none(row.get("PlayerName")) or PLACEHOLDER,
                themes=split_themes(row.get("Theme")),
                games=totals["games"],
                wins=totals["wins"],
                losses=totals["losses"],
                power=to_number(row.get("EstPower")),
                external_ref=ref,
            )
        )
    return decks


def build_sessions(rows: Sequence[Row]) -> List[Session]:
    df = frame_with_columns(rows, GAMES_TABLE, SESSION_COLUMNS)
    sessions: List[Session] = []
    for row in df.to_dict(orient="records"):
        sessions.append(
            Session(
                id=row.get("GameID"),
                date=excel_serial_to_datetime(row.get("Date")),
                location=text_or_none(row.get("Location")),
                notes=text_or_none(row.get("Notes")),
                player_count=as_count(row.get("TotalPlayers")),
            )
        )
    return sessions


def _with_deck_owners(players: List[str], decks: Sequence[Deck]) -> List[str]:
    extra = [p for p in unique_names(d.player for d in decks) if p not in players and p != PLACEHOLDER]
    if extra:
        logger.info("deck owners missing from the player registry: %s", ", ".join(extra))
    return players + extra


# ---------------- Public API ----------------
def normalize(
    rows: Union[Sequence[Row], Mapping[str, Sequence[Row]]],
    player_order: Optional[Sequence[str]] = None,
) -> Dataset:
    """Turn reader output into decks, players and sessions.

    A mapping is treated as the multi-table workbook (Players / Decks / Games /
    Game Players); a plain sequence is the single-table delimited export with
    pre-aggregated totals. Pure: identical input gives identical output.
    """
    if isinstance(rows, Mapping):
        registry = unique_names(r.get("PlayerName") for r in rows.get(PLAYERS_TABLE, []))
        stats = tally_participation(rows.get(GAME_PLAYERS_TABLE, []))
        decks = build_decks(rows.get(DECKS_TABLE, []), stats)
        sessions = build_sessions(rows.get(GAMES_TABLE, []))
    else:
        decks = build_decks(list(rows), {}, table="delimited", columns=DELIMITED_COLUMNS)
        sessions = []
        registry = []

    if player_order:
        registry = unique_names(player_order)
    players = _with_deck_owners(registry, decks)
    return Dataset(decks=tuple(decks), players=tuple(players), sessions=tuple(sessions))
