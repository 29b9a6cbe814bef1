from __future__ import annotations

import os
from pathlib import Path
from types import MappingProxyType


DATA_DIR = Path(__file__).resolve().parents[1]
DATA_FILE_NAME = "Game Tracking.xlsx"
DATA_FILE_ENV = "PODSTATS_DATA_FILE"

PLAYERS_TABLE = "Players"
DECKS_TABLE = "Decks"
GAMES_TABLE = "Games"
GAME_PLAYERS_TABLE = "Game Players"
WORKBOOK_TABLES = (PLAYERS_TABLE, DECKS_TABLE, GAMES_TABLE, GAME_PLAYERS_TABLE)

DELIMITED_COLUMNS = ("DeckID", "Commander", "PlayerName", "Total Games", "Wins", "Losses")
DELIMITED_SUFFIXES = {".csv", ".tsv", ".txt"}

ALL_PLAYERS = "All"
PLACEHOLDER = "—"
SORT_KEYS = ("games", "wins", "winrate")
DEFAULT_SORT_KEY = "games"
DOMINANT_MIN_GAMES = 2

ARCHIDEKT_DECK_URL = "https://archidekt.com/decks/{ref}"

SCRYFALL_NAMED_URL = "https://api.scryfall.com/cards/named"
ENRICH_BATCH_SIZE = 5
ENRICH_BATCH_PAUSE_S = 0.1
ENRICH_TIMEOUT_S = 10.0

COLOR_NAMES = MappingProxyType(
    {
        "W": "White",
        "U": "Blue",
        "B": "Black",
        "R": "Red",
        "G": "Green",
        "C": "Colorless",
    }
)


def get_source_file() -> Path:
    override = os.environ.get(DATA_FILE_ENV, "").strip()
    if override:
        path = Path(override).expanduser()
        return path if path.is_absolute() else DATA_DIR / path
    return DATA_DIR / DATA_FILE_NAME
