"""Shared pytest fixtures for podstats tests."""

import io

import pandas as pd
import pytest

from podstats.models import Deck


def build_workbook(sheets):
    """Write {sheet name: list of row dicts} to in-memory xlsx bytes."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
    return buf.getvalue()


@pytest.fixture
def workbook_sheets():
    return {
        "Players": [{"PlayerName": " Ana "}, {"PlayerName": "Ben"}, {"PlayerName": "Cy"}],
        "Decks": [
            {"DeckID": 1, "Commander": "Atraxa, Praetors' Voice", "PlayerName": "Ana", "Theme": "Counters, Superfriends", "EstPower": 7, "ArchidektID": 12345},
            {"DeckID": 2, "Commander": "Krenko, Mob Boss", "PlayerName": "Ben", "Theme": "Tokens", "EstPower": None, "ArchidektID": None},
            {"DeckID": 3, "Commander": "Tymna the Weaver / Thrasios, Triton Hero", "PlayerName": "Ben", "Theme": None, "EstPower": 8.5, "ArchidektID": None},
        ],
        "Games": [
            {"GameID": 1, "Date": 45292, "Location": "Ana's place", "TotalPlayers": 4, "Notes": None},
            {"GameID": 2, "Date": None, "Location": None, "TotalPlayers": 3, "Notes": " late night "},
        ],
        "Game Players": [
            {"GameID": 1, "DeckID": 1, "WinFlag": 1},
            {"GameID": 1, "DeckID": 2, "WinFlag": 0},
            {"GameID": 2, "DeckID": 1, "WinFlag": 0},
            {"GameID": 2, "DeckID": 2, "WinFlag": 1},
            {"GameID": 2, "DeckID": 1, "WinFlag": 1},
        ],
    }


@pytest.fixture
def workbook_bytes(workbook_sheets):
    return build_workbook(workbook_sheets)


@pytest.fixture
def make_deck():
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        defaults = {
            "id": str(counter["n"]),
            "commander": f"Commander {counter['n']}",
            "player": "Ana",
        }
        defaults.update(kwargs)
        return Deck(**defaults)

    return _make
