"""Tests for the FastAPI surface. The data source and Scryfall are stubbed."""

import threading
from datetime import datetime, timezone

import pytest
import requests
from fastapi.testclient import TestClient

import api.main as main
from podstats.enrichment import CardArt, EnrichmentCache, enrich_commanders
from podstats.models import Dataset, Session


@pytest.fixture
def dataset(make_deck):
    return Dataset(
        decks=(
            make_deck(id="1", commander="Atraxa", player="Ana", games=4, wins=3, losses=1, themes=("Counters",), external_ref="42"),
            make_deck(id="2", commander="Krenko", player="Ben", games=2, wins=0, losses=2),
            make_deck(id="3", commander="Edgar", player="Ben"),
        ),
        players=("Ana", "Ben"),
        sessions=(
            Session(id=1, date=datetime(2024, 1, 1, tzinfo=timezone.utc), location="Ana's place", player_count=4),
            Session(id=2, date=datetime(2024, 2, 1, tzinfo=timezone.utc), player_count=3),
        ),
    )


@pytest.fixture
def client(monkeypatch, dataset):
    monkeypatch.setattr(main, "load_dataset", lambda: dataset)
    monkeypatch.setattr(main, "enrichment_cache", EnrichmentCache())
    monkeypatch.setattr(main, "enrichment_lock", threading.Lock())
    return TestClient(main.app)


def test_meta_players(client):
    resp = client.get("/meta/players")
    assert resp.status_code == 200
    assert resp.json() == {"players": ["Ana", "Ben"]}


def test_overview(client):
    body = client.post("/overview", json={}).json()
    assert body["filters"] == {"player": "All", "include_unplayed": False, "sort_key": "games"}
    assert body["kpis"]["sessions"] == 2
    assert body["kpis"]["top_winner"]["player"] == "Ana"
    assert body["superlatives"]["never_played"] == 1
    assert body["superlatives"]["most_played_color"] is None
    assert body["charts"]["player_breakdown"]["mark"]


def test_decks_filters_and_sorts(client):
    body = client.post("/decks", json={"player": "Ben", "include_unplayed": True, "sort_key": "wins"}).json()
    assert [r["id"] for r in body["rows"]] == ["2", "3"]
    assert body["shown"] == 2
    assert body["total"] == 3


def test_decks_unknown_player_falls_back_to_everyone(client):
    body = client.post("/decks", json={"player": "Zed"}).json()
    assert body["filters"]["player"] == "All"
    assert [r["id"] for r in body["rows"]] == ["1", "2"]
    assert body["rows"][0]["deck_url"] == "https://archidekt.com/decks/42"


def test_sessions_newest_first(client):
    rows = client.get("/sessions").json()["rows"]
    assert [r["id"] for r in rows] == [2, 1]
    assert rows[1]["date"].startswith("2024-01-01")


def test_enrich_schedules_missing_commanders(client, monkeypatch):
    calls = []
    monkeypatch.setattr(main, "enrich_commanders", lambda decks, cache: calls.append([d.commander for d in decks]))
    main.enrichment_cache.update([CardArt("Atraxa", "https://img/atraxa.jpg", ("W",))])

    body = client.post("/enrich").json()
    assert body == {"scheduled": True, "commanders": 2}
    assert calls == [["Krenko", "Edgar"]]


class _Unreachable:
    """Every Scryfall request fails."""

    def __init__(self):
        self.queries = []

    def get(self, url, params=None, timeout=None):
        self.queries.append(params["fuzzy"])
        raise requests.ConnectionError("offline")


def test_second_enrich_schedules_nothing(client, monkeypatch):
    session = _Unreachable()
    monkeypatch.setattr(
        main,
        "enrich_commanders",
        lambda decks, cache: enrich_commanders(decks, cache, session=session, sleep=lambda _: None),
    )

    first = client.post("/enrich").json()
    second = client.post("/enrich").json()

    assert first == {"scheduled": True, "commanders": 3}
    assert second == {"scheduled": False, "commanders": 0}
    assert sorted(session.queries) == ["Atraxa", "Edgar", "Krenko"]
    assert not main.enrichment_lock.locked()


def test_enrich_refuses_while_a_run_is_active(client, monkeypatch):
    calls = []
    monkeypatch.setattr(main, "enrich_commanders", lambda decks, cache: calls.append(decks))
    main.enrichment_lock.acquire()
    try:
        body = client.post("/enrich").json()
    finally:
        main.enrichment_lock.release()

    assert body == {"scheduled": False, "commanders": 3}
    assert calls == []


def test_enriched_art_shows_up_in_deck_rows(client):
    main.enrichment_cache.update([CardArt("Atraxa", "https://img/atraxa.jpg", ("W", "U", "B", "G"))])
    rows = client.post("/decks", json={}).json()["rows"]
    assert rows[0]["image_url"] == "https://img/atraxa.jpg"


def test_export_decks_csv(client):
    resp = client.post("/export/decks", json={"include_unplayed": True})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0] == "commander,player,games,wins,losses,win_rate,themes,deck_url"
    assert lines[1].startswith("Atraxa,Ana,4,3,1,75,Counters,")
    assert len(lines) == 4


def test_errors_become_json_500(monkeypatch):
    def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(main, "load_dataset", broken)
    resp = TestClient(main.app).get("/meta/players")
    assert resp.status_code == 500
    assert resp.json() == {"error": "boom", "type": "RuntimeError"}
