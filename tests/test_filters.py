"""Tests for dashboard filter normalization."""

from podstats.filters import DashboardFilters, normalize_filters, normalize_sort_key


def test_defaults():
    assert normalize_filters({}) == DashboardFilters(player="All", include_unplayed=False, sort_key="games")


def test_known_player_is_kept():
    f = normalize_filters({"player": " Ben "}, available_players=["Ana", "Ben"])
    assert f.player == "Ben"


def test_unknown_player_falls_back_to_all():
    f = normalize_filters({"player": "Zed"}, available_players=["Ana", "Ben"])
    assert f.player == "All"


def test_sort_key_aliases_and_fallback():
    assert normalize_sort_key("Win_Rate") == "winrate"
    assert normalize_sort_key("wins") == "wins"
    assert normalize_sort_key("power") == "games"
    assert normalize_sort_key(None) == "games"


def test_include_unplayed_accepts_strings():
    assert normalize_filters({"include_unplayed": "true"}).include_unplayed is True
    assert normalize_filters({"include_unplayed": "no"}).include_unplayed is False
    assert normalize_filters({"include_unplayed": 1}).include_unplayed is True
