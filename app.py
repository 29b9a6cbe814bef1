import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Dict, Optional

from podstats.charts import player_breakdown_chart
from podstats.config import ALL_PLAYERS, PLACEHOLDER, get_source_file
from podstats.context import load_dataset, prepare_context
from podstats.enrichment import EnrichmentCache, enrich_commanders
from podstats.filters import normalize_filters
from podstats.metrics_decks import compute_deck_table
from podstats.metrics_overview import compute_overview

alt.data_transformers.disable_max_rows()

SORT_LABELS = {"games": "Games", "wins": "Wins", "winrate": "Win Rate"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e4e4e7;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #09090b;margin-bottom: 8px;}
        .header-eyebrow {color: #a1a1aa;font-size: 0.8rem;letter-spacing: 0.08em;text-transform: uppercase;}
        .table-footer {color: #a1a1aa;font-size: 0.85rem;text-align: right;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


@st.cache_resource(show_spinner="Fetching commander art…")
def commander_art(signature: str) -> EnrichmentCache:
    # One lookup pass per dataset; `signature` keys the cache.
    return enrich_commanders(load_dataset().decks)


def _or_dash(value: Optional[object]) -> str:
    return PLACEHOLDER if value is None else str(value)


def render_stat_cards(overview: Dict):
    kpis = overview["kpis"]
    sup = overview["superlatives"]
    top_winner = kpis.get("top_winner") or {}
    most_active = kpis.get("most_active") or {}

    row1 = st.columns(4)
    row1[0].metric("Nights Lost to Magic", kpis["sessions"], help="pods convened")
    row1[1].metric("Cardboard Therapy", kpis["decks"], help="decks in the arsenal")
    row1[2].metric(
        "Threat Assessment #1",
        _or_dash(top_winner.get("player")),
        delta=f"{top_winner.get('total_wins', 0)} total wins" if top_winner else None,
        delta_color="off",
    )
    row1[3].metric(
        "Heeds the Call",
        _or_dash(most_active.get("player")),
        delta=f"{most_active.get('total_games', 0)} games played" if most_active else None,
        delta_color="off",
    )

    color = sup.get("most_played_color")
    theme = sup.get("most_popular_theme")
    dominant = sup.get("most_dominant")
    row2 = st.columns(4)
    row2[0].metric(
        "Most Played Color",
        color["color"] if color else PLACEHOLDER,
        delta=f"across {color['count']} deck-games" if color else "no data",
        delta_color="off",
    )
    row2[1].metric(
        "Most Popular Theme",
        theme["theme"] if theme else PLACEHOLDER,
        delta=f"{theme['count']} decks" if theme else "no data",
        delta_color="off",
    )
    row2[2].metric(
        "Most Dominant",
        dominant["commander"] if dominant else PLACEHOLDER,
        delta=f"{dominant['win_rate']}% in {dominant['games']} games" if dominant else "need 2+ games",
        delta_color="off",
    )
    row2[3].metric("Graveyard of Dreams", sup["never_played"], help="decks never played")


def render_deck_table(table: Dict):
    if not table["rows"]:
        st.info("No decks match the current filters.")
    else:
        display = pd.DataFrame(table["rows"])
        display["themes"] = display["themes"].apply(", ".join)
        display = display[["image_url", "commander", "deck_url", "themes", "player", "games", "wins", "losses", "win_rate"]]
        st.dataframe(
            display,
            hide_index=True,
            use_container_width=True,
            column_config={
                "image_url": st.column_config.ImageColumn("", width="small"),
                "commander": "Commander",
                "deck_url": st.column_config.LinkColumn("Deck", display_text="list"),
                "themes": "Themes",
                "player": "Player",
                "games": "Games",
                "wins": "Wins",
                "losses": "Losses",
                "win_rate": st.column_config.ProgressColumn("Win Rate", format="%d%%", min_value=0, max_value=100),
            },
        )
    st.markdown(f"<div class='table-footer'>{table['shown']} of {table['total']} decks</div>", unsafe_allow_html=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Enough · Casual EDH Dashboard", layout="wide")
inject_base_styles()
st.markdown("<div class='header-eyebrow'>Casual EDH Dashboard</div>", unsafe_allow_html=True)
st.title("Enough")

dataset = load_dataset()
if not dataset.decks:
    st.error(f"No decks found. Place a Game Tracking workbook at {get_source_file()}.")
    st.stop()

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    player = st.radio("Player", [ALL_PLAYERS, *dataset.players], index=0)
    sort_key = st.radio("Sort by", list(SORT_LABELS), format_func=SORT_LABELS.get, horizontal=True)
    include_unplayed = st.toggle("Unplayed", value=False)
    load_art = st.checkbox("Commander art (Scryfall)", value=True)

filters = normalize_filters(
    {"player": player, "sort_key": sort_key, "include_unplayed": include_unplayed},
    available_players=dataset.players,
)
cache = commander_art(str(hash(dataset))) if load_art else None
ctx = prepare_context(filters, dataset, cache)

render_stat_cards(compute_overview(filters, ctx))

with card("Player Breakdown"):
    if ctx["player_stats"]:
        st.altair_chart(player_breakdown_chart(ctx["player_stats"]), use_container_width=True)

with card("Decks"):
    render_deck_table(compute_deck_table(filters, ctx))
