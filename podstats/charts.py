from __future__ import annotations

from typing import Any, Dict, Sequence

import altair as alt
import pandas as pd

from podstats.models import PlayerStats

alt.data_transformers.disable_max_rows()

METRIC_LABELS = {"total_games": "Total Games", "total_wins": "Wins"}
METRIC_COLORS = ["#e4e4e7", "#09090b"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def player_breakdown_chart(stats: Sequence[PlayerStats]) -> alt.Chart:
    """Grouped bars of games and wins per player, in player order."""
    frame = pd.DataFrame(
        [{"player": s.player, "total_games": s.total_games, "total_wins": s.total_wins} for s in stats],
        columns=["player", "total_games", "total_wins"],
    )
    long_df = frame.melt(id_vars="player", value_vars=list(METRIC_LABELS), var_name="metric", value_name="value")
    long_df["metric"] = long_df["metric"].map(METRIC_LABELS)
    players = [s.player for s in stats]
    return (
        alt.Chart(long_df)
        .mark_bar(cornerRadiusTopLeft=3, cornerRadiusTopRight=3, size=18)
        .encode(
            x=alt.X("player:N", title=None, sort=players, axis=alt.Axis(labelAngle=0, domain=False, ticks=False)),
            xOffset="metric:N",
            y=alt.Y("value:Q", title=None, axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color(
                "metric:N",
                title=None,
                scale=alt.Scale(domain=list(METRIC_LABELS.values()), range=METRIC_COLORS),
            ),
            tooltip=[
                alt.Tooltip("player:N", title="Player"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Count", format=","),
            ],
        )
        .properties(height=200)
    )
