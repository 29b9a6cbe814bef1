from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from podstats.config import get_source_file
from podstats.data import file_signature, read_source
from podstats.enrichment import EnrichmentCache
from podstats.errors import SourceUnreadable
from podstats.filters import DashboardFilters, normalize_filters
from podstats.metrics_decks import filter_and_sort
from podstats.metrics_overview import per_player_breakdown
from podstats.models import Dataset
from podstats.normalize import normalize


logger = logging.getLogger(__name__)


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
@lru_cache(maxsize=4)
def _load_dataset_cached(signature: Tuple[str, float]) -> Dataset:
    path = Path(signature[0])
    try:
        rows = read_source(path)
    except SourceUnreadable:
        logger.warning("source %s is unreadable; showing an empty dashboard", path, exc_info=True)
        return Dataset.empty()
    dataset = normalize(rows)
    logger.debug(
        "loaded %s: %d decks, %d players, %d sessions",
        path.name,
        len(dataset.decks),
        len(dataset.players),
        len(dataset.sessions),
    )
    return dataset


def load_dataset(path: Optional[Path] = None) -> Dataset:
    path = Path(path) if path is not None else get_source_file()
    try:
        signature = file_signature(path)
    except OSError:
        logger.warning("source file %s not found; showing an empty dashboard", path)
        return Dataset.empty()
    return _load_dataset_cached(signature)


def prepare_context(
    filters: dict | DashboardFilters,
    dataset: Dataset,
    cache: Optional[EnrichmentCache] = None,
) -> Dict[str, Any]:
    filt = (
        filters
        if isinstance(filters, DashboardFilters)
        else normalize_filters(filters, available_players=dataset.players)
    )
    player_stats = per_player_breakdown(dataset.decks, dataset.players)
    filtered_decks = filter_and_sort(
        dataset.decks,
        player=filt.player,
        include_unplayed=filt.include_unplayed,
        sort_key=filt.sort_key,
    )
    return {
        "filters": filt,
        "dataset": dataset,
        "player_stats": player_stats,
        "filtered_decks": filtered_decks,
        "images": cache.images() if cache is not None else {},
        "colors": cache.colors() if cache is not None else {},
    }
