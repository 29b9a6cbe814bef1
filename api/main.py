from __future__ import annotations

from datetime import datetime
import logging
import math
import threading
from typing import List

import numpy as np
import pandas as pd
from fastapi import BackgroundTasks, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, EnrichResponse, MetaPlayersResponse
from podstats.context import load_dataset, prepare_context
from podstats.enrichment import EnrichmentCache, distinct_commanders, enrich_commanders
from podstats.filters import DashboardFilters, normalize_filters
from podstats.metrics_decks import compute_deck_table, compute_sessions
from podstats.metrics_overview import compute_overview
from podstats.models import Dataset, Deck


app = FastAPI(title="Pod Stats API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

enrichment_cache = EnrichmentCache()
# Held from scheduling until the background run finishes; one run at a time.
enrichment_lock = threading.Lock()

EXPORT_COLUMNS = ["commander", "player", "games", "wins", "losses", "win_rate", "themes", "deck_url"]


def _filters_from_model(model: DashboardFiltersModel, *, dataset: Dataset) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw, available_players=dataset.players)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                datetime: lambda ts: ts.isoformat(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/players")
def meta_players():
    try:
        dataset = load_dataset()
        return _json(MetaPlayersResponse(players=list(dataset.players)))
    except Exception as exc:
        logger.exception("meta_players failed")
        return _error(exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        dataset = load_dataset()
        f = _filters_from_model(filters, dataset=dataset)
        ctx = prepare_context(f, dataset, enrichment_cache)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/decks")
def decks(filters: DashboardFiltersModel):
    try:
        dataset = load_dataset()
        f = _filters_from_model(filters, dataset=dataset)
        ctx = prepare_context(f, dataset, enrichment_cache)
        return _json(compute_deck_table(f, ctx))
    except Exception as exc:
        logger.exception("decks failed")
        return _error(exc)


@app.get("/sessions")
def sessions():
    try:
        dataset = load_dataset()
        ctx = prepare_context(DashboardFilters(), dataset)
        return _json(compute_sessions(ctx))
    except Exception as exc:
        logger.exception("sessions failed")
        return _error(exc)


def _run_enrichment(decks: List[Deck]):
    try:
        enrich_commanders(decks, enrichment_cache)
    finally:
        enrichment_lock.release()


@app.post("/enrich")
def enrich(background_tasks: BackgroundTasks):
    try:
        dataset = load_dataset()
        commanders = enrichment_cache.pending(distinct_commanders(dataset.decks))
        scheduled = bool(commanders) and enrichment_lock.acquire(blocking=False)
        if scheduled:
            wanted = set(commanders)
            background_tasks.add_task(_run_enrichment, [d for d in dataset.decks if d.commander in wanted])
        elif commanders:
            logger.info("enrichment already running; %d commanders left for the next run", len(commanders))
        return _json(EnrichResponse(scheduled=scheduled, commanders=len(commanders)))
    except Exception as exc:
        logger.exception("enrich failed")
        return _error(exc)


@app.post("/export/decks")
def export_decks(filters: DashboardFiltersModel):
    dataset = load_dataset()
    f = _filters_from_model(filters, dataset=dataset)
    ctx = prepare_context(f, dataset, enrichment_cache)
    table = compute_deck_table(f, ctx)

    export_df = pd.DataFrame(table["rows"], columns=EXPORT_COLUMNS)
    export_df["themes"] = export_df["themes"].apply(lambda t: ", ".join(t) if isinstance(t, list) else "")
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=decks.csv"})
