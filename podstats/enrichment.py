"""
Commander art lookups.

Best-effort enrichment of deck commanders with Scryfall art crops and color
identity. Lookups run in small batches with a pause in between to stay inside
Scryfall's rate-limit guidance (50-100ms between requests). A failed lookup
only means "no art for this commander"; it never aborts the batch.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import requests

from podstats.config import (
    ENRICH_BATCH_PAUSE_S,
    ENRICH_BATCH_SIZE,
    ENRICH_TIMEOUT_S,
    PLACEHOLDER,
    SCRYFALL_NAMED_URL,
)
from podstats.errors import EnrichmentLookupFailed
from podstats.models import Deck


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardArt:
    name: str
    image_url: Optional[str]
    colors: Tuple[str, ...] = ()


class EnrichmentCache:
    """Commander name -> CardArt. Last write wins.

    Names whose lookup was attempted are remembered even when it failed, so a
    commander is looked up at most once per cache.
    """

    def __init__(self):
        self._entries: Dict[str, CardArt] = {}
        self._attempted: Set[str] = set()
        self._lock = threading.Lock()

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, name: str) -> Optional[CardArt]:
        with self._lock:
            return self._entries.get(name)

    def update(self, entries: Iterable[CardArt]):
        with self._lock:
            for art in entries:
                self._entries[art.name] = art
                self._attempted.add(art.name)

    def mark_attempted(self, names: Iterable[str]):
        with self._lock:
            self._attempted.update(names)

    def pending(self, names: Iterable[str]) -> List[str]:
        """``names`` not yet looked up, in order."""
        with self._lock:
            return [n for n in names if n not in self._attempted]

    def images(self) -> Dict[str, str]:
        """Commander -> art URL, only for commanders that have art."""
        with self._lock:
            return {name: art.image_url for name, art in self._entries.items() if art.image_url}

    def colors(self) -> Dict[str, Tuple[str, ...]]:
        with self._lock:
            return {name: art.colors for name, art in self._entries.items()}


def lookup_name(commander: str) -> str:
    """Partner pairs ("A / B", "A // B") are looked up by their first card."""
    return commander.split("/")[0].strip()


def _art_crop(card: dict) -> Optional[str]:
    art = (card.get("image_uris") or {}).get("art_crop")
    if art:
        return art
    faces = card.get("card_faces") or []
    if faces:
        return (faces[0].get("image_uris") or {}).get("art_crop")
    return None


def fetch_card(commander: str, session: Optional[requests.Session] = None) -> CardArt:
    """Fuzzy-match one commander on Scryfall.

    Raises:
        EnrichmentLookupFailed: on network errors, non-200 responses, error
            objects, or unparseable bodies.
    """
    query = lookup_name(commander)
    getter = session or requests
    try:
        response = getter.get(SCRYFALL_NAMED_URL, params={"fuzzy": query}, timeout=ENRICH_TIMEOUT_S)
    except requests.RequestException as exc:
        raise EnrichmentLookupFailed(commander, f"network error: {exc}") from exc

    if response.status_code != 200:
        raise EnrichmentLookupFailed(commander, f"HTTP {response.status_code}")
    try:
        card = response.json()
    except ValueError as exc:
        raise EnrichmentLookupFailed(commander, "response is not JSON") from exc
    if not isinstance(card, dict) or card.get("object") == "error":
        raise EnrichmentLookupFailed(commander, "card not found")

    return CardArt(
        name=commander,
        image_url=_art_crop(card),
        colors=tuple(card.get("color_identity") or ()),
    )


def _safe_fetch(commander: str, session: Optional[requests.Session]) -> Optional[CardArt]:
    try:
        return fetch_card(commander, session)
    except EnrichmentLookupFailed as exc:
        logger.debug("%s", exc)
        return None


def distinct_commanders(decks: Iterable[Deck]) -> List[str]:
    names = (d.commander for d in decks)
    return list(dict.fromkeys(n for n in names if n and n != PLACEHOLDER))


def enrich_commanders(
    decks: Iterable[Deck],
    cache: Optional[EnrichmentCache] = None,
    *,
    session: Optional[requests.Session] = None,
    batch_size: int = ENRICH_BATCH_SIZE,
    pause: float = ENRICH_BATCH_PAUSE_S,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentCache:
    """Look up every distinct commander not yet attempted, ``batch_size`` at a time.

    Each finished batch is written to ``cache`` before the next one starts.
    Failed names are marked as attempted and not retried.
    """
    cache = cache if cache is not None else EnrichmentCache()
    names = cache.pending(distinct_commanders(decks))
    if not names:
        return cache

    batch_size = max(1, int(batch_size))
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(names), batch_size):
            batch = names[start : start + batch_size]
            results = list(executor.map(lambda name: _safe_fetch(name, session), batch))
            found = [art for art in results if art is not None]
            cache.update(found)
            cache.mark_attempted(batch)
            logger.debug("enrichment batch %d: %d/%d found", start // batch_size + 1, len(found), len(batch))
            if start + batch_size < len(names):
                sleep(pause)
    return cache
