from __future__ import annotations

from typing import List

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    player: str = "All"
    include_unplayed: bool = False
    sort_key: str = "games"


class MetaPlayersResponse(BaseModel):
    players: List[str]


class EnrichResponse(BaseModel):
    scheduled: bool
    commanders: int
