from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Deck:
    id: str
    commander: str
    player: str
    themes: Tuple[str, ...] = ()
    games: int = 0
    wins: int = 0
    losses: int = 0
    power: Optional[float] = None
    external_ref: Optional[str] = None


@dataclass(frozen=True)
class Session:
    id: Union[str, int, None]
    date: Optional[datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    player_count: int = 0


@dataclass(frozen=True)
class PlayerStats:
    player: str
    deck_count: int = 0
    total_games: int = 0
    total_wins: int = 0


@dataclass(frozen=True)
class Dataset:
    decks: Tuple[Deck, ...] = field(default_factory=tuple)
    players: Tuple[str, ...] = field(default_factory=tuple)
    sessions: Tuple[Session, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "Dataset":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.decks or self.players or self.sessions)
