# boardgame_server/game_core/player.py

from dataclasses import dataclass, field
from typing import Dict, Any

from . import constants as c
from .constants import PieceColor, PieceKind, PlayerKind
from .move import PieceLocation


@dataclass(frozen=True)
class PlayerCounters:
    """Снимок счетчиков одного места. Входит в GameState."""
    seat: int
    active_pieces: int
    collected_red: int
    collected_blue: int
    bonus_pieces: int
    risk_pieces: int

    @property
    def score(self) -> int:
        return (
            (self.collected_red + self.collected_blue) * c.NORMAL_POINTS
            + self.bonus_pieces * c.BONUS_POINTS
            + self.risk_pieces * c.RISK_POINTS
        )


@dataclass
class Player:
    """
    Состояние одного места: тип, счетчики и флаг "можно выбирать фишки".
    Счетчики меняются ТОЛЬКО через on_piece_relocated (уведомление доски)
    или restore_counters (откат по снимку).
    """
    seat: int
    kind: PlayerKind
    active_pieces: int = 0
    collected_by_color: Dict[PieceColor, int] = field(
        default_factory=lambda: {PieceColor.RED: 0, PieceColor.BLUE: 0}
    )
    bonus_pieces: int = 0
    risk_pieces: int = 0
    selectable: bool = False

    @property
    def is_human(self) -> bool:
        return self.kind.is_human

    @property
    def score(self) -> int:
        return self.counters().score

    def set_selectable(self, value: bool):
        self.selectable = value

    def on_piece_relocated(self, piece, old: PieceLocation, new: PieceLocation):
        if piece.owner == self.seat:
            self.active_pieces += int(new.is_tile) - int(old.is_tile)

        if old.is_zone and old.seat == self.seat:
            self._collect(piece.color, piece.kind, -1)
        if new.is_zone and new.seat == self.seat:
            self._collect(piece.color, piece.kind, 1)

    def _collect(self, color: PieceColor, kind: PieceKind, delta: int):
        if kind is PieceKind.BONUS:
            self.bonus_pieces += delta
        elif kind is PieceKind.RISK:
            self.risk_pieces += delta
        else:
            self.collected_by_color[color] += delta

    def counters(self) -> PlayerCounters:
        return PlayerCounters(
            seat=self.seat,
            active_pieces=self.active_pieces,
            collected_red=self.collected_by_color[PieceColor.RED],
            collected_blue=self.collected_by_color[PieceColor.BLUE],
            bonus_pieces=self.bonus_pieces,
            risk_pieces=self.risk_pieces,
        )

    def restore_counters(self, counters: PlayerCounters):
        if counters.seat != self.seat:
            raise ValueError(f"Снимок места {counters.seat} нельзя применить к месту {self.seat}.")
        self.active_pieces = counters.active_pieces
        self.collected_by_color = {
            PieceColor.RED: counters.collected_red,
            PieceColor.BLUE: counters.collected_blue,
        }
        self.bonus_pieces = counters.bonus_pieces
        self.risk_pieces = counters.risk_pieces

    def to_dict(self) -> Dict[str, Any]:
        return {
            'seat': self.seat,
            'kind': self.kind.value,
            'active_pieces': self.active_pieces,
            'collected': {color.value: n for color, n in self.collected_by_color.items()},
            'bonus_pieces': self.bonus_pieces,
            'risk_pieces': self.risk_pieces,
            'score': self.score,
            'selectable': self.selectable,
        }
