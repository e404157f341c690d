# boardgame_server/game_core/move.py

from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

from .constants import LocationKind, PieceColor, PieceKind


@dataclass(frozen=True)
class PieceLocation:
    """
    Где сейчас фишка: на клетке (tile_id), в зоне сбора места (seat)
    или вне доски (в запасе владельца). Ровно одно из трех.
    """
    kind: LocationKind
    tile_id: Optional[int] = None
    seat: Optional[int] = None

    @classmethod
    def on_tile(cls, tile_id: int) -> 'PieceLocation':
        return cls(LocationKind.TILE, tile_id=tile_id)

    @classmethod
    def in_zone(cls, seat: int) -> 'PieceLocation':
        return cls(LocationKind.ZONE, seat=seat)

    @classmethod
    def off_board(cls) -> 'PieceLocation':
        return cls(LocationKind.OFF_BOARD)

    @property
    def is_tile(self) -> bool:
        return self.kind is LocationKind.TILE

    @property
    def is_zone(self) -> bool:
        return self.kind is LocationKind.ZONE

    @property
    def is_off_board(self) -> bool:
        return self.kind is LocationKind.OFF_BOARD

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind.value, 'tile_id': self.tile_id, 'seat': self.seat}


@dataclass(frozen=True)
class Move:
    """
    Неизменяемое описание одного перемещения фишки.

    source/destination - локации ДО и ПОСЛЕ. Координаты (column, row)
    хранятся только для анимации: обратный ход считается без доски.
    """
    piece_id: int
    source: PieceLocation
    destination: PieceLocation
    source_coords: Optional[Tuple[int, int]] = None
    destination_coords: Optional[Tuple[int, int]] = None
    removed_color: Optional[PieceColor] = None
    removed_kind: Optional[PieceKind] = None

    @property
    def is_placement(self) -> bool:
        return self.source.is_off_board and self.destination.is_tile

    @property
    def is_removal(self) -> bool:
        return self.destination.is_zone

    def inverted(self) -> 'Move':
        return Move(
            piece_id=self.piece_id,
            source=self.destination,
            destination=self.source,
            source_coords=self.destination_coords,
            destination_coords=self.source_coords,
            removed_color=self.removed_color,
            removed_kind=self.removed_kind,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'piece_id': self.piece_id,
            'source': self.source.to_dict(),
            'destination': self.destination.to_dict(),
            'from': list(self.source_coords) if self.source_coords else None,
            'to': list(self.destination_coords) if self.destination_coords else None,
            'removed_color': self.removed_color.value if self.removed_color else None,
            'removed_kind': self.removed_kind.value if self.removed_kind else None,
        }
