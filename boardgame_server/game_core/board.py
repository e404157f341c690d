# boardgame_server/game_core/board.py

from typing import Callable, Dict, List, Optional, Tuple, Any, Iterable

from . import constants as c
from .constants import PieceColor, PieceKind
from .errors import BoundsError, IllegalMoveError
from .move import Move, PieceLocation

# listener(piece, old_location, new_location)
RelocationListener = Callable[['Piece', PieceLocation, PieceLocation], None]


class Tile:
    def __init__(self, tile_id: int, column: int, row: int):
        self.tile_id = tile_id
        self.column = column
        self.row = row
        self.piece_id: Optional[int] = None

    @property
    def coords(self) -> Tuple[int, int]:
        return self.column, self.row

    @property
    def is_empty(self) -> bool:
        return self.piece_id is None

    def __repr__(self):
        return f"Tile({self.column}, {self.row}, piece={self.piece_id})"


class Piece:
    def __init__(self, piece_id: int, color: PieceColor, kind: PieceKind, owner: Optional[int]):
        self.piece_id = piece_id
        self.color = color
        self.kind = kind
        self.owner = owner
        self.location = PieceLocation.off_board()
        self.picked = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.piece_id,
            'color': self.color.value,
            'kind': self.kind.value,
            'owner': self.owner,
            'location': self.location.to_dict(),
            'picked': self.picked,
        }

    def __repr__(self):
        return f"Piece({self.piece_id}, {self.color.value}/{self.kind.value}, owner={self.owner})"


class PieceAnimation:
    """Линейная интерполяция фишки между центрами двух клеток."""

    def __init__(self, move: Move, duration: float):
        self.move = move
        self.duration = max(duration, 0.0)
        self.elapsed = 0.0
        start = move.source_coords or move.destination_coords
        end = move.destination_coords or move.source_coords
        self.start = start
        self.end = end

    @property
    def finished(self) -> bool:
        return self.elapsed >= self.duration

    @property
    def progress(self) -> float:
        if self.duration == 0:
            return 1.0
        return min(self.elapsed / self.duration, 1.0)

    def advance(self, delta: float):
        self.elapsed = min(self.elapsed + delta, self.duration)

    def position(self) -> Optional[Tuple[float, float]]:
        if self.start is None:
            return None
        t = self.progress
        return (
            self.start[0] + (self.end[0] - self.start[0]) * t,
            self.start[1] + (self.end[1] - self.start[1]) * t,
        )


class Board:
    """
    Плоский массив клеток + словарь фишек.
    Клетка хранит только id фишки, фишка - только свою локацию.
    Все мутаторы сначала проверяют ход и только потом меняют состояние.
    """

    def __init__(self, columns: int, rows: int, listener: Optional[RelocationListener] = None):
        if columns <= 0 or rows <= 0:
            raise ValueError(f"Недопустимый размер доски: {columns}x{rows}")
        self.columns = columns
        self.rows = rows
        self.tiles: List[Tile] = [
            Tile(row * columns + column, column, row)
            for row in range(rows)
            for column in range(columns)
        ]
        self.pieces: Dict[int, Piece] = {}
        self.animations: Dict[int, PieceAnimation] = {}
        self.listener = listener

    # --- Создание ---

    @classmethod
    def from_layout(cls, layout: Dict[str, Any], listener: Optional[RelocationListener] = None) -> 'Board':
        """
        Строит доску из раскладки:
        {'columns': 8, 'rows': 8, 'pieces': [{'id', 'color', 'kind', 'owner', 'column'?, 'row'?}]}
        Фишки без координат лежат в запасе (вне доски).
        """
        board = cls(layout['columns'], layout['rows'])
        for spec in layout['pieces']:
            piece = board.add_piece(
                spec['id'],
                PieceColor(spec['color']),
                PieceKind(spec.get('kind', PieceKind.NORMAL.value)),
                spec.get('owner'),
            )
            if spec.get('column') is not None and spec.get('row') is not None:
                tile = board.tile_at(spec['column'], spec['row'])
                if not tile.is_empty:
                    raise IllegalMoveError(f"Раскладка: клетка {tile.coords} занята дважды.")
                tile.piece_id = piece.piece_id
                piece.location = PieceLocation.on_tile(tile.tile_id)
        # Слушатель подключается после расстановки, чтобы начальная
        # раскладка не попадала в счетчики игроков как ходы.
        board.listener = listener
        return board

    def add_piece(self, piece_id: int, color: PieceColor, kind: PieceKind, owner: Optional[int]) -> Piece:
        if piece_id in self.pieces:
            raise IllegalMoveError(f"Фишка {piece_id} уже существует.")
        piece = Piece(piece_id, color, kind, owner)
        self.pieces[piece_id] = piece
        return piece

    # --- Поиск ---

    def tile_id(self, column: int, row: int) -> int:
        if not (0 <= column < self.columns and 0 <= row < self.rows):
            raise BoundsError(column, row)
        return row * self.columns + column

    def tile_at(self, column: int, row: int) -> Tile:
        return self.tiles[self.tile_id(column, row)]

    def tile(self, tile_id: int) -> Tile:
        if not (0 <= tile_id < len(self.tiles)):
            raise BoundsError(tile_id % self.columns, tile_id // self.columns)
        return self.tiles[tile_id]

    def piece(self, piece_id: int) -> Piece:
        piece = self.pieces.get(piece_id)
        if piece is None:
            raise IllegalMoveError(f"Фишка {piece_id} не найдена.")
        return piece

    def piece_on(self, tile_id: int) -> Optional[Piece]:
        occupant = self.tile(tile_id).piece_id
        return self.pieces[occupant] if occupant is not None else None

    def coords_of(self, location: PieceLocation) -> Optional[Tuple[int, int]]:
        if location.is_tile:
            return self.tile(location.tile_id).coords
        return None

    def empty_tiles(self) -> List[Tile]:
        return [t for t in self.tiles if t.is_empty]

    def supply_of(self, seat: int) -> List[Piece]:
        return [p for p in self.pieces.values() if p.owner == seat and p.location.is_off_board]

    def pieces_on_board(self, seat: Optional[int] = None) -> List[Piece]:
        return [
            p for p in self.pieces.values()
            if p.location.is_tile and (seat is None or p.owner == seat)
        ]

    # --- Мутаторы ---

    def place_piece(self, piece_id: int, tile_id: int) -> Move:
        """Выставляет фишку из запаса на пустую клетку."""
        piece = self.piece(piece_id)
        if not piece.location.is_off_board:
            raise IllegalMoveError(f"Фишка {piece_id} уже в игре.")
        return self.apply_move(self.build_move(piece, PieceLocation.on_tile(tile_id)))

    def remove_piece(self, tile_id: int) -> Optional[Piece]:
        """Убирает фишку с клетки обратно в запас. Пустая клетка -> None."""
        piece = self.piece_on(tile_id)
        if piece is None:
            return None
        self.apply_move(self.build_move(piece, PieceLocation.off_board()))
        return piece

    def move_piece(self, piece_id: int, from_tile: int, to_tile: int) -> Move:
        piece = self.piece(piece_id)
        if piece.location != PieceLocation.on_tile(from_tile):
            raise IllegalMoveError(f"Фишка {piece_id} не стоит на клетке {from_tile}.")
        return self.apply_move(self.build_move(piece, PieceLocation.on_tile(to_tile)))

    def move_to_collection_zone(self, from_tile: int, color: PieceColor, kind: PieceKind, seat: int) -> Move:
        piece = self.piece_on(from_tile)
        if piece is None:
            raise IllegalMoveError(f"На клетке {from_tile} нет фишки для снятия.")
        if piece.color is not color or piece.kind is not kind:
            raise IllegalMoveError(
                f"На клетке {from_tile} фишка {piece.color.value}/{piece.kind.value}, "
                f"а не {color.value}/{kind.value}."
            )
        return self.apply_move(self.build_move(piece, PieceLocation.in_zone(seat)))

    def build_move(self, piece: Piece, destination: PieceLocation) -> Move:
        removed = destination.is_zone
        return Move(
            piece_id=piece.piece_id,
            source=piece.location,
            destination=destination,
            source_coords=self.coords_of(piece.location),
            destination_coords=self.coords_of(destination),
            removed_color=piece.color if removed else None,
            removed_kind=piece.kind if removed else None,
        )

    def validate_move(self, move: Move) -> Piece:
        """Проверяет ход без изменения доски. Возвращает фишку."""
        piece = self.piece(move.piece_id)
        if piece.location != move.source:
            raise IllegalMoveError(f"Фишка {piece.piece_id} не находится в исходной позиции хода.")
        if move.destination == move.source:
            raise IllegalMoveError("Ход на ту же позицию.")
        if move.destination.is_tile:
            target = self.tile(move.destination.tile_id)
            if not target.is_empty:
                raise IllegalMoveError(f"Клетка {target.coords} занята.")
        if move.destination.is_zone and move.destination.seat not in c.SEATS:
            raise IllegalMoveError(f"Неизвестная зона сбора: {move.destination.seat}")
        return piece

    def apply_move(self, move: Move) -> Move:
        """
        Применяет ход (прямой или обратный). Либо полностью, либо никак:
        вся проверка выполняется до первой мутации.
        """
        piece = self.validate_move(move)
        old_location = piece.location

        if old_location.is_tile:
            self.tiles[old_location.tile_id].piece_id = None
        if move.destination.is_tile:
            self.tiles[move.destination.tile_id].piece_id = piece.piece_id
        piece.location = move.destination
        piece.picked = False

        if self.listener:
            self.listener(piece, old_location, move.destination)
        return move

    def restore(self, locations: Dict[int, PieceLocation]):
        """Восстанавливает расстановку из снимка. Слушатель НЕ вызывается."""
        if set(locations) != set(self.pieces):
            raise IllegalMoveError("Снимок не соответствует набору фишек доски.")
        for tile in self.tiles:
            tile.piece_id = None
        for piece_id, location in locations.items():
            piece = self.pieces[piece_id]
            piece.location = location
            piece.picked = False
            if location.is_tile:
                self.tiles[location.tile_id].piece_id = piece_id
        self.animations.clear()

    # --- Анимации ---

    def start_animation(self, move: Move, duration: float) -> PieceAnimation:
        animation = PieceAnimation(move, duration)
        self.animations[move.piece_id] = animation
        return animation

    def update(self, delta: float):
        """Продвигает анимации фишек. Законченные убираются."""
        for piece_id in list(self.animations):
            animation = self.animations[piece_id]
            animation.advance(delta)
            if animation.finished:
                del self.animations[piece_id]

    # --- Сериализация ---

    def piece_locations(self) -> Dict[int, PieceLocation]:
        return {piece_id: piece.location for piece_id, piece in self.pieces.items()}

    def serialize(self) -> List[List[Optional[int]]]:
        """Доска по рядам: id фишки или None."""
        return [
            [self.tiles[row * self.columns + column].piece_id for column in range(self.columns)]
            for row in range(self.rows)
        ]

    def cell_codes(self) -> List[List[str]]:
        """
        Позиционная кодировка для ИИ-сервиса: 'empty' или
        '<цвет>_<вид>_<владелец>' (владелец 'n' у нейтральных).
        """
        rows = []
        for row in self.serialize():
            codes = []
            for piece_id in row:
                if piece_id is None:
                    codes.append('empty')
                    continue
                piece = self.pieces[piece_id]
                owner = 'n' if piece.owner is None else str(piece.owner)
                codes.append(f"{piece.color.value}_{piece.kind.value}_{owner}")
            rows.append(codes)
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            'columns': self.columns,
            'rows': self.rows,
            'cells': self.serialize(),
            'pieces': [p.to_dict() for p in sorted(self.pieces.values(), key=lambda p: p.piece_id)],
            'animations': {
                piece_id: {'progress': a.progress, 'position': a.position()}
                for piece_id, a in self.animations.items()
            },
        }


def create_standard_layout(
    columns: int = c.BOARD_COLUMNS,
    rows: int = c.BOARD_ROWS,
    pieces_per_color: int = c.PIECES_PER_COLOR,
) -> Dict[str, Any]:
    """
    Стандартная раскладка: у каждого места по N красных и синих фишек
    в запасе, нейтральные бонус/риск фишки стоят на доске.
    """
    pieces = []
    next_id = 1
    for seat in c.SEATS:
        for color in (PieceColor.RED, PieceColor.BLUE):
            for _ in range(pieces_per_color):
                pieces.append({'id': next_id, 'color': color.value, 'kind': PieceKind.NORMAL.value, 'owner': seat})
                next_id += 1

    neutral: Iterable = (
        [(pos, PieceKind.BONUS, PieceColor.RED) for pos in c.STANDARD_BONUS_TILES]
        + [(pos, PieceKind.RISK, PieceColor.BLUE) for pos in c.STANDARD_RISK_TILES]
    )
    for (column, row), kind, color in neutral:
        if column < columns and row < rows:
            pieces.append({
                'id': next_id, 'color': color.value, 'kind': kind.value,
                'owner': None, 'column': column, 'row': row
            })
            next_id += 1

    return {'columns': columns, 'rows': rows, 'pieces': pieces}
