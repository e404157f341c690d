# boardgame_server/game_core/pick.py

from dataclasses import dataclass
from typing import Optional

from .constants import PickKind


@dataclass(frozen=True)
class PickEvent:
    """
    "Пользователь выбрал объект". Вид объекта (клетка или фишка)
    определяет клиент; оркестратор не проверяет типы объектов сцены.
    """
    kind: PickKind
    column: Optional[int] = None
    row: Optional[int] = None
    piece_id: Optional[int] = None

    @classmethod
    def tile(cls, column: int, row: int) -> 'PickEvent':
        return cls(PickKind.TILE, column=column, row=row)

    @classmethod
    def piece(cls, piece_id: int) -> 'PickEvent':
        return cls(PickKind.PIECE, piece_id=piece_id)
