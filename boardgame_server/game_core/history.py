# boardgame_server/game_core/history.py

from typing import Callable, List, Optional, NamedTuple

from .constants import HistoryKind, PieceKind
from .game_state import GameState
from .move import Move


class HistoryEntry(NamedTuple):
    move: Move
    snapshot: GameState
    kind: HistoryKind


def history_kind_for(move: Move) -> HistoryKind:
    """
    Тип записи определяется самим ходом: снятие бонус/риск фишки
    меняет очки места, поэтому это POINTS_UPDATE.
    """
    if not move.is_removal:
        return HistoryKind.PLAY
    if move.removed_kind in (PieceKind.BONUS, PieceKind.RISK):
        return HistoryKind.POINTS_UPDATE
    return HistoryKind.REMOVAL


class History:
    """
    Журнал применённых ходов со снимками состояния ДО хода.
    Только добавление; undo снимает последнюю запись.
    """

    def __init__(self):
        self._entries: List[HistoryEntry] = []

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def record(self, move: Move, kind: HistoryKind, snapshot: GameState) -> HistoryEntry:
        """snapshot должен быть снят ДО применения хода к доске."""
        entry = HistoryEntry(move, snapshot, kind)
        self._entries.append(entry)
        return entry

    def undo(self, restore: Callable[[GameState], None]) -> bool:
        """
        Снимает последнюю запись и восстанавливает её снимок.
        Пустой журнал -> False, ничего не меняется.
        """
        if not self._entries:
            return False
        entry = self._entries[-1]
        restore(entry.snapshot)
        # Запись снимаем только после успешного восстановления
        self._entries.pop()
        return True

    def clear(self):
        self._entries.clear()

    def to_list(self) -> List[dict]:
        return [{'kind': e.kind.value, 'move': e.move.to_dict()} for e in self._entries]
