# boardgame_server/game_core/game_state.py

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Any, Sequence

from .board import Board
from .move import PieceLocation
from .player import Player, PlayerCounters


@dataclass(frozen=True)
class GameState:
    """
    Неизменяемый снимок партии: локации всех фишек, счетчики мест
    и чей ход. Кортежи отсортированы, поэтому сравнение не зависит
    от порядка обхода.

    Используется для запроса к ИИ, для отката и для отбраковки
    устаревших ответов ИИ.
    """
    columns: int
    rows: int
    pieces: Tuple[Tuple[int, PieceLocation], ...]
    players: Tuple[PlayerCounters, ...]
    active_seat: int
    # Позиционная кодировка клеток для ИИ-сервиса; в сравнении не участвует
    cells: Tuple[Tuple[str, ...], ...] = field(default=(), compare=False)

    @property
    def locations(self) -> Dict[int, PieceLocation]:
        return dict(self.pieces)

    def counters_for(self, seat: int) -> PlayerCounters:
        for counters in self.players:
            if counters.seat == seat:
                return counters
        raise KeyError(seat)

    def to_request_string(self) -> str:
        """
        Позиционная кодировка для ИИ-сервиса:
        [[ряды доски],[собранные по цветам],[бонус/риск],[чей ход]]
        """
        board_part = "[" + ",".join("[" + ",".join(row) + "]" for row in self.cells) + "]"
        ordered = sorted(self.players, key=lambda p: p.seat)
        colors = [str(n) for p in ordered for n in (p.collected_red, p.collected_blue)]
        bonus = [str(p.bonus_pieces) for p in ordered] + [str(p.risk_pieces) for p in ordered]
        return f"[{board_part},[{','.join(colors)}],[{','.join(bonus)}],[{self.active_seat}]]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'columns': self.columns,
            'rows': self.rows,
            'pieces': {str(piece_id): location.to_dict() for piece_id, location in self.pieces},
            'players': [
                {
                    'seat': p.seat,
                    'active_pieces': p.active_pieces,
                    'collected': {'red': p.collected_red, 'blue': p.collected_blue},
                    'bonus_pieces': p.bonus_pieces,
                    'risk_pieces': p.risk_pieces,
                    'score': p.score,
                }
                for p in self.players
            ],
            'active_seat': self.active_seat,
        }


def capture_state(board: Board, players: Sequence[Player], active_seat: int) -> GameState:
    return GameState(
        columns=board.columns,
        rows=board.rows,
        pieces=tuple(sorted(board.piece_locations().items())),
        players=tuple(sorted((p.counters() for p in players), key=lambda pc: pc.seat)),
        active_seat=active_seat,
        cells=tuple(tuple(row) for row in board.cell_codes()),
    )


def restore_state(state: GameState, board: Board, players: List[Player]) -> int:
    """Восстанавливает доску и счетчики. Возвращает активное место."""
    board.restore(state.locations)
    for player in players:
        player.restore_counters(state.counters_for(player.seat))
    return state.active_seat
