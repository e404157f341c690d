# boardgame_server/services/game_player_manager.py

import threading
from typing import Optional, List, Callable, Sequence, TYPE_CHECKING

from ..game_core import constants as c
from ..game_core.constants import PlayerKind
from ..game_core.player import Player

if TYPE_CHECKING:
    from ..game_core.board import Board, Piece
    from ..game_core.move import PieceLocation
    from .match_state import MatchState
    from .renderer import Renderer


class GamePlayerManager:
    """
    Управляет МЕСТАМИ партии: кто человек, кто ИИ, чьи фишки
    сейчас можно выбирать, и куда направлять уведомления доски.
    """
    def __init__(
        self,
        game_id: str,
        seat_kinds: Sequence[PlayerKind],
        log_event: Callable
    ):
        if len(seat_kinds) != len(c.SEATS):
            raise ValueError(f"GamePlayerManager ({game_id}): нужно ровно {len(c.SEATS)} места, получено {len(seat_kinds)}.")

        self.game_id = game_id
        self.seat_kinds: List[PlayerKind] = list(seat_kinds)
        self.lock = threading.RLock()
        self.log_event = log_event

        # Владелец партии (один клиент на оба места в режиме "hot seat")
        self.sid: Optional[str] = None
        self.username: Optional[str] = None

    def set_lock(self, lock: threading.RLock):
        """Устанавливает внешний RLock из GameOrchestrator."""
        self.lock = lock

    def setup_owner(self, sid: str, username: Optional[str] = None):
        with self.lock:
            self.sid = sid
            self.username = username or sid
            self.log_event("SESSION_SETUP", f"Партия {self.game_id} привязана к клиенту. Места: {[k.value for k in self.seat_kinds]}", sid=sid, game_id=self.game_id)

    # --- Хелперы ---

    def get_all_sids(self) -> list:
        return [self.sid] if self.sid else []

    @property
    def has_human(self) -> bool:
        return any(k.is_human for k in self.seat_kinds)

    @property
    def all_human(self) -> bool:
        return all(k.is_human for k in self.seat_kinds)

    @staticmethod
    def other_seat(seat: int) -> int:
        return c.SEAT_SECOND if seat == c.SEAT_FIRST else c.SEAT_FIRST

    def active_player(self, state: 'MatchState') -> Player:
        return state.players[state.active_seat]

    # --- Жизненный цикл мест ---

    def create_players(self, board: 'Board') -> List[Player]:
        """
        Создает места для новой доски. Начальное число фишек на доске
        берется из раскладки; дальше его меняют только уведомления доски.
        """
        players = []
        for seat, kind in zip(c.SEATS, self.seat_kinds):
            players.append(Player(seat=seat, kind=kind, active_pieces=len(board.pieces_on_board(seat))))
        return players

    def relocation_listener(self, state: 'MatchState') -> Callable[['Piece', 'PieceLocation', 'PieceLocation'], None]:
        """Уведомление доски -> счетчики всех мест."""
        def _route(piece, old, new):
            for player in state.players:
                player.on_piece_relocated(piece, old, new)
        return _route

    def apply_selectability(self, state: 'MatchState', renderer: 'Renderer'):
        """
        Фишки активного места-человека можно выбирать, остальные - нет.
        Вызывается только оркестратором при смене хода / откате.
        ИИ-место можно "перехватить", если ИИ приостановлен после ошибки.
        """
        with self.lock:
            for player in state.players:
                is_active = player.seat == state.active_seat
                can_act = player.is_human or state.ai_suspended
                player.set_selectable(is_active and can_act)

            if state.board is None:
                return
            for piece in sorted(state.board.pieces.values(), key=lambda p: p.piece_id):
                if piece.owner is None or piece.location.is_zone:
                    continue
                renderer.mark_selectable(piece.piece_id, state.players[piece.owner].selectable)
