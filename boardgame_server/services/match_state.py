# boardgame_server/services/match_state.py

from typing import List, Optional, Dict, Any

from ..game_core import constants as c
from ..game_core.board import Board
from ..game_core.constants import GameEvent
from ..game_core.decision_client import DecisionTicket
from ..game_core.history import History
from ..game_core.move import Move
from ..game_core.player import Player
from .renderer import AnimationSignal


class MatchState:
    """
    Простой класс-хранилище (DTO) для всего изменяемого состояния
    одной партии. Не содержит логики; мутирует его только оркестратор
    и его менеджеры под общим RLock.
    """
    def __init__(self):
        self.event: GameEvent = GameEvent.LOADING
        # Растет при каждом сбросе; ответы ИИ с чужим поколением выбрасываются
        self.generation: int = 0

        self.layout: Optional[Dict[str, Any]] = None
        self.board: Optional[Board] = None
        self.history: History = History()
        self.players: List[Player] = []
        self.active_seat: int = c.SEAT_FIRST

        self.picked_piece_id: Optional[int] = None

        # Ход, ожидающий окончания анимации (MOVE_DONE) или поворота камеры
        self.pending_move: Optional[Move] = None
        self.pending_signal: Optional[AnimationSignal] = None

        self.pending_ticket: Optional[DecisionTicket] = None
        self.ai_suspended: bool = False

        self.was_adjusted: bool = False
        self.winner: int = c.NO_WINNER


def build_board_payload(state: MatchState) -> Dict[str, Any]:
    """Полное состояние для клиента (display_board / REST)."""
    return {
        'event': state.event.value,
        'active_seat': state.active_seat,
        'board': state.board.to_dict() if state.board else None,
        'players': [p.to_dict() for p in state.players],
        'history_length': len(state.history),
        'can_undo': len(state.history) > 0,
        'picked_piece_id': state.picked_piece_id,
        'ai_suspended': state.ai_suspended,
        'winner': state.winner,
    }


def change_event(state: MatchState, new_event: GameEvent, log_event, game_id: str):
    """Единственное место, где меняется state.event (с записью в лог)."""
    old_event = state.event
    state.event = new_event
    if old_event is not new_event:
        log_event("STATE_CHANGE", f"State {old_event.value} -> {new_event.value}", game_id=game_id)
