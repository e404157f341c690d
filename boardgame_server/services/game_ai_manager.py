# boardgame_server/services/game_ai_manager.py
import threading
import logging
from typing import TYPE_CHECKING, Callable, Optional

from ..game_core.constants import GameEvent
from ..game_core.decision_parser import MoveProposal
from ..game_core.errors import DecisionErrorReason, DecisionServiceError
from ..game_core.game_state import capture_state
from ..game_core.move import Move
from ..game_core.move_validator import resolve_proposal
from .match_state import change_event

if TYPE_CHECKING:
    from .match_state import MatchState
    from .game_player_manager import GamePlayerManager
    from .game_orchestrator import GameOrchestrator
    from .renderer import Renderer
    from ..game_core.decision_client import DecisionClient, DecisionTicket

logger = logging.getLogger(__name__)


class GameAIManager:

    def __init__(
        self,
        game_id: str,
        decision_client: 'DecisionClient',
        log_event: Callable
    ):
        self.game_id = game_id
        self.lock = threading.RLock()
        self.decision_client = decision_client
        self.log_event = log_event
        self.game_session_callback: Optional['GameOrchestrator'] = None

    def set_lock(self, lock: threading.RLock):
        self.lock = lock

    def set_game_session_callback(self, session: 'GameOrchestrator'):
        self.game_session_callback = session

    def maybe_request_move(self, state: 'MatchState', player_manager: 'GamePlayerManager') -> bool:
        """
        WAITING + ход ИИ -> REQUESTING. Запрос асинхронный:
        пока ждем ответ, доска не меняется.
        """
        with self.lock:
            if state.event is not GameEvent.WAITING or state.board is None:
                return False
            if state.ai_suspended or state.pending_ticket is not None:
                return False

            player = player_manager.active_player(state)
            if player.is_human:
                return False

            if not self.game_session_callback:
                logger.critical(f"[GameAIManager {self.game_id}] game_session_callback is None!")
                return False

            snapshot = capture_state(state.board, state.players, state.active_seat)
            change_event(state, GameEvent.REQUESTING, self.log_event, self.game_id)
            state.pending_ticket = self.decision_client.request_move(
                snapshot,
                player.kind,
                self.game_session_callback.on_decision_resolved,
                generation=state.generation
            )
            logger.info(f"[GameAIManager {self.game_id}] Запущен асинхронный запрос хода ИИ (место {player.seat}, {player.kind.value}).")
            return True

    def resolve_decision(
        self,
        state: 'MatchState',
        player_manager: 'GamePlayerManager',
        renderer: 'Renderer',
        ticket: 'DecisionTicket',
        proposal: Optional[MoveProposal],
        error: Optional[DecisionServiceError]
    ) -> Optional[Move]:
        """
        Обрабатывает ответ ИИ. Возвращает проверенный Move, который
        оркестратор применит, или None (устаревший ответ / ошибка).
        """
        with self.lock:
            # 1. Устаревший ответ (сброс партии, откат, повторный запрос)
            if ticket.generation != state.generation or state.pending_ticket is not ticket:
                self.log_event("DECISION_STALE", f"Ответ ИИ поколения {ticket.generation} выброшен (текущее {state.generation}).", game_id=self.game_id)
                return None

            state.pending_ticket = None

            if state.event is not GameEvent.REQUESTING:
                self.log_event("DECISION_STALE", f"Ответ ИИ пришел в состоянии {state.event.value}, выброшен.", game_id=self.game_id)
                return None

            if capture_state(state.board, state.players, state.active_seat) != ticket.state:
                self.log_event("DECISION_STALE", "Состояние изменилось во время запроса. Ответ выброшен.", game_id=self.game_id)
                change_event(state, GameEvent.WAITING, self.log_event, self.game_id)
                return None

            # 2. Ошибка сервиса (после повтора) или ход, который отклонила доска
            if error is None and proposal is None:
                error = DecisionServiceError(DecisionErrorReason.MALFORMED_RESPONSE, "Пустой ответ ИИ.")

            if error is None:
                try:
                    return resolve_proposal(state.board, proposal, state.active_seat)
                except DecisionServiceError as e:
                    error = e

            self._surface_error(state, player_manager, renderer, error, ticket)
            return None

    def _surface_error(self, state, player_manager, renderer, error: DecisionServiceError, ticket: 'DecisionTicket'):
        fatal = error.reason is not DecisionErrorReason.ILLEGAL_MOVE_PROPOSED
        self.log_event(
            "DECISION_ERROR",
            f"{error.reason.value}: {error.message} (попыток: {ticket.attempts})",
            game_id=self.game_id
        )
        # ИИ приостановлен: человек может походить за это место или вызвать resume_ai
        state.ai_suspended = True
        change_event(state, GameEvent.WAITING, self.log_event, self.game_id)
        player_manager.apply_selectability(state, renderer)
        renderer.notify('decision_error', {
            'reason': error.reason.value,
            'message': error.message,
            'fatal': fatal,
            'seat': state.active_seat,
        })

    def resume_ai(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer') -> bool:
        with self.lock:
            if not state.ai_suspended:
                return False
            state.ai_suspended = False
            player_manager.apply_selectability(state, renderer)
            self.log_event("AI_RESUMED", f"ИИ места {state.active_seat} возобновлен.", game_id=self.game_id)
            return True
