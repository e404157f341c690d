# boardgame_server/services/game_orchestrator.py

# --- Стандартная библиотека ---
import threading
import time
import logging
from typing import Dict, Any, Optional

# --- Импорты сервисов (локальные) ---
from .match_state import MatchState, build_board_payload, change_event
from .game_player_manager import GamePlayerManager
from .game_turn_manager import GameTurnManager
from .game_ai_manager import GameAIManager
from .renderer import Renderer

# --- Импорты логики ядра ---
from ..game_core import constants as c
from ..game_core.board import Board, create_standard_layout
from ..game_core.constants import GameEvent
from ..game_core.decision_client import DecisionTicket
from ..game_core.decision_parser import MoveProposal
from ..game_core.errors import BoundsError, IllegalMoveError, DecisionServiceError, UndoRejected
from ..game_core.game_state import GameState, capture_state
from ..game_core.history import History
from ..game_core.pick import PickEvent

logger = logging.getLogger(__name__)


class GameOrchestrator:
    """
    Представляет ОДНУ партию и её конечный автомат.
    Является "Фасадом", который координирует работу
    MatchState, GamePlayerManager, GameTurnManager и GameAIManager.

    Все входы (выбор объекта, отмена, сброс, тик, ответ ИИ)
    берут общий RLock: автомат не реентерабелен.
    """

    def __init__(
        self,
        game_id: str,
        ai_manager: GameAIManager,
        turn_manager: GameTurnManager,
        player_manager: GamePlayerManager,
        renderer: Renderer,
        log_event: callable,
        config: dict
    ):
        self.id = game_id
        self.log_event = log_event
        self.lock = threading.RLock()
        self.renderer = renderer

        try:
            self.layout_config = {
                'BOARD_COLUMNS': config['BOARD_COLUMNS'],
                'BOARD_ROWS': config['BOARD_ROWS'],
                'PIECES_PER_COLOR': config['PIECES_PER_COLOR'],
            }
        except KeyError as e:
            raise KeyError(f"GameOrchestrator ({self.id}): отсутствует ключ конфига {e} при внедрении.")

        self.state = MatchState()

        # Присваиваем готовые сервисы
        self.players = player_manager
        self.turn_manager = turn_manager
        self.ai_manager = ai_manager

        # Настраиваем связи
        self.players.set_lock(self.lock)
        self.turn_manager.set_lock(self.lock)
        self.ai_manager.set_lock(self.lock)

        # Передаем 'self' в ai_manager для callback'ов
        self.ai_manager.set_game_session_callback(self)

        self.last_activity = time.time()

        self.log_event("SESSION_INIT", f"Экземпляр партии {self.id} (Фасад) создан. State: {self.state.event.value}", game_id=self.id)

    # --- Хелперы ---

    @property
    def event(self) -> GameEvent:
        return self.state.event

    def get_all_sids(self) -> list:
        return self.players.get_all_sids()

    def _touch(self):
        self.last_activity = time.time()

    def snapshot(self) -> Optional[GameState]:
        with self.lock:
            if self.state.board is None:
                return None
            return capture_state(self.state.board, self.state.players, self.state.active_seat)

    def to_dict(self) -> Dict[str, Any]:
        with self.lock:
            payload = build_board_payload(self.state)
            payload['game_id'] = self.id
            payload['seat_kinds'] = [k.value for k in self.players.seat_kinds]
            payload['history'] = self.state.history.to_list()
            return payload

    # --- Загрузка / сброс ---

    def on_assets_loaded(self, layout: Optional[Dict[str, Any]] = None) -> bool:
        """
        LOADING -> WAITING. Строит доску и места по раскладке
        (или по стандартной раскладке из конфига).
        """
        with self.lock:
            self._touch()
            if self.state.event is not GameEvent.LOADING:
                self.log_event("STATE_VIOLATION_BLOCKED", f"assets_loaded в состоянии {self.state.event.value}", game_id=self.id)
                return False

            layout = layout or self.state.layout or create_standard_layout(
                self.layout_config['BOARD_COLUMNS'],
                self.layout_config['BOARD_ROWS'],
                self.layout_config['PIECES_PER_COLOR'],
            )

            try:
                board = Board.from_layout(layout)
            except (BoundsError, IllegalMoveError, KeyError, ValueError) as e:
                self.log_event("LAYOUT_ERROR", f"Раскладка отклонена: {e}", game_id=self.id)
                self.renderer.notify('move_rejection', {'message': f'Некорректная раскладка: {e}'})
                return False

            state = self.state
            state.layout = layout
            state.board = board
            state.players = self.players.create_players(board)
            board.listener = self.players.relocation_listener(state)
            state.history = History()
            state.active_seat = c.SEAT_FIRST
            state.picked_piece_id = None
            state.pending_move = None
            state.pending_signal = None
            state.pending_ticket = None
            state.ai_suspended = False
            state.was_adjusted = False
            state.winner = c.NO_WINNER

            change_event(state, GameEvent.WAITING, self.log_event, self.id)
            self.players.apply_selectability(state, self.renderer)
            self.renderer.display_board(build_board_payload(state))

            self.ai_manager.maybe_request_move(state, self.players)
            return True

    def on_reset_requested(self):
        """
        Любое состояние -> LOADING. Доска, журнал и места выбрасываются;
        поколение растет, поэтому поздний ответ ИИ будет проигнорирован.
        """
        with self.lock:
            self._touch()
            generation = self.state.generation + 1
            layout = self.state.layout

            self.state = MatchState()
            self.state.generation = generation
            self.state.layout = layout
            self.renderer.reset()

            self.log_event("GAME_RESET", f"Партия сброшена. Поколение: {generation}", game_id=self.id)
            self.renderer.notify('game_reset', {'generation': generation})

    # --- События клиента ---

    def on_object_picked(self, pick: PickEvent) -> bool:
        with self.lock:
            self._touch()
            if self.state.board is None:
                self.renderer.notify('move_rejection', {'message': 'Партия еще загружается.'})
                return False
            return self.turn_manager.handle_pick(self.state, self.players, self.renderer, pick)

    def on_undo_requested(self) -> bool:
        """Отказ сообщается клиенту ('undo_rejected'), а не исключением."""
        with self.lock:
            self._touch()
            history_length = len(self.state.history)
            try:
                self.turn_manager.undo_last_move(self.state, self.players, self.renderer)
                return True
            except UndoRejected as e:
                self.log_event("UNDO_REJECTED", e.message, game_id=self.id)
                self.renderer.notify('undo_rejected', {'message': e.message, 'history_length': history_length})
                return False

    def on_animation_done(self, signal_id: str) -> bool:
        result = self.renderer.on_animation_done(signal_id)
        if result:
            self.tick(0.0)
        return result

    def resume_ai(self) -> bool:
        with self.lock:
            self._touch()
            if not self.ai_manager.resume_ai(self.state, self.players, self.renderer):
                return False
            self.ai_manager.maybe_request_move(self.state, self.players)
            return True

    # --- Часы ---

    def tick(self, delta: float):
        """
        Тик внешних часов: анимации фишек, переходы, ожидающие
        сигнала рендера, и запуск запроса к ИИ.
        """
        with self.lock:
            state = self.state
            if state.board is None:
                return
            state.board.update(delta)

            if state.event is GameEvent.MOVE_DONE:
                self.turn_manager.finish_move_done(state, self.players, self.renderer)

            if state.event is GameEvent.ROTATING_VIEW:
                self.turn_manager.finish_rotation(state)

            self.ai_manager.maybe_request_move(state, self.players)

    # --- Callback ИИ (вызывается из потока пула) ---

    def on_decision_resolved(self, ticket: DecisionTicket, proposal: Optional[MoveProposal], error: Optional[DecisionServiceError]):
        with self.lock:
            move = self.ai_manager.resolve_decision(self.state, self.players, self.renderer, ticket, proposal, error)
            if move is None:
                return
            try:
                self.turn_manager.commit_move(self.state, self.players, self.renderer, move)
            except IllegalMoveError as e:
                # resolve_proposal уже проверил ход; сюда попадать не должны
                logger.error(f"[GameOrchestrator {self.id}] Проверенный ход ИИ отклонен доской: {e}", exc_info=True)
                change_event(self.state, GameEvent.WAITING, self.log_event, self.id)
