# boardgame_server/services/game_turn_manager.py

import threading
from typing import TYPE_CHECKING, Dict, Any, Callable, Optional

from ..game_core import constants as c
from ..game_core.constants import GameEvent, PickKind
from ..game_core.errors import BoundsError, IllegalMoveError, UndoRejected
from ..game_core.game_state import capture_state, restore_state
from ..game_core.history import history_kind_for
from ..game_core.move import Move
from ..game_core.move_validator import build_collect_move, build_pick_move, can_collect, can_pick
from ..game_core.pick import PickEvent
from ..game_core.utils import get_winner
from .match_state import build_board_payload, change_event

if TYPE_CHECKING:
    from .match_state import MatchState
    from .game_player_manager import GamePlayerManager
    from .renderer import Renderer


class GameTurnManager:
    """
    Управляет логикой одного хода: выбор фишки, применение хода,
    смена хода, отмена и проверка победы.
    """
    def __init__(
        self,
        game_id: str,

        # --- Зависимости, внедренные контейнером ---
        config: Dict[str, Any],
        log_event: Callable,
        log_stats: Callable
    ):
        self.game_id = game_id
        self.lock = threading.RLock()

        self.log_event = log_event
        self.log_stats = log_stats

        # --- Извлекаем нужные ключи из внедренного конфига ---
        try:
            self.config = {
                'WINNING_SCORE': config['WINNING_SCORE'],
                'MOVE_ANIMATION_TIME': config['MOVE_ANIMATION_TIME'],
            }
        except KeyError as e:
            raise KeyError(f"GameTurnManager ({self.game_id}): отсутствует ключ конфига {e} при внедрении.")

    def set_lock(self, lock: threading.RLock):
        """Устанавливает внешний RLock из GameOrchestrator."""
        self.lock = lock

    def _reject(self, renderer: 'Renderer', message: str, sid: Optional[str] = None) -> bool:
        self.log_event("PICK_REJECTED", message, sid=sid, game_id=self.game_id)
        renderer.notify('move_rejection', {'message': message})
        return False

    # --- Выбор объектов ---

    def handle_pick(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer', pick: PickEvent) -> bool:
        """
        Обрабатывает выбор клетки или фишки.
        Возвращает True, если выбор что-то изменил (фишка выбрана или ход сделан).
        """
        with self.lock:
            sid = player_manager.sid

            # --- 1. Проверки-предохранители (Guard Clauses) ---

            if state.event is GameEvent.REQUESTING:
                return self._reject(renderer, 'Дождитесь хода ИИ.', sid)

            if state.event is GameEvent.ENDED:
                return self._reject(renderer, 'Партия окончена. Доступен только сброс.', sid)

            if state.event is not GameEvent.WAITING:
                return self._reject(renderer, f'Действие невозможно в состоянии {state.event.value}.', sid)

            player = player_manager.active_player(state)
            if not player.selectable:
                return self._reject(renderer, 'Сейчас не ваш ход.', sid)

            board = state.board

            # --- 2. Выбор фишки ---

            if pick.kind is PickKind.PIECE:
                try:
                    piece = board.piece(pick.piece_id)
                except IllegalMoveError as e:
                    self._clear_pick(state)
                    return self._reject(renderer, str(e), sid)

                if can_collect(piece, state.active_seat):
                    # Чужая/нейтральная фишка на доске -> снятие в зону сбора
                    self._clear_pick(state)
                    try:
                        self.commit_move(state, player_manager, renderer, build_collect_move(board, piece, state.active_seat))
                    except IllegalMoveError as e:
                        return self._reject(renderer, str(e), sid)
                    return True

                if not can_pick(piece, state.active_seat):
                    self._clear_pick(state)
                    return self._reject(renderer, 'Эту фишку нельзя выбрать.', sid)

                self._clear_pick(state)
                piece.picked = True
                state.picked_piece_id = piece.piece_id
                renderer.notify('piece_picked', {'piece_id': piece.piece_id})
                return True

            # --- 3. Выбор клетки ---

            if pick.column is None or pick.row is None:
                return self._reject(renderer, 'Не указаны координаты клетки.', sid)

            try:
                tile = board.tile_at(pick.column, pick.row)
            except BoundsError as e:
                self.log_event("BOUNDS_ERROR", str(e), sid=sid, game_id=self.game_id)
                return self._reject(renderer, str(e), sid)

            if state.picked_piece_id is None:
                return self._reject(renderer, 'Сначала выберите фишку.', sid)

            piece = board.pieces[state.picked_piece_id]
            if not tile.is_empty:
                self._clear_pick(state)
                return self._reject(renderer, f'Клетка {tile.coords} занята.', sid)

            try:
                move = build_pick_move(board, piece, tile, state.active_seat)
                self.commit_move(state, player_manager, renderer, move)
            except (IllegalMoveError, BoundsError) as e:
                self._clear_pick(state)
                return self._reject(renderer, str(e), sid)
            return True

    def _clear_pick(self, state: 'MatchState'):
        if state.picked_piece_id is not None:
            state.board.pieces[state.picked_piece_id].picked = False
        state.picked_piece_id = None

    # --- Применение хода ---

    def commit_move(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer', move: Move) -> Move:
        """
        Применяет ПРОВЕРЕННЫЙ ход: снимок -> запись в журнал -> доска -> анимация.
        Если доска отклоняет ход, ни журнал, ни доска не меняются.
        """
        with self.lock:
            board = state.board

            # --- 1. Фаза "Calculate" ---
            board.validate_move(move)
            snapshot = capture_state(board, state.players, state.active_seat)
            kind = history_kind_for(move)

            change_event(
                state,
                GameEvent.REMOVING if move.is_removal else GameEvent.APPLYING,
                self.log_event, self.game_id
            )

            # --- 2. Фаза "Commit" ---
            state.history.record(move, kind, snapshot)
            if move.is_removal:
                board.move_to_collection_zone(
                    move.source.tile_id, move.removed_color, move.removed_kind, move.destination.seat
                )
            elif move.is_placement:
                board.place_piece(move.piece_id, move.destination.tile_id)
            else:
                board.move_piece(move.piece_id, move.source.tile_id, move.destination.tile_id)

            state.picked_piece_id = None
            board.start_animation(move, self.config['MOVE_ANIMATION_TIME'])
            state.pending_move = move
            state.pending_signal = renderer.play_move_animation(move)

            self.log_event(
                "MOVE_APPLIED",
                f"Seat {state.active_seat}: {kind.value} piece {move.piece_id} {move.source_coords} -> {move.destination_coords}",
                game_id=self.game_id
            )
            change_event(state, GameEvent.MOVE_DONE, self.log_event, self.game_id)
            renderer.display_board(build_board_payload(state))
            return move

    # --- Смена хода ---

    def finish_move_done(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer') -> bool:
        """
        MOVE_DONE -> смена хода. Выполняется только когда рендер
        сообщил, что анимация хода закончилась.
        """
        with self.lock:
            if state.event is not GameEvent.MOVE_DONE:
                return False
            if state.pending_signal is not None and not state.pending_signal.is_set():
                return False

            state.pending_signal = None
            state.pending_move = None
            state.ai_suspended = False

            winner = get_winner(state.board, state.players, self.config['WINNING_SCORE'])
            if winner != c.NO_WINNER:
                self._handle_game_end(state, player_manager, renderer, winner)
                return True

            state.active_seat = player_manager.other_seat(state.active_seat)

            players = state.players
            if players[c.SEAT_SECOND].is_human and (players[c.SEAT_FIRST].is_human or not state.was_adjusted):
                state.was_adjusted = True
                state.pending_signal = renderer.rotate_view()
                change_event(state, GameEvent.ROTATING_VIEW, self.log_event, self.game_id)
            else:
                change_event(state, GameEvent.WAITING, self.log_event, self.game_id)

            player_manager.apply_selectability(state, renderer)
            renderer.notify('turn_changed', {'active_seat': state.active_seat})
            return True

    def finish_rotation(self, state: 'MatchState') -> bool:
        with self.lock:
            if state.event is not GameEvent.ROTATING_VIEW:
                return False
            if state.pending_signal is not None and not state.pending_signal.is_set():
                return False
            state.pending_signal = None
            change_event(state, GameEvent.WAITING, self.log_event, self.game_id)
            return True

    # --- Отмена ---

    def undo_last_move(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer') -> int:
        """
        Откатывает последний ход по снимку. Возвращает число снятых записей.
        Против ИИ откатывает до хода человека, иначе ИИ сразу повторит ход.
        Бросает UndoRejected, если откат сейчас невозможен.
        """
        with self.lock:
            if not player_manager.has_human:
                raise UndoRejected('Отмена невозможна в режиме ИИ против ИИ.')
            if state.event is GameEvent.REQUESTING:
                raise UndoRejected('Дождитесь хода ИИ.')
            if state.event is not GameEvent.WAITING:
                raise UndoRejected('Дождитесь окончания предыдущего хода.')
            if not state.history:
                raise UndoRejected('Нет ходов для отмены.')

            change_event(state, GameEvent.REWINDING, self.log_event, self.game_id)

            def _restore(snapshot):
                state.active_seat = restore_state(snapshot, state.board, state.players)

            undone = 0
            while state.history.undo(_restore):
                undone += 1
                if player_manager.active_player(state).is_human:
                    break

            state.picked_piece_id = None
            state.pending_ticket = None
            state.ai_suspended = False
            state.winner = c.NO_WINNER

            change_event(state, GameEvent.WAITING, self.log_event, self.game_id)
            player_manager.apply_selectability(state, renderer)
            renderer.display_board(build_board_payload(state))
            renderer.notify('undo_accepted', {
                'undone': undone,
                'history_length': len(state.history),
                'can_undo': len(state.history) > 0,
                'active_seat': state.active_seat,
            })
            self.log_event("UNDO", f"Отменено записей: {undone}. Осталось: {len(state.history)}", game_id=self.game_id)
            return undone

    # --- Конец партии ---

    def _handle_game_end(self, state: 'MatchState', player_manager: 'GamePlayerManager', renderer: 'Renderer', winner: int):
        state.winner = winner
        for player in state.players:
            player.set_selectable(False)
        change_event(state, GameEvent.ENDED, self.log_event, self.game_id)

        scores = [p.score for p in state.players]
        is_tie = winner == c.TIE
        self.log_event("GAME_END_TIE" if is_tie else "GAME_END_WIN", f"Winner: {winner}, scores: {scores}", game_id=self.game_id)

        self.log_stats({
            "game_id": self.game_id,
            "seats": [k.value for k in player_manager.seat_kinds],
            "outcome": "TIE" if is_tie else "WIN",
            "winner": None if is_tie else winner,
            "scores": scores,
            "moves": len(state.history),
        })

        renderer.display_board(build_board_payload(state))
        renderer.notify('game_over', {'winner': None if is_tie else winner, 'tie': is_tie, 'scores': scores})
