# boardgame_server/services/renderer.py

import queue
import threading
import uuid
import logging
from typing import Dict, Any, Optional

from ..game_core.move import Move

logger = logging.getLogger(__name__)


class AnimationSignal:
    """Сигнал "анимация на клиенте закончилась". Ставится рендером."""

    def __init__(self, signal_id: Optional[str] = None, done: bool = False):
        self.id = signal_id or uuid.uuid4().hex
        self._event = threading.Event()
        if done:
            self._event.set()

    def set(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


class Renderer:
    """
    Интерфейс к клиенту, который рисует сцену.
    Базовая реализация "безголовая": ничего не рисует, а сигналы
    анимаций сразу готовы (удобно для партий ИИ против ИИ и отладки).
    """

    def display_board(self, state: Dict[str, Any]):
        pass

    def mark_selectable(self, piece_id: int, selectable: bool):
        pass

    def play_move_animation(self, move: Move) -> AnimationSignal:
        return AnimationSignal(done=True)

    def rotate_view(self) -> AnimationSignal:
        return AnimationSignal(done=True)

    def notify(self, event: str, payload: Dict[str, Any]):
        pass

    def on_animation_done(self, signal_id: str) -> bool:
        return False

    def reset(self):
        """Забыть все неподтвержденные сигналы (сброс партии)."""
        pass


class QueueRenderer(Renderer):
    """
    Рендер для Socket.IO клиента: все сообщения кладутся в
    notification_queue, а фоновый воркер отправляет их в комнату (sid).
    Сигнал анимации ставится, когда клиент присылает 'animation_done'.
    """

    def __init__(self, room: str, notification_queue: queue.Queue, animation_time: float = 0.6):
        self.room = room
        self.notification_queue = notification_queue
        self.animation_time = animation_time
        self.signals: Dict[str, AnimationSignal] = {}
        self.lock = threading.Lock()

    def _put(self, event: str, payload: Dict[str, Any]):
        self.notification_queue.put({'event': event, 'payload': payload, 'room': self.room})

    def _new_signal(self) -> AnimationSignal:
        signal = AnimationSignal()
        with self.lock:
            self.signals[signal.id] = signal
        return signal

    def display_board(self, state: Dict[str, Any]):
        self._put('board_state', state)

    def mark_selectable(self, piece_id: int, selectable: bool):
        self._put('selectable', {'piece_id': piece_id, 'selectable': selectable})

    def play_move_animation(self, move: Move) -> AnimationSignal:
        signal = self._new_signal()
        self._put('play_animation', {
            'signal_id': signal.id,
            'move': move.to_dict(),
            'duration': self.animation_time,
        })
        return signal

    def rotate_view(self) -> AnimationSignal:
        signal = self._new_signal()
        self._put('rotate_view', {'signal_id': signal.id})
        return signal

    def notify(self, event: str, payload: Dict[str, Any]):
        self._put(event, payload)

    def on_animation_done(self, signal_id: str) -> bool:
        with self.lock:
            signal = self.signals.pop(signal_id, None)
        if signal is None:
            logger.warning(f"[QueueRenderer {self.room}] Неизвестный signal_id: {signal_id}")
            return False
        signal.set()
        return True

    def reset(self):
        with self.lock:
            dropped = len(self.signals)
            self.signals.clear()
        if dropped:
            logger.info(f"[QueueRenderer {self.room}] Сброшено неподтвержденных сигналов: {dropped}")
