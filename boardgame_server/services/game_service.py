# boardgame_server/services/game_service.py

import queue
import logging
from typing import Optional, Dict, Any, List, Sequence, Tuple

from .game_orchestrator import GameOrchestrator
from .game_registry import GameRegistry
from .game_factory import GameFactory
from ..game_core.constants import PlayerKind

Notification = Dict[str, Any]

logger = logging.getLogger(__name__)


class GameService:
    """
    Фасад, координирующий высокоуровневые действия с партиями.
    Не владеет состоянием, а делегирует его специализированным сервисам.
    """

    def __init__(self,
                 registry: GameRegistry,
                 factory: GameFactory,
                 notification_queue: queue.Queue):
        """
        Инициализируется через Внедрение Зависимостей (Dependency Injection).
        """
        self.registry = registry
        self.factory = factory
        self.notification_queue = notification_queue

    ### Публичный API (Прокси к Registry) ###

    def get_game_by_sid(self, sid: str) -> Optional[GameOrchestrator]:
        """Находит партию, связанную с SID."""
        return self.registry.get_by_sid(sid)

    def get_game_by_id(self, game_id: str) -> Optional[GameOrchestrator]:
        return self.registry.get_by_game_id(game_id)

    def count_games(self) -> int:
        return len(self.registry)

    def finalize_game(self, game_id: str) -> None:
        """Завершает и удаляет партию. Поздний ответ ИИ для нее будет выброшен."""
        game_session = self.registry.remove_game_by_id(game_id)
        if game_session:
            game_session.on_reset_requested()

    ### Создание партий ###

    def create_new_game(self, sid: str, seat_kinds: Sequence[PlayerKind], username: Optional[str] = None) -> Tuple[Optional[str], Optional[GameOrchestrator], List[Notification]]:
        """Создает партию для клиента. Один клиент - одна партия."""
        if self.registry.get_by_sid(sid):
            return None, None, [{
                'event': 'move_rejection',
                'payload': {'message': 'Вы уже в игре. Используйте сброс.'},
                'room': sid
            }]

        new_game_session = self.factory.create_game(sid, seat_kinds, username)
        self.registry.add_game(new_game_session)
        return new_game_session.id, new_game_session, [{
            'event': 'game_created',
            'payload': {'game_id': new_game_session.id, 'seat_kinds': [k.value for k in seat_kinds]},
            'room': sid
        }]

    ### Управление подключением ###

    def handle_disconnect(self, sid: str) -> Optional[str]:
        """Партия отключившегося клиента завершается."""
        game = self.registry.get_by_sid(sid)
        if not game:
            return None
        self.finalize_game(game.id)
        return game.id

    ### Часы ###

    def tick_all(self, delta: float):
        """Тик всех активных партий (вызывается фоновым воркером)."""
        for game in self.registry.all_games():
            try:
                game.tick(delta)
            except Exception as e:
                logger.error(f"[GameService] Ошибка тика партии {game.id}: {e}", exc_info=True)
