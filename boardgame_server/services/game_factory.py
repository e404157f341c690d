# boardgame_server/services/game_factory.py

import queue
import uuid
from typing import Dict, Any, Callable, Optional, Sequence

from .game_orchestrator import GameOrchestrator
from .game_player_manager import GamePlayerManager
from .game_turn_manager import GameTurnManager
from .game_ai_manager import GameAIManager
from .logging_service import log_match_stats
from .renderer import QueueRenderer, Renderer
from ..game_core.constants import PlayerKind
from ..game_core.decision_client import DecisionClient


class GameFactory:

    def __init__(
        self,
        config: Dict[str, Any],
        log_event: Callable,
        notification_queue: queue.Queue,
        decision_client: DecisionClient,
        log_stats: Callable = log_match_stats
    ):
        self.config = config
        self.log_event = log_event
        self.notification_queue = notification_queue
        self.decision_client = decision_client
        self.log_stats = log_stats

    def _create_game_session_internally(
        self,
        game_id: str,
        seat_kinds: Sequence[PlayerKind],
        renderer: Renderer
    ) -> GameOrchestrator:

        game_ai_manager = GameAIManager(
            game_id=game_id,
            decision_client=self.decision_client,
            log_event=self.log_event
        )

        game_turn_manager = GameTurnManager(
            game_id=game_id,
            config=self.config,
            log_event=self.log_event,
            log_stats=self.log_stats
        )

        game_player_manager = GamePlayerManager(
            game_id=game_id,
            seat_kinds=seat_kinds,
            log_event=self.log_event
        )

        session = GameOrchestrator(
            game_id=game_id,
            ai_manager=game_ai_manager,
            turn_manager=game_turn_manager,
            player_manager=game_player_manager,
            renderer=renderer,
            log_event=self.log_event,
            config=self.config
        )
        return session

    def create_game(
        self,
        sid: str,
        seat_kinds: Sequence[PlayerKind],
        username: Optional[str] = None,
        renderer: Optional[Renderer] = None
    ) -> GameOrchestrator:
        """
        Создает партию в состоянии LOADING. Все сообщения для клиента
        идут через notification_queue в комнату его sid.
        """
        game_id = str(uuid.uuid4())

        if renderer is None:
            renderer = QueueRenderer(
                room=sid,
                notification_queue=self.notification_queue,
                animation_time=self.config['MOVE_ANIMATION_TIME']
            )

        new_game_session = self._create_game_session_internally(game_id, seat_kinds, renderer)
        new_game_session.players.setup_owner(sid, username)

        self.log_event("GAME_CREATED", f"Партия {game_id} создана. Места: {[k.value for k in seat_kinds]}", game_id=game_id, sid=sid)
        return new_game_session
