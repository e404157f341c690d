# boardgame_server/services/game_registry.py

import threading
from typing import Optional, Dict, List, Any


class GameRegistry:
    """
    Отвечает ИСКЛЮЧИТЕЛЬНО за хранение и поиск активных партий.
    Потокобезопасен.
    """
    def __init__(self, log_event_func):
        self.games: Dict[str, Any] = {} # game_id -> GameOrchestrator
        self.sid_to_game_id: Dict[str, str] = {}

        self.lock = threading.RLock()
        self.log_event = log_event_func or (lambda *args, **kwargs: None)

    def __len__(self):
        with self.lock:
            return len(self.games)

    def add_game(self, game_session):
        """
        Регистрирует новую партию во всех внутренних словарях.
        """
        game_id = game_session.id
        with self.lock:
            if game_id in self.games:
                self.log_event("REGISTRY_WARN", f"Партия {game_id} уже существует при добавлении.", game_id=game_id)
                return

            self.games[game_id] = game_session

            for sid in game_session.get_all_sids():
                if sid:
                    self.sid_to_game_id[sid] = game_id

            self.log_event("REGISTRY_ADD", f"Партия {game_id} добавлена. Всего партий: {len(self.games)}", game_id=game_id)

    def remove_game_by_id(self, game_id: str):
        """
        Полностью удаляет партию из всех реестров.
        Возвращает удаленную партию (или None).
        """
        if not game_id:
            return None

        with self.lock:
            game_session = self.games.pop(game_id, None)
            if not game_session:
                self.log_event("REGISTRY_WARN", f"Попытка удалить несуществующую партию {game_id}", game_id=game_id)
                return None

            sids_to_remove = [sid for sid, gid in self.sid_to_game_id.items() if gid == game_id]
            for sid in sids_to_remove:
                del self.sid_to_game_id[sid]

            self.log_event("REGISTRY_REMOVE", f"Партия {game_id} удалена. Осталось партий: {len(self.games)}", game_id=game_id)
            return game_session

    def get_by_game_id(self, game_id: str) -> Optional[Any]:
        """Получить партию по ID."""
        with self.lock:
            return self.games.get(game_id)

    def get_by_sid(self, sid: str) -> Optional[Any]:
        """Получить партию по SID'у клиента."""
        with self.lock:
            game_id = self.sid_to_game_id.get(sid)
            if not game_id:
                return None
            return self.games.get(game_id)

    def all_games(self) -> List[Any]:
        with self.lock:
            return list(self.games.values())
