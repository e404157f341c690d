# boardgame_server/extensions.py
"""
Инициализация расширений Flask и глобальных объектов.

Этот файл централизует создание экземпляров расширений (SocketIO, Limiter),
чтобы избежать циклических импортов и упростить управление в фабрике приложений (app factory).
"""

from flask_socketio import SocketIO
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import threading
import queue
from typing import Dict, Any

# --- Расширения Flask ---

# SocketIO для обработки WebSocket соединений.
# async_mode задается в init_app из конфига.
socketio = SocketIO(cors_allowed_origins="*", compress=True)

# Limiter для ограничения частоты запросов (rate limiting) по IP клиента
limiter = Limiter(key_func=get_remote_address)


# --- Глобальное управление состоянием ---

# Потокобезопасная очередь уведомлений. Пул ИИ и часы кладут сообщения
# {'event', 'payload', 'room'}, фоновый воркер отправляет их через SocketIO.
notification_queue: queue.Queue = queue.Queue()

# { 'sid': {'connect_time': datetime, 'username': str}, ... }
# SocketIO обрабатывает каждого клиента в своем потоке, поэтому доступ под lock.
sid_to_client_map: Dict[str, Any] = {}
sid_to_client_lock = threading.Lock()
