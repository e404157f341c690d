# boardgame_server/config.py

import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

class Config:
    """Базовый класс конфигурации (безопасные значения)."""

    LOG_FILE = 'application.log'
    STATS_LOG_FILE = 'match_stats.log'

    # eventlet в боевом режиме; тесты используют "threading"
    SOCKETIO_ASYNC_MODE = 'eventlet'
    START_WORKERS = True

    # --- ИИ-сервис ---
    DECISION_SERVICE_HOST = 'localhost'
    DECISION_SERVICE_PORT = 8081
    DECISION_TIMEOUT = 10.0
    DECISION_RETRIES = 1
    DECISION_MAX_WORKERS = os.cpu_count()
    AI_THINK_DELAY = (0.0, 0.0)

    # --- Доска и правила ---
    BOARD_COLUMNS = 8
    BOARD_ROWS = 8
    PIECES_PER_COLOR = 4
    WINNING_SCORE = 10

    # --- Часы и анимации ---
    TICK_INTERVAL = 0.05
    MOVE_ANIMATION_TIME = 0.6

    RATELIMIT_DEFAULT = "120 per minute"
