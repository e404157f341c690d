# boardgame_server/game_core/constants.py

from enum import Enum

# === Размер доски по умолчанию ===
BOARD_COLUMNS = 8
BOARD_ROWS = 8

# Обычных фишек каждого цвета у каждого места (seat)
PIECES_PER_COLOR = 4

# === Очки ===
WINNING_SCORE = 10
NORMAL_POINTS = 1
BONUS_POINTS = 2
RISK_POINTS = -1

# Индексы мест (seat)
SEAT_FIRST = 0
SEAT_SECOND = 1
SEATS = (SEAT_FIRST, SEAT_SECOND)

# Результат get_winner(): индекс места, ничья или "игра продолжается"
NO_WINNER = -1
TIE = 2

# Нейтральные бонус/риск фишки на стандартной раскладке: (колонка, ряд)
STANDARD_BONUS_TILES = [(0, 0), (7, 7)]
STANDARD_RISK_TILES = [(0, 7), (7, 0), (3, 3), (4, 4)]


class PlayerKind(Enum):
    """Тип игрока на месте. Значения совпадают с уровнями ИИ-сервиса."""
    HUMAN = "human"
    EASY_AI = "easy_ai"
    HARD_AI = "hard_ai"

    @property
    def is_human(self) -> bool:
        return self is PlayerKind.HUMAN

    @property
    def level(self) -> int:
        return {PlayerKind.HUMAN: 0, PlayerKind.EASY_AI: 1, PlayerKind.HARD_AI: 2}[self]


class GameEvent(Enum):
    """Состояния оркестратора."""
    LOADING = "LOADING"
    WAITING = "WAITING"
    REQUESTING = "REQUESTING"
    APPLYING = "APPLYING"
    MOVE_DONE = "MOVE_DONE"
    REMOVING = "REMOVING"
    REWINDING = "REWINDING"
    ROTATING_VIEW = "ROTATING_VIEW"
    ENDED = "ENDED"


class PieceColor(Enum):
    RED = "red"
    BLUE = "blue"


class PieceKind(Enum):
    NORMAL = "normal"
    BONUS = "bonus"
    RISK = "risk"


class LocationKind(Enum):
    TILE = "tile"
    ZONE = "zone"
    OFF_BOARD = "off"


class PickKind(Enum):
    """Что именно выбрал пользователь. Определяется клиентом, а не сервером."""
    TILE = "tile"
    PIECE = "piece"


class HistoryKind(Enum):
    PLAY = "play"
    REMOVAL = "removal"
    POINTS_UPDATE = "points_update"
