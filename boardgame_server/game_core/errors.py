# boardgame_server/game_core/errors.py

from enum import Enum


class BoundsError(IndexError):
    """Координаты за пределами доски."""

    def __init__(self, column, row):
        super().__init__(f"Клетка ({column}, {row}) вне доски.")
        self.column = column
        self.row = row


class IllegalMoveError(ValueError):
    """Ход невозможен: клетка занята, фишка не найдена и т.п."""


class DecisionErrorReason(Enum):
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"
    ILLEGAL_MOVE_PROPOSED = "illegal_move_proposed"


class DecisionServiceError(Exception):
    """
    Ошибка ИИ-сервиса. 'reason' различает сетевую ошибку,
    нераспознанный ответ и ход, который отклонила доска.
    """

    def __init__(self, reason: DecisionErrorReason, message: str = ""):
        super().__init__(message or reason.value)
        self.reason = reason
        self.message = message or reason.value

    @property
    def retryable(self) -> bool:
        return self.reason is not DecisionErrorReason.ILLEGAL_MOVE_PROPOSED


class UndoRejected(Exception):
    """Отмена хода сейчас невозможна. Никогда не выходит за пределы оркестратора."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
