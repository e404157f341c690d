# boardgame_server/game_core/__init__.py

# Создаем "публичный API" для game_core
from .constants import (
    SEAT_FIRST, SEAT_SECOND, WINNING_SCORE, NO_WINNER, TIE,
    PlayerKind, GameEvent, PieceColor, PieceKind, PickKind, HistoryKind
)

from .board import (
    Board,
    create_standard_layout
)

from .move import (
    Move,
    PieceLocation
)

from .history import (
    History,
    history_kind_for
)

from .game_state import (
    GameState,
    capture_state,
    restore_state
)

from .decision_client import (
    DecisionClient,
    DecisionTicket
)

from .errors import (
    BoundsError,
    IllegalMoveError,
    DecisionServiceError,
    UndoRejected
)

from .pick import (
    PickEvent
)

from .utils import (
    get_winner,
    are_moves_available
)
