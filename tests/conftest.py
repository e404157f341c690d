"""Shared fixtures: a recording renderer, a manually resolved decision client and small layouts."""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from boardgame_server.game_core.constants import PlayerKind
from boardgame_server.game_core.decision_client import DecisionTicket
from boardgame_server.game_core.pick import PickEvent
from boardgame_server.services.game_ai_manager import GameAIManager
from boardgame_server.services.game_orchestrator import GameOrchestrator
from boardgame_server.services.game_player_manager import GamePlayerManager
from boardgame_server.services.game_turn_manager import GameTurnManager
from boardgame_server.services.renderer import AnimationSignal, Renderer


HUMAN = PlayerKind.HUMAN
EASY = PlayerKind.EASY_AI
HARD = PlayerKind.HARD_AI

BASE_CONFIG = {
    'BOARD_COLUMNS': 3,
    'BOARD_ROWS': 3,
    'PIECES_PER_COLOR': 1,
    'WINNING_SCORE': 10,
    'MOVE_ANIMATION_TIME': 0.6,
}


class RecordingRenderer(Renderer):
    """Keeps every call; animation signals complete immediately unless auto_complete is off."""

    def __init__(self, auto_complete: bool = True) -> None:
        self.auto_complete = auto_complete
        self.events: List[tuple] = []
        self.boards: List[Dict[str, Any]] = []
        self.selectable: Dict[int, bool] = {}
        self.signals: List[AnimationSignal] = []

    def display_board(self, state):
        self.boards.append(state)

    def mark_selectable(self, piece_id, selectable):
        self.selectable[piece_id] = selectable

    def play_move_animation(self, move):
        signal = AnimationSignal(done=self.auto_complete)
        self.signals.append(signal)
        self.events.append(('play_animation', move))
        return signal

    def rotate_view(self):
        signal = AnimationSignal(done=self.auto_complete)
        self.signals.append(signal)
        self.events.append(('rotate_view', signal.id))
        return signal

    def notify(self, event, payload):
        self.events.append((event, payload))

    def on_animation_done(self, signal_id):
        for signal in self.signals:
            if signal.id == signal_id and not signal.is_set():
                signal.set()
                return True
        return False

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def last(self, name: str) -> Optional[Any]:
        for event, payload in reversed(self.events):
            if event == name:
                return payload
        return None

    def count(self, name: str) -> int:
        return self.names().count(name)


class ManualDecisionClient:
    """Stores requests; the test decides when and how each one is answered."""

    def __init__(self) -> None:
        self.requests: List[tuple] = []

    def request_move(self, state, seat_kind, callback, generation=0):
        if seat_kind.is_human:
            raise ValueError("human seat")
        ticket = DecisionTicket(generation, state, seat_kind)
        self.requests.append((ticket, callback))
        return ticket

    @property
    def last_ticket(self) -> DecisionTicket:
        return self.requests[-1][0]

    def resolve(self, proposal=None, error=None, index: int = -1) -> None:
        ticket, callback = self.requests[index]
        ticket.attempts = max(ticket.attempts, 1)
        callback(ticket, proposal, error)


class EventLog:
    """Stands in for log_event; keeps the event types."""

    def __init__(self) -> None:
        self.entries: List[tuple] = []

    def __call__(self, event_type, message, sid=None, game_id=None, extra_data=None):
        self.entries.append((event_type, message))

    def types(self) -> List[str]:
        return [t for t, _ in self.entries]


def small_layout() -> Dict[str, Any]:
    """
    3x3 board. Seat 0 owns pieces 1 (red) and 2 (blue), seat 1 owns 3 (red) and 4 (blue),
    all in supply. Neutral bonus piece 5 on (1, 1), neutral risk piece 6 on (2, 2).
    """
    return {
        'columns': 3,
        'rows': 3,
        'pieces': [
            {'id': 1, 'color': 'red', 'kind': 'normal', 'owner': 0},
            {'id': 2, 'color': 'blue', 'kind': 'normal', 'owner': 0},
            {'id': 3, 'color': 'red', 'kind': 'normal', 'owner': 1},
            {'id': 4, 'color': 'blue', 'kind': 'normal', 'owner': 1},
            {'id': 5, 'color': 'red', 'kind': 'bonus', 'owner': None, 'column': 1, 'row': 1},
            {'id': 6, 'color': 'blue', 'kind': 'risk', 'owner': None, 'column': 2, 'row': 2},
        ],
    }


def make_orchestrator(
    seat_kinds: Sequence[PlayerKind],
    renderer: Optional[Renderer] = None,
    client: Optional[ManualDecisionClient] = None,
    config: Optional[Dict[str, Any]] = None,
    stats: Optional[list] = None,
    log: Optional[EventLog] = None,
) -> GameOrchestrator:
    config = {**BASE_CONFIG, **(config or {})}
    log = log if log is not None else EventLog()
    stats = stats if stats is not None else []
    game_id = 'game-test'

    orchestrator = GameOrchestrator(
        game_id=game_id,
        ai_manager=GameAIManager(game_id, client or ManualDecisionClient(), log),
        turn_manager=GameTurnManager(game_id, config, log, stats.append),
        player_manager=GamePlayerManager(game_id, seat_kinds, log),
        renderer=renderer or RecordingRenderer(),
        log_event=log,
        config=config,
    )
    orchestrator.players.setup_owner('sid-test')
    return orchestrator


def play(orchestrator: GameOrchestrator, piece_id: int, column: int, row: int) -> bool:
    """Human move: pick the piece, pick the tile, let the clock finish the turn."""
    orchestrator.on_object_picked(PickEvent.piece(piece_id))
    applied = orchestrator.on_object_picked(PickEvent.tile(column, row))
    orchestrator.tick(0.0)
    return applied


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def client() -> ManualDecisionClient:
    return ManualDecisionClient()


@pytest.fixture
def log() -> EventLog:
    return EventLog()


@pytest.fixture
def layout() -> Dict[str, Any]:
    return small_layout()
