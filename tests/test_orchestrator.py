"""State machine tests for a single game: picks, turns, undo, AI requests and game end."""

import queue

import pytest

from boardgame_server.game_core import constants as c
from boardgame_server.game_core.constants import GameEvent, HistoryKind
from boardgame_server.game_core.decision_parser import MOVE_PLACE, MOVE_RELOCATE, MoveProposal
from boardgame_server.game_core.errors import DecisionErrorReason, DecisionServiceError
from boardgame_server.game_core.pick import PickEvent
from boardgame_server.services.renderer import QueueRenderer

from conftest import EASY, HARD, HUMAN, RecordingRenderer, make_orchestrator, play


def _loaded(seat_kinds, layout, **kwargs):
    orchestrator = make_orchestrator(seat_kinds, **kwargs)
    assert orchestrator.on_assets_loaded(layout) is True
    return orchestrator


# --- Loading ---

def test_starts_in_loading_and_rejects_picks(renderer) -> None:
    orchestrator = make_orchestrator((HUMAN, HUMAN), renderer=renderer)

    assert orchestrator.event is GameEvent.LOADING
    assert orchestrator.on_object_picked(PickEvent.piece(1)) is False
    assert renderer.count('move_rejection') == 1


def test_assets_loaded_enters_waiting_with_first_seat_selectable(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert orchestrator.event is GameEvent.WAITING
    assert orchestrator.state.active_seat == c.SEAT_FIRST
    assert renderer.selectable == {1: True, 2: True, 3: False, 4: False}
    assert renderer.boards[-1]['event'] == 'WAITING'


def test_assets_loaded_twice_is_ignored(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout)

    assert orchestrator.on_assets_loaded(layout) is False
    assert orchestrator.event is GameEvent.WAITING


def test_standard_layout_is_used_without_client_layout() -> None:
    orchestrator = make_orchestrator((HUMAN, HUMAN), config={'BOARD_COLUMNS': 8, 'BOARD_ROWS': 8, 'PIECES_PER_COLOR': 4})

    orchestrator.on_assets_loaded()

    assert orchestrator.state.board.columns == 8
    assert len(orchestrator.state.board.supply_of(0)) == 8


def test_invalid_layout_stays_in_loading(renderer, layout) -> None:
    layout['pieces'][0].update(column=9, row=9)
    orchestrator = make_orchestrator((HUMAN, HUMAN), renderer=renderer)

    assert orchestrator.on_assets_loaded(layout) is False
    assert orchestrator.event is GameEvent.LOADING
    assert renderer.count('move_rejection') == 1


# --- Human moves ---

def test_human_place_switches_turn_and_rotates_view(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert play(orchestrator, 1, 0, 0) is True

    board = orchestrator.state.board
    assert board.tile_at(0, 0).piece_id == 1
    assert orchestrator.state.players[0].active_pieces == 1
    assert orchestrator.state.active_seat == c.SEAT_SECOND
    assert orchestrator.event is GameEvent.WAITING
    assert len(orchestrator.state.history) == 1
    assert orchestrator.state.history.last.kind is HistoryKind.PLAY
    assert renderer.count('rotate_view') == 1
    assert renderer.selectable[1] is False
    assert renderer.selectable[3] is True


def test_pick_on_occupied_tile_is_rejected_without_changes(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)
    orchestrator.on_object_picked(PickEvent.piece(1))

    assert orchestrator.on_object_picked(PickEvent.tile(1, 1)) is False

    assert orchestrator.state.board.tile_at(1, 1).piece_id == 5
    assert orchestrator.state.picked_piece_id is None
    assert len(orchestrator.state.history) == 0
    assert orchestrator.event is GameEvent.WAITING
    assert renderer.count('move_rejection') == 1


def test_pick_out_of_bounds_is_rejected(renderer, layout, log) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer, log=log)
    orchestrator.on_object_picked(PickEvent.piece(1))

    assert orchestrator.on_object_picked(PickEvent.tile(7, 0)) is False

    assert 'BOUNDS_ERROR' in log.types()
    assert orchestrator.event is GameEvent.WAITING
    assert len(orchestrator.state.history) == 0


def test_tile_without_selected_piece_is_rejected(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert orchestrator.on_object_picked(PickEvent.tile(0, 0)) is False
    assert orchestrator.state.board.tile_at(0, 0).is_empty


def test_opponent_supply_piece_cannot_be_picked(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert orchestrator.on_object_picked(PickEvent.piece(3)) is False
    assert orchestrator.state.picked_piece_id is None


def test_relocating_own_piece(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout)
    play(orchestrator, 1, 0, 0)
    play(orchestrator, 3, 0, 2)

    play(orchestrator, 1, 2, 0)

    board = orchestrator.state.board
    assert board.tile_at(0, 0).is_empty
    assert board.tile_at(2, 0).piece_id == 1
    assert orchestrator.state.players[0].active_pieces == 1


def test_collecting_neutral_bonus_piece_scores(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert orchestrator.on_object_picked(PickEvent.piece(5)) is True
    assert orchestrator.event is GameEvent.MOVE_DONE
    orchestrator.tick(0.0)

    player = orchestrator.state.players[0]
    assert player.bonus_pieces == 1
    assert player.score == 2
    assert orchestrator.state.board.tile_at(1, 1).is_empty
    assert orchestrator.state.history.last.kind is HistoryKind.POINTS_UPDATE


# --- Animation gating ---

def test_turn_switch_waits_for_animation_and_rotation(layout) -> None:
    renderer = RecordingRenderer(auto_complete=False)
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)
    orchestrator.on_object_picked(PickEvent.piece(1))
    orchestrator.on_object_picked(PickEvent.tile(0, 0))

    orchestrator.tick(1.0)
    assert orchestrator.event is GameEvent.MOVE_DONE
    assert orchestrator.on_object_picked(PickEvent.piece(2)) is False
    assert orchestrator.on_undo_requested() is False

    assert orchestrator.on_animation_done(renderer.signals[0].id) is True
    assert orchestrator.event is GameEvent.ROTATING_VIEW
    assert orchestrator.state.active_seat == c.SEAT_SECOND

    assert orchestrator.on_animation_done(renderer.signals[1].id) is True
    assert orchestrator.event is GameEvent.WAITING


def test_unknown_animation_signal_is_ignored(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=RecordingRenderer(auto_complete=False))

    assert orchestrator.on_animation_done('nope') is False
    assert orchestrator.event is GameEvent.WAITING


# --- Undo ---

def test_undo_restores_previous_position(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)
    before = orchestrator.snapshot()
    play(orchestrator, 1, 0, 0)

    assert orchestrator.on_undo_requested() is True

    assert orchestrator.snapshot() == before
    assert orchestrator.state.active_seat == c.SEAT_FIRST
    assert len(orchestrator.state.history) == 0
    assert renderer.last('undo_accepted') == {
        'undone': 1, 'history_length': 0, 'can_undo': False, 'active_seat': 0,
    }


def test_undo_with_empty_history_is_rejected(renderer, layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    assert orchestrator.on_undo_requested() is False
    assert renderer.last('undo_rejected')['history_length'] == 0
    assert orchestrator.event is GameEvent.WAITING


def test_undo_restores_collected_points(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout)
    orchestrator.on_object_picked(PickEvent.piece(5))
    orchestrator.tick(0.0)

    orchestrator.on_undo_requested()

    assert orchestrator.state.players[0].score == 0
    assert orchestrator.state.board.tile_at(1, 1).piece_id == 5


def test_undo_is_refused_for_ai_vs_ai(renderer, client, layout) -> None:
    orchestrator = _loaded((EASY, HARD), layout, renderer=renderer, client=client)

    assert orchestrator.on_undo_requested() is False
    assert 'ИИ против ИИ' in renderer.last('undo_rejected')['message']


# --- AI turns ---

def _human_then_ai(layout, renderer, client, **kwargs):
    orchestrator = _loaded((HUMAN, EASY), layout, renderer=renderer, client=client, **kwargs)
    play(orchestrator, 1, 0, 0)
    return orchestrator


def test_ai_turn_requests_and_applies_move(renderer, client, layout) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)

    assert orchestrator.event is GameEvent.REQUESTING
    assert renderer.count('rotate_view') == 0
    ticket = client.last_ticket
    assert ticket.seat_kind is EASY
    assert ticket.state == orchestrator.snapshot()

    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=3, destination=(2, 0)))
    assert orchestrator.event is GameEvent.MOVE_DONE
    orchestrator.tick(0.0)

    assert orchestrator.state.board.tile_at(2, 0).piece_id == 3
    assert orchestrator.state.active_seat == c.SEAT_FIRST
    assert orchestrator.event is GameEvent.WAITING
    assert len(client.requests) == 1


def test_picks_and_undo_are_rejected_while_requesting(renderer, client, layout) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)

    assert orchestrator.on_object_picked(PickEvent.piece(2)) is False
    assert renderer.last('move_rejection')['message'] == 'Дождитесь хода ИИ.'
    assert orchestrator.on_undo_requested() is False
    assert orchestrator.event is GameEvent.REQUESTING


def test_undo_against_ai_walks_back_to_human_turn(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)
    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=3, destination=(2, 0)))
    orchestrator.tick(0.0)

    assert orchestrator.on_undo_requested() is True

    assert renderer.last('undo_accepted')['undone'] == 2
    assert orchestrator.state.active_seat == c.SEAT_FIRST
    assert orchestrator.state.board.tile_at(0, 0).is_empty
    assert orchestrator.state.board.tile_at(2, 0).is_empty
    assert orchestrator.event is GameEvent.WAITING


def test_reset_forgets_unacknowledged_animation_signals(layout) -> None:
    renderer = QueueRenderer('sid-test', queue.Queue())
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)
    orchestrator.on_object_picked(PickEvent.piece(1))
    orchestrator.on_object_picked(PickEvent.tile(0, 0))
    pending = list(renderer.signals)
    assert len(pending) == 1

    orchestrator.on_reset_requested()

    assert renderer.signals == {}
    assert orchestrator.on_animation_done(pending[0]) is False
    assert orchestrator.event is GameEvent.LOADING


def test_reset_discards_late_ai_reply(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)
    orchestrator.on_reset_requested()

    assert orchestrator.event is GameEvent.LOADING
    assert orchestrator.state.generation == 1

    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=3, destination=(2, 0)))

    assert orchestrator.event is GameEvent.LOADING
    assert orchestrator.state.board is None

    assert orchestrator.on_assets_loaded() is True
    assert orchestrator.state.board.tile_at(0, 0).is_empty
    assert len(orchestrator.state.history) == 0


def test_reply_for_changed_state_is_discarded(client, layout, renderer, log) -> None:
    orchestrator = _human_then_ai(layout, renderer, client, log=log)
    orchestrator.state.players[1].bonus_pieces += 1

    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=3, destination=(2, 0)))

    assert orchestrator.state.board.tile_at(2, 0).is_empty
    assert orchestrator.event is GameEvent.WAITING
    assert 'DECISION_STALE' in log.types()

    orchestrator.tick(0.0)
    assert orchestrator.event is GameEvent.REQUESTING
    assert len(client.requests) == 2


def test_transport_error_suspends_ai_and_lets_human_take_over(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)

    client.resolve(error=DecisionServiceError(DecisionErrorReason.TRANSPORT, "connection refused"))

    payload = renderer.last('decision_error')
    assert payload['reason'] == 'transport'
    assert payload['fatal'] is True
    assert orchestrator.event is GameEvent.WAITING
    assert orchestrator.state.ai_suspended is True

    orchestrator.tick(0.0)
    assert len(client.requests) == 1

    assert play(orchestrator, 3, 2, 1) is True
    assert orchestrator.state.board.tile_at(2, 1).piece_id == 3
    assert orchestrator.state.ai_suspended is False
    assert orchestrator.state.active_seat == c.SEAT_FIRST


def test_resume_ai_issues_a_new_request(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)
    client.resolve(error=DecisionServiceError(DecisionErrorReason.MALFORMED_RESPONSE, "???"))

    assert orchestrator.resume_ai() is True

    assert orchestrator.event is GameEvent.REQUESTING
    assert len(client.requests) == 2
    assert orchestrator.resume_ai() is False


def test_illegal_ai_proposal_is_never_applied(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)
    before = orchestrator.snapshot()

    client.resolve(MoveProposal(action=MOVE_RELOCATE, origin=(0, 0), destination=(0, 1)))

    assert orchestrator.snapshot() == before
    assert len(orchestrator.state.history) == 1
    payload = renderer.last('decision_error')
    assert payload['reason'] == 'illegal_move_proposed'
    assert payload['fatal'] is False


def test_ai_first_seat_rotates_view_only_once(client, layout, renderer) -> None:
    orchestrator = _loaded((EASY, HUMAN), layout, renderer=renderer, client=client)
    assert orchestrator.event is GameEvent.REQUESTING

    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=1, destination=(0, 0)))
    orchestrator.tick(0.0)
    assert orchestrator.state.active_seat == c.SEAT_SECOND
    assert renderer.count('rotate_view') == 1

    play(orchestrator, 3, 2, 0)
    assert orchestrator.event is GameEvent.REQUESTING
    assert renderer.count('rotate_view') == 1


# --- Game end ---

def test_reaching_winning_score_ends_game(renderer, layout) -> None:
    stats = []
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer, config={'WINNING_SCORE': 2}, stats=stats)

    orchestrator.on_object_picked(PickEvent.piece(5))
    orchestrator.tick(0.0)

    assert orchestrator.event is GameEvent.ENDED
    assert renderer.last('game_over') == {'winner': 0, 'tie': False, 'scores': [2, 0]}
    assert stats[0]['outcome'] == 'WIN'
    assert stats[0]['winner'] == 0

    assert orchestrator.on_object_picked(PickEvent.piece(2)) is False
    assert orchestrator.on_undo_requested() is False
    assert orchestrator.event is GameEvent.ENDED


def test_full_board_with_equal_scores_is_a_tie(renderer) -> None:
    layout = {
        'columns': 2,
        'rows': 1,
        'pieces': [
            {'id': 1, 'color': 'red', 'owner': 0},
            {'id': 2, 'color': 'blue', 'owner': 1},
        ],
    }
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    play(orchestrator, 1, 0, 0)
    play(orchestrator, 2, 1, 0)

    assert orchestrator.event is GameEvent.ENDED
    assert orchestrator.state.winner == c.TIE
    assert renderer.last('game_over')['tie'] is True


def test_seat_without_moves_ends_the_game(renderer) -> None:
    layout = {
        'columns': 3,
        'rows': 1,
        'pieces': [
            {'id': 1, 'color': 'red', 'owner': 0},
            {'id': 2, 'color': 'blue', 'owner': 0},
        ],
    }
    orchestrator = _loaded((HUMAN, HUMAN), layout, renderer=renderer)

    play(orchestrator, 1, 0, 0)

    assert orchestrator.event is GameEvent.ENDED
    assert orchestrator.state.winner == c.TIE
    assert renderer.last('game_over')['scores'] == [0, 0]


def test_active_seat_alternates_after_every_move(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout)
    seats = []

    for piece_id, column, row in ((1, 0, 0), (3, 0, 2), (2, 2, 0), (4, 2, 1)):
        before = orchestrator.state.active_seat
        assert play(orchestrator, piece_id, column, row) is True
        seats.append((before, orchestrator.state.active_seat))

    assert all(before != after for before, after in seats)
    assert orchestrator.event is GameEvent.WAITING


def test_to_dict_reports_history(layout) -> None:
    orchestrator = _loaded((HUMAN, EASY), layout)
    play(orchestrator, 1, 0, 0)

    payload = orchestrator.to_dict()

    assert payload['game_id'] == 'game-test'
    assert payload['seat_kinds'] == ['human', 'easy_ai']
    assert payload['history'][0]['kind'] == 'play'
    assert payload['event'] == 'REQUESTING'


def test_three_moves_then_two_undos_leave_first_move(layout) -> None:
    orchestrator = _loaded((HUMAN, HUMAN), layout)
    play(orchestrator, 1, 0, 0)
    after_first = orchestrator.snapshot()
    play(orchestrator, 3, 0, 2)
    play(orchestrator, 2, 2, 0)

    assert orchestrator.on_undo_requested() is True
    assert orchestrator.on_undo_requested() is True

    assert orchestrator.snapshot() == after_first
    assert len(orchestrator.state.history) == 1


def test_ai_proposal_onto_occupied_tile_keeps_ai_seat_active(client, layout, renderer) -> None:
    orchestrator = _human_then_ai(layout, renderer, client)

    client.resolve(MoveProposal(action=MOVE_PLACE, piece_id=3, destination=(1, 1)))

    assert orchestrator.state.board.tile_at(1, 1).piece_id == 5
    assert orchestrator.state.board.pieces[3].location.is_off_board
    assert orchestrator.event is GameEvent.WAITING
    assert orchestrator.state.active_seat == c.SEAT_SECOND
    assert renderer.last('decision_error')['reason'] == 'illegal_move_proposed'

    orchestrator.tick(0.0)
    assert orchestrator.state.ai_suspended is True
    assert len(client.requests) == 1
    assert orchestrator.resume_ai() is True
    assert len(client.requests) == 2
