# boardgame_server/sockets/game_handlers.py

from flask import request, current_app
from flask_socketio import emit
from marshmallow import ValidationError
from ..extensions import socketio, sid_to_client_map, sid_to_client_lock
from ..globals import log_event
from ..api.schemas import (
    StartGameSchema,
    AssetsLoadedSchema,
    PickSchema,
    AnimationDoneSchema,
    TickSchema
)


def _reject_invalid(sid, event_name, err: ValidationError):
    log_event("INVALID_REQUEST", f"'{event_name}': {err.messages}", sid=sid)
    emit('move_rejection', {'message': 'Некорректные данные.', 'errors': err.messages})


def _game_for(sid, event_name):
    game_session = current_app.game_service.get_game_by_sid(sid)
    if not game_session:
        log_event("GAME_NOT_FOUND", f"'{event_name}' без активной партии.", sid=sid)
        emit('move_rejection', {'message': 'Игра не найдена.'})
    return game_session


@socketio.on('start_game')
def handle_start_game(data=None):
    """
    Создает партию в состоянии LOADING.
    Клиент отвечает 'assets_loaded', когда сцена готова.
    """
    game_service = current_app.game_service
    sid = request.sid

    try:
        params = StartGameSchema().load(data or {})
    except ValidationError as err:
        _reject_invalid(sid, 'start_game', err)
        return

    with sid_to_client_lock:
        username = sid_to_client_map.get(sid, {}).get('username')

    game_id, _, notifications = game_service.create_new_game(sid, params['seat_kinds'], username)
    if game_id:
        log_event("GAME_CREATE", f"Клиент начал партию: {[k.value for k in params['seat_kinds']]}", sid=sid, game_id=game_id)

    for msg in notifications:
        emit(msg['event'], msg['payload'], room=msg['room'])


@socketio.on('assets_loaded')
def handle_assets_loaded(data=None):
    sid = request.sid
    game_session = _game_for(sid, 'assets_loaded')
    if not game_session:
        return

    try:
        params = AssetsLoadedSchema().load(data or {})
    except ValidationError as err:
        _reject_invalid(sid, 'assets_loaded', err)
        return

    game_session.on_assets_loaded(params.get('layout'))


@socketio.on('object_picked')
def handle_object_picked(data=None):
    sid = request.sid
    game_session = _game_for(sid, 'object_picked')
    if not game_session:
        return

    try:
        pick = PickSchema().load(data or {})
    except ValidationError as err:
        _reject_invalid(sid, 'object_picked', err)
        return

    game_session.on_object_picked(pick)


@socketio.on('request_undo')
def handle_request_undo(data=None):
    game_session = _game_for(request.sid, 'request_undo')
    if game_session:
        game_session.on_undo_requested()


@socketio.on('request_reset')
def handle_request_reset(data=None):
    game_session = _game_for(request.sid, 'request_reset')
    if game_session:
        game_session.on_reset_requested()


@socketio.on('resume_ai')
def handle_resume_ai(data=None):
    game_session = _game_for(request.sid, 'resume_ai')
    if game_session and not game_session.resume_ai():
        emit('move_rejection', {'message': 'ИИ не приостановлен.'})


@socketio.on('animation_done')
def handle_animation_done(data=None):
    sid = request.sid
    game_session = _game_for(sid, 'animation_done')
    if not game_session:
        return

    try:
        params = AnimationDoneSchema().load(data or {})
    except ValidationError as err:
        _reject_invalid(sid, 'animation_done', err)
        return

    game_session.on_animation_done(params['signal_id'])


@socketio.on('tick')
def handle_tick(data=None):
    sid = request.sid
    game_session = _game_for(sid, 'tick')
    if not game_session:
        return

    try:
        params = TickSchema().load(data or {})
    except ValidationError as err:
        _reject_invalid(sid, 'tick', err)
        return

    game_session.tick(params['delta'])
