# boardgame_server/sockets/connection_handlers.py
import datetime
from flask import request, current_app
from flask_socketio import emit
from ..extensions import socketio, sid_to_client_map, sid_to_client_lock
from ..globals import log_event


@socketio.on('connect')
def handle_connect(auth=None):
    sid = request.sid
    username = auth.get('username') if isinstance(auth, dict) else None

    with sid_to_client_lock:
        sid_to_client_map[sid] = {
            "username": username or sid,
            "connect_time": datetime.datetime.now(),
        }

    log_event("SESSION_START", f"Client '{username or sid}' connected.", sid=sid)
    emit('connected', {'sid': sid})


@socketio.on('disconnect')
def handle_disconnect(*args):
    game_service = current_app.game_service

    sid = request.sid
    duration_str = "N/A"

    with sid_to_client_lock:
        client_data = sid_to_client_map.pop(sid, None)

    if client_data and client_data.get("connect_time"):
        duration = datetime.datetime.now() - client_data["connect_time"]
        duration_str = str(datetime.timedelta(seconds=int(duration.total_seconds())))

    log_event("SESSION_END", f"Client disconnected. Session duration: {duration_str}", sid=sid)

    game_id = game_service.handle_disconnect(sid)
    if game_id:
        log_event("GAME_FINALIZED", "Партия владельца завершена при отключении.", sid=sid, game_id=game_id)
