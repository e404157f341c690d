# boardgame_server/api/main_routes.py

from flask import (
    Blueprint,
    current_app,
    jsonify
)

from ..extensions import limiter

# Создаем новый Blueprint
bp = Blueprint('main', __name__)


@bp.route('/health')
def health():
    """Проверка живости сервера."""
    return jsonify({"status": "ok", "games": current_app.game_service.count_games()})


@bp.route('/games/<game_id>/state')
@limiter.limit("30 per minute")
def game_state(game_id):
    """
    Снимок партии: GameState + состояние оркестратора + журнал.
    """
    game = current_app.game_service.get_game_by_id(game_id)
    if not game:
        current_app.logger.info(f"Запрос состояния неизвестной партии: {game_id}")
        return jsonify({"error": "Game not found"}), 404

    snapshot = game.snapshot()
    payload = game.to_dict()
    payload['state'] = snapshot.to_dict() if snapshot else None
    return jsonify(payload)
