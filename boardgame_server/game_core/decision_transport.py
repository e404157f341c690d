# boardgame_server/game_core/decision_transport.py

import logging

import requests

from .errors import DecisionErrorReason, DecisionServiceError

logger = logging.getLogger(__name__)


def fetch_reply(base_url: str, request_path: str, timeout: float) -> str:
    """
    Один GET к ИИ-сервису. Любая сетевая проблема или не-2xx статус
    превращается в DecisionServiceError(TRANSPORT).
    """
    url = f"{base_url.rstrip('/')}/{request_path}"
    try:
        resp = requests.get(
            url,
            timeout=timeout,
            headers={'Content-Type': 'application/x-www-form-urlencoded; charset=UTF-8'},
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"[DecisionTransport] Ошибка запроса к {base_url}: {e}")
        raise DecisionServiceError(DecisionErrorReason.TRANSPORT, str(e))

    return resp.text
