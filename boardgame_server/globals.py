# boardgame_server/globals.py

import datetime
import logging

from flask import current_app, has_app_context

from .services.logging_service import log_event_to_file

logger = logging.getLogger(__name__)


def log_event(event_type, message, sid=None, game_id=None, extra_data=None):
    """
    Одна строка структурированного лога:
    [время] [TYPE: ...] [SID: ...] [GameID: ...] | сообщение
    Вне контекста приложения (потоки пула ИИ, тесты ядра) пишет в logger.
    """
    timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    log_entry = f"[{timestamp}] [TYPE: {event_type}]"

    if sid:
        log_entry += f" [SID: {sid}]"
    if game_id:
        log_entry += f" [GameID: {game_id}]"
    if extra_data:
        log_entry += f" [Data: {extra_data}]"

    log_entry += f" | {message}\n"

    if has_app_context() and current_app.config.get('LOG_FILE'):
        log_event_to_file(log_entry)
    else:
        logger.info(log_entry.rstrip('\n'))
