# boardgame_server/workers.py

import logging

logger = logging.getLogger(__name__)

def _notification_queue_consumer(socketio_instance, queue_instance):
    """
    Фоновый воркер (consumer) для обработки очереди уведомлений.
    Извлекает сообщения из `notification_queue` и отправляет их
    клиентам через SocketIO.
    """
    logger.info("[QueueConsumer] Поток-потребитель для emit'ов запущен.")
    while True:
        try:
            msg = queue_instance.get()
            if msg is None:
                logger.info("[QueueConsumer] Получен сигнал None, завершение работы.")
                break

            event = msg.get('event')
            payload = msg.get('payload', {})
            room = msg.get('room')

            if not event or not room:
                logger.warning(f"[QueueConsumer] Пропуск невалидного сообщения: {msg}")
                continue

            socketio_instance.emit(event, payload, room=room)

        except Exception as e:
            logger.error(f"[QueueConsumer] КРИТИЧЕСКАЯ ОШИБКА в потоке-потребителе: {e}", exc_info=True)
            socketio_instance.sleep(1)

def _game_ticker(app, socketio_instance, game_service, interval):
    """
    Фоновые часы: раз в `interval` секунд тикают все партии
    (анимации, переходы после сигналов рендера, запуск запросов к ИИ).
    """
    logger.info(f"[GameTicker] Часы запущены, период {interval} сек.")
    while True:
        socketio_instance.sleep(interval)
        try:
            with app.app_context():
                game_service.tick_all(interval)
        except Exception as e:
            logger.error(f"[GameTicker] Ошибка тика: {e}", exc_info=True)

def start_notification_consumer(socketio_instance, queue_instance):
    """
    Публичная функция для запуска воркера из create_app.
    """
    socketio_instance.start_background_task(
        target=_notification_queue_consumer,
        socketio_instance=socketio_instance,
        queue_instance=queue_instance
    )

def start_game_ticker(app, socketio_instance, game_service):
    socketio_instance.start_background_task(
        target=_game_ticker,
        app=app,
        socketio_instance=socketio_instance,
        game_service=game_service,
        interval=app.config['TICK_INTERVAL']
    )
