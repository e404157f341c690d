import os
import logging
from flask import Flask
from .extensions import (
    socketio,
    limiter,
    notification_queue
)
from .globals import log_event
from .workers import start_notification_consumer, start_game_ticker

# Получаем логгер
logger = logging.getLogger(__name__)

def _configure_logging(app):
    """Настраивает файловый логгер."""
    file_handler = logging.FileHandler(app.config['LOG_FILE'], encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    logger.info("Файловый логгер настроен.")

def _init_extensions(app):
    """Инициализирует расширения Flask."""
    socketio.init_app(app, async_mode=app.config['SOCKETIO_ASYNC_MODE'])
    limiter.init_app(app)
    logger.info(f"Расширения Flask (SocketIO [{app.config['SOCKETIO_ASYNC_MODE']}], Limiter) инициализированы.")

def _init_services(app):
    """Инициализирует и внедряет сервисы приложения."""

    # Импорты сервисов лучше делать здесь, чтобы избежать
    # циклических зависимостей.
    from .services.game_service import GameService
    from .services.game_factory import GameFactory
    from .services.game_registry import GameRegistry
    from .game_core.decision_client import DecisionClient

    decision_client = DecisionClient.from_config(app.config, app=app)
    registry = GameRegistry(log_event_func=log_event)

    game_factory = GameFactory(
        config=app.config,
        log_event=log_event,
        notification_queue=notification_queue,
        decision_client=decision_client
    )

    game_service = GameService(
        registry=registry,
        factory=game_factory,
        notification_queue=notification_queue
    )

    # Прикрепляем главный сервис к экземпляру приложения
    app.game_service = game_service
    app.decision_client = decision_client
    logger.info("Игровые сервисы (GameService, Factory, Registry, DecisionClient) инициализированы.")

def _register_blueprints(app):
    """Регистрирует все маршруты API (Blueprints)."""
    from .api.main_routes import bp as main_bp
    app.register_blueprint(main_bp)

    logger.info("Blueprints (маршруты API) зарегистрированы.")

def _register_socketio_handlers():
    """
    Импортирует обработчики SocketIO для их регистрации.
    Вызывается ДО socketio.init_app: обработчики, объявленные до создания
    сервера, переносятся в каждый новый сервер (важно для тестов с
    несколькими приложениями).
    """
    from .sockets import connection_handlers
    from .sockets import game_handlers
    logger.info("Обработчики SocketIO (connection, game) зарегистрированы.")

def _resolve_paths(app):
    """Относительные пути логов считаются от instance-папки."""
    os.makedirs(app.instance_path, exist_ok=True)
    for key in ('LOG_FILE', 'STATS_LOG_FILE'):
        app.config[key] = os.path.join(app.instance_path, app.config[key])

def create_app(config_overrides=None):
    """
    Фабрика приложений (Паттерн Application Factory).
    """

    app = Flask(
        __name__,
        instance_relative_config=True
    )

    # 1. Загрузка конфигурации
    app.config.from_object('boardgame_server.config.Config')
    app.config.from_pyfile('config.py', silent=True)
    if config_overrides:
        app.config.update(config_overrides)
    _resolve_paths(app)

    # 2. Настройка логирования
    _configure_logging(app)

    # 3. Регистрация обработчиков SocketIO
    _register_socketio_handlers()

    # 4. Инициализация расширений
    _init_extensions(app)

    # 5. Инициализация сервисов
    _init_services(app)

    # 6. Регистрация Blueprints (маршрутов API)
    _register_blueprints(app)

    # 7. Запуск фоновых воркеров
    if app.config['START_WORKERS']:
        logger.info("Запуск фонового потока-потребителя (QueueConsumer) и часов (GameTicker)...")
        start_notification_consumer(socketio, notification_queue)
        start_game_ticker(app, socketio, app.game_service)

    app.logger.info(f"Приложение 'boardgame-server' создано.")
    app.logger.info(f"Путь к логам: {app.config['LOG_FILE']}")

    return app, socketio
