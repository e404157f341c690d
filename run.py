import eventlet
eventlet.monkey_patch()

# 2. Обычные импорты
import argparse
from boardgame_server import create_app

print("[run.py] Eventlet monkey-patch применен.")

# 3. Создаем приложение
app, socketio = create_app()

if __name__ == '__main__':

    # 4. Настраиваем парсер аргументов
    parser = argparse.ArgumentParser(description='Запуск Flask-SocketIO сервера партий.')

    parser.add_argument(
        '-e', '--env',
        default='local',
        choices=['local', 'prod'],
        help='Режим запуска: local (для разработки) или prod (для боевого сервера). По умолчанию: local.'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=None,
        help='Порт сервера. По умолчанию: 5000 (prod) или 4999 (local).'
    )

    # 5. Считываем аргументы
    args = parser.parse_args()

    # 6. Выбираем, как запускать сервер

    if args.env == 'prod':
        port = args.port or 5000
        print(f"[run.py] Запуск в режиме PRODUCTION (prod) на 0.0.0.0:{port}...")
        print(f"[run.py] ИИ-сервис: {app.config['DECISION_SERVICE_HOST']}:{app.config['DECISION_SERVICE_PORT']}")

        socketio.run(app,
                     host='0.0.0.0',
                     port=port,
                     debug=False
                    )

    else:
        port = args.port or 4999
        print(f"[run.py] Запуск в режиме LOCAL (dev) на 127.0.0.1:{port}...")
        print("[run.py] Включен режим отладки (debug=True).")

        socketio.run(app,
                     host='127.0.0.1',
                     port=port,
                     debug=True,
                     allow_unsafe_werkzeug=True # Нужно для debug=True при использовании eventlet
                    )
