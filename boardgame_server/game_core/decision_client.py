# boardgame_server/game_core/decision_client.py

import os
import threading
import logging
import time
import random
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Tuple, Dict, Any

from .constants import PlayerKind
from .decision_parser import MoveProposal, build_request, parse_reply
from .decision_transport import fetch_reply
from .errors import DecisionServiceError
from .game_state import GameState

logger = logging.getLogger(__name__)


class DecisionTicket:
    """
    Метка одного запроса к ИИ. generation и state позволяют
    оркестратору выбросить ответ, пришедший после сброса партии.
    """

    def __init__(self, generation: int, state: GameState, seat_kind: PlayerKind):
        self.generation = generation
        self.state = state
        self.seat_kind = seat_kind
        self.attempts = 0
        self.future: Optional[Future] = None


# callback(ticket, proposal, error) - ровно одно из proposal/error не None
DecisionCallback = Callable[[DecisionTicket, Optional[MoveProposal], Optional[DecisionServiceError]], None]


class DecisionClient:

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retries: int = 1,
        max_workers: Optional[int] = None,
        think_delay: Tuple[float, float] = (0.0, 0.0),
        fetch: Callable[[str, str, float], str] = fetch_reply,
        app=None
    ):
        """
        Пул потоков (по числу CPU, минимум 1) для запросов к ИИ-сервису.
        Оркестратор никогда не блокируется: результат приходит в callback.
        """
        self.base_url = base_url
        self.timeout = timeout
        self.retries = max(retries, 0)
        self.think_delay = think_delay
        self.fetch = fetch
        # Flask app: callback выполняется в его контексте (log_event пишет в LOG_FILE)
        self.app = app
        workers = max_workers or os.cpu_count() or 1
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="decision")

        logger.info(f"Инициализирован. ИИ-сервис: {base_url}. Пул потоков: {workers} worker(ов).")

    @classmethod
    def from_config(cls, config: Dict[str, Any], app=None) -> 'DecisionClient':
        base_url = f"http://{config['DECISION_SERVICE_HOST']}:{config['DECISION_SERVICE_PORT']}"
        return cls(
            base_url=base_url,
            timeout=config['DECISION_TIMEOUT'],
            retries=config['DECISION_RETRIES'],
            max_workers=config.get('DECISION_MAX_WORKERS'),
            think_delay=tuple(config.get('AI_THINK_DELAY', (0.0, 0.0))),
            app=app,
        )

    def request_move(
        self,
        state: GameState,
        seat_kind: PlayerKind,
        callback: DecisionCallback,
        generation: int = 0
    ) -> DecisionTicket:
        """
        Публичный метод для асинхронного запроса хода ИИ.
        Запускает _execute_request_and_callback в фоновом потоке.
        """
        if seat_kind.is_human:
            raise ValueError("Запрос хода ИИ для места человека.")

        ticket = DecisionTicket(generation, state, seat_kind)
        ticket.future = self.executor.submit(self._execute_request_and_callback, ticket, callback)
        return ticket

    def _request_once(self, ticket: DecisionTicket) -> MoveProposal:
        request_path = build_request(ticket.state, ticket.seat_kind)
        body = self.fetch(self.base_url, request_path, self.timeout)
        return parse_reply(body)

    def _execute_request_and_callback(self, ticket: DecisionTicket, callback: DecisionCallback):
        """
        Выполняет основную работу: запрос (с одним повтором) и вызов callback.
        Этот метод выполняется в фоновом потоке.
        """
        tid = threading.current_thread().name
        proposal: Optional[MoveProposal] = None
        error: Optional[DecisionServiceError] = None

        min_think, max_think = self.think_delay
        if max_think > 0:
            thinking_time = random.uniform(min_think, max_think)
            logger.info(f"({tid}) ИИ 'думает' {thinking_time:.2f} сек...")
            time.sleep(thinking_time)

        for attempt in range(1 + self.retries):
            ticket.attempts = attempt + 1
            try:
                proposal = self._request_once(ticket)
                error = None
                logger.debug(f"({tid}) Ответ ИИ (попытка {ticket.attempts}): {proposal}")
                break
            except DecisionServiceError as e:
                error = e
                logger.warning(f"({tid}) Ошибка ИИ-сервиса ({e.reason.value}), попытка {ticket.attempts}: {e.message}")
                if not e.retryable:
                    break

        try:
            if self.app is not None:
                with self.app.app_context():
                    callback(ticket, proposal, error)
            else:
                callback(ticket, proposal, error)
        except Exception as e_cb:
            logger.error(f"({tid}) Ошибка при вызове callback: {e_cb}", exc_info=True)

    def shutdown(self, wait: bool = False):
        self.executor.shutdown(wait=wait)
