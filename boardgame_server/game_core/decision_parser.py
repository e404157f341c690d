# boardgame_server/game_core/decision_parser.py
import re
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote

from .constants import PieceColor, PieceKind, PlayerKind
from .errors import DecisionErrorReason, DecisionServiceError
from .game_state import GameState

# Ответ сервиса - один список в квадратных скобках, например "[2,3,2,4]"
_REPLY_RE = re.compile(r"\[\s*([^\[\]]*?)\s*\]")

MOVE_RELOCATE = "relocate"
MOVE_PLACE = "place"
MOVE_REMOVE = "remove"


@dataclass(frozen=True)
class MoveProposal:
    """
    Ход, предложенный ИИ, еще НЕ проверенный доской.
    Проверка и превращение в Move - в move_validator.resolve_proposal().
    """
    action: str
    origin: Optional[Tuple[int, int]] = None
    destination: Optional[Tuple[int, int]] = None
    piece_id: Optional[int] = None
    color: Optional[PieceColor] = None
    kind: Optional[PieceKind] = None


def build_request(state: GameState, seat_kind: PlayerKind) -> str:
    """Путь запроса: choose_move(<состояние>,<уровень>), экранированный для URL."""
    return quote(f"choose_move({state.to_request_string()},{seat_kind.level})", safe="")


def extract_reply(body: str) -> Optional[str]:
    if not body:
        return None
    m = _REPLY_RE.search(body)
    if m:
        return m.group(1)
    return None


def _malformed(message: str) -> DecisionServiceError:
    return DecisionServiceError(DecisionErrorReason.MALFORMED_RESPONSE, message)


def _to_int(token: str, what: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise _malformed(f"Ожидалось число ({what}), получено '{token}'.")


def parse_reply(body: str) -> MoveProposal:
    """
    Разбирает позиционный ответ:
      [C1,R1,C2,R2]               - перенос фишки
      [supply,ID,C2,R2]           - выставление фишки из запаса
      [C1,R1,remove,COLOR,KIND]   - снятие фишки в зону сбора
    Любой другой формат -> DecisionServiceError(MALFORMED_RESPONSE).
    """
    inner = extract_reply(body)
    if inner is None:
        raise _malformed(f"В ответе нет списка: {body!r}")

    tokens = [t.strip().lower() for t in inner.split(',') if t.strip()]

    if len(tokens) == 4 and tokens[0] == 'supply':
        return MoveProposal(
            action=MOVE_PLACE,
            piece_id=_to_int(tokens[1], 'id фишки'),
            destination=(_to_int(tokens[2], 'колонка'), _to_int(tokens[3], 'ряд')),
        )

    if len(tokens) == 5 and tokens[2] == 'remove':
        try:
            color = PieceColor(tokens[3])
            kind = PieceKind(tokens[4])
        except ValueError:
            raise _malformed(f"Неизвестный цвет/вид фишки: {tokens[3]}/{tokens[4]}")
        return MoveProposal(
            action=MOVE_REMOVE,
            origin=(_to_int(tokens[0], 'колонка'), _to_int(tokens[1], 'ряд')),
            color=color,
            kind=kind,
        )

    if len(tokens) == 4:
        c1, r1, c2, r2 = (_to_int(t, 'координата') for t in tokens)
        return MoveProposal(action=MOVE_RELOCATE, origin=(c1, r1), destination=(c2, r2))

    raise _malformed(f"Неизвестный формат хода: [{inner}]")
