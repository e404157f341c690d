# boardgame_server/game_core/utils.py

from typing import Sequence

from . import constants as c
from .board import Board
from .player import Player


def are_moves_available(board: Board, seat: int) -> bool:
    """Может ли место хоть как-то ходить: есть пустая клетка и своя фишка."""
    if not board.empty_tiles():
        return False
    return bool(board.supply_of(seat) or board.pieces_on_board(seat))


def get_winner(board: Board, players: Sequence[Player], winning_score: int = c.WINNING_SCORE) -> int:
    """
    Возвращает индекс места-победителя, c.TIE или c.NO_WINNER.
    Партия заканчивается, когда кто-то набрал winning_score,
    или когда хотя бы одному месту больше нечем ходить.
    """
    scores = {p.seat: p.score for p in players}
    reached = [seat for seat, score in scores.items() if score >= winning_score]

    if not reached and all(are_moves_available(board, p.seat) for p in players):
        return c.NO_WINNER

    first, second = scores[c.SEAT_FIRST], scores[c.SEAT_SECOND]
    if first == second:
        return c.TIE
    return c.SEAT_FIRST if first > second else c.SEAT_SECOND
