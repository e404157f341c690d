# boardgame_server/game_core/move_validator.py

from .board import Board, Piece, Tile
from .decision_parser import MoveProposal, MOVE_PLACE, MOVE_RELOCATE, MOVE_REMOVE
from .errors import BoundsError, DecisionErrorReason, DecisionServiceError, IllegalMoveError
from .move import Move, PieceLocation


def can_pick(piece: Piece, seat: int) -> bool:
    """Свою фишку можно взять, если она в запасе или на доске."""
    return piece.owner == seat and (piece.location.is_off_board or piece.location.is_tile)


def build_pick_move(board: Board, piece: Piece, tile: Tile, seat: int) -> Move:
    """
    Ход человека: выбранная фишка -> пустая клетка.
    Проверяет ход доской, но НЕ применяет его.
    """
    if not can_pick(piece, seat):
        raise IllegalMoveError(f"Фишка {piece.piece_id} не принадлежит месту {seat}.")
    move = board.build_move(piece, PieceLocation.on_tile(tile.tile_id))
    board.validate_move(move)
    return move


def resolve_proposal(board: Board, proposal: MoveProposal, seat: int) -> Move:
    """
    Превращает ответ ИИ в проверенный Move.
    Всё, что отклоняет доска, превращается в ILLEGAL_MOVE_PROPOSED:
    непроверенный внешний ответ никогда не применяется напрямую.
    """
    try:
        move = _build(board, proposal, seat)
        board.validate_move(move)
        return move
    except (IllegalMoveError, BoundsError) as e:
        raise DecisionServiceError(DecisionErrorReason.ILLEGAL_MOVE_PROPOSED, str(e))


def _build(board: Board, proposal: MoveProposal, seat: int) -> Move:
    if proposal.action == MOVE_PLACE:
        piece = board.piece(proposal.piece_id)
        if piece.owner != seat or not piece.location.is_off_board:
            raise IllegalMoveError(f"Фишки {proposal.piece_id} нет в запасе места {seat}.")
        target = board.tile_at(*proposal.destination)
        return board.build_move(piece, PieceLocation.on_tile(target.tile_id))

    origin = board.tile_at(*proposal.origin)
    piece = board.piece_on(origin.tile_id)
    if piece is None:
        raise IllegalMoveError(f"На клетке {origin.coords} нет фишки.")

    if proposal.action == MOVE_RELOCATE:
        if piece.owner != seat:
            raise IllegalMoveError(f"Фишка на {origin.coords} не принадлежит месту {seat}.")
        target = board.tile_at(*proposal.destination)
        return board.build_move(piece, PieceLocation.on_tile(target.tile_id))

    if proposal.action == MOVE_REMOVE:
        if piece.color is not proposal.color or piece.kind is not proposal.kind:
            raise IllegalMoveError(
                f"На клетке {origin.coords} фишка {piece.color.value}/{piece.kind.value}, "
                f"а не {proposal.color.value}/{proposal.kind.value}."
            )
        return board.build_move(piece, PieceLocation.in_zone(seat))

    raise IllegalMoveError(f"Неизвестное действие ИИ: {proposal.action}")


def can_collect(piece: Piece, seat: int) -> bool:
    """Чужую или нейтральную фишку на доске можно снять в свою зону сбора."""
    return piece.owner != seat and piece.location.is_tile


def build_collect_move(board: Board, piece: Piece, seat: int) -> Move:
    if not can_collect(piece, seat):
        raise IllegalMoveError(f"Фишку {piece.piece_id} нельзя снять местом {seat}.")
    move = board.build_move(piece, PieceLocation.in_zone(seat))
    board.validate_move(move)
    return move
