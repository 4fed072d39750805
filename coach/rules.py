"""
Rules adapter: the only place the coach touches chess rules.

Legal-move generation, move application, check/mate/draw detection and FEN
serialization are all delegated to python-chess. The rest of the package
consumes these helpers and never reimplements a rule.

Positions cross the public API as FEN strings. Internally they become a
``chess.Board`` that belongs to the caller of ``parse_position``; helpers
that need to play a move work on a copy and leave the given board untouched.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass

import chess

from coach.errors import IllegalMoveError, InvalidPositionError

_SQUARE_RE = re.compile(r"^[a-h][1-8]$")


@dataclass(frozen=True)
class PlayedMove:
    """
    A validated move together with the positions on both sides of it.

    Attributes:
        uci:         Move in UCI notation (e.g. "e2e4", "e7e8q").
        from_square: Origin square name ("e2").
        to_square:   Destination square name ("e4").
        piece:       Lowercase symbol of the moving piece ("p", "n", ...).
        promotion:   Lowercase symbol of the promotion piece, or None.
        captured:    Lowercase symbol of the captured piece, or None.
        san:         Move in standard algebraic notation ("e4", "Nxf7+").
        fen_before:  Position the move was played from.
        fen_after:   Position after the move.
    """

    uci: str
    from_square: str
    to_square: str
    piece: str
    promotion: str | None
    captured: str | None
    san: str
    fen_before: str
    fen_after: str

    def to_move(self) -> chess.Move:
        return chess.Move.from_uci(self.uci)


def parse_position(fen: str) -> chess.Board:
    """
    Build a board from a FEN string.

    Raises:
        InvalidPositionError: The string is not a FEN, or it describes a
            position python-chess considers invalid (missing kings, pawns on
            the back rank, the side not to move in check, ...).
    """
    if not isinstance(fen, str) or not fen.strip():
        raise InvalidPositionError("invalid position: empty FEN")
    try:
        board = chess.Board(fen.strip())
    except ValueError as exc:
        raise InvalidPositionError(f"invalid position: {exc}") from exc
    if not board.is_valid():
        raise InvalidPositionError(f"invalid position: {board.status()!r}")
    return board


def legal_moves(board: chess.Board) -> list[chess.Move]:
    """Legal moves in python-chess generation order."""
    return list(board.legal_moves)


def is_check(board: chess.Board) -> bool:
    return board.is_check()


def is_checkmate(board: chess.Board) -> bool:
    return board.is_checkmate()


def is_stalemate_or_draw(board: chess.Board) -> bool:
    """
    Draws decidable from the position alone.

    Repetition depends on the move history, which a FEN does not carry, so
    only stalemate, insufficient material and the 75-move rule count here.
    """
    return board.is_stalemate() or is_rule_draw(board)


def is_rule_draw(board: chess.Board) -> bool:
    """Insufficient material or the 75-move rule."""
    return board.is_insufficient_material() or board.is_seventyfive_moves()


def move_number(board: chess.Board) -> int:
    return board.fullmove_number


def resolve_candidate(board: chess.Board, candidate: object) -> chess.Move:
    """
    Turn a move candidate into a legal ``chess.Move`` for this board.

    Accepted forms: ``chess.Move``, ``PlayedMove``, a UCI string ("e2e4"),
    a SAN string ("e4", "Nf3"), or a mapping with "from", "to" and an
    optional "promotion" key. A mapping that moves a pawn to the last rank
    without naming a promotion piece promotes to a queen.

    Raises:
        IllegalMoveError: The candidate cannot be parsed or is not legal.
    """
    if isinstance(candidate, PlayedMove):
        move = _from_uci(candidate.uci, candidate)
    elif isinstance(candidate, chess.Move):
        move = candidate
    elif isinstance(candidate, Mapping):
        move = _from_mapping(board, candidate)
    elif isinstance(candidate, str):
        move = _from_text(board, candidate)
    else:
        raise IllegalMoveError(
            f"move rejected: unsupported candidate type {type(candidate).__name__}",
            candidate,
        )

    if not board.is_legal(move):
        raise IllegalMoveError(f"move rejected: illegal {move.uci()}", candidate)
    return move


def describe_move(board: chess.Board, move: chess.Move) -> PlayedMove:
    """Build a PlayedMove for a move already known to be legal on ``board``."""
    piece = board.piece_at(move.from_square)
    if board.is_en_passant(move):
        captured = "p"
    else:
        victim = board.piece_at(move.to_square)
        captured = victim.symbol().lower() if victim and victim.color != board.turn else None

    after = board.copy(stack=False)
    after.push(move)
    return PlayedMove(
        uci=move.uci(),
        from_square=chess.square_name(move.from_square),
        to_square=chess.square_name(move.to_square),
        piece=piece.symbol().lower() if piece else "?",
        promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
        captured=captured,
        san=board.san(move),
        fen_before=board.fen(),
        fen_after=after.fen(),
    )


def apply(board: chess.Board, candidate: object) -> PlayedMove:
    """
    Validate a candidate and describe the result of playing it.

    The given board is not modified.

    Raises:
        IllegalMoveError: The candidate is not a legal move here.
    """
    move = resolve_candidate(board, candidate)
    return describe_move(board, move)


# ---------------------------------------------------------------------------
# Candidate parsing helpers
# ---------------------------------------------------------------------------


def _from_uci(text: str, candidate: object) -> chess.Move:
    try:
        return chess.Move.from_uci(text)
    except ValueError as exc:
        raise IllegalMoveError(f"move rejected: malformed {text!r}", candidate) from exc


def _from_text(board: chess.Board, text: str) -> chess.Move:
    text = text.strip()
    if not text:
        raise IllegalMoveError("move rejected: empty move", text)
    try:
        return chess.Move.from_uci(text.lower())
    except ValueError:
        pass
    try:
        return board.parse_san(text)
    except ValueError as exc:
        raise IllegalMoveError(f"move rejected: illegal {text!r}", text) from exc


def _from_mapping(board: chess.Board, candidate: Mapping) -> chess.Move:
    origin = str(candidate.get("from", "")).strip().lower()
    target = str(candidate.get("to", "")).strip().lower()
    if not _SQUARE_RE.match(origin) or not _SQUARE_RE.match(target):
        raise IllegalMoveError(
            f"move rejected: malformed squares {origin!r} -> {target!r}", candidate
        )

    from_sq = chess.parse_square(origin)
    to_sq = chess.parse_square(target)
    promotion = None
    symbol = candidate.get("promotion")
    if symbol:
        try:
            promotion = chess.Piece.from_symbol(str(symbol).strip().lower()[:1]).piece_type
        except ValueError as exc:
            raise IllegalMoveError(
                f"move rejected: bad promotion piece {symbol!r}", candidate
            ) from exc
    elif board.piece_type_at(from_sq) == chess.PAWN and chess.square_rank(to_sq) in (0, 7):
        promotion = chess.QUEEN

    return chess.Move(from_sq, to_sq, promotion=promotion)
