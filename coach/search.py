"""
Search: minimax with alpha-beta pruning, exact-value memoization and an
optional deadline with iterative deepening.

Sign convention:
    Scores are white-positive (see coach.evaluate). The root is a maximizing
    node when White is to move; the ``maximizing`` flag then flips on every
    ply. The flag is never re-read from the board, so depth parity alone
    decides who maximizes at any node.

Determinism:
    Moves are ordered by a fixed rule (MVV-LVA captures, then promotions,
    then python-chess generation order, stable sort) and a node keeps the
    first move that reaches its best value. Given a position and a depth the
    result is always the same, with or without pruning, with or without a
    warm cache. The difficulty layer may add randomness above this module,
    never inside it.

Mate scores:
    A checkmate found with ``r`` plies of depth still remaining scores
    ``MATE_SCORE + r`` (signed), so the search prefers the fastest mate. The
    bonus depends only on the remaining depth, which is part of the cache
    key, so memoized values stay exact. ``best_move`` reports root mate
    scores normalised to exactly ``±MATE_SCORE``.

Memoization:
    A node's value goes into the TranspositionCache only when it lies
    strictly inside the window the node was searched with. Such a value is
    the true minimax value; values on or outside the window are only bounds
    and are never stored. Nothing is stored once the search has been told
    to stop.

Threading model:
    A search runs synchronously on the calling thread. A caller that wants
    to run it in the background passes a ``threading.Event``; setting it
    makes the search unwind and return the deepest completed result.
"""

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

import chess

from coach import rules
from coach.constants import (
    MATE_SCORE,
    MAX_SEARCH_DEPTH,
    ORDERING_KING_VALUE,
    PIECE_VALUES,
    TIME_CHECK_NODES,
    TIME_USAGE_FRACTION,
)
from coach.evaluate import DEFAULT_EVAL_CONFIG, EvaluationConfig, evaluate
from coach.transposition import TranspositionCache, TranspositionEntry

_log = logging.getLogger(__name__)

# Window bound that no reachable score can touch, mate bonuses included.
_INFINITY: int = 10 * MATE_SCORE


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of ``best_move``.

    Attributes:
        move:    Best move found, or None when the position has no legal move.
        score:   White-positive score of ``move`` (the static score of the
                 position itself when there is no move). Mates are reported
                 as exactly ``±MATE_SCORE``.
        depth:   Deepest iteration that completed. 0 means even the first
                 ply was interrupted and ``move`` is a best-effort guess.
        nodes:   Nodes visited across all iterations.
        partial: True when the deadline or stop signal cut the search short
                 of the requested depth.
        mate_plies: Plies until mate when ``score`` is a mate, positive
                 when White mates and negative when Black does; None
                 otherwise.
    """

    move: chess.Move | None
    score: int
    depth: int
    nodes: int
    partial: bool = False
    mate_plies: int | None = None


@dataclass
class SearchState:
    """
    Per-call mutable state.

    One instance is created for every ``best_move`` call and never shared
    between calls, so the only state shared across threads is the cache.

    Attributes:
        stop_event:      Set by the caller to abandon the search.
        time_limit_ms:   Budget for the whole call; infinite by default.
        start_time:      Monotonic timestamp of the call's start.
        cache:           Optional transposition cache.
        config:          Evaluation terms used at the leaves.
        pruning:         False turns the search into plain minimax.
        node_count:      Nodes visited so far.
        timed_out:       Set once the time budget has been used up.
        root_best_move:  Best root move of the iteration in progress.
        root_best_score: Its score.
    """

    stop_event: threading.Event = field(default_factory=threading.Event)
    time_limit_ms: float = float("inf")
    start_time: float = field(default_factory=time.monotonic)
    cache: TranspositionCache | None = None
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG
    pruning: bool = True
    node_count: int = 0
    timed_out: bool = False
    root_best_move: chess.Move | None = None
    root_best_score: int = 0

    @property
    def stopped(self) -> bool:
        return self.timed_out or self.stop_event.is_set()

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def check_time(self) -> bool:
        """Mark the search as timed out once the budget is used; return the flag."""
        if self.elapsed_ms() >= self.time_limit_ms * TIME_USAGE_FRACTION:
            self.timed_out = True
        return self.timed_out


def is_mate_score(score: int) -> bool:
    """True for the mate sentinel and for mate scores carrying a depth bonus."""
    return abs(score) >= MATE_SCORE


def normalize_score(score: int) -> int:
    """Strip the mate-distance bonus so mates read as exactly ±MATE_SCORE."""
    if score >= MATE_SCORE:
        return MATE_SCORE
    if score <= -MATE_SCORE:
        return -MATE_SCORE
    return score


def mate_plies(score: int, searched_depth: int) -> int | None:
    """
    Signed distance to mate in plies for a raw score found at the root.

    A mate scored with ``r`` plies of depth remaining was found
    ``searched_depth - r`` plies from the root. Returns None for non-mate
    scores.
    """
    if not is_mate_score(score):
        return None
    plies = searched_depth - (abs(score) - MATE_SCORE)
    return plies if score > 0 else -plies


def order_moves(board: chess.Board, moves: Iterable[chess.Move]) -> list[chess.Move]:
    """
    Deterministic move ordering for better alpha-beta cutoffs.

    Captures first by MVV-LVA (high-value victim, low-value attacker), then
    non-capturing promotions, then quiet moves. The sort is stable, so moves
    with equal keys keep python-chess generation order. This order also
    decides ties between equally scored moves.
    """
    def _order_key(move: chess.Move) -> int:
        if board.is_capture(move):
            attacker = board.piece_type_at(move.from_square)
            victim = board.piece_type_at(move.to_square)
            attacker_val = ORDERING_KING_VALUE if attacker == chess.KING else PIECE_VALUES.get(attacker, 0)
            # En passant: the captured pawn is not on move.to_square.
            victim_val = PIECE_VALUES[victim] if victim else PIECE_VALUES[chess.PAWN]
            return 30_000 + victim_val - attacker_val
        if move.promotion:
            return 5_000 + PIECE_VALUES[move.promotion]
        return 0

    return sorted(moves, key=_order_key, reverse=True)


def _terminal_score(board: chess.Board, depth: int, config: EvaluationConfig) -> int:
    """Static score with the mate-distance bonus applied."""
    score = evaluate(board, config)
    if score >= MATE_SCORE:
        return score + depth
    if score <= -MATE_SCORE:
        return score - depth
    return score


def _search_node(
    board: chess.Board,
    depth: int,
    alpha: int,
    beta: int,
    maximizing: bool,
    ply: int,
    state: SearchState,
) -> tuple[int, chess.Move | None]:
    """
    Minimax node with alpha-beta pruning.

    Args:
        board:      Position; modified in place via push/pop and always
                    restored before returning.
        depth:      Remaining plies. 0 means return the static score.
        alpha:      Best value the maximizer is already guaranteed.
        beta:       Best value the minimizer is already guaranteed.
        maximizing: True when this node picks the highest child value.
        ply:        Distance from the root; root bookkeeping happens at 0.
        state:      Per-call search state.

    Returns:
        (value, best move). Values returned after a stop are meaningless
        and the caller discards them.
    """
    if state.stopped:
        return 0, None

    state.node_count += 1
    if state.node_count % TIME_CHECK_NODES == 0 and state.check_time():
        return 0, None

    cache = state.cache
    key = None
    if cache is not None:
        key = cache.make_key(board.fen(), depth, maximizing)
        entry = cache.get(key)
        if entry is not None:
            best_move = chess.Move.from_uci(entry.best_move) if entry.best_move else None
            if ply == 0:
                state.root_best_move = best_move
                state.root_best_score = entry.score
            return entry.score, best_move

    moves = [] if depth == 0 or rules.is_rule_draw(board) else order_moves(board, board.legal_moves)
    if not moves:
        # Leaf: depth exhausted, checkmate, stalemate or a rule draw.
        score = _terminal_score(board, depth, state.config)
        if key is not None:
            cache.put(key, TranspositionEntry(score))
        return score, None

    alpha_orig, beta_orig = alpha, beta
    best_score = -_INFINITY if maximizing else _INFINITY
    best_move = None

    for move in moves:
        board.push(move)
        score, _ = _search_node(board, depth - 1, alpha, beta, not maximizing, ply + 1, state)
        board.pop()

        if state.stopped:
            return 0, None

        if maximizing:
            if score > best_score:
                best_score, best_move = score, move
            if state.pruning and best_score > alpha:
                alpha = best_score
        else:
            if score < best_score:
                best_score, best_move = score, move
            if state.pruning and best_score < beta:
                beta = best_score

        if ply == 0:
            state.root_best_move = best_move
            state.root_best_score = best_score

        # Cutoff: the opponent already has a better alternative earlier in
        # the tree and will never allow this node.
        if state.pruning and alpha >= beta:
            break

    # Only a value strictly inside the window this node was given is exact.
    if key is not None and alpha_orig < best_score < beta_orig:
        cache.put(key, TranspositionEntry(best_score, best_move.uci()))

    return best_score, best_move


def minimax(
    board: chess.Board,
    depth: int,
    maximizing: bool,
    *,
    cache: TranspositionCache | None = None,
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
    pruning: bool = True,
) -> int:
    """
    Full-window minimax value of a node, without deadline.

    The board is copied, so the caller's board is untouched. The value keeps
    its mate-distance bonus, which makes it directly comparable with cache
    entries for the key ``(board.fen(), depth, maximizing)``.
    """
    state = SearchState(cache=cache, config=config, pruning=pruning)
    # ply=1: no root bookkeeping, the caller only wants the value.
    score, _ = _search_node(board.copy(), depth, -_INFINITY, _INFINITY, maximizing, 1, state)
    return score


def best_move(
    board: chess.Board,
    depth: int,
    *,
    cache: TranspositionCache | None = None,
    config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
    time_limit_ms: int | None = None,
    stop_event: threading.Event | None = None,
    pruning: bool = True,
) -> SearchResult:
    """
    Best move for the side to move, searched to ``depth`` plies.

    Without a deadline the requested depth is searched directly. With a
    ``time_limit_ms`` or a ``stop_event`` the search deepens iteratively from
    1 and, if interrupted, returns the deepest completed iteration flagged
    ``partial``. Running out of time is never an error.

    Args:
        board:         Current position. Not modified.
        depth:         Plies to search; clamped to MAX_SEARCH_DEPTH.
        cache:         Optional shared transposition cache.
        config:        Evaluation terms.
        time_limit_ms: Optional budget in milliseconds.
        stop_event:    Optional event that abandons the search when set.
        pruning:       False runs plain minimax (same result, more nodes).

    Returns:
        SearchResult. ``move`` is None only when there is no legal move.

    Raises:
        ValueError: depth < 1.
    """
    if depth < 1:
        raise ValueError(f"search depth must be at least 1, got {depth}")
    depth = min(depth, MAX_SEARCH_DEPTH)

    board = board.copy()
    if not any(board.legal_moves):
        return SearchResult(None, evaluate(board, config), 0, 0)

    iterative = time_limit_ms is not None or stop_event is not None
    state = SearchState(
        stop_event=stop_event if stop_event is not None else threading.Event(),
        time_limit_ms=float(time_limit_ms) if time_limit_ms is not None else float("inf"),
        start_time=time.monotonic(),
        cache=cache,
        config=config,
        pruning=pruning,
    )
    maximizing = board.turn == chess.WHITE

    result: SearchResult | None = None
    for current in range(1 if iterative else depth, depth + 1):
        # Don't start an iteration the remaining budget cannot finish.
        if result is not None and state.check_time():
            break

        state.root_best_move = None
        score, move = _search_node(board, current, -_INFINITY, _INFINITY, maximizing, 0, state)
        if state.stopped:
            break
        if move is None:
            # Root is a rule draw (e.g. insufficient material) that still
            # has legal moves; every move scores the same.
            move = order_moves(board, board.legal_moves)[0]
        result = SearchResult(
            move, normalize_score(score), current, state.node_count,
            mate_plies=mate_plies(score, current),
        )

    if result is None:
        move = state.root_best_move
        plies = None
        if move is not None:
            score = state.root_best_score
            plies = mate_plies(score, current)
        else:
            move = order_moves(board, board.legal_moves)[0]
            score = evaluate(board, config)
        result = SearchResult(
            move, normalize_score(score), 0, state.node_count, partial=True, mate_plies=plies
        )
    else:
        result = replace(result, nodes=state.node_count, partial=result.depth < depth)

    _log.debug(
        "search depth=%d/%d move=%s score=%d nodes=%d partial=%s elapsed_ms=%.0f",
        result.depth,
        depth,
        result.move.uci() if result.move else None,
        result.score,
        result.nodes,
        result.partial,
        state.elapsed_ms(),
    )
    return result
