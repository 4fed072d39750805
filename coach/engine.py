"""
Engine-facing API: the one object a game server talks to.

CoachEngine ties the rules adapter, evaluator, search, difficulty table,
classifier and feedback generator together behind FEN-in, values-out
methods. Everything stateful it needs (transposition cache, evaluation
config, quality thresholds, random source) is handed to the constructor, so
two engines never share state unless their owner makes them.

The methods are synchronous. A server that must stay responsive runs them
in a worker thread (FastAPI does this for sync handlers); the cache is
thread-safe, everything else is per call.
"""

import logging
import random
import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace

import chess

from coach import difficulty, feedback, quality, rules, search
from coach.errors import IllegalMoveError, MalformedExternalMoveError
from coach.evaluate import DEFAULT_EVAL_CONFIG, EvaluationConfig, evaluate
from coach.external import ExternalMoveSource, validate_proposal
from coach.quality import DEFAULT_THRESHOLDS, IllegalMove, MoveAssessment, QualityThresholds
from coach.rules import PlayedMove
from coach.transposition import TranspositionCache

_log = logging.getLogger(__name__)

ENGINE_SOURCE = "engine"
EXTERNAL_SOURCE = "external"
FALLBACK_SOURCE = "engine-fallback"


@dataclass(frozen=True)
class EngineMove:
    """
    A move returned to the caller.

    Attributes:
        move:      The validated move, including the resulting position.
        score:     White-positive score backing the choice, or None when the
                   policy did not compute one (random tiers, external moves).
        tier:      Tier the move was requested at.
        source:    ENGINE_SOURCE, EXTERNAL_SOURCE or FALLBACK_SOURCE.
        reasoning: Provenance: which path produced the move and why.
        partial:   True when a deadline cut the search short.
        mate_plies: Plies to mate behind ``score``, positive when White
                   mates; None when no mate was seen.
    """

    move: PlayedMove
    score: int | None
    tier: int
    source: str
    reasoning: str
    partial: bool = False
    mate_plies: int | None = None


@dataclass(frozen=True)
class NoLegalMove:
    """The side to move has no legal move (checkmate or stalemate)."""

    reason: str
    checkmate: bool


@dataclass(frozen=True)
class MoveHint:
    """
    Best move of a full-strength search, for position analysis.

    Attributes:
        move:       The search's best move, or None with no legal move.
        score:      White-positive score of the position after searching.
        depth:      Deepest completed search iteration.
        partial:    True when the time limit cut the search short.
        mate_plies: Signed plies to mate, or None.
    """

    move: PlayedMove | None
    score: int
    depth: int
    partial: bool = False
    mate_plies: int | None = None


class CoachEngine:
    """
    Chess opponent and move coach.

    Attributes:
        cache:      Transposition cache shared by all searches of this engine.
        config:     Evaluation terms used everywhere.
        thresholds: Quality bucket bounds.
        rng:        Random source for the difficulty policies.
    """

    def __init__(
        self,
        cache: TranspositionCache | None = None,
        config: EvaluationConfig = DEFAULT_EVAL_CONFIG,
        thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
        rng: random.Random | None = None,
    ) -> None:
        self.cache = cache if cache is not None else TranspositionCache()
        self.config = config
        self.thresholds = thresholds
        self.rng = rng if rng is not None else random.Random()
        # random.Random is not safe to share between threads.
        self._rng_lock = threading.Lock()

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def request_move(
        self,
        fen: str,
        tier: int,
        time_limit_ms: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> EngineMove | NoLegalMove:
        """
        Choose a move for the side to move at the given strength tier.

        Raises:
            InvalidPositionError: ``fen`` is not a valid position.
            ValueError: ``tier`` is out of range.
        """
        board = rules.parse_position(fen)
        difficulty.policy_for_tier(tier)
        if not any(board.legal_moves):
            return self._no_legal_move(board)

        with self._rng_lock:
            seed = self.rng.getrandbits(64)
        selection = difficulty.select_move(
            board,
            tier,
            rng=random.Random(seed),
            cache=self.cache,
            config=self.config,
            time_limit_ms=time_limit_ms,
            stop_event=stop_event,
        )
        played = rules.describe_move(board, selection.move)
        _log.info(
            "tier=%d move=%s score=%s policy=%s partial=%s",
            tier,
            played.uci,
            selection.score,
            selection.policy.kind,
            selection.partial,
        )
        return EngineMove(
            move=played,
            score=selection.score,
            tier=tier,
            source=ENGINE_SOURCE,
            reasoning=selection.reasoning,
            partial=selection.partial,
            mate_plies=selection.mate_plies,
        )

    def evaluate_move(self, fen_before: str, move: object) -> MoveAssessment | IllegalMove:
        """
        Grade a move played from ``fen_before``.

        Raises:
            InvalidPositionError: ``fen_before`` is not a valid position.
        """
        board = rules.parse_position(fen_before)
        return quality.classify(board, move, config=self.config, thresholds=self.thresholds)

    def evaluate_position(self, fen: str) -> int:
        """White-positive static score of a position."""
        return evaluate(rules.parse_position(fen), self.config)

    def suggest_move(
        self, fen: str, depth: int, time_limit_ms: int | None = None
    ) -> MoveHint:
        """
        Search ``fen`` to ``depth`` plies and report the best move.

        Unlike ``request_move`` no tier randomness is applied: this is the
        hint a coach shows next to the evaluation.

        Raises:
            InvalidPositionError: ``fen`` is not a valid position.
            ValueError: ``depth`` < 1.
        """
        board = rules.parse_position(fen)
        result = search.best_move(
            board, depth, cache=self.cache, config=self.config, time_limit_ms=time_limit_ms
        )
        played = rules.describe_move(board, result.move) if result.move is not None else None
        return MoveHint(played, result.score, result.depth, result.partial, result.mate_plies)

    def generate_feedback(self, fen: str, recent_moves: Iterable[object]) -> str:
        """Coaching text for the current position and recent move history."""
        board = rules.parse_position(fen)
        return feedback.summarize(
            board, recent_moves, config=self.config, thresholds=self.thresholds
        )

    def request_external_move(
        self,
        fen: str,
        tier: int,
        source: ExternalMoveSource,
        time_limit_ms: int | None = None,
    ) -> EngineMove | NoLegalMove:
        """
        Ask an alternate source for a move and fall back to the engine.

        The proposal is used only if it parses and is legal. Otherwise the
        engine picks a move with ``request_move`` and the result's
        ``reasoning`` names the fallback and the reason for it.
        """
        board = rules.parse_position(fen)
        difficulty.policy_for_tier(tier)
        if not any(board.legal_moves):
            return self._no_legal_move(board)

        try:
            payload = source.propose(fen, tier)
            move, proposal = validate_proposal(board, payload)
        except (MalformedExternalMoveError, IllegalMoveError) as exc:
            reason = exc.reason
        except Exception as exc:
            _log.exception("external move source failed for FEN=%s", fen)
            reason = f"external source failed: {exc}"
        else:
            played = rules.describe_move(board, move)
            note = proposal.reasoning or f"proposed {played.san}"
            return EngineMove(
                move=played,
                score=None,
                tier=tier,
                source=EXTERNAL_SOURCE,
                reasoning=f"external move accepted: {note}",
            )

        _log.warning("external move rejected (%s); falling back to tier %d engine", reason, tier)
        fallback = self.request_move(fen, tier, time_limit_ms)
        if isinstance(fallback, NoLegalMove):
            return fallback
        return replace(
            fallback,
            source=FALLBACK_SOURCE,
            reasoning=f"fallback to engine: {reason}; {fallback.reasoning}",
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _no_legal_move(board: chess.Board) -> NoLegalMove:
        if rules.is_checkmate(board):
            return NoLegalMove("no move available: checkmate", checkmate=True)
        return NoLegalMove("no move available: stalemate", checkmate=False)
