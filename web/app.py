"""
FastAPI web application for the chess coach engine.

Exposes the engine-facing API over REST:

    POST /api/move             engine move at a strength tier
    POST /api/external-move    validate an alternate source's proposal,
                               fall back to the engine if it is unusable
    POST /api/analyze-move     quality verdict for a played move
    POST /api/evaluate         static score of a position, optionally with
                               a best-move hint from a search
    POST /api/feedback         coaching text for recent moves

Architecture notes:
- Sync endpoints (not async): FastAPI runs sync handlers in a thread pool,
  which is the correct pattern for CPU-bound blocking calls like engine search.
- Stateless per request: the client sends the full FEN each time. The only
  state kept between requests is the engine's transposition cache, which is
  thread-safe and bounded.
- CoachError maps to HTTP 400 with the error's reason as the detail.
"""

import logging
import os

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from coach.constants import DEFAULT_CACHE_SIZE, MAX_SEARCH_DEPTH, MAX_TIER, MIN_TIER
from coach.engine import CoachEngine, EngineMove, NoLegalMove
from coach.errors import CoachError
from coach.evaluate import describe_score
from coach.quality import IllegalMove
from coach.transposition import TranspositionCache

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

_CACHE_SIZE = int(os.environ.get("CHESS_COACH_CACHE_SIZE", DEFAULT_CACHE_SIZE))

app = FastAPI(title="Chess Coach", version="1.0.0")
engine = CoachEngine(cache=TranspositionCache(_CACHE_SIZE))


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    """
    Client request for an engine move.

    Fields:
        fen: Full FEN string representing the current board position.
        tier: Strength tier, 1 (random) to 10 (strongest).
        time_limit: Seconds allocated to the engine for this move (clamped
                    to [0.1, 30.0] to prevent accidental 0-second calls or
                    runaway searches).
    """

    fen: str
    tier: int = 5
    time_limit: float = 3.0

    @field_validator("tier")
    @classmethod
    def check_tier(cls, v: int) -> int:
        """Reject tiers outside the supported ladder."""
        if not MIN_TIER <= v <= MAX_TIER:
            raise ValueError(f"tier must be between {MIN_TIER} and {MAX_TIER}")
        return v

    @field_validator("time_limit")
    @classmethod
    def clamp_time_limit(cls, v: float) -> float:
        """Clamp time_limit to a safe operating range."""
        return max(0.1, min(v, 30.0))


class ExternalMoveRequest(MoveRequest):
    """
    Move request carrying an alternate source's raw proposal.

    Fields:
        proposal: The source's output, e.g. a JSON object as text or a bare
                  UCI move.
    """

    proposal: str


class MoveResponse(BaseModel):
    """
    Engine response after choosing a move.

    Fields:
        move: Chosen move in UCI notation (e.g. "e2e4", "e7e8q").
        san: The same move in standard algebraic notation.
        fen: Board FEN after the move is applied.
        score: White-positive centipawn score backing the choice, if any.
        source: "engine", "external" or "engine-fallback".
        reasoning: How the move was chosen.
        partial: True when the time limit cut the search short.
    """

    move: str
    san: str
    fen: str
    score: int | None
    source: str
    reasoning: str
    partial: bool


class AnalyzeRequest(BaseModel):
    fen: str
    move: str


class AnalyzeResponse(BaseModel):
    """
    Quality verdict for a move.

    ``score_delta``, ``quality`` and ``accuracy`` are null when ``legal`` is
    false. ``accuracy`` is a 0-100 grade for the quality bucket.
    """

    legal: bool
    score_delta: int | None
    quality: str | None
    explanation: str
    accuracy: int | None = None


class EvaluateRequest(BaseModel):
    """
    Position evaluation request.

    Fields:
        fen: Position to evaluate.
        depth: When set, also search this many plies for a best-move hint.
        time_limit: Seconds allowed for that search, clamped as for /api/move.
    """

    fen: str
    depth: int | None = None
    time_limit: float = 3.0

    @field_validator("depth")
    @classmethod
    def check_depth(cls, v: int | None) -> int | None:
        if v is not None and not 1 <= v <= MAX_SEARCH_DEPTH:
            raise ValueError(f"depth must be between 1 and {MAX_SEARCH_DEPTH}")
        return v

    @field_validator("time_limit")
    @classmethod
    def clamp_time_limit(cls, v: float) -> float:
        return max(0.1, min(v, 30.0))


class EvaluateResponse(BaseModel):
    """
    Static score of a position, plus the search hint when a depth was given.

    ``best_move``, ``best_move_san`` and ``search_depth`` are null without a
    depth or when the side to move has no legal move.
    """

    score: int
    description: str
    best_move: str | None = None
    best_move_san: str | None = None
    search_depth: int | None = None


class HistoryEntry(BaseModel):
    """One move of the history: the position it was played from and the move."""

    fen: str
    move: str


class FeedbackRequest(BaseModel):
    fen: str
    moves: list[HistoryEntry] = []


class FeedbackResponse(BaseModel):
    feedback: str


class _ProposalSource:
    """Adapts an already received proposal to the ExternalMoveSource protocol."""

    def __init__(self, proposal: str) -> None:
        self.proposal = proposal

    def propose(self, fen: str, tier: int) -> str:
        return self.proposal


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post("/api/move", response_model=MoveResponse)
def api_move(request: MoveRequest) -> MoveResponse:
    """
    Choose the engine's move for the given position and tier.

    Raises:
        HTTPException 400: Malformed FEN or no legal move.
        HTTPException 500: Unexpected engine failure.
    """
    time_limit_ms = int(request.time_limit * 1000)
    try:
        result = engine.request_move(request.fen, request.tier, time_limit_ms)
    except CoachError as exc:
        raise HTTPException(status_code=400, detail=exc.reason) from exc
    except Exception as exc:
        _log.exception("Engine search failed for FEN=%s", request.fen)
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    return _move_response(result)


@app.post("/api/external-move", response_model=MoveResponse)
def api_external_move(request: ExternalMoveRequest) -> MoveResponse:
    """
    Use an alternate source's proposal if it is legal, else the engine's move.

    Raises:
        HTTPException 400: Malformed FEN or no legal move.
        HTTPException 500: Unexpected engine failure.
    """
    time_limit_ms = int(request.time_limit * 1000)
    try:
        result = engine.request_external_move(
            request.fen, request.tier, _ProposalSource(request.proposal), time_limit_ms
        )
    except CoachError as exc:
        raise HTTPException(status_code=400, detail=exc.reason) from exc
    except Exception as exc:
        _log.exception("External move handling failed for FEN=%s", request.fen)
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    return _move_response(result)


@app.post("/api/analyze-move", response_model=AnalyzeResponse)
def api_analyze_move(request: AnalyzeRequest) -> AnalyzeResponse:
    """Classify a move. Illegal moves are a normal response with legal=false."""
    try:
        verdict = engine.evaluate_move(request.fen, request.move)
    except CoachError as exc:
        raise HTTPException(status_code=400, detail=exc.reason) from exc

    if isinstance(verdict, IllegalMove):
        return AnalyzeResponse(
            legal=False, score_delta=None, quality=None, explanation=verdict.reason
        )
    return AnalyzeResponse(
        legal=True,
        score_delta=verdict.score_delta,
        quality=verdict.quality.label,
        explanation=verdict.explanation,
        accuracy=verdict.accuracy,
    )


@app.post("/api/evaluate", response_model=EvaluateResponse)
def api_evaluate(request: EvaluateRequest) -> EvaluateResponse:
    try:
        score = engine.evaluate_position(request.fen)
        hint = None
        if request.depth is not None:
            hint = engine.suggest_move(request.fen, request.depth, int(request.time_limit * 1000))
    except CoachError as exc:
        raise HTTPException(status_code=400, detail=exc.reason) from exc

    response = EvaluateResponse(score=score, description=describe_score(score))
    if hint is not None and hint.move is not None:
        response.best_move = hint.move.uci
        response.best_move_san = hint.move.san
        response.search_depth = hint.depth
    return response


@app.post("/api/feedback", response_model=FeedbackResponse)
def api_feedback(request: FeedbackRequest) -> FeedbackResponse:
    history = [(entry.fen, entry.move) for entry in request.moves]
    try:
        text = engine.generate_feedback(request.fen, history)
    except CoachError as exc:
        raise HTTPException(status_code=400, detail=exc.reason) from exc
    return FeedbackResponse(feedback=text)


def _move_response(result: EngineMove | NoLegalMove) -> MoveResponse:
    if isinstance(result, NoLegalMove):
        raise HTTPException(status_code=400, detail=result.reason)

    _log.info(
        "Move=%s source=%s score=%s tier=%d fen=%s",
        result.move.uci,
        result.source,
        result.score,
        result.tier,
        result.move.fen_before[:40],
    )
    return MoveResponse(
        move=result.move.uci,
        san=result.move.san,
        fen=result.move.fen_after,
        score=result.score,
        source=result.source,
        reasoning=result.reasoning,
        partial=result.partial,
    )
