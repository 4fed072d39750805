import random
import threading

import chess
import pytest

from coach import CoachEngine, EngineMove, InvalidPositionError, NoLegalMove, TranspositionCache
from coach.constants import MATE_SCORE
from coach.engine import ENGINE_SOURCE
from coach.quality import IllegalMove, MoveAssessment

START = chess.STARTING_FEN
MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
ROOK_ENDING = "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"


@pytest.fixture
def engine():
    return CoachEngine(rng=random.Random(7))


def test_lowest_tier_from_start_plays_a_legal_move(engine):
    result = engine.request_move(START, 1)
    assert isinstance(result, EngineMove)
    assert result.move.to_move() in chess.Board().legal_moves
    assert result.source == ENGINE_SOURCE
    assert result.tier == 1
    assert result.move.fen_before == START


def test_top_tier_finds_mate_in_one(engine):
    result = engine.request_move(MATE_IN_ONE, 10)
    assert result.move.uci == "a1a8"
    assert result.score == MATE_SCORE
    assert result.move.san == "Ra8#"
    assert chess.Board(result.move.fen_after).is_checkmate()


def test_opening_pawn_push_is_not_penalised(engine):
    verdict = engine.evaluate_move(START, "e2e4")
    assert isinstance(verdict, MoveAssessment)
    assert verdict.score_delta >= 0


def test_illegal_move_is_reported_not_raised(engine):
    verdict = engine.evaluate_move(START, "e1e3")
    assert isinstance(verdict, IllegalMove)


def test_feedback_with_no_history(engine):
    text = engine.generate_feedback(START, [])
    assert isinstance(text, str)
    assert text.strip()


@pytest.mark.parametrize("fen, checkmate", [(FOOLS_MATE, True), (STALEMATE, False)])
def test_no_legal_move_results(engine, fen, checkmate):
    result = engine.request_move(fen, 5)
    assert isinstance(result, NoLegalMove)
    assert result.checkmate is checkmate
    assert result.reason.startswith("no move available")


def test_evaluate_position(engine):
    assert engine.evaluate_position(START) == 0
    assert engine.evaluate_position(FOOLS_MATE) == -MATE_SCORE


@pytest.mark.parametrize("method", ["request_move", "evaluate_position", "generate_feedback"])
def test_invalid_fen_raises(engine, method):
    args = {"request_move": ("nonsense", 5), "evaluate_position": ("nonsense",),
            "generate_feedback": ("nonsense", [])}[method]
    with pytest.raises(InvalidPositionError):
        getattr(engine, method)(*args)


@pytest.mark.parametrize("tier", [0, 11])
def test_invalid_tier_raises(engine, tier):
    with pytest.raises(ValueError):
        engine.request_move(START, tier)


def test_seeded_engines_agree():
    first = CoachEngine(rng=random.Random(42))
    second = CoachEngine(rng=random.Random(42))
    for tier in (1, 2, 4, 6):
        assert first.request_move(START, tier).move == second.request_move(START, tier).move


def test_deadline_result_is_still_legal(engine):
    result = engine.request_move(ROOK_ENDING, 10, time_limit_ms=1)
    assert result.move.to_move() in chess.Board(ROOK_ENDING).legal_moves


def test_stop_event_interrupts_search(engine):
    stop = threading.Event()
    stop.set()
    result = engine.request_move(START, 10, stop_event=stop)
    assert result.partial
    assert result.move.to_move() in chess.Board().legal_moves


def test_concurrent_requests_share_cache():
    cache = TranspositionCache()
    engine = CoachEngine(cache=cache, rng=random.Random(3))
    expected = CoachEngine(rng=random.Random(0)).request_move(ROOK_ENDING, 10).move.uci
    results = []
    errors = []

    def worker():
        try:
            results.append(engine.request_move(ROOK_ENDING, 10).move.uci)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert results == [expected] * 4
    assert len(cache) > 0


def test_engine_move_carries_mate_distance(engine):
    assert engine.request_move(MATE_IN_ONE, 10).mate_plies == 1
    assert engine.request_move("k7/8/2K5/8/8/8/8/7R w - - 0 1", 10).mate_plies == 3
    assert engine.request_move(START, 1).mate_plies is None


def test_suggest_move_returns_search_hint(engine):
    hint = engine.suggest_move(MATE_IN_ONE, 2)
    assert hint.move.uci == "a1a8"
    assert hint.move.san == "Ra8#"
    assert hint.depth == 2
    assert hint.score == MATE_SCORE
    assert hint.mate_plies == 1
    assert not hint.partial


def test_suggest_move_without_legal_moves(engine):
    hint = engine.suggest_move(FOOLS_MATE, 2)
    assert hint.move is None
    assert hint.score == -MATE_SCORE


def test_suggest_move_rejects_bad_fen(engine):
    with pytest.raises(InvalidPositionError):
        engine.suggest_move("nonsense", 2)
