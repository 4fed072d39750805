import random

import chess
import pytest

from coach.engine import EXTERNAL_SOURCE, FALLBACK_SOURCE, CoachEngine, EngineMove, NoLegalMove
from coach.errors import IllegalMoveError, MalformedExternalMoveError
from coach.external import ExternalProposal, parse_external_move, validate_proposal

START = chess.STARTING_FEN
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


class FixedSource:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def propose(self, fen, tier):
        self.calls.append((fen, tier))
        return self.payload


class BrokenSource:
    def propose(self, fen, tier):
        raise ConnectionError("service unavailable")


@pytest.mark.parametrize(
    "payload",
    [
        '{"move": {"from": "e2", "to": "e4"}, "reasoning": "center"}',
        '<think>maybe d4?\n{"move": {"from": "d2", "to": "d4"}}</think>{"move": {"from": "e2", "to": "e4"}, "reasoning": "center"}',
        '```json\n{"move": {"from": "E2", "to": "E4"}, "reasoning": "center"}\n```',
        'Sure! Here is my move: {"move": {"from": "e2", "to": "e4"}, "reasoning": "center"} Good luck.',
        {"move": {"from": "e2", "to": "e4"}, "reasoning": "center"},
    ],
)
def test_parse_variants(payload):
    proposal = parse_external_move(payload)
    assert proposal == ExternalProposal({"from": "e2", "to": "e4"}, "center")


def test_parse_bare_uci_and_inner_mapping():
    assert parse_external_move(" e7e8q ").move == {"from": "e7", "to": "e8", "promotion": "q"}
    assert parse_external_move({"from": "g1", "to": "f3", "promotion": ""}).move == {"from": "g1", "to": "f3"}


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "<think>only thoughts</think>",
        "I would play the king's pawn",
        '{"move": "e2e4"}',
        '{"move": {"from": "e2", "to": "z9"}}',
        '{"move": {"from": "e7", "to": "e8", "promotion": "k"}}',
        42,
        None,
    ],
)
def test_parse_rejects_malformed(payload):
    with pytest.raises(MalformedExternalMoveError) as excinfo:
        parse_external_move(payload)
    assert excinfo.value.reason.startswith("malformed external move")


def test_validate_proposal_checks_legality():
    board = chess.Board()
    move, proposal = validate_proposal(board, '{"move": {"from": "g1", "to": "f3"}}')
    assert move == chess.Move.from_uci("g1f3")
    assert proposal.reasoning is None

    with pytest.raises(IllegalMoveError) as excinfo:
        validate_proposal(board, '{"move": {"from": "e2", "to": "e5"}}')
    assert excinfo.value.reason.endswith("(proposed by external source)")


def test_engine_accepts_legal_proposal():
    engine = CoachEngine(rng=random.Random(1))
    source = FixedSource('{"move": {"from": "e2", "to": "e4"}, "reasoning": "claim the center"}')
    result = engine.request_external_move(START, 5, source)

    assert isinstance(result, EngineMove)
    assert result.source == EXTERNAL_SOURCE
    assert result.move.uci == "e2e4"
    assert result.score is None
    assert result.reasoning == "external move accepted: claim the center"
    assert source.calls == [(START, 5)]


@pytest.mark.parametrize(
    "source, reason",
    [
        (FixedSource('{"move": {"from": "e2", "to": "e5"}}'), "move rejected"),
        (FixedSource("no idea, sorry"), "malformed external move"),
        (BrokenSource(), "external source failed: service unavailable"),
    ],
)
def test_engine_falls_back_with_provenance(source, reason):
    engine = CoachEngine(rng=random.Random(1))
    board = chess.Board()
    result = engine.request_external_move(START, 3, source)

    assert isinstance(result, EngineMove)
    assert result.source == FALLBACK_SOURCE
    assert result.reasoning.startswith("fallback to engine: ")
    assert reason in result.reasoning
    assert result.move.to_move() in board.legal_moves


def test_external_request_without_legal_moves():
    engine = CoachEngine()
    source = FixedSource("e2e4")
    result = engine.request_external_move(FOOLS_MATE, 5, source)
    assert isinstance(result, NoLegalMove)
    assert result.checkmate
    assert source.calls == []
