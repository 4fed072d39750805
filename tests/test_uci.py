import random

import chess
import pytest

from coach.engine import CoachEngine
from interface.uci import _INFINITE_MS, UciHandler

MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
MATE_IN_TWO = "k7/8/2K5/8/8/8/8/7R w - - 0 1"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


@pytest.fixture
def handler():
    return UciHandler(CoachEngine(rng=random.Random(5)))


def _run_go(handler, tokens):
    handler.handle_go(tokens)
    handler.search_thread.join(timeout=30)
    assert not handler.search_thread.is_alive()


def _stdout_lines(capsys):
    return capsys.readouterr().out.strip().splitlines()


def test_uci_handshake_advertises_skill(handler, capsys):
    handler.handle_uci()
    handler.handle_isready()
    lines = _stdout_lines(capsys)
    assert lines[0].startswith("id name")
    assert "option name Skill type spin default 10 min 1 max 10" in lines
    assert lines[-2:] == ["uciok", "readyok"]


def test_position_with_moves(handler):
    handler.handle_position(["startpos", "moves", "e2e4", "e7e5"])
    assert handler.board.fen() == "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2"

    handler.handle_position(["fen"] + MATE_IN_ONE.split())
    assert handler.board.fen() == MATE_IN_ONE


def test_position_stops_at_illegal_move(handler, capsys):
    handler.handle_position(["startpos", "moves", "e2e4", "e2e4"])
    assert handler.board.fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    assert "illegal move" in capsys.readouterr().err


def test_bad_fen_keeps_previous_position(handler):
    handler.handle_position(["fen", "garbage"])
    assert handler.board.fen() == chess.STARTING_FEN


@pytest.mark.parametrize(
    "tokens, tier",
    [
        (["name", "Skill", "value", "3"], 3),
        (["name", "skill", "value", "99"], 10),
        (["name", "Skill", "value", "0"], 1),
        (["name", "Skill", "value", "hard"], 10),
        (["name", "Hash", "value", "64"], 10),
    ],
)
def test_setoption_skill(handler, tokens, tier):
    handler.handle_setoption(tokens)
    assert handler.tier == tier


def test_go_reports_mate(handler, capsys):
    handler.handle_position(["fen"] + MATE_IN_ONE.split())
    _run_go(handler, ["movetime", "5000"])
    lines = _stdout_lines(capsys)
    assert "info score mate 1" in lines
    assert lines[-1] == "bestmove a1a8"


def test_go_mate_score_for_black(handler, capsys):
    handler.handle_position(["fen"] + chess.Board(MATE_IN_ONE).mirror().fen().split())
    _run_go(handler, ["movetime", "5000"])
    lines = _stdout_lines(capsys)
    assert "info score mate 1" in lines
    assert lines[-1] == "bestmove a8a1"


def test_go_at_low_skill(handler, capsys):
    handler.handle_setoption(["name", "Skill", "value", "1"])
    handler.handle_position(["startpos"])
    _run_go(handler, [])
    lines = _stdout_lines(capsys)
    assert lines[-2].startswith("info string random move")
    move = lines[-1].split()[1]
    assert chess.Move.from_uci(move) in chess.Board().legal_moves


def test_go_without_legal_moves(handler, capsys):
    handler.handle_position(["fen"] + FOOLS_MATE.split())
    _run_go(handler, ["movetime", "100"])
    assert _stdout_lines(capsys) == ["bestmove (none)"]


def test_ucinewgame_clears_cache(handler):
    handler.handle_position(["fen"] + MATE_IN_ONE.split())
    _run_go(handler, ["movetime", "5000"])
    assert len(handler.engine.cache) > 0
    handler.handle_ucinewgame()
    assert len(handler.engine.cache) == 0
    assert handler.board.fen() == chess.STARTING_FEN


@pytest.mark.parametrize(
    "tokens, white_to_move, expected",
    [
        (["movetime", "250"], True, 250),
        (["wtime", "40000", "btime", "80000"], True, 1000),
        (["wtime", "40000", "btime", "80000", "binc", "500"], False, 2500),
        (["infinite"], True, _INFINITE_MS),
        ([], False, _INFINITE_MS),
    ],
)
def test_parse_go_time(handler, tokens, white_to_move, expected):
    if not white_to_move:
        handler.handle_position(["startpos", "moves", "e2e4"])
    assert handler._parse_go_time(tokens) == expected


def test_go_reports_mate_distance(handler, capsys):
    handler.handle_position(["fen"] + MATE_IN_TWO.split())
    _run_go(handler, ["movetime", "10000"])
    lines = _stdout_lines(capsys)
    assert "info score mate 2" in lines
    move = chess.Move.from_uci(lines[-1].split()[1])
    assert move in chess.Board(MATE_IN_TWO).legal_moves


def test_go_reports_being_mated(handler, capsys):
    # Ka7 is forced, then Ra1 mates.
    handler.handle_position(["fen", "k7/2K5/8/8/8/8/8/7R", "b", "-", "-", "0", "1"])
    _run_go(handler, ["movetime", "10000"])
    lines = _stdout_lines(capsys)
    assert "info score mate -1" in lines
