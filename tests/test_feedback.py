import logging

import chess
import pytest

from coach import rules
from coach.feedback import GENERIC_MESSAGES, PHASE_ADVICE, GamePhase, game_phase, summarize

START = chess.STARTING_FEN
MIDDLEGAME = "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"
PAWN_ENDING = "6k1/ppp2ppp/8/3p4/3P4/8/PPP2PPP/6K1 w - - 0 1"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
STALEMATE_TRAP = "7k/4Q3/6K1/8/8/8/8/8 w - - 0 1"
STALEMATED = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
HANGING_QUEEN = "4k3/8/8/3q4/8/8/8/3RK3 w - - 0 1"
ROOK_CHECK = "4k3/8/8/8/8/8/8/4R1K1 b - - 0 1"


@pytest.mark.parametrize(
    "fen, phase",
    [(START, GamePhase.OPENING), (MIDDLEGAME, GamePhase.MIDDLEGAME), (PAWN_ENDING, GamePhase.ENDGAME)],
)
def test_game_phase(fen, phase):
    assert game_phase(chess.Board(fen)) == phase


def test_empty_history_gives_generic_text():
    text = summarize(chess.Board(), [])
    assert text.startswith(GENERIC_MESSAGES[GamePhase.OPENING])
    assert PHASE_ADVICE[GamePhase.OPENING] in text
    assert "roughly equal" in text


def test_none_history_is_accepted():
    assert summarize(chess.Board(PAWN_ENDING), None).startswith(GENERIC_MESSAGES[GamePhase.ENDGAME])


def test_blunder_history_warns_player():
    text = summarize(chess.Board(STALEMATED), [(STALEMATE_TRAP, "e7f7")])
    assert "Costly moves recently" in text
    assert "The game is a draw." in text


def test_good_run_still_mentions_worst_move():
    history = [(HANGING_QUEEN, "d1d5"), (STALEMATE_TRAP, "e7f7")]
    text = summarize(chess.Board(), history)
    assert "Qf7 was a blunder, though." in text
    assert "Costly" not in text


def test_only_recent_moves_count():
    history = [(STALEMATE_TRAP, "e7f7")] + [(START, "e2e4")] * 4
    text = summarize(chess.Board(), history)
    assert "blunder" not in text.lower()
    assert "last 4 moves" in text


def test_unusable_entries_are_skipped(caplog):
    history = [("not a fen", "e2e4"), (START, "e2e5"), 42, (START, "e2e4")]
    with caplog.at_level(logging.INFO, logger="coach.feedback"):
        text = summarize(chess.Board(), history)
    assert text.startswith("Solid, steady play over your last 1 moves.")
    assert len([r for r in caplog.records if "skipping" in r.getMessage()]) == 3


def test_played_move_entries():
    played = rules.apply(chess.Board(), "e2e4")
    text = summarize(chess.Board(played.fen_after), [played])
    assert text.startswith("Solid, steady play")


def test_checkmate_status():
    assert "Checkmate! Game over." in summarize(chess.Board(FOOLS_MATE), [])


def test_check_status():
    assert "The side to move is in check!" in summarize(chess.Board(ROOK_CHECK), [])


def test_summarize_leaves_board_untouched():
    board = chess.Board(MIDDLEGAME)
    summarize(board, [(MIDDLEGAME, "c4f7")])
    assert board.fen() == MIDDLEGAME
