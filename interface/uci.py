"""
UCI (Universal Chess Interface) protocol handler.

UCI is the standard text-based protocol that lets chess GUIs and testing
tools talk to engines. The engine reads commands from stdin and writes
responses to stdout, flushing every line.

Protocol overview:
    GUI → Engine: uci, isready, ucinewgame, setoption, position, go, stop, quit
    Engine → GUI: id name, id author, option, uciok, readyok, info, bestmove

Strength is chosen with ``setoption name Skill value <1..10>``, which maps
directly onto the coach's difficulty tiers.

Threading model:
    The UCI loop runs on the main thread and must never block on the search.
    When the GUI sends "go", a daemon thread runs the move request. The main
    thread keeps reading stdin so it can handle "stop" at any time; a
    threading.Event tells the search to return its best completed result.

Critical rule: NEVER print to stdout except for valid UCI responses.
Diagnostics go to stderr.

Run with ``python -m interface.uci`` or the ``chess-coach-uci`` script.
"""

import sys
import threading

import chess

from coach.constants import MAX_TIER, MIN_TIER
from coach.engine import CoachEngine, NoLegalMove

# "go infinite" still needs an upper bound: the depth cap ends the search
# long before this.
_INFINITE_MS = 10_000_000


def _send(line: str) -> None:
    """Write a UCI response line to stdout and flush immediately."""
    print(line, flush=True)


def _log(message: str) -> None:
    """Write a diagnostic line to stderr; stdout is reserved for the protocol."""
    print(message, file=sys.stderr, flush=True)


class UciHandler:
    """
    Stateful handler for the UCI protocol.

    Attributes:
        engine:        The coach engine; its cache lives as long as the handler.
        board:         Current position, updated by "position" commands.
        tier:          Strength tier set through the Skill option.
        search_thread: Active search thread, or None.
        stop_event:    Event shared with the search thread.
    """

    def __init__(self, engine: CoachEngine | None = None) -> None:
        self.engine = engine if engine is not None else CoachEngine()
        self.board: chess.Board = chess.Board()
        self.tier: int = MAX_TIER
        self.search_thread: threading.Thread | None = None
        self.stop_event: threading.Event = threading.Event()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_uci(self) -> None:
        _send("id name ChessCoach")
        _send("id author Chess Coach Project")
        _send(f"option name Skill type spin default {MAX_TIER} min {MIN_TIER} max {MAX_TIER}")
        _send("uciok")

    def handle_isready(self) -> None:
        _send("readyok")

    def handle_ucinewgame(self) -> None:
        """Stop any search, reset the board and forget cached search results."""
        self._stop_search()
        self.board = chess.Board()
        self.engine.cache.clear()

    def handle_setoption(self, tokens: list[str]) -> None:
        """
        Parse "setoption name <id> value <x>".

        Only the Skill option is recognised; anything else is logged and
        ignored.
        """
        if "name" not in tokens or "value" not in tokens:
            _log(f"uci: malformed setoption: {' '.join(tokens)}")
            return
        name = " ".join(tokens[tokens.index("name") + 1:tokens.index("value")])
        value = " ".join(tokens[tokens.index("value") + 1:])

        if name.lower() != "skill":
            _log(f"uci: ignoring unknown option {name!r}")
            return
        try:
            tier = int(value)
        except ValueError:
            _log(f"uci: Skill must be an integer, got {value!r}")
            return
        self.tier = max(MIN_TIER, min(tier, MAX_TIER))

    def handle_position(self, tokens: list[str]) -> None:
        """
        Parse and apply a "position" command.

        Command formats:
            position startpos
            position startpos moves e2e4 e7e5 ...
            position fen <FEN>
            position fen <FEN> moves e2e4 e7e5 ...
        """
        if not tokens:
            return

        try:
            if tokens[0] == "startpos":
                board = chess.Board()
                move_tokens = tokens[2:] if len(tokens) > 1 and tokens[1] == "moves" else []
            elif tokens[0] == "fen":
                if "moves" in tokens:
                    moves_idx = tokens.index("moves")
                    fen = " ".join(tokens[1:moves_idx])
                    move_tokens = tokens[moves_idx + 1:]
                else:
                    fen = " ".join(tokens[1:])
                    move_tokens = []
                board = chess.Board(fen)
            else:
                _log(f"uci: unknown position type: {tokens[0]}")
                return
        except ValueError as e:
            _log(f"uci: error in position command: {e}")
            return

        for uci_move in move_tokens:
            try:
                move = chess.Move.from_uci(uci_move)
            except ValueError:
                _log(f"uci: malformed move in position command: {uci_move}")
                break
            if move not in board.legal_moves:
                _log(f"uci: illegal move in position command: {uci_move}")
                break
            board.push(move)

        self.board = board

    def handle_go(self, tokens: list[str]) -> None:
        """
        Start a move request for the current position in a background thread.

        The time budget comes from "movetime" or the wtime/btime clocks; the
        difficulty comes from the Skill option.
        """
        self._stop_search()

        time_limit_ms = self._parse_go_time(tokens)
        self.stop_event = threading.Event()
        stop_event = self.stop_event
        fen = self.board.fen()
        white_to_move = self.board.turn == chess.WHITE
        tier = self.tier

        def search_and_reply() -> None:
            try:
                result = self.engine.request_move(fen, tier, time_limit_ms, stop_event)
                if isinstance(result, NoLegalMove):
                    _send("bestmove (none)")
                    return

                # UCI scores are from the side to move's point of view.
                sign = 1 if white_to_move else -1
                if result.mate_plies is not None:
                    plies = result.mate_plies * sign
                    moves = (abs(plies) + 1) // 2
                    _send(f"info score mate {moves if plies > 0 else -moves}")
                elif result.score is not None:
                    _send(f"info score cp {result.score * sign}")
                _send(f"info string {result.reasoning}")
                _send(f"bestmove {result.move.uci}")
            except Exception as e:
                _log(f"search error: {e}")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=search_and_reply, daemon=True)
        self.search_thread.start()

    def handle_stop(self) -> None:
        self._stop_search()

    def handle_quit(self) -> None:
        self._stop_search()
        sys.exit(0)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _stop_search(self) -> None:
        """Signal the search thread to stop and wait (up to 2s) for it."""
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join(timeout=2.0)
        self.search_thread = None

    def _parse_go_time(self, tokens: list[str]) -> int:
        """
        Extract the time budget in milliseconds from "go" command tokens.

        Supports:
            movetime <ms>                           exactly this long
            wtime <ms> btime <ms> [winc/binc <ms>]   1/40 of the clock + increment
        Anything else ("go infinite", "go depth 3") searches until the tier's
        depth is exhausted or "stop" arrives.
        """
        params: dict[str, int] = {}
        i = 0
        while i < len(tokens) - 1:
            try:
                params[tokens[i]] = int(tokens[i + 1])
                i += 2
            except ValueError:
                i += 1

        if "movetime" in params:
            return max(1, params["movetime"])

        color = self.board.turn
        time_key = "wtime" if color == chess.WHITE else "btime"
        inc_key = "winc" if color == chess.WHITE else "binc"
        if time_key in params:
            return max(1, params[time_key] // 40 + params.get(inc_key, 0))

        return _INFINITE_MS


def run_uci_loop() -> None:
    """
    Main UCI protocol loop.

    Reads lines from stdin and dispatches each command to a UciHandler until
    "quit" or end of input. A failing command is logged to stderr and the
    loop continues; a crash would forfeit the game.
    """
    handler = UciHandler()

    for raw_line in sys.stdin:
        line = raw_line.strip()
        if not line:
            continue

        tokens = line.split()
        command = tokens[0]
        args = tokens[1:]

        try:
            if command == "uci":
                handler.handle_uci()
            elif command == "isready":
                handler.handle_isready()
            elif command == "ucinewgame":
                handler.handle_ucinewgame()
            elif command == "setoption":
                handler.handle_setoption(args)
            elif command == "position":
                handler.handle_position(args)
            elif command == "go":
                handler.handle_go(args)
            elif command == "stop":
                handler.handle_stop()
            elif command == "quit":
                handler.handle_quit()
            else:
                _log(f"uci: ignoring unknown command: {command!r}")
        except Exception as e:
            _log(f"uci: unhandled error for command {command!r}: {e}")


if __name__ == "__main__":
    run_uci_loop()
