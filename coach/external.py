"""
Alternate move sources: validate a proposal before anyone trusts it.

An alternate source (typically a language model) proposes moves in a loose
text format and is free to be wrong. Its output is parsed here, then
checked against the rules adapter. Anything malformed or illegal raises,
and the engine facade falls back to its own search and records why.

Accepted payloads:
    - a mapping ``{"move": {"from": "e7", "to": "e5", "promotion": "q"},
      "reasoning": "..."}`` or just the inner ``{"from", "to"}`` mapping;
    - text containing such a JSON object, possibly wrapped in ``<think>``
      blocks or Markdown code fences;
    - a bare UCI move such as ``"e7e5"``.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import chess

from coach import rules
from coach.errors import IllegalMoveError, MalformedExternalMoveError

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?")
_SQUARE_RE = re.compile(r"^[a-h][1-8]$")
_UCI_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")


class ExternalMoveSource(Protocol):
    """Anything that can propose a move for a position and tier."""

    def propose(self, fen: str, tier: int) -> str | Mapping:
        ...


@dataclass(frozen=True)
class ExternalProposal:
    """A proposal whose shape has been checked, not yet its legality."""

    move: dict
    reasoning: str | None = None


def parse_external_move(payload: object) -> ExternalProposal:
    """
    Extract a move proposal from an alternate source's raw output.

    Raises:
        MalformedExternalMoveError: No move of the expected shape was found.
    """
    if isinstance(payload, Mapping):
        return _from_mapping(payload)
    if not isinstance(payload, str):
        raise MalformedExternalMoveError(
            f"malformed external move: unsupported payload type {type(payload).__name__}"
        )

    text = _FENCE_RE.sub("", _THINK_RE.sub("", payload)).strip()
    if not text:
        raise MalformedExternalMoveError("malformed external move: empty response")

    uci = _UCI_RE.match(text.lower())
    if uci:
        origin, target, promotion = uci.groups()
        return ExternalProposal(_move_dict(origin, target, promotion))

    obj = _first_json_object(text)
    if obj is None:
        raise MalformedExternalMoveError("malformed external move: no JSON object found")
    return _from_mapping(obj)


def validate_proposal(board: chess.Board, payload: object) -> tuple[chess.Move, ExternalProposal]:
    """
    Parse a payload and check it is legal on ``board``.

    Raises:
        MalformedExternalMoveError: The payload has the wrong shape.
        IllegalMoveError: The proposed move is not legal here.
    """
    proposal = parse_external_move(payload)
    try:
        move = rules.resolve_candidate(board, proposal.move)
    except IllegalMoveError as exc:
        raise IllegalMoveError(
            f"{exc.reason} (proposed by external source)", proposal.move
        ) from exc
    return move, proposal


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_json_object(text: str) -> dict | None:
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            obj, _ = decoder.raw_decode(text, match.start())
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def _from_mapping(obj: Mapping) -> ExternalProposal:
    inner = obj.get("move", obj)
    if not isinstance(inner, Mapping):
        raise MalformedExternalMoveError("malformed external move: 'move' is not an object")

    origin = str(inner.get("from", "")).strip().lower()
    target = str(inner.get("to", "")).strip().lower()
    if not _SQUARE_RE.match(origin) or not _SQUARE_RE.match(target):
        raise MalformedExternalMoveError(
            f"malformed external move: bad squares {origin!r} -> {target!r}"
        )

    promotion = inner.get("promotion") or None
    if promotion is not None:
        promotion = str(promotion).strip().lower()
        if promotion not in ("q", "r", "b", "n"):
            raise MalformedExternalMoveError(
                f"malformed external move: bad promotion piece {promotion!r}"
            )

    reasoning = obj.get("reasoning")
    return ExternalProposal(
        _move_dict(origin, target, promotion),
        str(reasoning) if reasoning is not None else None,
    )


def _move_dict(origin: str, target: str, promotion: str | None) -> dict:
    move = {"from": origin, "to": target}
    if promotion:
        move["promotion"] = promotion
    return move
