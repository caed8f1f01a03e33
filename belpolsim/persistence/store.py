"""
State Store — Serialize, restore and verify the game state.

The whole ``GameState`` is written as pydantic JSON and read back verbatim.
A restored state must satisfy the same invariants as one computed by the
engine, so ``restore_state`` re-verifies them and refuses a state that
breaks them:

- in every constituency, the polling of the eligible parties sums to 100;
- no seat count is negative;
- a party's total equals the sum of its constituency seats;
- no constituency hands out more seats than it has.
"""

from __future__ import annotations

import logging
from pathlib import Path

from belpolsim.state.schema import GameState

logger = logging.getLogger(__name__)

POLLING_TOLERANCE = 1e-6


class StateIntegrityError(Exception):
    """Raised when a restored state violates a game-state invariant."""
    pass


def serialize_state(state: GameState) -> str:
    """Serialize the complete game state to a JSON string."""
    return state.model_dump_json(indent=2)


def verify_invariants(state: GameState) -> tuple[bool, int, str]:
    """
    Check every invariant of a game state.

    Returns:
        Tuple of (is_valid, checks_passed, message). On failure the count
        is the number of checks that passed before the first violation.
    """
    checked = 0

    if state.constituencies:
        chamber = sum(c.seats for c in state.constituencies.values())
        if chamber != state.rules.total_seats:
            return (
                False, checked,
                f"Constituencies hold {chamber} seats, the chamber has {state.rules.total_seats}"
            )
        checked += 1

    for cid in state.constituencies:
        eligible = state.eligible_parties(cid)
        if not eligible:
            continue
        total = sum(state.parties[pid].polling_in(cid) for pid in eligible)
        if abs(total - 100) > POLLING_TOLERANCE:
            return False, checked, f"Polling in {cid} sums to {total:.6f}, expected 100"
        checked += 1

    for pid, party in state.parties.items():
        negative = [cid for cid, seats in party.constituency_seats.items() if seats < 0]
        if negative:
            return False, checked, f"Party {pid} has negative seats in {negative[0]}"
        if party.total_seats != sum(party.constituency_seats.values()):
            return (
                False, checked,
                f"Party {pid} total seats {party.total_seats} does not match "
                f"constituency seats {sum(party.constituency_seats.values())}"
            )
        checked += 1

    for cid, constituency in state.constituencies.items():
        allocated = sum(p.constituency_seats.get(cid, 0) for p in state.parties.values())
        if allocated > constituency.seats:
            return (
                False, checked,
                f"Constituency {cid} allocates {allocated} seats, only {constituency.seats} exist"
            )
        checked += 1

    return True, checked, f"All {checked} invariant checks passed"


def restore_state(text: str) -> GameState:
    """
    Restore a game state serialized by ``serialize_state``.

    Raises:
        pydantic.ValidationError: If the payload is malformed.
        StateIntegrityError: If the restored state breaks an invariant.
    """
    state = GameState.model_validate_json(text)
    is_valid, _, message = verify_invariants(state)
    if not is_valid:
        raise StateIntegrityError(message)
    return state


def save_state(state: GameState, path: str | Path) -> Path:
    path = Path(path)
    path.write_text(serialize_state(state), encoding="utf-8")
    logger.info("Game state saved to %s (turn %d, phase %s)", path, state.turn, state.phase.value)
    return path


def load_state(path: str | Path) -> GameState:
    return restore_state(Path(path).read_text(encoding="utf-8"))
