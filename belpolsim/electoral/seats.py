"""
Seat Allocator — D'Hondt highest averages with a constituency threshold.

Seats are awarded one at a time. At each step every party that cleared the
threshold is scored with the quotient ``votes / (seats_won + 1)`` and the
seat goes to the strictly largest quotient. On an exact tie the party seen
first in snapshot order wins, which makes the result deterministic for a
given party order.

The allocation is a pure function of its inputs. The election run and the
non-mutating seat projection both go through ``allocate``, so previews
always agree with the real result.

References:
    Electoral Code — proportional representation per constituency
    Electoral Code — 5% threshold on the constituency vote
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from belpolsim.state.schema import GamePhase, GameState, Government, Party, Politician

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════
# Allocation
# ════════════════════════════════════════════════════════════════


def threshold_eligible(polling: dict[str, float], threshold_pct: float) -> list[str]:
    """
    Parties whose share of the constituency total reaches the threshold.

    Shares are computed against the total of the snapshot, so votes of
    parties that fall below the threshold still count in the denominator.
    """
    total = sum(max(0.0, v) for v in polling.values())
    if total <= 0:
        return []
    return [pid for pid, votes in polling.items() if votes / total * 100 >= threshold_pct]


def allocate(polling: dict[str, float], total_seats: int, threshold_pct: float = 5.0) -> dict[str, int]:
    """
    Convert a constituency polling snapshot into seats.

    Args:
        polling: Vote share (or votes) per party, in tie-break order.
        total_seats: Seats to distribute.
        threshold_pct: Minimum share of the constituency total, in percent.

    Returns:
        Seats per party for every party of the snapshot. The values sum to
        ``total_seats`` unless no party clears the threshold, in which case
        every party gets 0.
    """
    seats = {pid: 0 for pid in polling}
    eligible = threshold_eligible(polling, threshold_pct)
    if not eligible:
        return seats

    for _ in range(total_seats):
        winner: str | None = None
        best = 0.0
        for pid in eligible:
            quotient = polling[pid] / (seats[pid] + 1)
            if winner is None or quotient > best:
                winner, best = pid, quotient
        seats[winner] += 1
    return seats


def elect_candidates(candidates: list[Politician], seats: int) -> list[Politician]:
    """Mark the top ``seats`` candidates by list position as elected."""
    ranked = sorted(candidates, key=lambda p: p.list_position)
    return [p.model_copy(update={"is_elected": rank < seats}) for rank, p in enumerate(ranked)]


def constituency_results(state: GameState) -> dict[str, dict[str, int]]:
    """Seat allocation of every constituency, keyed by constituency id."""
    results = {}
    for cid, constituency in state.constituencies.items():
        snapshot = {
            pid: state.parties[pid].polling_in(cid) for pid in state.eligible_parties(cid)
        }
        results[cid] = allocate(snapshot, constituency.seats, state.rules.threshold_pct)
    return results


# ════════════════════════════════════════════════════════════════
# Election
# ════════════════════════════════════════════════════════════════


def run_election(state: GameState) -> GameState:
    """
    Hold the election on the current polling.

    Resets every seat count, allocates each constituency, marks elected
    candidates and fills the parliament. A player majority installs a
    single-party government and moves to GOVERNING; otherwise the game
    moves to CONSULTATION. Any previous government is discarded.
    """
    results = constituency_results(state)
    parliament: list[Politician] = []
    parties: dict[str, Party] = {}

    for pid, party in state.parties.items():
        constituency_seats = {
            cid: results[cid].get(pid, 0)
            for cid in party.eligible_constituencies
            if cid in results
        }
        politicians = {}
        for cid, candidates in party.politicians.items():
            elected = elect_candidates(candidates, constituency_seats.get(cid, 0))
            politicians[cid] = elected
            parliament.extend(p for p in elected if p.is_elected)
        parties[pid] = party.model_copy(
            update={
                "constituency_seats": constituency_seats,
                "total_seats": sum(constituency_seats.values()),
                "politicians": politicians,
                "ministries": 0,
            }
        )

    rules = state.rules
    player_seats = parties[state.player_party_id].total_seats if state.player_party_id in parties else 0
    has_majority = player_seats >= rules.majority_seats

    government = None
    if has_majority:
        government = Government(partners=[state.player_party_id], stability=rules.stability_baseline)

    logger.info(
        "Election held: player won %d seats (majority %d), %d members seated",
        player_seats, rules.majority_seats, len(parliament),
    )

    return state.model_copy(
        update={
            "parties": parties,
            "parliament": parliament,
            "phase": GamePhase.GOVERNING if has_majority else GamePhase.CONSULTATION,
            "government": government,
            "coalition_partners": [],
            "informateur": None,
        }
    ).logged(f"ELECTION OVER! You won {player_seats} seats. Majority needed: {rules.majority_seats}.")


# ════════════════════════════════════════════════════════════════
# Projections
# ════════════════════════════════════════════════════════════════


@dataclass
class SeatProjection:
    """Projected seats of one party on current polling."""

    party_id: str
    projected_seats: int
    constituency_breakdown: dict[str, int] = field(default_factory=dict)


def project_seats(state: GameState) -> list[SeatProjection]:
    """Seat projection for every party, largest first. The state is not touched."""
    results = constituency_results(state)
    projections = [
        SeatProjection(
            party_id=pid,
            projected_seats=sum(results[cid].get(pid, 0) for cid in results),
            constituency_breakdown={cid: results[cid].get(pid, 0) for cid in results},
        )
        for pid in state.parties
    ]
    return sorted(projections, key=lambda p: p.projected_seats, reverse=True)


def projected_seats_of(state: GameState, party_id: str) -> int:
    for projection in project_seats(state):
        if projection.party_id == party_id:
            return projection.projected_seats
    return 0


def is_projected_majority(state: GameState, party_id: str | None = None) -> bool:
    """Whether a party (default: the player) is on course for a majority."""
    party_id = party_id or state.player_party_id
    return projected_seats_of(state, party_id) >= state.rules.majority_seats


def coalition_possibilities(state: GameState, limit: int = 3) -> list[tuple[str, int]]:
    """
    Two-party coalitions of the player that reach a majority on projected seats.

    Returns:
        Up to ``limit`` (partner id, combined seats) pairs, largest first.
        Extremist parties are never listed.
    """
    projections = {p.party_id: p.projected_seats for p in project_seats(state)}
    player = state.player_party_id
    player_seats = projections.get(player, 0)
    options = [
        (pid, player_seats + seats)
        for pid, seats in projections.items()
        if pid != player
        and not state.parties[pid].is_extremist
        and player_seats + seats >= state.rules.majority_seats
    ]
    options.sort(key=lambda option: option[1], reverse=True)
    return options[:limit]
