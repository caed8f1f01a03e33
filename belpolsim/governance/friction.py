"""
Friction Model — Ideological incompatibility between parties and platforms.

Friction is a salience-weighted average of position gaps on the issues two
operands share, on a 0..100 scale. 0 is perfect alignment; with no shared
issue friction is 0 (indifference rather than conflict).

- Party vs party: each gap is weighted by the mean salience of both parties.
- Party vs platform: each gap is weighted by the party's own salience.
- Coalition: the worst pair decides; one incompatible pair blocks the whole
  coalition however well the others align.

Ministry offers are a negotiation lever on top of the raw score: each
ministry removes a fixed amount of friction, floored at 0. The stance data
itself never changes.
"""

from __future__ import annotations

from itertools import combinations

from belpolsim.state.schema import GameState, Party, Stance

DEFAULT_SWEETENER = 10.0


def _weighted_gap(pairs: list[tuple[float, float, float]]) -> float:
    """Mean of |a - b| weighted by w over (a, b, w) triples; 0 without weight."""
    total_weight = sum(w for _, _, w in pairs)
    if total_weight == 0:
        return 0.0
    return sum(abs(a - b) * w for a, b, w in pairs) / total_weight


def friction_between(party_a: Party, party_b: Party) -> float:
    """Symmetric friction between two parties (0..100)."""
    stances_b = {s.issue_id: s for s in party_b.stances}
    pairs = [
        (sa.position, stances_b[sa.issue_id].position, (sa.salience + stances_b[sa.issue_id].salience) / 2)
        for sa in party_a.stances
        if sa.issue_id in stances_b
    ]
    return _weighted_gap(pairs)


def friction_of(party: Party, proposal: list[Stance]) -> float:
    """
    Friction of a party against a proposed platform (0..100).

    The weighted gap is normalized by ``total salience × 100`` and scaled
    back to percent, so the score does not grow with the number of issues.
    """
    own = {s.issue_id: s for s in party.stances}
    weighted_sum = 0.0
    total_salience = 0.0
    for proposed in proposal:
        stance = own.get(proposed.issue_id)
        if stance is None:
            continue
        weighted_sum += abs(proposed.position - stance.position) * stance.salience
        total_salience += stance.salience
    if total_salience == 0:
        return 0.0
    return weighted_sum / (total_salience * 100) * 100


def coalition_friction(state: GameState, partners: list[str]) -> float:
    """Maximum pairwise friction among the partners; 0 for fewer than two."""
    members = [state.parties[pid] for pid in partners if pid in state.parties]
    return max(
        (friction_between(a, b) for a, b in combinations(members, 2)),
        default=0.0,
    )


def effective_friction(raw: float, ministries: int, sweetener: float = DEFAULT_SWEETENER) -> float:
    """Friction after ministry sweeteners, floored at 0."""
    return max(0.0, raw - ministries * sweetener)


def policy_compromise(party: Party, issue_id: str, agreed_position: float) -> float:
    """
    Cost for a party of an agreed position on one issue.

    The gap is scaled by salience / 5, so a salience-5 issue costs exactly
    the gap. A party without a stance on the issue pays nothing.
    """
    stance = party.stance_on(issue_id)
    if stance is None:
        return 0.0
    return abs(stance.position - agreed_position) * (stance.salience / 5)


def all_frictions(state: GameState, proposal: list[Stance]) -> dict[str, float]:
    """Friction of every party against a platform."""
    return {pid: friction_of(party, proposal) for pid, party in state.parties.items()}
