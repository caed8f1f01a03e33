"""
Polling Ledger — Zero-sum vote-share redistribution per constituency.

Every campaign effect ends up here as a polling delta. The ledger keeps one
invariant: in each constituency the shares of the eligible parties sum to
100. A delta for one party is offset evenly against its rivals in the same
constituency, then all eligible shares are renormalized so that floors at 0
never leave the total off.

Scopes:
    constituency — one constituency
    regional     — every constituency of a region the party contests
    national     — every constituency the party contests

Wider scopes are the same local redistribution applied constituency by
constituency; there is no coupling between constituencies.
"""

from __future__ import annotations

import logging

from belpolsim.state.schema import CampaignStats, GameState, Party, Region

logger = logging.getLogger(__name__)

STAT_WEIGHTS = {"awareness": 0.3, "favorability": 0.4, "enthusiasm": 0.3}


def redistribute(shares: dict[str, float], party_id: str, delta: float) -> dict[str, float]:
    """
    Apply a delta to one party's share and offset it against the others.

    Args:
        shares: Current share per eligible party in one constituency.
        party_id: The party receiving the delta. Must be a key of ``shares``.
        delta: Percentage points to add (negative to remove).

    Returns:
        New shares summing to 100. A party that is not in ``shares`` leaves
        the snapshot unchanged.
    """
    if party_id not in shares:
        return dict(shares)

    updated = dict(shares)
    updated[party_id] = max(0.0, updated[party_id] + delta)

    peers = [pid for pid in updated if pid != party_id]
    if peers:
        offset = delta / len(peers)
        for pid in peers:
            updated[pid] = max(0.0, updated[pid] - offset)

    return normalize(updated)


def normalize(shares: dict[str, float]) -> dict[str, float]:
    """Rescale shares to sum to 100; an all-zero snapshot is split evenly."""
    if not shares:
        return {}
    total = sum(shares.values())
    if total <= 0:
        even = 100 / len(shares)
        return {pid: even for pid in shares}
    return {pid: value / total * 100 for pid, value in shares.items()}


def constituency_snapshot(state: GameState, constituency_id: str) -> dict[str, float]:
    """Polling of every eligible party in a constituency, in party order."""
    return {
        pid: state.parties[pid].polling_in(constituency_id)
        for pid in state.eligible_parties(constituency_id)
    }


def apply_delta(state: GameState, constituency_id: str, party_id: str, delta: float) -> GameState:
    """
    Shift one party's polling in one constituency.

    Invalid combinations (unknown constituency, unknown party, or a party
    that does not contest the constituency) return the state unchanged. A
    WARNING is logged so that caller bugs stay visible.
    """
    party = state.parties.get(party_id)
    if (
        constituency_id not in state.constituencies
        or party is None
        or not party.contests(constituency_id)
    ):
        logger.warning(
            "Ignored polling delta %+.2f for party %r in constituency %r: not eligible",
            delta, party_id, constituency_id,
        )
        return state

    shares = redistribute(constituency_snapshot(state, constituency_id), party_id, delta)

    parties: dict[str, Party] = {}
    for pid, p in state.parties.items():
        if pid in shares:
            polling = {**p.constituency_polling, constituency_id: shares[pid]}
            p = p.model_copy(update={"constituency_polling": polling})
        parties[pid] = p
    return state.with_parties(parties)


def apply_regional_delta(state: GameState, region: Region, party_id: str, delta: float) -> GameState:
    """Apply the same delta in every constituency of a region the party contests."""
    party = state.parties.get(party_id)
    if party is None:
        logger.warning("Ignored regional polling delta for unknown party %r", party_id)
        return state
    for cid in party.eligible_constituencies:
        constituency = state.constituencies.get(cid)
        if constituency is not None and constituency.region == region:
            state = apply_delta(state, cid, party_id, delta)
    return state


def apply_national_delta(state: GameState, party_id: str, delta: float) -> GameState:
    """Apply the same delta in every constituency the party contests."""
    party = state.parties.get(party_id)
    if party is None:
        logger.warning("Ignored national polling delta for unknown party %r", party_id)
        return state
    for cid in party.eligible_constituencies:
        state = apply_delta(state, cid, party_id, delta)
    return state


def polling_from_stats(stats: CampaignStats) -> float:
    """Blend the three campaign stats into a raw polling figure (0..100)."""
    return (
        STAT_WEIGHTS["awareness"] * stats.awareness
        + STAT_WEIGHTS["favorability"] * stats.favorability
        + STAT_WEIGHTS["enthusiasm"] * stats.enthusiasm
    )


def national_share(state: GameState, party_id: str) -> float:
    """
    Seat-weighted national polling of a party.

    Constituencies the party does not contest count as 0, so regional
    parties never exceed their region's weight in the Chamber.
    """
    party = state.parties.get(party_id)
    total_seats = sum(c.seats for c in state.constituencies.values())
    if party is None or total_seats == 0:
        return 0.0
    weighted = sum(
        party.polling_in(cid) * state.constituencies[cid].seats
        for cid in party.eligible_constituencies
        if cid in state.constituencies
    )
    return weighted / total_seats


def polling_totals(state: GameState) -> dict[str, float]:
    """Sum of eligible polling per constituency (100 when the ledger is sound)."""
    return {
        cid: sum(constituency_snapshot(state, cid).values())
        for cid in state.constituencies
        if state.eligible_parties(cid)
    }
