"""
Constituency analysis — where the player's campaign matters most.

Classifies every constituency the player contests by the polling margin
against the strongest rival and suggests the medium that reaches the
constituency's largest demographic group.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from belpolsim.electoral.campaign import DEMOGRAPHIC_MEDIUM, Medium
from belpolsim.electoral.seats import constituency_results
from belpolsim.state.schema import DemographicGroup, GameState

CRITICAL_MARGIN = 3.0
COMPETITIVE_MARGIN = 8.0


class Importance(str, enum.Enum):
    CRITICAL = "critical"
    COMPETITIVE = "competitive"
    SAFE = "safe"
    LOST = "lost"


IMPORTANCE_ORDER = {
    Importance.CRITICAL: 0,
    Importance.COMPETITIVE: 1,
    Importance.SAFE: 2,
    Importance.LOST: 3,
}


@dataclass
class ConstituencyAnalysis:
    constituency_id: str
    importance: Importance
    player_polling: float
    leading_opponent: str | None
    leading_opponent_polling: float
    margin: float  # positive when the player leads
    projected_seats: int


@dataclass
class CampaignRecommendation:
    constituency_id: str
    importance: Importance
    margin: float
    medium: Medium
    demographic: DemographicGroup
    reasoning: str


def classify_margin(margin: float) -> Importance:
    if abs(margin) <= CRITICAL_MARGIN:
        return Importance.CRITICAL
    if abs(margin) <= COMPETITIVE_MARGIN:
        return Importance.COMPETITIVE
    return Importance.SAFE if margin > 0 else Importance.LOST


def analyze_constituencies(state: GameState) -> list[ConstituencyAnalysis]:
    """Margin analysis of every constituency the player contests."""
    player_id = state.player_party_id
    player = state.parties.get(player_id)
    if player is None:
        return []

    seats = constituency_results(state)
    analyses = []
    for cid in player.eligible_constituencies:
        if cid not in state.constituencies:
            continue
        rivals = [pid for pid in state.eligible_parties(cid) if pid != player_id]
        leader = max(rivals, key=lambda pid: state.parties[pid].polling_in(cid), default=None)
        leader_polling = state.parties[leader].polling_in(cid) if leader else 0.0
        margin = player.polling_in(cid) - leader_polling
        analyses.append(
            ConstituencyAnalysis(
                constituency_id=cid,
                importance=classify_margin(margin),
                player_polling=player.polling_in(cid),
                leading_opponent=leader,
                leading_opponent_polling=leader_polling,
                margin=margin,
                projected_seats=seats.get(cid, {}).get(player_id, 0),
            )
        )
    return analyses


def critical_constituencies(state: GameState) -> list[ConstituencyAnalysis]:
    """Critical and competitive races, critical first, then closest margin."""
    contested = [
        a for a in analyze_constituencies(state)
        if a.importance in (Importance.CRITICAL, Importance.COMPETITIVE)
    ]
    return sorted(contested, key=lambda a: (IMPORTANCE_ORDER[a.importance], abs(a.margin)))


def recommend_actions(state: GameState) -> list[CampaignRecommendation]:
    """One recommendation per contested constituency, most urgent first."""
    recommendations = []
    for analysis in analyze_constituencies(state):
        demographics = state.constituencies[analysis.constituency_id].demographics
        group = demographics.largest()
        recommendations.append(
            CampaignRecommendation(
                constituency_id=analysis.constituency_id,
                importance=analysis.importance,
                margin=analysis.margin,
                medium=DEMOGRAPHIC_MEDIUM[group],
                demographic=group,
                reasoning=f"Target {group.value} ({demographics.weight(group) * 100:.0f}% of voters)",
            )
        )
    return sorted(recommendations, key=lambda r: (IMPORTANCE_ORDER[r.importance], abs(r.margin)))
