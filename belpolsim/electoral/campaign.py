"""
Campaign Effect Calculator — From a campaign action to stat changes and a polling delta.

Each medium has a fixed profile: what it costs, how much of the constituency
it reaches, how hard it hits the people it reaches, and how each demographic
group consumes it. The calculator combines that profile with the
constituency's demographics, the party's current campaign stats and the
skill of its candidates:

- Awareness has diminishing returns above 80%.
- Charisma of the head of list (1..10, 5 neutral) scales every medium by
  ``1 + (charisma - 5) / 10``.
- Debates use the party's average expertise in the same way and also shift
  the odds of the debate roll.

Random outcomes (rally gaffe, debate win or stumble) are drawn once per call
from the random source passed in. The bad branch never has zero probability.

References:
    Head-of-list effect in Belgian list voting
    Media consumption by age and class (campaign planning tables)
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass

from belpolsim.state.schema import (
    CampaignStats,
    Constituency,
    DemographicGroup,
    Party,
    Politician,
)

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════
# Media Tables
# ════════════════════════════════════════════════════════════════


class Medium(str, enum.Enum):
    """Campaign actions available to a party."""

    DOOR_TO_DOOR = "door_to_door"
    SOCIAL_MEDIA = "social_media"
    NEWSPAPER = "newspaper"
    RADIO = "radio"
    TV_AD = "tv_ad"
    RALLY = "rally"
    DEBATE = "debate"


class Scope(str, enum.Enum):
    """Where a medium's polling delta lands."""

    CONSTITUENCY = "constituency"
    REGIONAL = "regional"
    NATIONAL = "national"


class Outcome(str, enum.Enum):
    """Result of the random roll attached to an action."""

    SUCCESS = "success"
    GAFFE = "gaffe"
    DEBATE_WIN = "debate_win"
    DEBATE_SOLID = "debate_solid"
    DEBATE_STUMBLE = "debate_stumble"


@dataclass(frozen=True)
class MediumProfile:
    """Fixed parameters of a campaign medium."""

    base_cost: float
    reach: float
    impact: float
    energy: int
    polling_gain: float
    scope: Scope
    consumption: dict[DemographicGroup, float]

    @property
    def is_paid(self) -> bool:
        return self.base_cost > 0


def _consumption(youth: float, retirees: float, workers: float, upper_class: float) -> dict[DemographicGroup, float]:
    return {
        DemographicGroup.YOUTH: youth,
        DemographicGroup.RETIREES: retirees,
        DemographicGroup.WORKERS: workers,
        DemographicGroup.UPPER_CLASS: upper_class,
    }


MEDIA: dict[Medium, MediumProfile] = {
    Medium.DOOR_TO_DOOR: MediumProfile(
        base_cost=0, reach=0.1, impact=1.0, energy=2, polling_gain=1.5,
        scope=Scope.CONSTITUENCY, consumption=_consumption(1.0, 1.0, 1.2, 0.6),
    ),
    Medium.SOCIAL_MEDIA: MediumProfile(
        base_cost=1000, reach=0.4, impact=0.6, energy=1, polling_gain=1.0,
        scope=Scope.CONSTITUENCY, consumption=_consumption(1.5, 0.2, 0.8, 1.0),
    ),
    Medium.NEWSPAPER: MediumProfile(
        base_cost=2000, reach=0.5, impact=0.4, energy=1, polling_gain=0.75,
        scope=Scope.REGIONAL, consumption=_consumption(0.3, 1.5, 0.7, 1.2),
    ),
    Medium.RADIO: MediumProfile(
        base_cost=1500, reach=0.6, impact=0.5, energy=1, polling_gain=0.75,
        scope=Scope.REGIONAL, consumption=_consumption(0.4, 1.2, 1.1, 0.8),
    ),
    Medium.TV_AD: MediumProfile(
        base_cost=5000, reach=1.0, impact=0.3, energy=0, polling_gain=0.5,
        scope=Scope.NATIONAL, consumption=_consumption(0.8, 1.3, 1.0, 1.1),
    ),
    Medium.RALLY: MediumProfile(
        base_cost=1200, reach=0.3, impact=0.8, energy=3, polling_gain=5.0,
        scope=Scope.CONSTITUENCY, consumption=_consumption(1.2, 0.8, 1.1, 0.7),
    ),
    Medium.DEBATE: MediumProfile(
        base_cost=0, reach=0.7, impact=0.5, energy=3, polling_gain=2.0,
        scope=Scope.REGIONAL, consumption=_consumption(0.7, 1.2, 0.9, 1.3),
    ),
}

PERSONAL_MEDIA = frozenset({Medium.RALLY, Medium.DOOR_TO_DOOR})

AWARENESS_CEILING = 80.0
TARGET_WEIGHT = 2.0
OFF_TARGET_WEIGHT = 0.5

GAFFE_BASE_PROBABILITY = 0.2
GAFFE_POLLING = -3.0
RALLY_POPULARITY_SWING = 5.0

DEBATE_WIN_THRESHOLD = 0.7
DEBATE_EXPERTISE_SLOPE = 0.05
DEBATE_STUMBLE_BASE = 0.2
DEBATE_MIN_STUMBLE = 0.05
DEBATE_SOLID_POLLING = 0.5
DEBATE_STUMBLE_POLLING = -1.5

# Medium recommended to reach each demographic group
DEMOGRAPHIC_MEDIUM = {
    DemographicGroup.YOUTH: Medium.SOCIAL_MEDIA,
    DemographicGroup.RETIREES: Medium.NEWSPAPER,
    DemographicGroup.WORKERS: Medium.RADIO,
    DemographicGroup.UPPER_CLASS: Medium.NEWSPAPER,
}


# ════════════════════════════════════════════════════════════════
# Actions and Effects
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CampaignAction:
    """
    A campaign action as requested by a party.

    ``budget`` defaults to the medium's base cost. Reach on a paid medium
    scales with the money spent (capped at the whole constituency), and
    every stat change and polling gain scales with the reach bought.
    """

    medium: Medium
    constituency_id: str
    budget: float | None = None
    target_demographic: DemographicGroup | None = None

    @property
    def profile(self) -> MediumProfile:
        return MEDIA[self.medium]

    @property
    def cost(self) -> float:
        if not self.profile.is_paid:
            return 0.0
        return self.profile.base_cost if self.budget is None else self.budget


@dataclass(frozen=True)
class CampaignEffect:
    """Predicted and rolled effect of one campaign action."""

    awareness_change: float
    favorability_change: float
    enthusiasm_change: float
    estimated_reach: float
    cost_per_vote: float
    polling_delta: float
    outcome: Outcome = Outcome.SUCCESS
    popularity_change: float = 0.0

    @property
    def backfired(self) -> bool:
        return self.polling_delta < 0


def awareness_multiplier(awareness: float) -> float:
    """Full effect below the ceiling, linear decay to 0 at 100% awareness."""
    if awareness < AWARENESS_CEILING:
        return 1.0
    return max(0.0, 1.0 - (awareness - AWARENESS_CEILING) / (100 - AWARENESS_CEILING))


def skill_multiplier(skill: float) -> float:
    """Charisma or expertise (1..10, 5 neutral) as an effect multiplier."""
    return 1.0 + (skill - 5) / 10


def charisma_bonus(lead_candidate: Politician | None) -> float:
    if lead_candidate is None:
        return 1.0
    return skill_multiplier(lead_candidate.charisma)


def demographic_effect(
    medium: Medium,
    constituency: Constituency,
    target: DemographicGroup | None = None,
) -> float:
    """
    Weighted media consumption of a constituency for one medium.

    A targeted action counts the target group twice and every other
    group at half weight.
    """
    consumption = MEDIA[medium].consumption
    total_effect = 0.0
    total_weight = 0.0
    for group in DemographicGroup:
        weight = constituency.demographics.weight(group)
        uptake = consumption[group]
        if target is not None:
            uptake *= TARGET_WEIGHT if group == target else OFF_TARGET_WEIGHT
        total_effect += weight * uptake
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return total_effect / total_weight


def lead_candidate(party: Party, constituency_id: str) -> Politician | None:
    """Head of the party's list in a constituency."""
    candidates = party.politicians.get(constituency_id, [])
    if not candidates:
        return None
    return min(candidates, key=lambda p: p.list_position)


def average_expertise(party: Party) -> float:
    """
    Average expertise of the party's elected members, or of its whole
    candidate list before the election. 5 when the party has no candidates.
    """
    candidates = party.candidates()
    elected = [p for p in candidates if p.is_elected]
    pool = elected or candidates
    if not pool:
        return 5.0
    return sum(p.expertise for p in pool) / len(pool)


def gaffe_probability(lead: Politician | None) -> float:
    return min(1.0, GAFFE_BASE_PROBABILITY / charisma_bonus(lead))


def debate_odds(avg_expertise: float) -> tuple[float, float]:
    """
    Debate roll thresholds for a party.

    Returns:
        (win_threshold, stumble_probability). The roll wins above the
        threshold and stumbles below the stumble probability.
    """
    win_threshold = DEBATE_WIN_THRESHOLD - (avg_expertise - 5) * DEBATE_EXPERTISE_SLOPE
    stumble = max(DEBATE_MIN_STUMBLE, DEBATE_STUMBLE_BASE / skill_multiplier(avg_expertise))
    return win_threshold, min(stumble, win_threshold)


def effect(
    action: CampaignAction,
    current_stats: CampaignStats,
    constituency: Constituency,
    lead: Politician | None = None,
    rng: random.Random | None = None,
    avg_expertise: float = 5.0,
) -> CampaignEffect:
    """
    Calculate the effect of a campaign action.

    Args:
        action: The requested action.
        current_stats: The party's campaign stats in the constituency.
        constituency: Target constituency (demographics and electorate).
        lead: Head of list; drives the charisma multiplier and the rally roll.
        rng: Random source for the rally and debate rolls.
        avg_expertise: The party's average expertise, used by debates.

    Returns:
        CampaignEffect with stat changes, reach, cost per vote and the
        polling delta after any random roll.
    """
    profile = action.profile
    rng = rng or random.Random()

    aware_mult = awareness_multiplier(current_stats.awareness)
    demo = demographic_effect(action.medium, constituency, action.target_demographic)
    if action.medium == Medium.DEBATE:
        skill = skill_multiplier(avg_expertise)
    else:
        skill = charisma_bonus(lead)

    spend_factor = action.cost / profile.base_cost if profile.is_paid else 1.0
    base_reach = min(1.0, profile.reach * demo)
    estimated_reach = max(0.0, min(1.0, profile.reach * demo * spend_factor))
    # 1.0 at the base cost, 0 when nothing is spent
    if base_reach > 0:
        reach_scale = estimated_reach / base_reach
    else:
        reach_scale = max(0.0, min(1.0, spend_factor))

    total = aware_mult * demo * skill * reach_scale
    awareness_change = profile.reach * profile.impact * total * 10
    favorability_change = profile.impact * demo * skill * 3 * reach_scale if profile.impact > 0.6 else 0.0
    enthusiasm_factor = 5 if action.medium in PERSONAL_MEDIA else 2
    enthusiasm_change = profile.impact * demo * skill * enthusiasm_factor * reach_scale

    votes_reached = estimated_reach * constituency.electorate
    cost_per_vote = action.cost / votes_reached if action.cost > 0 and votes_reached > 0 else 0.0

    outcome = Outcome.SUCCESS
    popularity_change = 0.0
    if action.medium == Medium.RALLY:
        if rng.random() < gaffe_probability(lead):
            outcome = Outcome.GAFFE
            polling_delta = GAFFE_POLLING
            popularity_change = -RALLY_POPULARITY_SWING
            favorability_change = -favorability_change
            enthusiasm_change = 0.0
        else:
            polling_delta = profile.polling_gain * skill * aware_mult * reach_scale
            popularity_change = RALLY_POPULARITY_SWING
    elif action.medium == Medium.DEBATE:
        win_threshold, stumble = debate_odds(avg_expertise)
        performance = rng.random()
        if performance > win_threshold:
            outcome = Outcome.DEBATE_WIN
            polling_delta = profile.polling_gain * aware_mult * reach_scale
        elif performance < stumble:
            outcome = Outcome.DEBATE_STUMBLE
            polling_delta = DEBATE_STUMBLE_POLLING
            favorability_change = 0.0
        else:
            outcome = Outcome.DEBATE_SOLID
            polling_delta = DEBATE_SOLID_POLLING * aware_mult * reach_scale
    else:
        polling_delta = profile.polling_gain * skill * aware_mult * reach_scale

    logger.debug(
        "Campaign effect %s in %s: outcome=%s delta=%+.2f reach=%.2f",
        action.medium.value, constituency.id, outcome.value, polling_delta, estimated_reach,
    )

    return CampaignEffect(
        awareness_change=awareness_change,
        favorability_change=favorability_change,
        enthusiasm_change=enthusiasm_change,
        estimated_reach=estimated_reach,
        cost_per_vote=cost_per_vote,
        polling_delta=polling_delta,
        outcome=outcome,
        popularity_change=popularity_change,
    )


def apply_to_stats(stats: CampaignStats, change: CampaignEffect) -> CampaignStats:
    """Add an effect's stat changes, clamped to 0..100."""

    def clamp(value: float) -> float:
        return max(0.0, min(100.0, value))

    return CampaignStats(
        awareness=clamp(stats.awareness + change.awareness_change),
        favorability=clamp(stats.favorability + change.favorability_change),
        enthusiasm=clamp(stats.enthusiasm + change.enthusiasm_change),
    )
