"""
Campaign events — random incidents the player must respond to.

At the end of a campaign turn an event may be drawn from the injected random
source. It stays pending until the player picks one of its choices. Every
polling consequence goes through the polling ledger, so events keep the
per-constituency shares summing to 100 like any other campaign effect.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from belpolsim.electoral.polling import apply_delta, apply_national_delta, apply_regional_delta
from belpolsim.state.schema import ActionResult, GameState, Region

logger = logging.getLogger(__name__)

EVENT_PROBABILITY = 0.25


@dataclass(frozen=True)
class EventChoice:
    text: str
    log: str
    national_delta: float = 0.0
    regional_deltas: dict[Region, float] = field(default_factory=dict)
    constituency_deltas: dict[str, float] = field(default_factory=dict)
    budget_change: float = 0.0
    energy_change: int = 0


@dataclass(frozen=True)
class CampaignEvent:
    id: str
    title: str
    description: str
    choices: tuple[EventChoice, ...]


CAMPAIGN_EVENTS: dict[str, CampaignEvent] = {
    event.id: event
    for event in (
        CampaignEvent(
            id="scandal_corruption",
            title="Corruption Scandal",
            description="Your campaign manager is accused of accepting illegal donations.",
            choices=(
                EventChoice("Fire the campaign manager", "Scandal: fired the campaign manager.",
                            national_delta=-2.0),
                EventChoice("Deny the allegations", "Scandal: denied the allegations.",
                            national_delta=-5.0, energy_change=-3),
                EventChoice("Launch an internal investigation", "Scandal: launched an investigation.",
                            national_delta=-1.0, budget_change=-2000.0),
            ),
        ),
        CampaignEvent(
            id="news_cycle_immigration",
            title="Immigration Dominates Headlines",
            description="A major immigration incident has sparked national debate.",
            choices=(
                EventChoice("Capitalize on the moment", "News cycle: immigration focus.",
                            national_delta=1.0),
            ),
        ),
        CampaignEvent(
            id="endorsement_union",
            title="Major Union Endorsement",
            description="The largest labour union in Wallonia has endorsed your party.",
            choices=(
                EventChoice("Accept the endorsement", "Union endorsement accepted.",
                            regional_deltas={Region.WALLONIA: 6.0}),
            ),
        ),
        CampaignEvent(
            id="debate_challenge",
            title="Live Debate Challenge",
            description="N-VA challenges you to a televised debate on economic policy.",
            choices=(
                EventChoice("Accept and focus on the economy", "Debate: economic focus.",
                            regional_deltas={Region.FLANDERS: 4.0, Region.WALLONIA: -2.0}),
                EventChoice("Accept and focus on the environment", "Debate: environmental focus.",
                            national_delta=2.0),
                EventChoice("Decline the debate", "Debate declined.",
                            regional_deltas={Region.FLANDERS: -3.0}),
            ),
        ),
        CampaignEvent(
            id="opponent_gaffe",
            title="Opponent Makes Controversial Statement",
            description="The leader of Vlaams Belang made an inflammatory statement on immigration.",
            choices=(
                EventChoice("Attack aggressively", "Opponent gaffe: condemned the statement.",
                            regional_deltas={Region.FLANDERS: 5.0},
                            constituency_deltas={"brussels_capital": 2.0}),
                EventChoice("Take the high road", "Opponent gaffe: took the high road.",
                            national_delta=1.0),
            ),
        ),
    )
}


def draw_event(state: GameState, rng: random.Random, probability: float = EVENT_PROBABILITY) -> GameState:
    """Possibly draw a campaign event and leave it pending for the player."""
    if state.pending_event is not None or rng.random() >= probability:
        return state
    event = rng.choice(list(CAMPAIGN_EVENTS.values()))
    logger.info("Campaign event drawn: %s", event.id)
    return state.model_copy(update={"pending_event": event.id}).logged(f"EVENT: {event.title}")


def resolve_event(state: GameState, choice_index: int) -> ActionResult:
    """Apply the player's response to the pending campaign event."""
    event = CAMPAIGN_EVENTS.get(state.pending_event or "")
    if event is None:
        return ActionResult(state=state, success=False, message="No campaign event is pending.")
    if not 0 <= choice_index < len(event.choices):
        return ActionResult(state=state, success=False, message="Invalid choice.")

    choice = event.choices[choice_index]
    player = state.player_party_id
    if choice.national_delta:
        state = apply_national_delta(state, player, choice.national_delta)
    for region, delta in choice.regional_deltas.items():
        state = apply_regional_delta(state, region, player, delta)
    for cid, delta in choice.constituency_deltas.items():
        if state.parties[player].contests(cid):
            state = apply_delta(state, cid, player, delta)

    state = state.model_copy(
        update={
            "pending_event": None,
            "budget": max(0.0, state.budget + choice.budget_change),
            "energy": max(0, state.energy + choice.energy_change),
        }
    ).logged(choice.log)
    return ActionResult(state=state, success=True, message=choice.log)
