"""
Turn Driver — Campaign actions, AI moves and the turn cycle.

A campaign action runs through an ordered pipeline of plain functions:

    check resources → calculate effect → update campaign stats
    → apply polling delta → update head of list → charge costs → log

A step may refuse the action (not enough budget or energy, unknown
constituency). A refused action leaves the state untouched.

``end_turn`` advances the game: AI parties campaign, the week ends, and the
election is held when the campaign horizon is reached. In the governing
phase the turn runs the budget cycle and the stability check instead.

Outside the pipeline the player can also hold a fundraiser (energy for
money, at a small polling cost) and reorder its electoral lists.

All randomness comes from the ``random.Random`` passed in.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import Callable

from belpolsim.electoral.campaign import (
    CampaignAction,
    CampaignEffect,
    Outcome,
    Scope,
    apply_to_stats,
    average_expertise,
    effect,
    lead_candidate,
)
from belpolsim.electoral.events import draw_event
from belpolsim.electoral.polling import apply_delta, apply_national_delta, apply_regional_delta
from belpolsim.electoral.seats import run_election
from belpolsim.governance.governing import governing_upkeep
from belpolsim.governance.government import (
    appoint_informateur,
    assign_ministers,
    form_government,
    minimal_winning_coalitions,
    negotiate_platform,
    prime_minister_of,
    propose_coalition,
)
from belpolsim.state.schema import (
    ActionResult,
    CampaignStats,
    CoalitionProposal,
    GamePhase,
    GameState,
)

logger = logging.getLogger(__name__)

AI_BOOST_RANGE = (0.5, 2.5)

FUNDRAISER_ENERGY = 2
FUNDRAISER_PROCEEDS = 1000.0
FUNDRAISER_POLLING = -1.5


# ════════════════════════════════════════════════════════════════
# Campaign Action Pipeline
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ActionContext:
    """Data flowing through the campaign pipeline."""

    state: GameState
    action: CampaignAction
    party_id: str
    rng: random.Random
    effect: CampaignEffect | None = None
    refusal: str | None = None
    message: str = ""


def _check_resources(ctx: ActionContext) -> ActionContext:
    state, action = ctx.state, ctx.action
    party = state.parties.get(ctx.party_id)
    if action.constituency_id not in state.constituencies:
        return replace(ctx, refusal=f"Unknown constituency: {action.constituency_id}")
    if party is None or not party.contests(action.constituency_id):
        return replace(ctx, refusal="Your party does not run in this constituency.")
    if state.phase != GamePhase.CAMPAIGN:
        return replace(ctx, refusal="The campaign is over.")
    if action.budget is not None and action.budget < 0:
        return replace(ctx, refusal="Campaign spending cannot be negative.")
    if action.profile.is_paid and action.cost == 0:
        return replace(ctx, refusal="This medium needs a budget.")
    if ctx.party_id == state.player_party_id:
        if state.budget < action.cost or state.energy < action.profile.energy:
            return replace(ctx, refusal="Not enough resources.")
    return ctx


def _calculate(ctx: ActionContext) -> ActionContext:
    party = ctx.state.parties[ctx.party_id]
    cid = ctx.action.constituency_id
    result = effect(
        ctx.action,
        party.campaign_stats.get(cid, CampaignStats()),
        ctx.state.constituencies[cid],
        lead=lead_candidate(party, cid),
        rng=ctx.rng,
        avg_expertise=average_expertise(party),
    )
    return replace(ctx, effect=result)


def _update_stats(ctx: ActionContext) -> ActionContext:
    party = ctx.state.parties[ctx.party_id]
    cid = ctx.action.constituency_id
    stats = apply_to_stats(party.campaign_stats.get(cid, CampaignStats()), ctx.effect)
    party = party.model_copy(update={"campaign_stats": {**party.campaign_stats, cid: stats}})
    return replace(ctx, state=ctx.state.with_party(party))


def _apply_polling(ctx: ActionContext) -> ActionContext:
    state, action = ctx.state, ctx.action
    delta = ctx.effect.polling_delta
    scope = action.profile.scope
    if scope == Scope.NATIONAL:
        state = apply_national_delta(state, ctx.party_id, delta)
    elif scope == Scope.REGIONAL:
        region = state.constituencies[action.constituency_id].region
        state = apply_regional_delta(state, region, ctx.party_id, delta)
    else:
        state = apply_delta(state, action.constituency_id, ctx.party_id, delta)
    return replace(ctx, state=state)


def _update_head_of_list(ctx: ActionContext) -> ActionContext:
    if not ctx.effect.popularity_change:
        return ctx
    party = ctx.state.parties[ctx.party_id]
    cid = ctx.action.constituency_id
    lead = lead_candidate(party, cid)
    if lead is None:
        return ctx
    popularity = max(0.0, min(100.0, lead.popularity + ctx.effect.popularity_change))
    candidates = [
        p.model_copy(update={"popularity": popularity}) if p.id == lead.id else p
        for p in party.politicians[cid]
    ]
    party = party.model_copy(update={"politicians": {**party.politicians, cid: candidates}})
    return replace(ctx, state=ctx.state.with_party(party))


def _charge(ctx: ActionContext) -> ActionContext:
    if ctx.party_id != ctx.state.player_party_id:
        return ctx
    state = ctx.state.model_copy(
        update={
            "budget": ctx.state.budget - ctx.action.cost,
            "energy": ctx.state.energy - ctx.action.profile.energy,
        }
    )
    return replace(ctx, state=state)


OUTCOME_MESSAGES = {
    Outcome.SUCCESS: "{medium} in {place} was a success.",
    Outcome.GAFFE: "GAFFE! The rally in {place} was a disaster.",
    Outcome.DEBATE_WIN: "You won the debate!",
    Outcome.DEBATE_SOLID: "Solid debate performance.",
    Outcome.DEBATE_STUMBLE: "You stumbled in the debate.",
}


def _log(ctx: ActionContext) -> ActionContext:
    place = ctx.state.constituencies[ctx.action.constituency_id].name
    medium = ctx.action.medium.value.replace("_", " ").capitalize()
    message = OUTCOME_MESSAGES[ctx.effect.outcome].format(medium=medium, place=place)
    message = f"{message} (polling {ctx.effect.polling_delta:+.1f})"
    state = ctx.state.logged(f"Week {ctx.state.turn}: {message}")
    return replace(ctx, state=state, message=message)


CAMPAIGN_PIPELINE: tuple[Callable[[ActionContext], ActionContext], ...] = (
    _check_resources,
    _calculate,
    _update_stats,
    _apply_polling,
    _update_head_of_list,
    _charge,
    _log,
)


def perform_campaign_action(
    state: GameState,
    action: CampaignAction,
    rng: random.Random,
    party_id: str | None = None,
) -> ActionResult:
    """
    Run a campaign action for a party (default: the player).

    Only the player pays budget and energy. A refused action returns the
    original state with ``success=False``.
    """
    ctx = ActionContext(state=state, action=action, party_id=party_id or state.player_party_id, rng=rng)
    for step in CAMPAIGN_PIPELINE:
        ctx = step(ctx)
        if ctx.refusal is not None:
            logger.info("Campaign action %s refused: %s", action.medium.value, ctx.refusal)
            return ActionResult(state=state, success=False, message=ctx.refusal)

    return ActionResult(
        state=ctx.state,
        success=True,
        message=ctx.message,
        details={
            "outcome": ctx.effect.outcome.value,
            "polling_delta": ctx.effect.polling_delta,
            "cost_per_vote": ctx.effect.cost_per_vote,
        },
    )


def select_constituency(state: GameState, constituency_id: str) -> ActionResult:
    if constituency_id not in state.constituencies:
        return ActionResult(state=state, success=False, message=f"Unknown constituency: {constituency_id}")
    new_state = state.model_copy(update={"selected_constituency": constituency_id})
    return ActionResult(state=new_state, success=True, message=state.constituencies[constituency_id].name)


def fundraise(state: GameState, constituency_id: str | None = None) -> ActionResult:
    """
    Hold a fundraiser: energy for money, paid for with a little polling in
    the constituency where it is held (default: the selected one).
    """
    cid = constituency_id or state.selected_constituency
    player_id = state.player_party_id
    player = state.parties.get(player_id)
    if cid not in state.constituencies:
        return ActionResult(state=state, success=False, message=f"Unknown constituency: {cid}")
    if player is None or not player.contests(cid):
        return ActionResult(state=state, success=False, message="Your party does not run in this constituency.")
    if state.phase != GamePhase.CAMPAIGN:
        return ActionResult(state=state, success=False, message="The campaign is over.")
    if state.energy < FUNDRAISER_ENERGY:
        return ActionResult(state=state, success=False, message="Not enough energy.")

    new_state = apply_delta(state, cid, player_id, FUNDRAISER_POLLING)
    message = f"Fundraiser in {state.constituencies[cid].name} filled the war chest."
    new_state = new_state.model_copy(
        update={
            "budget": state.budget + FUNDRAISER_PROCEEDS,
            "energy": state.energy - FUNDRAISER_ENERGY,
        }
    ).logged(f"Week {state.turn}: {message}")
    logger.info("Fundraiser held in %s", cid)
    return ActionResult(
        state=new_state,
        success=True,
        message=message,
        details={"proceeds": FUNDRAISER_PROCEEDS, "polling_delta": FUNDRAISER_POLLING},
    )


def reorder_list(state: GameState, constituency_id: str, politician_id: str, new_position: int) -> ActionResult:
    """
    Move one of the player's candidates to another place on the electoral
    list. The candidate swaps places with whoever holds ``new_position``
    (1-based). Lists are closed once the campaign is over.
    """
    player = state.parties[state.player_party_id]
    candidates = player.politicians.get(constituency_id)
    if not candidates:
        return ActionResult(state=state, success=False, message="Constituency not found.")
    if state.phase != GamePhase.CAMPAIGN:
        return ActionResult(state=state, success=False, message="Electoral lists are closed.")
    moving = next((p for p in candidates if p.id == politician_id), None)
    if moving is None:
        return ActionResult(state=state, success=False, message="Politician not found.")
    displaced = next((p for p in candidates if p.list_position == new_position), None)
    if displaced is None:
        return ActionResult(state=state, success=False, message="Invalid move.")

    positions = {moving.id: displaced.list_position, displaced.id: moving.list_position}
    reordered = [
        p.model_copy(update={"list_position": positions[p.id]}) if p.id in positions else p
        for p in candidates
    ]
    player = player.model_copy(update={"politicians": {**player.politicians, constituency_id: reordered}})
    message = f"{moving.name} moves to position {new_position} in {state.constituencies[constituency_id].name}."
    return ActionResult(state=state.with_party(player).logged(message), success=True, message=message)


# ════════════════════════════════════════════════════════════════
# AI Moves and Turn Cycle
# ════════════════════════════════════════════════════════════════


def ai_moves(state: GameState, rng: random.Random) -> GameState:
    """Every non-player party boosts itself in one random constituency it contests."""
    for pid, party in state.parties.items():
        if pid == state.player_party_id or not party.eligible_constituencies:
            continue
        cid = rng.choice(party.eligible_constituencies)
        boost = rng.uniform(*AI_BOOST_RANGE)
        state = apply_delta(state, cid, pid, boost)
    return state


def _next_week(state: GameState, turn: int) -> GameState:
    return state.model_copy(update={"turn": turn, "energy": state.max_energy})


def end_turn(state: GameState, rng: random.Random) -> GameState:
    """
    Close the current turn.

    Campaign: AI moves, then either the election (horizon reached) or the
    next week with energy refilled and a possible campaign event.
    Governing: budget cycle and stability check; a collapse restarts the
    campaign at week 1.
    """
    if state.phase == GamePhase.CAMPAIGN:
        state = ai_moves(state, rng)
        if state.turn >= state.max_turns:
            state = run_election(state)
            if state.phase == GamePhase.CONSULTATION:
                state = appoint_informateur(state)
            return state
        state = _next_week(state, state.turn + 1)
        return draw_event(state, rng)

    if state.phase == GamePhase.GOVERNING:
        state = governing_upkeep(state, rng)
        if state.phase == GamePhase.CAMPAIGN:
            return _next_week(state, 1)
        return _next_week(state, state.turn + 1)

    return state


# ════════════════════════════════════════════════════════════════
# Coalition Formation
# ════════════════════════════════════════════════════════════════


def offer_coalition(state: GameState, ministries: dict[str, int]) -> ActionResult:
    """
    Submit the player's coalition: the player plus the partners currently
    in talks, with the ministry split chosen by the player. The player's
    best-placed politician becomes prime minister. Portfolios given to a
    party outside the talks fail validation.
    """
    partners = [state.player_party_id, *state.coalition_partners]
    player = state.parties[state.player_party_id]
    prime_minister = prime_minister_of(player)
    exclude = {prime_minister.id} if prime_minister else set()
    proposal = CoalitionProposal(
        partners=partners,
        policy_stances=negotiate_platform(state, partners),
        ministries_offered=dict(ministries),
        ministers=assign_ministers(state, ministries, exclude=exclude),
        prime_minister=prime_minister,
    )
    return form_government(state, proposal)


def attempt_formation(state: GameState, leader: str | None = None) -> ActionResult:
    """
    Try the minimal winning coalitions around a leader (default: the
    informateur), least friction first, until one forms a government.
    """
    leader = leader or state.informateur
    if leader is None:
        return ActionResult(state=state, success=False, message="No informateur has been appointed.")

    last = ActionResult(state=state, success=False, message="No majority coalition is possible.")
    for option in minimal_winning_coalitions(state, include=leader):
        proposal = propose_coalition(state, option.partners)
        result = form_government(state, proposal)
        if result.success:
            return result
        last = result
        logger.info("Coalition %s failed: %s", option.partners, result.message)
    return last
