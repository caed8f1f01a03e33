"""
National crises — shocks the sitting government must answer.

While a government is in office each governing turn may bring a crisis,
drawn from the injected random source. A crisis stays on the desk until the
government picks a response or it runs its course: after a few turns
without an answer the last choice (doing nothing) applies by itself.

Responses move the federal expenses, public approval and government
stability, all clamped to their ranges.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from belpolsim.state.schema import ActionResult, ActiveCrisis, GameState

logger = logging.getLogger(__name__)

CRISIS_PROBABILITY = 0.05
CRISIS_DURATION = 4


@dataclass(frozen=True)
class CrisisChoice:
    text: str
    description: str
    expenses_change: float = 0.0
    approval_change: float = 0.0
    stability_change: float = 0.0


@dataclass(frozen=True)
class Crisis:
    id: str
    title: str
    description: str
    severity: str
    choices: tuple[CrisisChoice, ...]  # the last one is inaction


CRISES: dict[str, Crisis] = {
    crisis.id: crisis
    for crisis in (
        Crisis(
            id="energy_price_spike",
            title="Energy Price Spike",
            description="Global markets have driven up energy prices. Citizens are demanding action.",
            severity="medium",
            choices=(
                CrisisChoice("Subsidize energy (cost: 1 billion)", "Reduces budget, increases popularity.",
                             expenses_change=1000.0, approval_change=5.0),
                CrisisChoice("Do nothing", "Saves money, hurts popularity.",
                             approval_change=-10.0),
            ),
        ),
        Crisis(
            id="national_strike",
            title="National Strike",
            description="The unions have called a national strike against the pension reform.",
            severity="high",
            choices=(
                CrisisChoice("Reopen the social dialogue", "Costs money, calms the partners.",
                             expenses_change=500.0, approval_change=2.0),
                CrisisChoice("Hold firm", "The coalition hardens, the street does not forgive.",
                             approval_change=-5.0, stability_change=5.0),
                CrisisChoice("Do nothing", "The country grinds to a halt.",
                             approval_change=-8.0, stability_change=-5.0),
            ),
        ),
        Crisis(
            id="meuse_floods",
            title="Floods in the Meuse Valley",
            description="Record rainfall has flooded towns along the Meuse.",
            severity="critical",
            choices=(
                CrisisChoice("Federal reconstruction fund", "Expensive, but the regions are grateful.",
                             expenses_change=1500.0, approval_change=6.0, stability_change=3.0),
                CrisisChoice("Leave it to the regions", "Cheap, and the coalition bickers over competences.",
                             approval_change=-12.0, stability_change=-8.0),
            ),
        ),
    )
}


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _apply_choice(state: GameState, choice: CrisisChoice) -> GameState:
    budget = state.national_budget
    if choice.expenses_change:
        budget = budget.model_copy(update={"expenses": budget.expenses + choice.expenses_change})
    government = state.government
    if government is not None and choice.stability_change:
        government = government.model_copy(
            update={"stability": _clamp(government.stability + choice.stability_change)}
        )
    return state.model_copy(
        update={
            "national_budget": budget,
            "government": government,
            "public_approval": _clamp(state.public_approval + choice.approval_change),
        }
    )


def draw_crisis(state: GameState, rng: random.Random, probability: float = CRISIS_PROBABILITY) -> GameState:
    """Possibly open a new crisis. A crisis already on the desk is not drawn twice."""
    if state.government is None or rng.random() >= probability:
        return state
    active = {c.crisis_id for c in state.crises}
    candidates = [crisis for cid, crisis in CRISES.items() if cid not in active]
    if not candidates:
        return state
    crisis = rng.choice(candidates)
    logger.info("Crisis drawn: %s", crisis.id)
    opened = ActiveCrisis(crisis_id=crisis.id, turns_remaining=CRISIS_DURATION)
    return state.model_copy(update={"crises": [*state.crises, opened]}).logged(f"CRISIS: {crisis.title}")


def resolve_crisis(state: GameState, crisis_id: str, choice_index: int) -> ActionResult:
    """Answer an open crisis with one of its choices."""
    crisis = CRISES.get(crisis_id)
    if crisis is None or all(c.crisis_id != crisis_id for c in state.crises):
        return ActionResult(state=state, success=False, message="Crisis not found.")
    if not 0 <= choice_index < len(crisis.choices):
        return ActionResult(state=state, success=False, message="Invalid choice.")

    choice = crisis.choices[choice_index]
    state = _apply_choice(state, choice)
    message = f"Crisis resolved: {crisis.title} - {choice.text}"
    logger.info("Crisis %s resolved with choice %d", crisis_id, choice_index)
    state = state.model_copy(
        update={"crises": [c for c in state.crises if c.crisis_id != crisis_id]}
    ).logged(message)
    return ActionResult(state=state, success=True, message=message)


def tick_crises(state: GameState) -> GameState:
    """Count down open crises; unanswered ones run their course."""
    remaining = []
    for active in state.crises:
        crisis = CRISES[active.crisis_id]
        if active.turns_remaining > 1:
            remaining.append(active.model_copy(update={"turns_remaining": active.turns_remaining - 1}))
            continue
        state = _apply_choice(state, crisis.choices[-1])
        state = state.logged(f"Crisis left unanswered: {crisis.title} - {crisis.choices[-1].text}")
        logger.warning("Crisis %s ran its course", active.crisis_id)
    return state.model_copy(update={"crises": remaining})
