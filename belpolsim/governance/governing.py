"""
Governing upkeep — the yearly budget cycle and government stability.

Each governing turn the federal budget rolls forward: revenue follows last
year's growth, expenses follow 2% inflation, laws that passed keep weighing
on the accounts, and the deficit is added to the debt. Growth then drifts by
up to ±0.2 points.

Open crises count down, and an unanswered one runs its course. A government
falls when its stability reaches 0. Below 30 it also runs a 10% chance per
turn of collapsing. A fallen government sends the country back to the polls.
A government that survives the turn may face a new crisis.
"""

from __future__ import annotations

import logging
import random

from belpolsim.governance.crises import draw_crisis, tick_crises
from belpolsim.state.schema import BillStatus, GamePhase, GameState, NationalBudget

logger = logging.getLogger(__name__)

INFLATION = 1.02
GROWTH_DRIFT = 0.2
FRAGILE_STABILITY = 30.0
FRAGILE_COLLAPSE_CHANCE = 0.1


def update_budget(state: GameState, rng: random.Random) -> NationalBudget:
    """Roll the national budget forward one year."""
    budget = state.national_budget
    revenue = budget.revenue * (1 + budget.last_year_growth / 100)
    expenses = budget.expenses * INFLATION

    for bill in state.bills:
        if bill.status != BillStatus.PASSED:
            continue
        impact = bill.effects.budget_impact
        if impact > 0:
            revenue += impact
        else:
            expenses -= impact

    deficit = revenue - expenses
    growth = max(0.0, budget.last_year_growth + rng.uniform(-GROWTH_DRIFT, GROWTH_DRIFT))
    return NationalBudget(
        revenue=revenue,
        expenses=expenses,
        debt=budget.debt - deficit,
        deficit=deficit,
        last_year_growth=growth,
    )


def government_collapses(state: GameState, rng: random.Random) -> bool:
    """Whether the sitting government falls this turn."""
    if state.government is None:
        return False
    stability = state.government.stability
    if stability <= 0:
        return True
    return stability < FRAGILE_STABILITY and rng.random() < FRAGILE_COLLAPSE_CHANCE


def governing_upkeep(state: GameState, rng: random.Random) -> GameState:
    """
    Run one governing turn: budget update, crisis countdown, the stability
    check and finally a possible new crisis.

    A collapse dissolves the government, drops its open crises and reopens
    the campaign so that a new election can be held.
    """
    if state.phase != GamePhase.GOVERNING or state.government is None:
        return state

    budget = update_budget(state, rng)
    state = state.model_copy(update={"national_budget": budget})
    logger.info(
        "Budget updated: revenue=%.0f expenses=%.0f deficit=%.0f debt=%.0f",
        budget.revenue, budget.expenses, budget.deficit, budget.debt,
    )
    state = tick_crises(state)

    if government_collapses(state, rng):
        logger.warning("Government collapsed at stability %.1f", state.government.stability)
        return state.model_copy(
            update={
                "government": None,
                "coalition_partners": [],
                "crises": [],
                "phase": GamePhase.CAMPAIGN,
            }
        ).logged("The government has collapsed! New elections are called.")
    return draw_crisis(state, rng)
