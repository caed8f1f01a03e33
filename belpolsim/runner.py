"""
BelPolSim — Headless simulation runner.

Plays a complete election cycle without a UI:
1. Builds the default Belgian scenario from a seeded random source
2. Campaigns for the player, following the constituency recommendations
3. Holds the election and runs the royal consultation
4. Forms a government from the least contentious minimal winning coalition
5. Governs for a few turns, answering crises and tabling and voting bills

Every run with the same seed produces the same game.

Usage:
    python -m belpolsim.runner
    python -m belpolsim.runner --seed 7 --turns 6 --save savegame.json
"""

from __future__ import annotations

import argparse
import logging
import random
import sys

import structlog

from belpolsim.config import settings
from belpolsim.electoral.analysis import recommend_actions
from belpolsim.electoral.campaign import CampaignAction, Medium
from belpolsim.electoral.events import resolve_event
from belpolsim.electoral.polling import national_share
from belpolsim.governance.crises import resolve_crisis
from belpolsim.governance.friction import all_frictions
from belpolsim.governance.legislation import propose_bill, vote_on_bill
from belpolsim.persistence.store import save_state, verify_invariants
from belpolsim.state.scenario import build_default_scenario
from belpolsim.state.schema import GamePhase, GameState
from belpolsim.turns import attempt_formation, end_turn, perform_campaign_action

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=logging.getLevelName(settings.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if settings.log_format != "json"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def choose_action(state: GameState) -> CampaignAction:
    """Follow the most urgent recommendation the player can afford."""
    for recommendation in recommend_actions(state):
        action = CampaignAction(
            medium=recommendation.medium,
            constituency_id=recommendation.constituency_id,
            target_demographic=recommendation.demographic,
        )
        if state.budget >= action.cost and state.energy >= action.profile.energy:
            return action
    return CampaignAction(medium=Medium.DOOR_TO_DOOR, constituency_id=state.selected_constituency)


def campaign(state: GameState, rng: random.Random) -> GameState:
    log = structlog.get_logger()
    while state.phase == GamePhase.CAMPAIGN:
        structlog.contextvars.bind_contextvars(turn=state.turn)
        if state.pending_event is not None:
            state = resolve_event(state, 0).state
        while state.energy > 0:
            result = perform_campaign_action(state, choose_action(state), rng)
            if not result.success:
                break
            state = result.state
            log.info("belpolsim.runner.campaign_action", message=result.message, **result.details)
        state = end_turn(state, rng)
    structlog.contextvars.clear_contextvars()
    return state


def govern(state: GameState, rng: random.Random, bills: int) -> GameState:
    log = structlog.get_logger()
    sponsor = state.government.partners[0]
    stances = sorted(state.parties[sponsor].stances, key=lambda s: -s.salience)
    for stance in stances[:bills]:
        if state.phase != GamePhase.GOVERNING:
            break
        for crisis in state.crises:
            answered = resolve_crisis(state, crisis.crisis_id, 0)
            state = answered.state
            log.info("belpolsim.runner.crisis_resolved", message=answered.message)
        proposed = propose_bill(state, stance.issue_id, stance.position, sponsor=sponsor)
        if not proposed.success:
            log.warning("belpolsim.runner.bill_refused", message=proposed.message)
            continue
        voted = vote_on_bill(proposed.state, proposed.details["bill_id"])
        state = voted.state
        log.info(
            "belpolsim.runner.bill_voted",
            issue=stance.issue_id,
            passed=voted.success,
            stability=state.government.stability if state.government else None,
            **voted.details,
        )
        state = end_turn(state, rng)
    return state


def run_simulation(seed: int, max_turns: int, bills: int) -> GameState:
    """Play one full election cycle and return the final state."""
    log = structlog.get_logger()
    rng = random.Random(seed)
    state = build_default_scenario(rng, max_turns=max_turns)
    log.info("belpolsim.runner.starting", seed=seed, max_turns=max_turns, parties=len(state.parties))

    state = campaign(state, rng)
    log.info(
        "belpolsim.runner.election_complete",
        seats={pid: p.total_seats for pid, p in state.parties.items()},
        shares={pid: round(national_share(state, pid), 1) for pid in state.parties},
        phase=state.phase.value,
    )

    if state.phase == GamePhase.FORMATION:
        formation = attempt_formation(state)
        state = formation.state
        log.info(
            "belpolsim.runner.formation",
            success=formation.success,
            message=formation.message,
            informateur=state.informateur,
        )

    if state.government is not None:
        log.info(
            "belpolsim.runner.government",
            partners=state.government.partners,
            frictions={
                pid: round(f, 1)
                for pid, f in all_frictions(state, state.government.agreement.policy_compromises).items()
                if pid in state.government.partners
            },
        )
        state = govern(state, rng, bills)

    is_valid, checked, message = verify_invariants(state)
    log.info("belpolsim.runner.finished", valid=is_valid, checks=checked, message=message)
    return state


def main(argv: list[str] | None = None) -> None:
    """Headless entrypoint."""
    parser = argparse.ArgumentParser(description="BelPolSim headless election cycle")
    parser.add_argument("--seed", type=int, default=settings.seed, help="Random seed")
    parser.add_argument("--turns", type=int, default=settings.max_turns, help="Campaign weeks")
    parser.add_argument("--bills", type=int, default=settings.bills_per_term, help="Bills to table")
    parser.add_argument("--save", default=None, help="Write the final state to this JSON file")
    args = parser.parse_args(argv)

    configure_logging()
    log = structlog.get_logger()
    try:
        state = run_simulation(args.seed, args.turns, args.bills)
    except Exception as e:
        log.exception("belpolsim.runner.fatal_error", error=str(e))
        sys.exit(1)

    if args.save:
        save_state(state, args.save)
        log.info("belpolsim.runner.saved", path=args.save)


if __name__ == "__main__":
    main()
