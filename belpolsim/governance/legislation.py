"""
Legislative Vote Resolver — How parliament votes on a bill.

Each party casts all of its seats the same way:

- Coalition partners weigh loyalty against conviction:
  ``score = loyalty bonus + (100 - distance)``; above 60 they vote FOR,
  below 40 AGAINST, otherwise they abstain.
- Opposition parties vote on conviction alone: FOR when the bill is within
  the near threshold of their stance, AGAINST beyond the far threshold,
  otherwise they abstain.

A party without a stance on the bill's issue sits at the neutral position.

Passage rule: a simple majority of votes cast. The bill passes when FOR
seats strictly exceed AGAINST seats; abstentions are recorded but do not
count. The same rule is used for every bill.

References:
    Constitution Art. 53 — decisions by absolute majority of votes cast
    Chamber rules of procedure — recorded votes by party group
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from belpolsim.state.schema import (
    ActionResult,
    Bill,
    BillEffects,
    BillStatus,
    GameState,
    LegislativeRecord,
    Party,
    PolicyScale,
    VotePosition,
)

logger = logging.getLogger(__name__)

NEUTRAL_POSITION = 50.0
COALITION_FOR_SCORE = 60.0
COALITION_AGAINST_SCORE = 40.0

DEFAULT_APPROVAL_IMPACT = 2.0
DEFAULT_STABILITY_IMPACT = 5.0
TAXATION_REVENUE_PER_POINT = 100.0

SCALE_RANGE = {
    PolicyScale.UNIT: (0.0, 100.0),
    PolicyScale.SIGNED: (-100.0, 100.0),
}


# ════════════════════════════════════════════════════════════════
# Vote Decision
# ════════════════════════════════════════════════════════════════


@dataclass
class VoteResult:
    """Seat tally of a parliamentary vote."""

    yes: int = 0
    no: int = 0
    abstain: int = 0
    passed: bool = False
    per_party: dict[str, VotePosition] = field(default_factory=dict)

    @property
    def votes_cast(self) -> int:
        return self.yes + self.no


def to_scale(position: float, scale: PolicyScale) -> float:
    """Map a 0..100 stance position onto a bill's scale."""
    if scale == PolicyScale.SIGNED:
        return position * 2 - 100
    return position


def stance_position(party: Party, issue_id: str, scale: PolicyScale = PolicyScale.UNIT) -> float:
    """The party's position on an issue, neutral when it has no stance."""
    stance = party.stance_on(issue_id)
    position = stance.position if stance is not None else NEUTRAL_POSITION
    return to_scale(position, scale)


def decide_vote(party: Party, bill: Bill, state: GameState) -> VotePosition:
    """How one party votes on a bill."""
    rules = state.rules
    distance = abs(stance_position(party, bill.issue_id, bill.scale) - bill.target_position)

    if state.is_coalition_member(party.id):
        score = rules.coalition_loyalty_bonus + (100 - distance)
        if score > COALITION_FOR_SCORE:
            return VotePosition.FOR
        if score < COALITION_AGAINST_SCORE:
            return VotePosition.AGAINST
        return VotePosition.ABSTAIN

    if distance < rules.near_threshold:
        return VotePosition.FOR
    if distance > rules.far_threshold:
        return VotePosition.AGAINST
    return VotePosition.ABSTAIN


def resolve(bill: Bill, state: GameState) -> VoteResult:
    """
    Decide every party's vote and tally the seats.

    Args:
        bill: The bill put to the vote.
        state: Current state (seats, government, rules).

    Returns:
        VoteResult with seat totals, the per-party breakdown and whether
        the bill passed (FOR seats strictly above AGAINST seats).
    """
    result = VoteResult()
    for pid, party in state.parties.items():
        position = decide_vote(party, bill, state)
        result.per_party[pid] = position
        if position == VotePosition.FOR:
            result.yes += party.total_seats
        elif position == VotePosition.AGAINST:
            result.no += party.total_seats
        else:
            result.abstain += party.total_seats
    result.passed = result.yes > result.no
    return result


# ════════════════════════════════════════════════════════════════
# Bills
# ════════════════════════════════════════════════════════════════


def default_effects(issue_id: str, target_position: float, scale: PolicyScale = PolicyScale.UNIT) -> BillEffects:
    """
    Effects of a bill when none are given: a small approval and stability
    gain, and for taxation bills a revenue shift proportional to how far the
    bill moves taxation from the centre.
    """
    budget_impact = 0.0
    if issue_id == "taxation":
        unit_target = (target_position + 100) / 2 if scale == PolicyScale.SIGNED else target_position
        budget_impact = (unit_target - NEUTRAL_POSITION) * TAXATION_REVENUE_PER_POINT
    return BillEffects(
        budget_impact=budget_impact,
        approval_impact=DEFAULT_APPROVAL_IMPACT,
        stability_impact=DEFAULT_STABILITY_IMPACT,
    )


def propose_bill(
    state: GameState,
    issue_id: str,
    target_position: float,
    sponsor: str | None = None,
    scale: PolicyScale = PolicyScale.UNIT,
    effects: BillEffects | None = None,
) -> ActionResult:
    """
    Table a bill in parliament.

    The bill starts in PROPOSED status. Proposals need a sitting government,
    a known issue and a target within the range of the chosen scale.
    """
    sponsor = sponsor or state.player_party_id
    if state.government is None:
        return ActionResult(state=state, success=False, message="There is no government in office.")
    if issue_id not in state.issues:
        return ActionResult(state=state, success=False, message=f"Unknown issue: {issue_id}")
    low, high = SCALE_RANGE[scale]
    if not low <= target_position <= high:
        return ActionResult(
            state=state,
            success=False,
            message=f"Target position {target_position} outside {low:.0f}..{high:.0f}.",
        )

    bill = Bill(
        id=f"bill-{state.turn}-{len(state.bills) + 1}",
        issue_id=issue_id,
        target_position=target_position,
        scale=scale,
        sponsor=sponsor,
        effects=effects or default_effects(issue_id, target_position, scale),
    )
    issue_name = state.issues[issue_id].name
    sponsor_name = state.parties[sponsor].name if sponsor in state.parties else sponsor
    message = f"{sponsor_name} proposed a bill on {issue_name} (target {target_position:g})."
    logger.info("Bill %s proposed by %s on %s", bill.id, sponsor, issue_id)
    new_state = state.model_copy(update={"bills": [*state.bills, bill]}).logged(message)
    return ActionResult(state=new_state, success=True, message=message, details={"bill_id": bill.id})


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def apply_bill_effects(state: GameState, bill: Bill) -> GameState:
    """
    Apply a passed bill: approval, government stability and budget.

    A positive budget impact raises revenue, a negative one raises expenses.
    """
    budget = state.national_budget
    if bill.effects.budget_impact > 0:
        budget = budget.model_copy(update={"revenue": budget.revenue + bill.effects.budget_impact})
    elif bill.effects.budget_impact < 0:
        budget = budget.model_copy(update={"expenses": budget.expenses - bill.effects.budget_impact})

    government = state.government
    if government is not None:
        government = government.model_copy(
            update={"stability": _clamp(government.stability + bill.effects.stability_impact)}
        )

    return state.model_copy(
        update={
            "public_approval": _clamp(state.public_approval + bill.effects.approval_impact),
            "government": government,
            "national_budget": budget,
        }
    )


def apply_rejection(state: GameState) -> GameState:
    """A failed bill costs the government stability."""
    if state.government is None:
        return state
    penalty = state.rules.failed_bill_stability_penalty
    government = state.government.model_copy(
        update={"stability": _clamp(state.government.stability - penalty)}
    )
    return state.model_copy(update={"government": government})


def _find_bill(state: GameState, bill_id: str) -> Bill:
    bill = next((b for b in state.bills if b.id == bill_id), None)
    if bill is None:
        raise ValueError(f"Bill {bill_id} not found")
    return bill


def open_vote(state: GameState, bill_id: str) -> GameState:
    """
    Put a proposed bill on the floor of the Chamber (VOTING status).

    Raises:
        ValueError: If the bill does not exist or is not in PROPOSED status.
    """
    bill = _find_bill(state, bill_id)
    if bill.status != BillStatus.PROPOSED:
        raise ValueError(f"Bill {bill_id} is {bill.status.value}, not proposed")
    opened = bill.model_copy(update={"status": BillStatus.VOTING})
    logger.info("Bill %s opened for a vote", bill_id)
    return state.model_copy(update={"bills": [opened if b.id == bill_id else b for b in state.bills]})


def vote_on_bill(state: GameState, bill_id: str) -> ActionResult:
    """
    Vote on a bill and apply the outcome. A bill still in PROPOSED status
    is put on the floor first.

    Raises:
        ValueError: If the bill does not exist or its vote has concluded.
    """
    bill = _find_bill(state, bill_id)
    if bill.status == BillStatus.PROPOSED:
        state = open_vote(state, bill_id)
        bill = _find_bill(state, bill_id)
    if bill.status != BillStatus.VOTING:
        raise ValueError(f"Bill {bill_id} is {bill.status.value}, not open for a vote")

    result = resolve(bill, state)
    status = BillStatus.PASSED if result.passed else BillStatus.REJECTED
    concluded = bill.model_copy(update={"status": status, "votes": result.per_party})

    state = state.model_copy(
        update={"bills": [concluded if b.id == bill_id else b for b in state.bills]}
    )
    state = apply_bill_effects(state, concluded) if result.passed else apply_rejection(state)

    record = LegislativeRecord(
        bill_id=bill_id,
        issue_id=bill.issue_id,
        sponsor=bill.sponsor,
        status=status,
        yes=result.yes,
        no=result.no,
        abstain=result.abstain,
        turn=state.turn,
    )
    issue_name = state.issues[bill.issue_id].name if bill.issue_id in state.issues else bill.issue_id
    message = (
        f"Vote on {issue_name}: {status.value.upper()} "
        f"({result.yes} for, {result.no} against, {result.abstain} abstaining)"
    )
    logger.info(
        "Bill %s %s: yes=%d no=%d abstain=%d",
        bill_id, status.value, result.yes, result.no, result.abstain,
    )
    state = state.model_copy(
        update={"legislative_history": [*state.legislative_history, record]}
    ).logged(message)
    return ActionResult(
        state=state,
        success=result.passed,
        message=message,
        details={"yes": result.yes, "no": result.no, "abstain": result.abstain},
    )
