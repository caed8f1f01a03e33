"""
Tests for the legislative vote resolver.

Validates:
- Coalition loyalty and opposition conviction vote rules
- Signed and unit policy scales
- Passage by simple majority of votes cast
- Bill lifecycle: proposal, vote, effects and history
"""

from __future__ import annotations

import pytest

from belpolsim.governance.legislation import (
    decide_vote,
    default_effects,
    open_vote,
    propose_bill,
    resolve,
    stance_position,
    to_scale,
    vote_on_bill,
)
from belpolsim.state.schema import (
    Bill,
    BillEffects,
    BillStatus,
    GamePhase,
    GameState,
    Government,
    Issue,
    Party,
    PolicyScale,
    Stance,
    VotePosition,
)


def _make_party(pid: str, seats: int, position: float | None = None) -> Party:
    stances = [] if position is None else [Stance(issue_id="tax", position=position, salience=5)]
    return Party(id=pid, name=pid.upper(), total_seats=seats, stances=stances)


def _make_state(*parties: Party, partners: tuple[str, ...] = ("gov",)) -> GameState:
    return GameState(
        player_party_id="gov",
        phase=GamePhase.GOVERNING,
        parties={p.id: p for p in parties},
        issues={"tax": Issue(id="tax", name="Taxation Level"), "nuclear": Issue(id="nuclear", name="Nuclear Exit")},
        government=Government(partners=list(partners), stability=50.0),
    )


def _bill(target: float, scale: PolicyScale = PolicyScale.UNIT) -> Bill:
    return Bill(id="bill-1", issue_id="tax", target_position=target, scale=scale, sponsor="gov")


class TestScales:

    def test_signed_mapping(self):
        """Unit positions map linearly onto the signed scale."""
        assert to_scale(0, PolicyScale.SIGNED) == -100
        assert to_scale(50, PolicyScale.SIGNED) == 0
        assert to_scale(100, PolicyScale.SIGNED) == 100
        assert to_scale(30, PolicyScale.UNIT) == 30

    def test_missing_stance_is_neutral(self):
        """A party without a stance sits at the neutral point."""
        party = _make_party("p", 10)
        assert stance_position(party, "tax") == 50
        assert stance_position(party, "tax", PolicyScale.SIGNED) == 0


class TestDecideVote:

    def test_signed_bill_coalition_for_opposition_against(self):
        """A signed bill splits the chamber along coalition lines."""
        state = _make_state(_make_party("gov", 80, position=90), _make_party("opp", 70, position=0))
        bill = _bill(80, PolicyScale.SIGNED)
        assert decide_vote(state.parties["gov"], bill, state) == VotePosition.FOR
        assert decide_vote(state.parties["opp"], bill, state) == VotePosition.AGAINST

    def test_loyalty_carries_a_distant_partner(self):
        """Coalition loyalty outweighs a moderate policy gap."""
        state = _make_state(_make_party("gov", 80, position=100))
        assert decide_vote(state.parties["gov"], _bill(80, PolicyScale.SIGNED), state) == VotePosition.FOR

    def test_coalition_abstains_at_mid_score(self):
        """A partner with a middling score abstains."""
        # distance 100 -> score 50
        state = _make_state(_make_party("gov", 80, position=0))
        assert decide_vote(state.parties["gov"], _bill(100), state) == VotePosition.ABSTAIN

    def test_coalition_against_when_far(self):
        """Loyalty cannot carry a partner across the whole scale."""
        # signed distance 180 -> score -30
        state = _make_state(_make_party("gov", 80, position=0))
        assert decide_vote(state.parties["gov"], _bill(80, PolicyScale.SIGNED), state) == VotePosition.AGAINST

    @pytest.mark.parametrize(
        "position, expected",
        [
            (70, VotePosition.FOR),
            (66, VotePosition.FOR),
            (65, VotePosition.ABSTAIN),
            (55, VotePosition.ABSTAIN),
            (54, VotePosition.AGAINST),
            (0, VotePosition.AGAINST),
        ],
    )
    def test_opposition_thresholds(self, position, expected):
        """Opposition votes follow the near and far distance thresholds."""
        state = _make_state(_make_party("gov", 80, position=80), _make_party("opp", 70, position=position))
        assert decide_vote(state.parties["opp"], _bill(80), state) == expected


class TestResolve:

    def test_tally_and_passage(self):
        """Seats are tallied per party position."""
        state = _make_state(_make_party("gov", 80, position=90), _make_party("opp", 70, position=0))
        result = resolve(_bill(80, PolicyScale.SIGNED), state)
        assert (result.yes, result.no, result.abstain) == (80, 70, 0)
        assert result.passed
        assert result.per_party == {"gov": VotePosition.FOR, "opp": VotePosition.AGAINST}

    def test_abstentions_do_not_count(self):
        """Abstentions do not count towards the votes cast."""
        state = _make_state(
            _make_party("gov", 40, position=80),
            _make_party("opp", 30, position=0),
            _make_party("mid", 80, position=60),
        )
        result = resolve(_bill(80), state)
        assert (result.yes, result.no, result.abstain) == (40, 30, 80)
        assert result.votes_cast == 70
        assert result.passed

    def test_tie_fails(self):
        """A tied vote fails."""
        state = _make_state(_make_party("gov", 75, position=80), _make_party("opp", 75, position=0))
        assert not resolve(_bill(80), state).passed


class TestBillLifecycle:

    def setup_method(self):
        self.state = _make_state(_make_party("gov", 80, position=80), _make_party("opp", 70, position=0))

    def test_propose(self):
        """A new bill starts in PROPOSED status."""
        result = propose_bill(self.state, "tax", 80)
        assert result.success
        assert result.details["bill_id"] == "bill-1-1"
        bill = result.state.bills[0]
        assert bill.status == BillStatus.PROPOSED
        assert bill.sponsor == "gov"

    def test_propose_refusals(self):
        """Bills need a government, a known issue and a target on the scale."""
        no_government = self.state.model_copy(update={"government": None})
        assert not propose_bill(no_government, "tax", 80).success
        assert not propose_bill(self.state, "unknown", 80).success
        assert not propose_bill(self.state, "tax", 120).success
        assert not propose_bill(self.state, "tax", -50).success
        assert propose_bill(self.state, "tax", -50, scale=PolicyScale.SIGNED).success

    def test_passed_bill_applies_effects(self):
        """A passed bill raises approval and stability and is recorded."""
        proposed = propose_bill(self.state, "nuclear", 80)
        voted = vote_on_bill(proposed.state, proposed.details["bill_id"])
        state = voted.state
        # opp has no nuclear stance: neutral 50 is 30 away, AGAINST
        assert voted.success
        assert state.bills[0].status == BillStatus.PASSED
        assert state.public_approval == pytest.approx(52.0)
        assert state.government.stability == pytest.approx(55.0)
        assert len(state.legislative_history) == 1
        assert state.legislative_history[0].yes == 80

    def test_rejected_bill_costs_stability(self):
        """A rejected bill costs the government ten stability points."""
        state = _make_state(_make_party("gov", 40, position=80), _make_party("opp", 110, position=0))
        proposed = propose_bill(state, "tax", 80)
        voted = vote_on_bill(proposed.state, proposed.details["bill_id"])
        assert not voted.success
        assert voted.state.bills[0].status == BillStatus.REJECTED
        assert voted.state.government.stability == pytest.approx(40.0)
        assert voted.state.public_approval == state.public_approval

    def test_vote_twice_raises(self):
        """A concluded vote cannot be held again."""
        proposed = propose_bill(self.state, "tax", 80)
        voted = vote_on_bill(proposed.state, proposed.details["bill_id"])
        with pytest.raises(ValueError):
            vote_on_bill(voted.state, proposed.details["bill_id"])

    def test_open_vote_puts_bill_on_the_floor(self):
        """Opening a vote moves a proposed bill to VOTING."""
        proposed = propose_bill(self.state, "tax", 80)
        bill_id = proposed.details["bill_id"]
        opened = open_vote(proposed.state, bill_id)
        assert opened.bills[0].status == BillStatus.VOTING
        assert proposed.state.bills[0].status == BillStatus.PROPOSED

    def test_open_vote_on_concluded_bill_raises(self):
        """Only a proposed bill can be put to a vote."""
        proposed = propose_bill(self.state, "tax", 80)
        voted = vote_on_bill(proposed.state, proposed.details["bill_id"])
        with pytest.raises(ValueError, match="not proposed"):
            open_vote(voted.state, proposed.details["bill_id"])

    def test_vote_concludes_an_opened_bill(self):
        """A bill already on the floor is voted on and concluded."""
        proposed = propose_bill(self.state, "tax", 80)
        bill_id = proposed.details["bill_id"]
        result = vote_on_bill(open_vote(proposed.state, bill_id), bill_id)
        assert result.success
        assert result.state.bills[0].status == BillStatus.PASSED

    def test_unknown_bill_raises(self):
        """Voting on an unknown bill raises."""
        with pytest.raises(ValueError, match="not found"):
            vote_on_bill(self.state, "bill-9-9")

    def test_budget_effects(self):
        """Positive impacts raise revenue, negative ones raise expenses."""
        gain = propose_bill(self.state, "tax", 80, effects=BillEffects(budget_impact=500))
        state = vote_on_bill(gain.state, gain.details["bill_id"]).state
        assert state.national_budget.revenue == pytest.approx(500.0)

        cost = propose_bill(self.state, "tax", 80, effects=BillEffects(budget_impact=-300))
        state = vote_on_bill(cost.state, cost.details["bill_id"]).state
        assert state.national_budget.expenses == pytest.approx(300.0)

    def test_default_taxation_effects(self):
        """Only taxation bills move the budget by default."""
        assert default_effects("tax", 70).budget_impact == 0.0
        assert default_effects("taxation", 70).budget_impact == pytest.approx(2000.0)
        assert default_effects("taxation", 40, PolicyScale.SIGNED).budget_impact == pytest.approx(2000.0)
        assert default_effects("nuclear_exit", 90).stability_impact == 5.0
