"""
Tests for the turn driver.

Validates:
- Campaign action pipeline: resources, spending, polling scope, charging, refusals
- Fundraisers and electoral list reordering
- AI moves and the week cycle
- Election at the campaign horizon followed by consultation
- Coalition formation helpers
"""

from __future__ import annotations

import random

import pytest

from belpolsim.electoral.campaign import CampaignAction, Medium, lead_candidate
from belpolsim.electoral.polling import polling_totals
from belpolsim.persistence.store import verify_invariants
from belpolsim.state.scenario import build_default_scenario
from belpolsim.state.schema import (
    GamePhase,
    GameState,
    Government,
    Language,
    Party,
    Politician,
)
from belpolsim.turns import (
    ai_moves,
    attempt_formation,
    end_turn,
    fundraise,
    offer_coalition,
    perform_campaign_action,
    reorder_list,
    select_constituency,
)


def _make_members(pid: str) -> dict[str, list[Politician]]:
    """Five elected Dutch speakers in "fl" and five elected French speakers in "wa"."""
    lists = {}
    for cid, language in (("fl", Language.DUTCH), ("wa", Language.FRENCH)):
        lists[cid] = [
            Politician(
                id=f"{pid}-{cid}-{n}",
                name=f"{pid.upper()} {cid} {n}",
                party_id=pid,
                language=language,
                constituency=cid,
                list_position=n,
                is_elected=True,
            )
            for n in range(1, 6)
        ]
    return lists


def _make_formation_state() -> GameState:
    seats = {"player": 40, "b": 40, "x": 70}
    parties = {
        pid: Party(
            id=pid,
            name=pid.upper(),
            is_extremist=pid == "x",
            eligible_constituencies=["fl", "wa"],
            total_seats=count,
            politicians=_make_members(pid),
        )
        for pid, count in seats.items()
    }
    return GameState(phase=GamePhase.FORMATION, parties=parties, coalition_partners=["b"], informateur="player")


class TestCampaignPipeline:
    """Campaign actions on the default scenario."""

    def setup_method(self):
        self.state = build_default_scenario(random.Random(8))
        self.rng = random.Random(8)

    def test_door_to_door_charges_energy_only(self):
        """Door-to-door costs energy, no money, and raises local polling."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.DOOR_TO_DOOR, "antwerp"), self.rng)
        assert result.success
        assert result.state.energy == self.state.energy - 2
        assert result.state.budget == self.state.budget
        assert result.details["cost_per_vote"] == 0.0
        assert result.state.parties["player"].polling_in("antwerp") > self.state.parties["player"].polling_in("antwerp")

    def test_constituency_scope_stays_local(self):
        """A social media post only moves the constituency it targets."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.SOCIAL_MEDIA, "antwerp"), self.rng)
        state = result.state
        assert state.budget == self.state.budget - 1000
        assert state.parties["player"].polling_in("limburg") == self.state.parties["player"].polling_in("limburg")

    def test_regional_scope(self):
        """Radio reaches the whole region and no further."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.RADIO, "antwerp"), self.rng)
        state = result.state
        assert state.parties["player"].polling_in("limburg") > self.state.parties["player"].polling_in("limburg")
        assert state.parties["player"].polling_in("hainaut") == self.state.parties["player"].polling_in("hainaut")

    def test_national_scope(self):
        """A TV ad spends the whole war chest and reaches every region."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.TV_AD, "antwerp"), self.rng)
        state = result.state
        assert state.budget == 0.0
        assert state.energy == self.state.energy
        for cid in ("limburg", "hainaut", "brussels_capital"):
            assert state.parties["player"].polling_in(cid) > self.state.parties["player"].polling_in(cid)

    def test_campaign_stats_updated(self):
        """Campaigning raises awareness in the constituency."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.DOOR_TO_DOOR, "antwerp"), self.rng)
        before = self.state.parties["player"].campaign_stats["antwerp"]
        after = result.state.parties["player"].campaign_stats["antwerp"]
        assert after.awareness > before.awareness

    def test_not_enough_budget(self):
        """An unaffordable action is refused and changes nothing."""
        poor = self.state.model_copy(update={"budget": 100.0})
        result = perform_campaign_action(poor, CampaignAction(Medium.TV_AD, "antwerp"), self.rng)
        assert not result.success
        assert result.state is poor
        assert result.message == "Not enough resources."

    def test_not_enough_energy(self):
        """A rally needs three energy points."""
        tired = self.state.model_copy(update={"energy": 1})
        assert not perform_campaign_action(tired, CampaignAction(Medium.RALLY, "antwerp"), self.rng).success

    def test_negative_spend_refused(self):
        """Negative spending is refused and never refills the budget."""
        action = CampaignAction(Medium.TV_AD, "antwerp", budget=-10000)
        result = perform_campaign_action(self.state, action, self.rng)
        assert not result.success
        assert result.state is self.state
        assert result.message == "Campaign spending cannot be negative."

    def test_zero_spend_on_paid_medium_refused(self):
        """A paid medium cannot be bought for nothing."""
        action = CampaignAction(Medium.SOCIAL_MEDIA, "antwerp", budget=0)
        result = perform_campaign_action(self.state, action, self.rng)
        assert not result.success
        assert result.state is self.state

    def test_smaller_spend_smaller_gain(self):
        """Spending less than the base cost buys a smaller polling gain."""
        full = perform_campaign_action(self.state, CampaignAction(Medium.SOCIAL_MEDIA, "antwerp"), random.Random(1))
        cheap = perform_campaign_action(
            self.state, CampaignAction(Medium.SOCIAL_MEDIA, "antwerp", budget=250), random.Random(1)
        )
        assert cheap.state.budget == self.state.budget - 250
        assert 0 < cheap.details["polling_delta"] < full.details["polling_delta"]

    def test_ineligible_constituency(self):
        """Parties cannot campaign where they do not run."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.DOOR_TO_DOOR, "hainaut"), self.rng, party_id="nva")
        assert not result.success
        assert not perform_campaign_action(self.state, CampaignAction(Medium.DOOR_TO_DOOR, "atlantis"), self.rng).success

    def test_ai_party_does_not_pay(self):
        """Only the player's budget is charged."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.TV_AD, "antwerp"), self.rng, party_id="nva")
        assert result.success
        assert result.state.budget == self.state.budget

    def test_rally_updates_head_of_list(self):
        """A rally moves the head of list's popularity by five points."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.RALLY, "antwerp"), self.rng)
        before = self.state.parties["player"].politicians["antwerp"][0].popularity
        after = result.state.parties["player"].politicians["antwerp"][0].popularity
        swing = 5.0 if result.details["outcome"] == "success" else -5.0
        assert after == max(0.0, min(100.0, before + swing))

    def test_actions_logged(self):
        """Every action leaves a dated entry in the event log."""
        result = perform_campaign_action(self.state, CampaignAction(Medium.DOOR_TO_DOOR, "antwerp"), self.rng)
        assert result.state.event_log[-1].startswith("Week 1: ")

    def test_select_constituency(self):
        """Only known constituencies can be selected."""
        assert select_constituency(self.state, "liege").state.selected_constituency == "liege"
        assert not select_constituency(self.state, "atlantis").success


class TestFundraise:

    def setup_method(self):
        self.state = build_default_scenario(random.Random(8))

    def test_energy_for_money(self):
        """A fundraiser trades two energy for 1000 at a polling cost."""
        result = fundraise(self.state, "antwerp")
        assert result.success
        assert result.state.budget == self.state.budget + 1000
        assert result.state.energy == self.state.energy - 2
        assert result.state.parties["player"].polling_in("antwerp") < self.state.parties["player"].polling_in("antwerp")
        assert polling_totals(result.state)["antwerp"] == pytest.approx(100.0)
        assert result.state.event_log[-1] == "Week 1: Fundraiser in Antwerp filled the war chest."

    def test_defaults_to_selected_constituency(self):
        """Without a constituency the fundraiser is held in the selected one."""
        result = fundraise(self.state)
        assert result.success
        assert "Antwerp" in result.message

    def test_needs_energy(self):
        """A fundraiser needs two energy points."""
        tired = self.state.model_copy(update={"energy": 1})
        result = fundraise(tired, "antwerp")
        assert not result.success
        assert result.state is tired

    def test_campaign_only(self):
        """Fundraisers are a campaign activity."""
        governing = self.state.model_copy(update={"phase": GamePhase.GOVERNING})
        assert not fundraise(governing, "antwerp").success
        assert not fundraise(self.state, "atlantis").success


class TestReorderList:

    def setup_method(self):
        self.state = build_default_scenario(random.Random(8))
        self.candidates = self.state.parties["player"].politicians["antwerp"]

    def test_swap_with_head_of_list(self):
        """Moving a candidate to the top swaps places with the head of list."""
        third = next(p for p in self.candidates if p.list_position == 3)
        first = next(p for p in self.candidates if p.list_position == 1)
        result = reorder_list(self.state, "antwerp", third.id, 1)
        assert result.success
        party = result.state.parties["player"]
        assert lead_candidate(party, "antwerp").id == third.id
        moved = {p.id: p.list_position for p in party.politicians["antwerp"]}
        assert moved[first.id] == 3
        assert sorted(moved.values()) == sorted(p.list_position for p in self.candidates)

    def test_invalid_moves(self):
        """Unknown candidates, positions and constituencies are refused."""
        first = self.candidates[0]
        assert not reorder_list(self.state, "antwerp", first.id, 99).success
        assert not reorder_list(self.state, "antwerp", "nobody", 1).success
        assert not reorder_list(self.state, "hainaut", first.id, 1).success

    def test_lists_closed_after_campaign(self):
        """Lists cannot change once the campaign is over."""
        closed = self.state.model_copy(update={"phase": GamePhase.FORMATION})
        result = reorder_list(closed, "antwerp", self.candidates[1].id, 1)
        assert not result.success
        assert result.state is closed


class TestTurnCycle:

    def setup_method(self):
        self.state = build_default_scenario(random.Random(9), max_turns=3)

    def test_ai_moves_keep_ledger_sound(self):
        """AI campaigning keeps every constituency at 100%."""
        state = ai_moves(self.state, random.Random(1))
        assert state.parties["nva"] != self.state.parties["nva"]
        for total in polling_totals(state).values():
            assert total == pytest.approx(100.0, abs=1e-6)

    def test_next_week_refills_energy(self):
        """A new week refills the player's energy."""
        tired = self.state.model_copy(update={"energy": 0})
        state = end_turn(tired, random.Random(1))
        assert state.turn == 2
        assert state.energy == state.max_energy
        assert state.phase == GamePhase.CAMPAIGN

    def test_election_at_horizon(self):
        """The election is held at the end of the last campaign week."""
        rng = random.Random(1)
        state = self.state
        while state.phase == GamePhase.CAMPAIGN:
            state = end_turn(state.model_copy(update={"pending_event": None}), rng)
        assert state.turn == 3
        assert state.seats_in_parliament == 150
        assert state.phase in (GamePhase.FORMATION, GamePhase.GOVERNING)
        if state.phase == GamePhase.FORMATION:
            assert state.informateur is not None
        is_valid, _, message = verify_invariants(state)
        assert is_valid, message

    def test_governing_turn_advances(self):
        """A stable government carries on to the next turn."""
        governing = self.state.model_copy(
            update={"phase": GamePhase.GOVERNING, "government": Government(partners=["player"], stability=90.0)}
        )
        state = end_turn(governing, random.Random(1))
        assert state.turn == 2
        assert state.phase == GamePhase.GOVERNING

    def test_collapse_restarts_campaign(self):
        """A collapsed government sends the game back to week 1 of a campaign."""
        governing = self.state.model_copy(
            update={"phase": GamePhase.GOVERNING, "turn": 5, "government": Government(partners=["player"], stability=0.0)}
        )
        state = end_turn(governing, random.Random(1))
        assert state.phase == GamePhase.CAMPAIGN
        assert state.turn == 1


class TestOfferCoalition:
    """The player's own coalition offer, on a fixed chamber."""

    def setup_method(self):
        self.state = _make_formation_state()

    def test_offer_forms_government(self):
        """A balanced offer to a willing partner installs the government."""
        result = offer_coalition(self.state, {"player": 2, "b": 2})
        assert result.success, result.message
        government = result.state.government
        assert government.partners == ["player", "b"]
        assert government.prime_minister.id == "player-fl-1"
        assert {m.party_id for m in government.ministers} == {"player", "b"}
        assert result.state.parties["b"].ministries == 2
        assert result.state.parties["player"].ministries == 2
        assert result.state.phase == GamePhase.GOVERNING

    def test_outside_minister_refused(self):
        """Portfolios for a party outside the talks fail validation."""
        result = offer_coalition(self.state, {"player": 1, "x": 1})
        assert not result.success
        assert result.details["rule"] == "cabinet_membership"
        assert "X" in result.message
        assert result.state is self.state

    def test_unbalanced_cabinet_refused(self):
        """A cabinet with more French than Dutch speakers breaks parity."""
        result = offer_coalition(self.state, {"player": 1, "b": 2})
        assert not result.success
        assert result.details["rule"] == "cabinet_parity"

    def test_extremist_in_talks_refused(self):
        """Talks with an extremist party hit the cordon sanitaire."""
        talks = self.state.model_copy(update={"coalition_partners": ["x"]})
        result = offer_coalition(talks, {"player": 2, "x": 2})
        assert not result.success
        assert result.details["rule"] == "cordon_sanitaire"
        assert result.state.government is None

    def test_offer_without_majority(self):
        """Going it alone with 40 seats is not a majority."""
        alone = self.state.model_copy(update={"coalition_partners": []})
        result = offer_coalition(alone, {"player": 2})
        assert not result.success
        assert result.details["rule"] == "majority"


class TestAttemptFormation:

    def setup_method(self):
        self.state = _make_formation_state()

    def test_informateur_forms_government(self):
        """The informateur forms the only minimal winning coalition."""
        result = attempt_formation(self.state)
        assert result.success, result.message
        assert result.state.government.partners == ["player", "b"]
        assert result.state.phase == GamePhase.GOVERNING

    def test_needs_informateur(self):
        """Formation cannot start before an informateur is appointed."""
        result = attempt_formation(self.state.model_copy(update={"informateur": None}))
        assert not result.success

    def test_no_majority_possible(self):
        """Without a democratic majority every attempt fails."""
        parties = {
            **self.state.parties,
            "b": self.state.parties["b"].model_copy(update={"total_seats": 20}),
        }
        result = attempt_formation(self.state.with_parties(parties))
        assert not result.success
        assert result.message == "No majority coalition is possible."
