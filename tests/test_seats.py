"""
Tests for the D'Hondt seat allocator and the election run.

Validates:
- Hand-computed D'Hondt quotient tables
- Constituency threshold
- Seat totals, monotonicity and purity
- Deterministic tie-break in party order
- Election outcome: seats, parliament and next phase
"""

from __future__ import annotations

import random

from belpolsim.electoral.seats import (
    allocate,
    coalition_possibilities,
    elect_candidates,
    is_projected_majority,
    project_seats,
    run_election,
    threshold_eligible,
)
from belpolsim.persistence.store import verify_invariants
from belpolsim.state.scenario import build_default_scenario
from belpolsim.state.schema import (
    Constituency,
    ElectoralRules,
    GamePhase,
    GameState,
    Language,
    Party,
    Politician,
    Region,
)


def _make_candidates(party_id: str, constituency_id: str, count: int) -> list[Politician]:
    return [
        Politician(
            id=f"{party_id}-{constituency_id}-{n}",
            name=f"Candidate {n}",
            party_id=party_id,
            language=Language.DUTCH,
            constituency=constituency_id,
            list_position=n,
        )
        for n in range(1, count + 1)
    ]


def _make_state(polling: dict[str, float], seats: int = 10, majority: int = 6, extremist: tuple = ()) -> GameState:
    parties = {
        pid: Party(
            id=pid,
            name=pid.upper(),
            is_extremist=pid in extremist,
            eligible_constituencies=["c1"],
            constituency_polling={"c1": share},
            politicians={"c1": _make_candidates(pid, "c1", seats)},
        )
        for pid, share in polling.items()
    }
    return GameState(
        player_party_id=next(iter(polling)),
        parties=parties,
        constituencies={"c1": Constituency(id="c1", name="One", region=Region.FLANDERS, seats=seats)},
        rules=ElectoralRules(total_seats=seats, majority_seats=majority),
    )


class TestAllocate:
    """D'Hondt allocation on a single constituency snapshot."""

    def test_hand_computed_table(self):
        """50/30/20 over ten seats gives 5/3/2."""
        # Quotients: a 50 25 16.7 12.5 10 | b 30 15 10 | c 20 10
        assert allocate({"a": 50, "b": 30, "c": 20}, 10) == {"a": 5, "b": 3, "c": 2}

    def test_party_below_threshold_gets_nothing(self):
        """Parties under 5% win no seats."""
        seats = allocate({"a": 60, "b": 36, "c": 4}, 10, threshold_pct=5.0)
        assert seats["c"] == 0
        assert seats["a"] + seats["b"] == 10

    def test_threshold_is_inclusive(self):
        """A party at exactly 5% clears the threshold."""
        assert threshold_eligible({"a": 95, "b": 5}, 5.0) == ["a", "b"]

    def test_threshold_counts_all_votes(self):
        """The threshold is measured against every vote cast."""
        # 4.5% of the constituency total
        assert threshold_eligible({"a": 95.5, "b": 4.5}, 5.0) == ["a"]

    def test_no_eligible_party_gives_zeros(self):
        """When nobody clears the threshold nobody wins a seat."""
        assert allocate({"a": 0, "b": 0}, 10) == {"a": 0, "b": 0}
        assert allocate({"a": 60, "b": 40}, 10, threshold_pct=100.0) == {"a": 0, "b": 0}

    def test_empty_snapshot(self):
        """An empty snapshot allocates nothing."""
        assert allocate({}, 10) == {}

    def test_zero_seats(self):
        """Zero seats to fill gives every party zero."""
        assert allocate({"a": 60, "b": 40}, 0) == {"a": 0, "b": 0}

    def test_tie_goes_to_first_party(self):
        """Equal quotients go to the first party in order."""
        assert allocate({"a": 50, "b": 50}, 1) == {"a": 1, "b": 0}
        assert allocate({"b": 50, "a": 50}, 1) == {"b": 1, "a": 0}

    def test_sum_equals_seats(self):
        """Every seat is allocated."""
        rng = random.Random(3)
        for _ in range(100):
            polling = {pid: rng.uniform(5, 60) for pid in "abcdef"}
            seats = rng.randint(1, 30)
            result = allocate(polling, seats)
            assert sum(result.values()) == seats
            assert all(v >= 0 for v in result.values())

    def test_monotonic_in_own_share(self):
        """More votes never cost a party a seat."""
        base = {"a": 20.0, "b": 45.0, "c": 35.0}
        previous = allocate(base, 12)["a"]
        for share in range(21, 80, 3):
            seats = allocate({**base, "a": float(share)}, 12)["a"]
            assert seats >= previous
            previous = seats

    def test_pure(self):
        """Allocation does not change its input."""
        polling = {"a": 50, "b": 30, "c": 20}
        first = allocate(polling, 10)
        assert allocate(polling, 10) == first
        assert polling == {"a": 50, "b": 30, "c": 20}


class TestElectCandidates:

    def test_top_of_list_elected(self):
        """Seats go to the top of the list."""
        candidates = list(reversed(_make_candidates("a", "c1", 4)))
        elected = elect_candidates(candidates, 2)
        assert [p.list_position for p in elected if p.is_elected] == [1, 2]
        assert len(elected) == 4


class TestRunElection:

    def test_hung_parliament_goes_to_consultation(self):
        """Without a player majority the King consults."""
        state = run_election(_make_state({"a": 50, "b": 30, "c": 20}))
        assert {pid: p.total_seats for pid, p in state.parties.items()} == {"a": 5, "b": 3, "c": 2}
        assert state.phase == GamePhase.CONSULTATION
        assert state.government is None
        assert len(state.parliament) == 10
        assert state.event_log[-1].startswith("ELECTION OVER! You won 5 seats")

    def test_player_majority_governs_alone(self):
        """A player majority governs without a coalition."""
        state = run_election(_make_state({"a": 70, "b": 20, "c": 10}))
        assert state.parties["a"].total_seats >= 6
        assert state.phase == GamePhase.GOVERNING
        assert state.government.partners == ["a"]
        assert state.government.stability == state.rules.stability_baseline

    def test_elected_flags_match_seats(self):
        """As many candidates are elected as the party won seats."""
        state = run_election(_make_state({"a": 50, "b": 30, "c": 20}))
        for party in state.parties.values():
            elected = [p for p in party.politicians["c1"] if p.is_elected]
            assert len(elected) == party.total_seats

    def test_second_election_resets(self):
        """A second election starts from an empty chamber."""
        state = run_election(_make_state({"a": 50, "b": 30, "c": 20}))
        again = run_election(state)
        assert again.seats_in_parliament == 10
        assert len(again.parliament) == 10

    def test_default_scenario_fills_chamber(self):
        """The default scenario fills all 150 seats and stays sound."""
        state = run_election(build_default_scenario(random.Random(11)))
        assert state.seats_in_parliament == 150
        is_valid, _, message = verify_invariants(state)
        assert is_valid, message


class TestProjections:

    def test_projection_does_not_touch_state(self):
        """Projections leave the state as it was."""
        state = _make_state({"a": 50, "b": 30, "c": 20})
        projections = project_seats(state)
        assert [p.projected_seats for p in projections] == [5, 3, 2]
        assert state.seats_in_parliament == 0

    def test_projection_matches_election(self):
        """The projection predicts the election result."""
        state = build_default_scenario(random.Random(5))
        projected = {p.party_id: p.projected_seats for p in project_seats(state)}
        elected = run_election(state)
        assert projected == {pid: p.total_seats for pid, p in elected.parties.items()}

    def test_projected_majority(self):
        """A majority is projected only when one party clears half the seats."""
        assert is_projected_majority(_make_state({"a": 70, "b": 20, "c": 10}))
        assert not is_projected_majority(_make_state({"a": 50, "b": 30, "c": 20}))

    def test_coalition_possibilities_skip_extremists(self):
        """Two-party combinations leave out extremist parties."""
        state = _make_state({"a": 40, "b": 35, "c": 25}, extremist=("b",))
        options = coalition_possibilities(state)
        assert options == [("c", 6)]
