"""
Game State Schema — Pydantic models for every entity of the simulation.

These models are the canonical data structures shared by the engine and any
external driver (UI, persistence, headless runner). Every model is frozen:
engine operations never mutate a record, they return a new one built with
``model_copy(update=...)``.

Conventions:
    Stance positions use the 0..100 scale, salience the 0..10 scale.
    Polling values are percentages; per constituency the eligible parties
    always sum to 100.
    Dictionary order is significant: parties are iterated in insertion order,
    which is the documented D'Hondt tie-break order.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field, computed_field


# ════════════════════════════════════════════════════════════════
# Enumerations
# ════════════════════════════════════════════════════════════════


class Region(str, enum.Enum):
    """Federated regions; each constituency belongs to exactly one."""

    FLANDERS = "flanders"
    WALLONIA = "wallonia"
    BRUSSELS = "brussels"


class Language(str, enum.Enum):
    """Politician language group (drives the cabinet parity rule)."""

    DUTCH = "dutch"
    FRENCH = "french"
    GERMAN = "german"


class DemographicGroup(str, enum.Enum):
    """Voter groups with distinct media consumption."""

    YOUTH = "youth"
    RETIREES = "retirees"
    WORKERS = "workers"
    UPPER_CLASS = "upper_class"


class GamePhase(str, enum.Enum):
    """Game flow: campaign → election → consultation → formation → governing."""

    CAMPAIGN = "campaign"
    ELECTION = "election"
    CONSULTATION = "consultation"
    FORMATION = "formation"
    GOVERNING = "governing"


class BillStatus(str, enum.Enum):
    """Bill lifecycle. A bill terminates at PASSED or REJECTED."""

    PROPOSED = "proposed"
    VOTING = "voting"
    PASSED = "passed"
    REJECTED = "rejected"


class PolicyScale(str, enum.Enum):
    """Representation of a bill's target position."""

    UNIT = "unit"  # 0..100, same scale as stances
    SIGNED = "signed"  # -100..100, against/for


class VotePosition(str, enum.Enum):
    """Party positions in a parliamentary vote."""

    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


# ════════════════════════════════════════════════════════════════
# Base
# ════════════════════════════════════════════════════════════════


class FrozenModel(BaseModel):
    """Immutable record. Derive new values with ``model_copy(update=...)``."""

    model_config = {"frozen": True}


# ════════════════════════════════════════════════════════════════
# Actors and Geography
# ════════════════════════════════════════════════════════════════


class Stance(FrozenModel):
    """How strongly, and in what direction, a party cares about an issue."""

    issue_id: str
    position: float = Field(ge=0, le=100, description="Ideal policy on the 0..100 scale")
    salience: float = Field(ge=0, le=10, description="Importance of the issue (0..10)")


class Ideology(FrozenModel):
    """Two-axis ideology on the -10..10 scale."""

    economic: float = Field(default=0.0, ge=-10, le=10)
    social: float = Field(default=0.0, ge=-10, le=10)


class Issue(FrozenModel):
    """A policy issue parties take positions on."""

    id: str
    name: str
    description: str = ""
    competency: str = Field(default="Federal", description="Federal, Regional or Community")


class Politician(FrozenModel):
    """An individual candidate or member of parliament."""

    id: str
    name: str
    party_id: str
    language: Language
    constituency: str
    is_elected: bool = False
    charisma: int = Field(default=5, ge=1, le=10, description="Affects rally effectiveness")
    expertise: int = Field(default=5, ge=1, le=10, description="Affects debate performance")
    internal_clout: int = Field(default=50, ge=0, le=100)
    list_position: int = Field(ge=1, description="1-based position on the electoral list")
    popularity: float = Field(default=50.0, ge=0, le=100)
    ministerial_role: str | None = None


class DemographicWeights(FrozenModel):
    """Population breakdown of a constituency; weights sum to about 1."""

    youth: float = 0.25
    retirees: float = 0.25
    workers: float = 0.30
    upper_class: float = 0.20

    def weight(self, group: DemographicGroup) -> float:
        return getattr(self, group.value)

    def largest(self) -> DemographicGroup:
        """The demographic group with the highest weight (first wins ties)."""
        return max(DemographicGroup, key=self.weight)


class Constituency(FrozenModel):
    """An electoral district with a fixed, pre-apportioned seat count."""

    id: str
    name: str
    region: Region
    seats: int = Field(ge=0)
    electorate: int = Field(
        default=0, ge=0, description="Registered voters; population proxy for cost-per-vote"
    )
    demographics: DemographicWeights = Field(default_factory=DemographicWeights)


class CampaignStats(FrozenModel):
    """Three-stat campaign model per party and constituency (each 0..100)."""

    awareness: float = Field(default=20.0, ge=0, le=100)
    favorability: float = Field(default=20.0, ge=0, le=100)
    enthusiasm: float = Field(default=20.0, ge=0, le=100)


class Party(FrozenModel):
    """
    A political party.

    ``constituency_polling`` holds the vote share per constituency; it is only
    meaningful for constituencies listed in ``eligible_constituencies``.
    ``negotiation_threshold`` is the friction the party tolerates when it
    evaluates a coalition offer.
    """

    id: str
    name: str
    color: str = ""
    is_extremist: bool = Field(default=False, description="Subject to the cordon sanitaire")
    ideology: Ideology = Field(default_factory=Ideology)
    stances: list[Stance] = Field(default_factory=list)
    eligible_constituencies: list[str] = Field(default_factory=list)
    campaign_stats: dict[str, CampaignStats] = Field(default_factory=dict)
    constituency_polling: dict[str, float] = Field(default_factory=dict)
    constituency_seats: dict[str, int] = Field(default_factory=dict)
    total_seats: int = Field(default=0, ge=0)
    politicians: dict[str, list[Politician]] = Field(default_factory=dict)
    negotiation_threshold: float = Field(default=50.0, ge=0, le=100)
    ministries: int = Field(default=0, ge=0)

    def stance_on(self, issue_id: str) -> Stance | None:
        """Return the party's stance on an issue, or None if it has none."""
        for stance in self.stances:
            if stance.issue_id == issue_id:
                return stance
        return None

    def contests(self, constituency_id: str) -> bool:
        return constituency_id in self.eligible_constituencies

    def polling_in(self, constituency_id: str) -> float:
        return self.constituency_polling.get(constituency_id, 0.0)

    def candidates(self) -> list[Politician]:
        """All politicians of the party, constituency by constituency."""
        return [p for c in self.eligible_constituencies for p in self.politicians.get(c, [])]


# ════════════════════════════════════════════════════════════════
# Coalition and Government
# ════════════════════════════════════════════════════════════════


class CoalitionProposal(FrozenModel):
    """A coalition offer: partners, common platform and portfolio split."""

    partners: list[str] = Field(description="Ordered partner party ids; the first leads")
    policy_stances: list[Stance] = Field(
        default_factory=list, description="Negotiated common platform"
    )
    ministries_offered: dict[str, int] = Field(
        default_factory=dict, description="Ministries per partner"
    )
    ministers: list[Politician] = Field(
        default_factory=list, description="Appointed ministers, prime minister excluded"
    )
    prime_minister: Politician | None = None


class CoalitionAgreement(FrozenModel):
    """The agreed platform and ministry distribution of a government."""

    policy_compromises: list[Stance] = Field(default_factory=list)
    ministerial_distribution: dict[str, int] = Field(default_factory=dict)


class Government(FrozenModel):
    """The ruling coalition. Created once per election cycle."""

    partners: list[str]
    prime_minister: Politician | None = None
    ministers: list[Politician] = Field(default_factory=list)
    agreement: CoalitionAgreement = Field(default_factory=CoalitionAgreement)
    stability: float = Field(default=50.0, ge=0, le=100)


# ════════════════════════════════════════════════════════════════
# Legislation
# ════════════════════════════════════════════════════════════════


class BillEffects(FrozenModel):
    """Effects applied when a bill passes."""

    budget_impact: float = 0.0
    approval_impact: float = 0.0
    stability_impact: float = 0.0


class Bill(FrozenModel):
    """A legislative proposal on a single issue."""

    id: str
    issue_id: str
    target_position: float
    scale: PolicyScale = PolicyScale.UNIT
    sponsor: str
    status: BillStatus = BillStatus.PROPOSED
    effects: BillEffects = Field(default_factory=BillEffects)
    votes: dict[str, VotePosition] = Field(
        default_factory=dict, description="Per-party vote breakdown once voted"
    )


class LegislativeRecord(FrozenModel):
    """Sponsor-attributed history entry for a concluded vote."""

    bill_id: str
    issue_id: str
    sponsor: str
    status: BillStatus
    yes: int
    no: int
    abstain: int
    turn: int


class NationalBudget(FrozenModel):
    """Federal finances (millions of euro)."""

    revenue: float = 0.0
    expenses: float = 0.0
    debt: float = 0.0
    deficit: float = 0.0
    last_year_growth: float = 0.0


class ActiveCrisis(FrozenModel):
    """A national crisis awaiting the government's response."""

    crisis_id: str
    turns_remaining: int = Field(ge=0, description="Governing turns left before the crisis runs its course")


# ════════════════════════════════════════════════════════════════
# Scenario Rules and Game State
# ════════════════════════════════════════════════════════════════


class ElectoralRules(FrozenModel):
    """
    Fixed scenario parameters. Passed in with the state, never read from
    the environment.
    """

    total_seats: int = 150
    majority_seats: int = 76
    threshold_pct: float = Field(default=5.0, ge=0, le=100)
    stability_baseline: float = Field(default=50.0, ge=0, le=100)
    ministry_sweetener: float = Field(
        default=10.0, ge=0, description="Friction removed per ministry offered"
    )
    near_threshold: float = Field(
        default=15.0, description="Opposition votes FOR below this distance"
    )
    far_threshold: float = Field(
        default=25.0, description="Opposition votes AGAINST above this distance"
    )
    coalition_loyalty_bonus: float = 50.0
    failed_bill_stability_penalty: float = 10.0


class GameState(FrozenModel):
    """The complete, serializable state threaded through every engine call."""

    turn: int = 1
    max_turns: int = 8
    phase: GamePhase = GamePhase.CAMPAIGN
    budget: float = 5000.0
    energy: int = 5
    max_energy: int = 5

    player_party_id: str = "player"
    selected_constituency: str = ""
    coalition_partners: list[str] = Field(default_factory=list)
    pending_event: str | None = Field(default=None, description="Campaign event awaiting a choice")

    parties: dict[str, Party] = Field(default_factory=dict)
    constituencies: dict[str, Constituency] = Field(default_factory=dict)
    issues: dict[str, Issue] = Field(default_factory=dict)
    rules: ElectoralRules = Field(default_factory=ElectoralRules)

    parliament: list[Politician] = Field(default_factory=list)
    government: Government | None = None
    informateur: str | None = None

    national_budget: NationalBudget = Field(default_factory=NationalBudget)
    public_approval: float = Field(default=50.0, ge=0, le=100)
    crises: list[ActiveCrisis] = Field(default_factory=list)
    bills: list[Bill] = Field(default_factory=list)
    legislative_history: list[LegislativeRecord] = Field(default_factory=list)

    event_log: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def seats_in_parliament(self) -> int:
        """Total seats currently held across all parties."""
        return sum(p.total_seats for p in self.parties.values())

    def eligible_parties(self, constituency_id: str) -> list[str]:
        """Party ids contesting a constituency, in party order."""
        return [pid for pid, p in self.parties.items() if p.contests(constituency_id)]

    def with_party(self, party: Party) -> GameState:
        """Return a copy with one party replaced."""
        return self.model_copy(update={"parties": {**self.parties, party.id: party}})

    def with_parties(self, parties: dict[str, Party]) -> GameState:
        return self.model_copy(update={"parties": parties})

    def logged(self, *messages: str) -> GameState:
        """Return a copy with messages appended to the event log."""
        return self.model_copy(update={"event_log": [*self.event_log, *messages]})

    def is_coalition_member(self, party_id: str) -> bool:
        return self.government is not None and party_id in self.government.partners


class ActionResult(FrozenModel):
    """Outcome of a state-changing operation that may be refused."""

    state: GameState
    success: bool
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
