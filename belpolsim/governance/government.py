"""
Government Formation — Institutional validity, partner acceptance and cabinet assembly.

A coalition proposal must clear two independent hurdles before a government
is installed:

1. VALIDITY (institutional). Ordered checks, the first failure wins:
   majority of seats, cordon sanitaire, cabinet drawn from the partners
   only, linguistic parity of the cabinet. The prime minister is not
   counted for parity.
2. ACCEPTANCE (preferential). Every non-player partner compares its
   friction with the proposed platform, reduced by the ministries it is
   offered, against its own negotiation threshold.

Rule failures are returned as data (``ValidationResult``), never raised; the
caller re-prompts. Consultation (appointing the informateur), the coalition
search and partner toggling live here too, since they feed the same loop.

References:
    Constitution Art. 99 — linguistic parity of the Council of Ministers
    Cordon sanitaire agreement among the democratic parties
    Royal consultations — appointment of an informateur
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from itertools import combinations

from belpolsim.electoral.seats import allocate
from belpolsim.governance.friction import (
    coalition_friction,
    effective_friction,
    friction_of,
    policy_compromise,
)
from belpolsim.state.schema import (
    ActionResult,
    CoalitionAgreement,
    CoalitionProposal,
    GamePhase,
    GameState,
    Government,
    Language,
    Party,
    Politician,
    Stance,
)

logger = logging.getLogger(__name__)

PARITY_LANGUAGES = (Language.DUTCH, Language.FRENCH)
DEFAULT_CABINET_SIZE = 14
MAX_COALITION_SIZE = 5

PORTFOLIOS = [
    "Finance",
    "Foreign Affairs",
    "Interior",
    "Justice",
    "Defence",
    "Health",
    "Economy",
    "Employment",
    "Pensions",
    "Mobility",
    "Energy",
    "Social Affairs",
    "Budget",
    "Development Cooperation",
    "Digitalisation",
    "Asylum and Migration",
]


# ════════════════════════════════════════════════════════════════
# Results
# ════════════════════════════════════════════════════════════════


class GovernmentRule(str, enum.Enum):
    """Institutional rules, in evaluation order."""

    MAJORITY = "majority"
    CORDON_SANITAIRE = "cordon_sanitaire"
    CABINET_MEMBERSHIP = "cabinet_membership"
    CABINET_PARITY = "cabinet_parity"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a coalition proposal."""

    valid: bool
    reason: str
    rule: GovernmentRule | None = None


@dataclass(frozen=True)
class OfferEvaluation:
    """An AI party's answer to a coalition offer."""

    party_id: str
    accepted: bool
    friction: float
    effective_friction: float
    threshold: float
    reason: str


@dataclass
class CoalitionOption:
    """A minimal winning coalition found by the search."""

    partners: list[str]
    seats: int
    friction: float
    surplus: int = 0
    names: list[str] = field(default_factory=list)


# ════════════════════════════════════════════════════════════════
# Validity
# ════════════════════════════════════════════════════════════════


def coalition_seats(state: GameState, partners: list[str]) -> int:
    """Seats held by the partners; unknown party ids count as 0."""
    return sum(state.parties[pid].total_seats for pid in partners if pid in state.parties)


def language_counts(ministers: list[Politician]) -> dict[Language, int]:
    return {lang: sum(1 for m in ministers if m.language == lang) for lang in PARITY_LANGUAGES}


def validate(proposal: CoalitionProposal, state: GameState) -> ValidationResult:
    """
    Check a coalition proposal against the institutional rules.

    Args:
        proposal: Partners, platform and cabinet under consideration.
        state: Current game state (seat counts, extremist flags, rules).

    Returns:
        ValidationResult naming the first rule that fails, or a valid result.
    """
    required = state.rules.majority_seats
    seats = coalition_seats(state, proposal.partners)
    if seats < required:
        return ValidationResult(
            valid=False,
            rule=GovernmentRule.MAJORITY,
            reason=(
                f"Not enough seats for a majority: requires {required} seats, "
                f"coalition holds {seats}."
            ),
        )

    for pid in proposal.partners:
        party = state.parties.get(pid)
        if party is not None and party.is_extremist:
            return ValidationResult(
                valid=False,
                rule=GovernmentRule.CORDON_SANITAIRE,
                reason=f"Cordon sanitaire: cannot form a government with {party.name}.",
            )

    cabinet = [*proposal.ministers]
    if proposal.prime_minister is not None:
        cabinet.append(proposal.prime_minister)
    for minister in cabinet:
        if minister.party_id not in proposal.partners:
            outsider = state.parties.get(minister.party_id)
            name = outsider.name if outsider is not None else minister.party_id
            return ValidationResult(
                valid=False,
                rule=GovernmentRule.CABINET_MEMBERSHIP,
                reason=f"{minister.name} of {name} cannot serve: {name} is not a coalition partner.",
            )

    pm_id = proposal.prime_minister.id if proposal.prime_minister else None
    counts = language_counts([m for m in proposal.ministers if m.id != pm_id])
    dutch, french = counts[Language.DUTCH], counts[Language.FRENCH]
    if dutch != french:
        return ValidationResult(
            valid=False,
            rule=GovernmentRule.CABINET_PARITY,
            reason=(
                f"Cabinet parity not respected: {dutch} Dutch-speaking and "
                f"{french} French-speaking ministers."
            ),
        )

    return ValidationResult(valid=True, reason="Government is valid.")


# ════════════════════════════════════════════════════════════════
# Acceptance
# ════════════════════════════════════════════════════════════════


def evaluate_offer(state: GameState, party_id: str, proposal: CoalitionProposal) -> OfferEvaluation:
    """
    Decide whether an AI party accepts a coalition offer.

    The party accepts when its friction with the proposed platform, after
    ministry sweeteners, is strictly below its negotiation threshold.
    Ministries count only when the party is one of the proposal's partners.
    """
    party = state.parties.get(party_id)
    if party is None:
        return OfferEvaluation(party_id, False, 0.0, 0.0, 0.0, f"Unknown party: {party_id}")

    raw = friction_of(party, proposal.policy_stances)
    ministries = proposal.ministries_offered.get(party_id, 0) if party_id in proposal.partners else 0
    effective = effective_friction(raw, ministries, state.rules.ministry_sweetener)
    accepted = effective < party.negotiation_threshold

    if accepted:
        reason = f"{party.name} accepts: the platform is acceptable to its members."
    else:
        sore = max(
            proposal.policy_stances,
            key=lambda s: policy_compromise(party, s.issue_id, s.position),
            default=None,
        )
        issue = f" on {sore.issue_id}" if sore is not None else ""
        reason = (
            f"{party.name} refuses: friction {effective:.1f} is not below its tolerance of "
            f"{party.negotiation_threshold:.0f}; the compromise{issue} is too great."
        )

    logger.info(
        "Offer evaluated by %s: friction=%.1f effective=%.1f threshold=%.1f accepted=%s",
        party_id, raw, effective, party.negotiation_threshold, accepted,
    )
    return OfferEvaluation(
        party_id=party_id,
        accepted=accepted,
        friction=raw,
        effective_friction=effective,
        threshold=party.negotiation_threshold,
        reason=reason,
    )


# ════════════════════════════════════════════════════════════════
# Consultation and Coalition Search
# ════════════════════════════════════════════════════════════════


def select_informateur(state: GameState) -> str | None:
    """The largest party outside the cordon sanitaire (first wins ties)."""
    ranked = sorted(state.parties.values(), key=lambda p: p.total_seats, reverse=True)
    for party in ranked:
        if not party.is_extremist:
            return party.id
    return ranked[0].id if ranked else None


def appoint_informateur(state: GameState) -> GameState:
    """Royal consultation: appoint the informateur and open formation talks."""
    informateur = select_informateur(state)
    if informateur is None:
        return state
    name = state.parties[informateur].name
    is_player = informateur == state.player_party_id
    message = (
        "The King has appointed you as Informateur. Find a majority coalition."
        if is_player
        else f"The King has appointed {name} as Informateur."
    )
    logger.info("Informateur appointed: %s", informateur)
    return state.model_copy(
        update={"informateur": informateur, "phase": GamePhase.FORMATION}
    ).logged(message)


def minimal_winning_coalitions(
    state: GameState,
    include: str | None = None,
    max_size: int = MAX_COALITION_SIZE,
) -> list[CoalitionOption]:
    """
    Minimal winning coalitions among parties outside the cordon sanitaire.

    A coalition is minimal when dropping any partner loses the majority.

    Args:
        state: Game state with seat counts.
        include: Only return coalitions containing this party.
        max_size: Largest number of partners considered.

    Returns:
        Options ranked by coalition friction, then surplus seats.
    """
    quota = state.rules.majority_seats
    seats = {
        pid: p.total_seats
        for pid, p in state.parties.items()
        if not p.is_extremist and p.total_seats > 0
    }
    options = []
    for size in range(1, min(max_size, len(seats)) + 1):
        for combo in combinations(seats, size):
            if include is not None and include not in combo:
                continue
            total = sum(seats[pid] for pid in combo)
            if total >= quota and all(total - seats[pid] < quota for pid in combo):
                partners = list(combo)
                if include is not None:
                    partners.remove(include)
                    partners.insert(0, include)
                options.append(
                    CoalitionOption(
                        partners=partners,
                        seats=total,
                        friction=coalition_friction(state, partners),
                        surplus=total - quota,
                        names=[state.parties[pid].name for pid in partners],
                    )
                )
    return sorted(options, key=lambda o: (o.friction, o.surplus))


def toggle_partner(state: GameState, party_id: str) -> ActionResult:
    """Add a party to, or remove it from, the coalition being negotiated."""
    party = state.parties.get(party_id)
    if party is None:
        return ActionResult(state=state, success=False, message=f"Unknown party: {party_id}")
    if party_id == state.player_party_id:
        return ActionResult(state=state, success=False, message="You lead the negotiation.")
    if party.is_extremist:
        return ActionResult(
            state=state,
            success=False,
            message=f"Cordon sanitaire: cannot negotiate with {party.name}.",
        )

    if party_id in state.coalition_partners:
        partners = [pid for pid in state.coalition_partners if pid != party_id]
        message = f"{party.name} removed from coalition talks."
    else:
        partners = [*state.coalition_partners, party_id]
        message = f"{party.name} added to coalition talks."
    new_state = state.model_copy(update={"coalition_partners": partners}).logged(message)
    return ActionResult(state=new_state, success=True, message=message)


# ════════════════════════════════════════════════════════════════
# Platform and Cabinet
# ════════════════════════════════════════════════════════════════


def negotiate_platform(state: GameState, partners: list[str]) -> list[Stance]:
    """
    Common platform of a coalition.

    On each issue any partner cares about, the agreed position is the
    average of partner positions weighted by salience and seats; the
    agreed salience is the highest among partners.
    """
    by_issue: dict[str, list[tuple[Stance, int]]] = {}
    for pid in partners:
        party = state.parties.get(pid)
        if party is None:
            continue
        for stance in party.stances:
            by_issue.setdefault(stance.issue_id, []).append((stance, max(1, party.total_seats)))

    platform = []
    for issue_id, entries in by_issue.items():
        weight = sum(s.salience * seats for s, seats in entries)
        if weight > 0:
            position = sum(s.position * s.salience * seats for s, seats in entries) / weight
        else:
            position = sum(s.position for s, _ in entries) / len(entries)
        platform.append(
            Stance(issue_id=issue_id, position=position, salience=max(s.salience for s, _ in entries))
        )
    return platform


def _ranked(politicians: list[Politician]) -> list[Politician]:
    """Best-placed first: elected, then list position, then clout."""
    return sorted(politicians, key=lambda p: (not p.is_elected, p.list_position, -p.internal_clout))


def prime_minister_of(party: Party) -> Politician | None:
    ranked = _ranked(party.candidates())
    return ranked[0] if ranked else None


def assign_ministers(
    state: GameState,
    ministries: dict[str, int],
    exclude: set[str] | None = None,
) -> list[Politician]:
    """
    Each partner supplies its best-placed politicians for the ministries it
    is offered. Politicians whose ids are in ``exclude`` are skipped.
    """
    exclude = exclude or set()
    ministers = []
    for pid, count in ministries.items():
        party = state.parties.get(pid)
        if party is None or count <= 0:
            continue
        pool = [p for p in _ranked(party.candidates()) if p.id not in exclude]
        ministers.extend(pool[:count])
    return ministers


def cabinet_plan(
    state: GameState,
    partners: list[str],
    cabinet_size: int = DEFAULT_CABINET_SIZE,
) -> dict[str, dict[Language, int]]:
    """
    Split a cabinet into equal Dutch and French halves, each half shared
    among partners in proportion to their elected members of that language.
    """
    half = cabinet_size // 2
    plan: dict[str, dict[Language, int]] = {pid: {} for pid in partners}
    for language in PARITY_LANGUAGES:
        members = {
            pid: float(sum(
                1 for p in state.parties[pid].candidates()
                if p.is_elected and p.language == language
            ))
            for pid in partners
            if pid in state.parties
        }
        for pid, count in allocate(members, half, threshold_pct=0.0).items():
            if count:
                plan[pid][language] = count
    return plan


def propose_coalition(
    state: GameState,
    partners: list[str],
    cabinet_size: int = DEFAULT_CABINET_SIZE,
) -> CoalitionProposal:
    """
    Build a complete proposal for a set of partners, lead partner first.

    The lead partner's best-placed politician becomes prime minister. The
    rest of the cabinet follows ``cabinet_plan`` so each partner fills its
    Dutch and French seats with its own best-placed speakers of that
    language.
    """
    lead = state.parties.get(partners[0]) if partners else None
    prime_minister = prime_minister_of(lead) if lead else None
    taken = {prime_minister.id} if prime_minister else set()

    ministers: list[Politician] = []
    offered: dict[str, int] = {}
    for pid, seats_by_language in cabinet_plan(state, partners, cabinet_size).items():
        party = state.parties[pid]
        for language, count in seats_by_language.items():
            pool = [
                p for p in _ranked(party.candidates())
                if p.language == language and p.id not in taken
            ][:count]
            ministers.extend(pool)
            taken.update(p.id for p in pool)
            offered[pid] = offered.get(pid, 0) + len(pool)

    return CoalitionProposal(
        partners=list(partners),
        policy_stances=negotiate_platform(state, partners),
        ministries_offered=offered,
        ministers=ministers,
        prime_minister=prime_minister,
    )


# ════════════════════════════════════════════════════════════════
# Formation
# ════════════════════════════════════════════════════════════════


def form_government(state: GameState, proposal: CoalitionProposal) -> ActionResult:
    """
    Install a government from a proposal.

    The proposal must be valid and accepted by every partner other than the
    player. On success the government starts at the baseline stability,
    ministers receive their portfolios and each party's ministry count is
    updated.
    """
    validation = validate(proposal, state)
    if not validation.valid:
        logger.info("Coalition rejected on %s: %s", validation.rule.value, validation.reason)
        return ActionResult(
            state=state,
            success=False,
            message=validation.reason,
            details={"rule": validation.rule.value},
        )

    for pid in proposal.partners:
        if pid == state.player_party_id:
            continue
        evaluation = evaluate_offer(state, pid, proposal)
        if not evaluation.accepted:
            return ActionResult(
                state=state,
                success=False,
                message=evaluation.reason,
                details={"refused_by": pid, "friction": evaluation.effective_friction},
            )

    roles: dict[str, str] = {}
    if proposal.prime_minister is not None:
        roles[proposal.prime_minister.id] = "Prime Minister"
    ministers = []
    for index, minister in enumerate(m for m in proposal.ministers if m.id not in roles):
        role = PORTFOLIOS[index % len(PORTFOLIOS)]
        roles[minister.id] = role
        ministers.append(minister.model_copy(update={"ministerial_role": role}))
    prime_minister = (
        proposal.prime_minister.model_copy(update={"ministerial_role": "Prime Minister"})
        if proposal.prime_minister is not None
        else None
    )

    distribution = {pid: 0 for pid in proposal.partners}
    for minister in ministers:
        if minister.party_id in distribution:
            distribution[minister.party_id] += 1

    parties = {}
    for pid, party in state.parties.items():
        politicians = {
            cid: [
                p.model_copy(update={"ministerial_role": roles.get(p.id)})
                for p in candidates
            ]
            for cid, candidates in party.politicians.items()
        }
        parties[pid] = party.model_copy(
            update={"ministries": distribution.get(pid, 0), "politicians": politicians}
        )

    government = Government(
        partners=list(proposal.partners),
        prime_minister=prime_minister,
        ministers=ministers,
        agreement=CoalitionAgreement(
            policy_compromises=list(proposal.policy_stances),
            ministerial_distribution=distribution,
        ),
        stability=state.rules.stability_baseline,
    )

    names = ", ".join(state.parties[pid].name for pid in proposal.partners if pid in state.parties)
    message = f"Government formed: {names}."
    logger.info("Government formed by %s with %d ministers", proposal.partners, len(ministers))
    new_state = state.model_copy(
        update={
            "parties": parties,
            "government": government,
            "coalition_partners": [pid for pid in proposal.partners if pid != state.player_party_id],
            "phase": GamePhase.GOVERNING,
        }
    ).logged(message)
    return ActionResult(state=new_state, success=True, message=message)
