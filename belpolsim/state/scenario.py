"""
Default Scenario — The Belgian federal election.

Builds the starting ``GameState``: eleven constituencies sharing the 150
seats of the Chamber, nine parties (the player's green list plus eight
established parties, two of them behind the cordon sanitaire), twelve
policy issues and a full candidate list per party and constituency.

Candidate attributes are drawn from the injected random source, so the
same seed always yields the same scenario.

References:
    Chamber of Representatives — 150 seats, majority of 76
    Electoral Code — 5% constituency threshold
"""

from __future__ import annotations

import logging
import random

from belpolsim.state.schema import (
    CampaignStats,
    Constituency,
    DemographicWeights,
    ElectoralRules,
    GamePhase,
    GameState,
    Ideology,
    Issue,
    Language,
    NationalBudget,
    Party,
    Politician,
    Region,
    Stance,
)

logger = logging.getLogger(__name__)

INITIAL_BUDGET = 5000.0
INITIAL_ENERGY = 5
MAX_TURNS = 8


# ════════════════════════════════════════════════════════════════
# Constituencies
# ════════════════════════════════════════════════════════════════

# id: (name, region, seats, electorate, demographics)
CONSTITUENCIES: dict[str, tuple[str, Region, int, int, DemographicWeights]] = {
    "antwerp": ("Antwerp", Region.FLANDERS, 24, 1_380_000, DemographicWeights()),
    "east_flanders": ("East Flanders", Region.FLANDERS, 20, 1_170_000, DemographicWeights()),
    "flemish_brabant": (
        "Flemish Brabant",
        Region.FLANDERS,
        15,
        870_000,
        DemographicWeights(youth=0.22, retirees=0.25, workers=0.28, upper_class=0.25),
    ),
    "limburg": (
        "Limburg",
        Region.FLANDERS,
        12,
        680_000,
        DemographicWeights(youth=0.22, retirees=0.26, workers=0.36, upper_class=0.16),
    ),
    "west_flanders": (
        "West Flanders",
        Region.FLANDERS,
        16,
        930_000,
        DemographicWeights(youth=0.20, retirees=0.32, workers=0.30, upper_class=0.18),
    ),
    "hainaut": (
        "Hainaut",
        Region.WALLONIA,
        17,
        980_000,
        DemographicWeights(youth=0.24, retirees=0.26, workers=0.38, upper_class=0.12),
    ),
    "liege": ("Liège", Region.WALLONIA, 14, 790_000, DemographicWeights()),
    "luxembourg": (
        "Luxembourg",
        Region.WALLONIA,
        4,
        220_000,
        DemographicWeights(youth=0.24, retirees=0.30, workers=0.30, upper_class=0.16),
    ),
    "namur": ("Namur", Region.WALLONIA, 7, 370_000, DemographicWeights()),
    "walloon_brabant": (
        "Walloon Brabant",
        Region.WALLONIA,
        5,
        300_000,
        DemographicWeights(youth=0.22, retirees=0.24, workers=0.22, upper_class=0.32),
    ),
    "brussels_capital": (
        "Brussels-Capital",
        Region.BRUSSELS,
        16,
        730_000,
        DemographicWeights(youth=0.34, retirees=0.18, workers=0.30, upper_class=0.18),
    ),
}


# ════════════════════════════════════════════════════════════════
# Issues
# ════════════════════════════════════════════════════════════════

ISSUES: list[Issue] = [
    Issue(id="taxation", name="Taxation Level",
          description="Overall level of personal and corporate tax."),
    Issue(id="immigration", name="Immigration Policy",
          description="Strictness of immigration laws."),
    Issue(id="environment", name="Environmental Protection",
          description="Investment in green energy and climate goals.", competency="Regional"),
    Issue(id="security", name="Law and Order",
          description="Funding for police and the justice system."),
    Issue(id="social_welfare", name="Social Welfare",
          description="Generosity of unemployment benefits and social programs."),
    Issue(id="state_reform", name="State Reform",
          description="Devolution of powers to the regions."),
    Issue(id="nuclear_exit", name="Nuclear Exit",
          description="Speed of phasing out nuclear power."),
    Issue(id="wealth_tax", name="Wealth Tax",
          description="A tax on large fortunes."),
    Issue(id="regional_autonomy", name="Regional Autonomy",
          description="Level of self-governance for the regions."),
    Issue(id="strict_immigration", name="Strict Immigration",
          description="Enforcement of strict immigration rules."),
    Issue(id="public_transport", name="Public Transport Investment",
          description="Funding for trains and buses.", competency="Regional"),
    Issue(id="retirement_67", name="Retirement Age",
          description="Keeping the retirement age at 67."),
]


# ════════════════════════════════════════════════════════════════
# Parties
# ════════════════════════════════════════════════════════════════

ALL_REGIONS = (Region.FLANDERS, Region.WALLONIA, Region.BRUSSELS)
FLEMISH = (Region.FLANDERS, Region.BRUSSELS)
FRANCOPHONE = (Region.WALLONIA, Region.BRUSSELS)

# (id, name, color, regions, base polling, (economic, social),
#  [(issue, position, salience)], negotiation threshold, extremist)
PARTY_SPECS = [
    ("player", "Ecolo-Groen (You)", "#22c55e", ALL_REGIONS, 12.0, (-6, -7),
     [("nuclear_exit", 80, 9), ("wealth_tax", 75, 8), ("strict_immigration", 20, 4)],
     50.0, False),
    ("nva", "N-VA", "#eab308", FLEMISH, 25.0, (6, 5),
     [("regional_autonomy", 90, 10), ("strict_immigration", 85, 8), ("wealth_tax", 10, 6)],
     40.0, False),
    ("vb", "Vlaams Belang", "#1f2937", FLEMISH, 22.0, (2, 9),
     [("strict_immigration", 100, 10), ("nuclear_exit", 50, 3), ("public_transport", 30, 2)],
     20.0, True),
    ("vooruit", "Vooruit", "#ef4444", FLEMISH, 15.0, (-4, -3),
     [("wealth_tax", 85, 9), ("public_transport", 80, 7), ("retirement_67", 20, 8)],
     60.0, False),
    ("cdv", "CD&V", "#f97316", FLEMISH, 12.0, (2, 4),
     [("retirement_67", 70, 7), ("nuclear_exit", 40, 5)],
     70.0, False),
    ("ps", "PS", "#dc2626", FRANCOPHONE, 25.0, (-7, -4),
     [("wealth_tax", 90, 9), ("retirement_67", 15, 8), ("regional_autonomy", 30, 5)],
     50.0, False),
    ("mr", "MR", "#2563eb", FRANCOPHONE, 22.0, (7, -2),
     [("nuclear_exit", 20, 6), ("wealth_tax", 5, 8)],
     50.0, False),
    ("ptb", "PTB-PVDA", "#991b1b", ALL_REGIONS, 15.0, (-9, -5),
     [("wealth_tax", 100, 10), ("public_transport", 90, 7), ("retirement_67", 0, 9)],
     20.0, True),
    ("lesengages", "Les Engagés", "#06b6d4", FRANCOPHONE, 15.0, (0, 2),
     [("retirement_67", 60, 6), ("nuclear_exit", 60, 5)],
     65.0, False),
]

FIRST_NAMES = {
    Language.DUTCH: ["Jan", "Els", "Pieter", "Lotte", "Bart", "Sofie", "Wouter", "An", "Koen", "Lien"],
    Language.FRENCH: ["Jean", "Marie", "Pierre", "Sophie", "Luc", "Claire", "Olivier", "Anne", "Marc", "Julie"],
}
LAST_NAMES = {
    Language.DUTCH: ["Peeters", "Janssens", "Maes", "Jacobs", "Willems", "Claes", "Goossens", "Wouters"],
    Language.FRENCH: ["Dubois", "Lambert", "Dupont", "Martin", "Simon", "Laurent", "Leclercq", "Renard"],
}


REGION_LANGUAGE = {Region.FLANDERS: Language.DUTCH, Region.WALLONIA: Language.FRENCH}


def _candidate_list(
    rng: random.Random,
    party_id: str,
    constituency: Constituency,
) -> list[Politician]:
    """Candidates speak the region's language; Brussels lists are mixed."""
    candidates = []
    for position in range(1, constituency.seats + 1):
        language = REGION_LANGUAGE.get(constituency.region)
        if language is None:
            language = rng.choice([Language.DUTCH, Language.FRENCH])
        name = f"{rng.choice(FIRST_NAMES[language])} {rng.choice(LAST_NAMES[language])}"
        candidates.append(
            Politician(
                id=f"{party_id}-{constituency.id}-{position}",
                name=name,
                party_id=party_id,
                language=language,
                constituency=constituency.id,
                charisma=rng.randint(1, 10),
                expertise=rng.randint(1, 10),
                internal_clout=rng.randint(0, 99),
                list_position=position,
                popularity=float(rng.randint(0, 99)),
            )
        )
    return candidates


def build_constituencies() -> dict[str, Constituency]:
    return {
        cid: Constituency(
            id=cid, name=name, region=region, seats=seats,
            electorate=electorate, demographics=demographics,
        )
        for cid, (name, region, seats, electorate, demographics) in CONSTITUENCIES.items()
    }


def normalize_polling(parties: dict[str, Party], constituencies: dict[str, Constituency]) -> dict[str, Party]:
    """
    Rescale raw polling so eligible parties sum to 100 in every constituency.

    Constituencies where every eligible party polls zero are split evenly.
    """
    polling: dict[str, dict[str, float]] = {pid: dict(p.constituency_polling) for pid, p in parties.items()}
    for cid in constituencies:
        eligible = [pid for pid, p in parties.items() if p.contests(cid)]
        if not eligible:
            continue
        total = sum(polling[pid].get(cid, 0.0) for pid in eligible)
        for pid in eligible:
            if total > 0:
                polling[pid][cid] = polling[pid].get(cid, 0.0) / total * 100
            else:
                polling[pid][cid] = 100 / len(eligible)
    return {
        pid: p.model_copy(update={"constituency_polling": polling[pid]})
        for pid, p in parties.items()
    }


def build_default_scenario(
    rng: random.Random | None = None,
    rules: ElectoralRules | None = None,
    max_turns: int = MAX_TURNS,
) -> GameState:
    """
    Create the starting state of a Belgian federal campaign.

    Args:
        rng: Random source for candidate attributes. Defaults to a fresh
            unseeded generator.
        rules: Scenario parameters. Defaults to the Belgian constants.
        max_turns: Campaign horizon in turns (weeks).

    Returns:
        A GameState in the CAMPAIGN phase with normalized polling.
    """
    rng = rng or random.Random()
    constituencies = build_constituencies()

    parties: dict[str, Party] = {}
    for pid, name, color, regions, base, (econ, social), stances, threshold, extremist in PARTY_SPECS:
        eligible = [cid for cid, c in constituencies.items() if c.region in regions]
        parties[pid] = Party(
            id=pid,
            name=name,
            color=color,
            is_extremist=extremist,
            ideology=Ideology(economic=econ, social=social),
            stances=[Stance(issue_id=i, position=pos, salience=sal) for i, pos, sal in stances],
            eligible_constituencies=eligible,
            campaign_stats={cid: CampaignStats() for cid in eligible},
            constituency_polling={cid: base for cid in eligible},
            constituency_seats={cid: 0 for cid in eligible},
            politicians={
                cid: _candidate_list(rng, pid, constituencies[cid]) for cid in eligible
            },
            negotiation_threshold=threshold,
        )

    parties = normalize_polling(parties, constituencies)
    rules = rules or ElectoralRules(total_seats=sum(c.seats for c in constituencies.values()))

    logger.info(
        "Built default scenario: %d parties, %d constituencies, %d seats",
        len(parties), len(constituencies), rules.total_seats,
    )

    return GameState(
        turn=1,
        max_turns=max_turns,
        phase=GamePhase.CAMPAIGN,
        budget=INITIAL_BUDGET,
        energy=INITIAL_ENERGY,
        max_energy=INITIAL_ENERGY,
        player_party_id="player",
        selected_constituency="antwerp",
        parties=parties,
        constituencies=constituencies,
        issues={issue.id: issue for issue in ISSUES},
        rules=rules,
        national_budget=NationalBudget(
            revenue=120_000.0,
            expenses=126_000.0,
            debt=600_000.0,
            deficit=-6_000.0,
            last_year_growth=1.2,
        ),
        public_approval=50.0,
        event_log=[f"The campaign begins. {max_turns} weeks until election day."],
    )
