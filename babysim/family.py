"""
babysim/family.py
~~~~~~~~~~~~~~~~~
Family-wide state: cohesion, stress, resource strain and the other household
dimensions, plus the parenting style and communication pattern that colour
every decision.

Public entry points:
  - initialize_family_dynamics: one weighted style draw, one pattern draw
  - handle_crisis: stress / cohesion / per-child shock
  - new_child_impact: household cost of a new arrival
  - update_favoritism: attention bookkeeping after a decision
  - family_overview: labelled snapshot for display layers
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel, to_snake

from babysim.character import ChildCharacter, DevelopmentEvent, EventType, ImpactSnapshot
from babysim.utils import clamp, reduce_with_floor

if TYPE_CHECKING:
    from babysim.config_models import FamilyConfig
    from babysim.rng import RandomSource
    from babysim.sibling import SiblingRelationship

logger = logging.getLogger(__name__)

# Crisis shock floors: a crisis never pushes these values below the floor.
RELATIONSHIP_CRISIS_COHESION_FLOOR = 20
OTHER_CRISIS_COHESION_FLOOR = 30
CRISIS_RESILIENCE_FLOOR = 20
CRISIS_CONFIDENCE_FLOOR = 25

FAVORITISM_TARGET_BONUS = 5
FAVORITISM_OTHERS_BONUS = 2
FAVORITISM_FINANCE_TRIGGER = -5000


# ---------------------------------------------------------------------------
#  Enums
# ---------------------------------------------------------------------------

class ParentingStyle(str, Enum):
    AUTHORITATIVE = "authoritative"
    AUTHORITARIAN = "authoritarian"
    PERMISSIVE = "permissive"
    NEGLECTFUL = "neglectful"
    ADAPTIVE = "adaptive"


class CommunicationPattern(str, Enum):
    OPEN = "open"
    HEALTHY = "healthy"
    RESTRICTED = "restricted"
    CHAOTIC = "chaotic"
    CONFLICT_AVOIDANT = "conflict-avoidant"


class CrisisType(str, Enum):
    FINANCIAL = "financial"
    HEALTH = "health"
    RELATIONSHIP = "relationship"
    EXTERNAL = "external"


class CrisisSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class BirthCircumstance(str, Enum):
    PLANNED = "planned"
    SURPRISE = "surprise"
    TWINS = "twins"
    ADOPTION = "adoption"


# ---------------------------------------------------------------------------
#  Records
# ---------------------------------------------------------------------------

# Numeric household dimensions, all bounded to [0, 100].
DYNAMICS_FIELDS = (
    "cohesion",
    "stress",
    "resource_strain",
    "attachment_security",
    "resilience",
    "emotional_expressiveness",
    "boundary_clarity",
    "traditional_values",
    "adaptability",
)


class FamilyDynamics(BaseModel):
    cohesion: float = Field(ge=0.0, le=100.0)
    stress: float = Field(ge=0.0, le=100.0)
    resource_strain: float = Field(ge=0.0, le=100.0)
    attachment_security: float = Field(default=70.0, ge=0.0, le=100.0)
    resilience: float = Field(default=60.0, ge=0.0, le=100.0)
    emotional_expressiveness: float = Field(default=60.0, ge=0.0, le=100.0)
    boundary_clarity: float = Field(default=60.0, ge=0.0, le=100.0)
    traditional_values: float = Field(default=50.0, ge=0.0, le=100.0)
    adaptability: float = Field(default=60.0, ge=0.0, le=100.0)
    favoritism: dict[str, float] = Field(default_factory=dict)
    parenting_style: ParentingStyle = ParentingStyle.AUTHORITATIVE
    communication_pattern: CommunicationPattern = CommunicationPattern.OPEN


class FamilyDynamicsDelta(BaseModel):
    """Sparse change to FamilyDynamics as carried by an option payload."""

    cohesion: float = 0.0
    stress: float = 0.0
    resource_strain: float = 0.0
    attachment_security: float = 0.0
    resilience: float = 0.0
    emotional_expressiveness: float = 0.0
    boundary_clarity: float = 0.0
    traditional_values: float = 0.0
    adaptability: float = 0.0
    favoritism: dict[str, float] = Field(default_factory=dict)
    communication_pattern: CommunicationPattern | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


class CrisisReport(BaseModel):
    crisis_type: CrisisType
    severity: CrisisSeverity
    actual_impact: float
    stress_before: float
    stress_after: float
    cohesion_before: float
    cohesion_after: float
    child_impacts: dict[str, float] = Field(default_factory=dict)


class BirthImpact(BaseModel):
    cohesion: float = 0.0
    stress: float = 0.0
    resource_strain: float = 0.0
    happiness: float = 0.0
    finances: float = 0.0


class FamilyOverview(BaseModel):
    child_count: int
    oldest_child_id: str | None = None
    youngest_child_id: str | None = None
    stress_level: str
    cohesion_level: str
    strongest_bond: tuple[str, str] | None = None
    weakest_bond: tuple[str, str] | None = None


# ---------------------------------------------------------------------------
#  Initialisation
# ---------------------------------------------------------------------------

def initialize_family_dynamics(tables: FamilyConfig, rng: RandomSource) -> FamilyDynamics:
    """
    Draw the parenting style (cumulative over the configured weights, in file
    order) and then a communication pattern from that style's option set.
    """
    styles = list(tables.parentingStyleWeights.keys())
    weights = list(tables.parentingStyleWeights.values())
    style = rng.weighted_choice(styles, weights)
    pattern = rng.choice(tables.communicationPatterns[style])

    profile = tables.baseDynamics.model_dump()
    profile.update(tables.styleProfiles.get(style, {}))
    values = {to_snake(key): value for key, value in profile.items()}

    logger.debug("Initialised family with %s style and %s communication.", style.value, pattern.value)
    return FamilyDynamics(**values, parenting_style=style, communication_pattern=pattern)


def apply_dynamics_delta(dynamics: FamilyDynamics, delta: FamilyDynamicsDelta) -> None:
    for field in DYNAMICS_FIELDS:
        change = getattr(delta, field)
        if change:
            setattr(dynamics, field, clamp(getattr(dynamics, field) + change))
    for child_id, change in delta.favoritism.items():
        dynamics.favoritism[child_id] = clamp(dynamics.favoritism.get(child_id, 0.0) + change)
    if delta.communication_pattern is not None:
        dynamics.communication_pattern = delta.communication_pattern


# ---------------------------------------------------------------------------
#  Crisis engine
# ---------------------------------------------------------------------------

def age_vulnerability(age: int) -> float:
    if age < 8:
        return 1.5
    if age < 12:
        return 1.2
    return 1.0


def handle_crisis(
    dynamics: FamilyDynamics,
    children: Iterable[ChildCharacter],
    crisis_type: CrisisType,
    severity: CrisisSeverity,
    tables: FamilyConfig,
) -> CrisisReport:
    """
    Apply a crisis to the household in place.

    The shock is scaled by family resilience, raises stress, erodes cohesion
    (harder for relationship crises) and hits each child according to age
    and attachment security.
    """
    crisis_type = CrisisType(crisis_type)
    severity = CrisisSeverity(severity)
    base_impact = tables.crisisBaseImpact[severity]
    actual_impact = base_impact * (0.5 + (100 - dynamics.resilience) / 100)

    stress_before = dynamics.stress
    cohesion_before = dynamics.cohesion
    dynamics.stress = min(100.0, dynamics.stress + actual_impact)
    if crisis_type is CrisisType.RELATIONSHIP:
        dynamics.cohesion = reduce_with_floor(
            dynamics.cohesion, actual_impact * 0.8, RELATIONSHIP_CRISIS_COHESION_FLOOR
        )
    else:
        dynamics.cohesion = reduce_with_floor(
            dynamics.cohesion, actual_impact * 0.3, OTHER_CRISIS_COHESION_FLOOR
        )

    attachment_protection = dynamics.attachment_security / 100 * 0.5
    child_impacts: dict[str, float] = {}
    for child in children:
        child_impact = actual_impact * age_vulnerability(child.age) * (1 - attachment_protection)
        child_impacts[child.id] = child_impact
        changes: dict[str, float] = {}

        if child_impact > 20:
            trait = child.get_trait("resilience")
            if trait is not None:
                before = trait.value
                trait.value = reduce_with_floor(trait.value, child_impact * 0.3, CRISIS_RESILIENCE_FLOOR)
                changes["resilience"] = trait.value - before
        if child_impact > 25:
            trait = child.get_trait("confidence")
            if trait is not None:
                before = trait.value
                trait.value = reduce_with_floor(trait.value, child_impact * 0.2, CRISIS_CONFIDENCE_FLOOR)
                changes["confidence"] = trait.value - before

        child.record(DevelopmentEvent(
            age=child.age,
            type=EventType.CRISIS,
            description=f"Family {crisis_type.value} crisis ({severity.value})",
            impact=ImpactSnapshot(traits=changes),
        ))

    logger.info(
        "%s %s crisis: impact %.1f, stress %.1f -> %.1f, cohesion %.1f -> %.1f",
        severity.value.capitalize(), crisis_type.value, actual_impact,
        stress_before, dynamics.stress, cohesion_before, dynamics.cohesion,
    )
    return CrisisReport(
        crisis_type=crisis_type,
        severity=severity,
        actual_impact=actual_impact,
        stress_before=stress_before,
        stress_after=dynamics.stress,
        cohesion_before=cohesion_before,
        cohesion_after=dynamics.cohesion,
        child_impacts=child_impacts,
    )


# ---------------------------------------------------------------------------
#  New arrivals and favoritism
# ---------------------------------------------------------------------------

def new_child_impact(
    tables: FamilyConfig,
    circumstances: BirthCircumstance,
    existing_child_count: int,
) -> BirthImpact:
    """Household cost of a new child; every existing child adds to the strain."""
    rules = tables.newChildImpact
    base = rules.base.model_dump()
    per_child = rules.perExistingChild.model_dump()
    adjustment = rules.circumstances.get(BirthCircumstance(circumstances))
    extra = adjustment.model_dump() if adjustment is not None else {}

    totals = {
        key: base.get(key, 0.0) + per_child.get(key, 0.0) * existing_child_count + extra.get(key, 0.0)
        for key in base
    }
    return BirthImpact(**{to_snake(key): value for key, value in totals.items()})


def apply_birth_impact(dynamics: FamilyDynamics, impact: BirthImpact) -> None:
    dynamics.cohesion = clamp(dynamics.cohesion + impact.cohesion)
    dynamics.stress = clamp(dynamics.stress + impact.stress)
    dynamics.resource_strain = clamp(dynamics.resource_strain + impact.resource_strain)


def update_favoritism(
    dynamics: FamilyDynamics,
    target_child_id: str,
    child_ids: Iterable[str],
    happiness: float,
    finances: float,
) -> bool:
    """
    A decision that pleases or spends heavily on one child registers as
    attention: the target gains more than the others. Returns whether it fired.
    """
    if not (happiness > 0 or finances < FAVORITISM_FINANCE_TRIGGER):
        return False
    for child_id in child_ids:
        bonus = FAVORITISM_TARGET_BONUS if child_id == target_child_id else FAVORITISM_OTHERS_BONUS
        dynamics.favoritism[child_id] = clamp(dynamics.favoritism.get(child_id, 0.0) + bonus)
    return True


# ---------------------------------------------------------------------------
#  Overview
# ---------------------------------------------------------------------------

def stress_level(stress: float) -> str:
    if stress >= 80:
        return "Critical"
    if stress >= 60:
        return "High"
    if stress >= 30:
        return "Moderate"
    return "Low"


def cohesion_level(cohesion: float) -> str:
    if cohesion >= 80:
        return "Excellent"
    if cohesion >= 60:
        return "Good"
    if cohesion >= 40:
        return "Fair"
    return "Poor"


def family_overview(
    children: dict[str, ChildCharacter],
    dynamics: FamilyDynamics,
    sibling_relationships: list[SiblingRelationship],
) -> FamilyOverview:
    ordered = sorted(children.values(), key=lambda child: child.age)
    strongest = max(sibling_relationships, key=lambda rel: rel.bond, default=None)
    weakest = min(sibling_relationships, key=lambda rel: rel.bond, default=None)
    return FamilyOverview(
        child_count=len(children),
        oldest_child_id=ordered[-1].id if ordered else None,
        youngest_child_id=ordered[0].id if ordered else None,
        stress_level=stress_level(dynamics.stress),
        cohesion_level=cohesion_level(dynamics.cohesion),
        strongest_bond=strongest.pair if strongest is not None else None,
        weakest_bond=weakest.pair if weakest is not None else None,
    )
