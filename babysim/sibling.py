"""
babysim/sibling.py
~~~~~~~~~~~~~~~~~~
Pairwise sibling relationships.

A ``SiblingRelationship`` describes an unordered pair: child ids are stored
sorted, so the same two children always produce the same record no matter
which one is passed first. Formation depends on the age gap and the family's
cohesion, stress and attachment security; relationships then drift year to
year with trait compatibility.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from babysim.character import ChildCharacter
from babysim.family import CommunicationPattern, FamilyDynamics
from babysim.peers import compatibility, drift_amount, trait_map
from babysim.utils import clamp

logger = logging.getLogger(__name__)

BASE_BOND = 60.0
BASE_RIVALRY = 30.0
BASE_COOPERATION = 50.0

SIBLING_SCORE_FIELDS = ("bond", "rivalry", "cooperation", "jealousy", "supportiveness")


# ---------------------------------------------------------------------------
#  Enums
# ---------------------------------------------------------------------------

class SiblingRelationshipType(str, Enum):
    CLOSE = "close"
    PROTECTIVE = "protective"
    COMPETITIVE = "competitive"
    DISTANT = "distant"
    NEUTRAL = "neutral"


class ConflictResolution(str, Enum):
    COLLABORATIVE = "collaborative"
    INDEPENDENT = "independent"
    AVOIDANT = "avoidant"
    AGGRESSIVE = "aggressive"
    PARENT_MEDIATED = "parent-mediated"


class DevelopmentalStage(str, Enum):
    PARALLEL_PLAY = "parallel-play"
    COOPERATIVE = "cooperative"
    COMPETITIVE = "competitive"
    MENTORING = "mentoring"
    INDEPENDENT = "independent"


class DominancePattern(str, Enum):
    OLDER_LEADS = "older-leads"
    YOUNGER_LEADS = "younger-leads"
    EQUAL = "equal"
    SITUATIONAL = "situational"


# ---------------------------------------------------------------------------
#  Records
# ---------------------------------------------------------------------------

class BirthOrderDynamics(BaseModel):
    dominance_pattern: DominancePattern = DominancePattern.SITUATIONAL
    responsibility_sharing: float = Field(default=50.0, ge=0.0, le=100.0)
    protectiveness: float = Field(default=50.0, ge=0.0, le=100.0)


class SiblingRelationship(BaseModel):
    child_id1: str
    child_id2: str
    bond: float = Field(ge=0.0, le=100.0)
    rivalry: float = Field(ge=0.0, le=100.0)
    cooperation: float = Field(ge=0.0, le=100.0)
    jealousy: float = Field(default=0.0, ge=0.0, le=100.0)
    supportiveness: float = Field(default=50.0, ge=0.0, le=100.0)
    relationship_type: SiblingRelationshipType = SiblingRelationshipType.NEUTRAL
    conflict_resolution: ConflictResolution = ConflictResolution.PARENT_MEDIATED
    developmental_stage: DevelopmentalStage = DevelopmentalStage.INDEPENDENT
    birth_order_dynamics: BirthOrderDynamics = Field(default_factory=BirthOrderDynamics)
    shared_interests: list[str] = Field(default_factory=list)
    last_interaction: int = 0

    @model_validator(mode="after")
    def canonical_pair(self) -> SiblingRelationship:
        if self.child_id1 == self.child_id2:
            raise ValueError("A sibling relationship needs two different children.")
        if self.child_id2 < self.child_id1:
            self.child_id1, self.child_id2 = self.child_id2, self.child_id1
        return self

    @property
    def pair(self) -> tuple[str, str]:
        return self.child_id1, self.child_id2

    def involves(self, child_id: str) -> bool:
        return child_id in (self.child_id1, self.child_id2)

    def matches(self, first_id: str, second_id: str) -> bool:
        return {first_id, second_id} == {self.child_id1, self.child_id2}


class SiblingRelationshipDelta(BaseModel):
    bond: float = 0.0
    rivalry: float = 0.0
    cooperation: float = 0.0
    jealousy: float = 0.0
    supportiveness: float = 0.0
    relationship_type: SiblingRelationshipType | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

    def combined(self, other: SiblingRelationshipDelta) -> SiblingRelationshipDelta:
        return SiblingRelationshipDelta(
            bond=self.bond + other.bond,
            rivalry=self.rivalry + other.rivalry,
            cooperation=self.cooperation + other.cooperation,
            jealousy=self.jealousy + other.jealousy,
            supportiveness=self.supportiveness + other.supportiveness,
            relationship_type=other.relationship_type or self.relationship_type,
        )


class SiblingEffect(BaseModel):
    """What a decision about one child does to a sibling."""

    traits: dict[str, float] = Field(default_factory=dict)
    relationship: SiblingRelationshipDelta | None = None

    model_config = {"extra": "ignore"}

    def combined(self, other: SiblingEffect) -> SiblingEffect:
        traits = dict(self.traits)
        for trait_id, delta in other.traits.items():
            traits[trait_id] = traits.get(trait_id, 0) + delta
        if self.relationship is None:
            relationship = other.relationship
        elif other.relationship is None:
            relationship = self.relationship
        else:
            relationship = self.relationship.combined(other.relationship)
        return SiblingEffect(traits=traits, relationship=relationship)


# ---------------------------------------------------------------------------
#  Classification
# ---------------------------------------------------------------------------

def classify_relationship(bond: float, rivalry: float, age_gap: int) -> SiblingRelationshipType:
    """
    Protective is checked first: a wide age gap with a solid bond reads as an
    older child looking after a younger one even when the bond is also close.
    """
    if bond > 60 and age_gap > 4:
        return SiblingRelationshipType.PROTECTIVE
    if bond > 70 and rivalry < 30:
        return SiblingRelationshipType.CLOSE
    if rivalry > 60:
        return SiblingRelationshipType.COMPETITIVE
    if bond < 40 and rivalry < 40:
        return SiblingRelationshipType.DISTANT
    return SiblingRelationshipType.NEUTRAL


def developmental_stage(younger_age: int, age_gap: int) -> DevelopmentalStage:
    if younger_age < 3:
        return DevelopmentalStage.PARALLEL_PLAY
    if younger_age < 6 and age_gap < 3:
        return DevelopmentalStage.COOPERATIVE
    if younger_age < 10 and age_gap < 4:
        return DevelopmentalStage.COMPETITIVE
    if age_gap > 5:
        return DevelopmentalStage.MENTORING
    return DevelopmentalStage.INDEPENDENT


def conflict_resolution_style(pattern: CommunicationPattern, age_gap: int) -> ConflictResolution:
    pattern = CommunicationPattern(pattern)
    if pattern in (CommunicationPattern.OPEN, CommunicationPattern.HEALTHY):
        return ConflictResolution.COLLABORATIVE if age_gap > 4 else ConflictResolution.INDEPENDENT
    if pattern is CommunicationPattern.RESTRICTED:
        return ConflictResolution.AVOIDANT
    if pattern is CommunicationPattern.CHAOTIC:
        return ConflictResolution.AGGRESSIVE
    return ConflictResolution.PARENT_MEDIATED


def birth_order_dynamics(
    older: ChildCharacter,
    younger: ChildCharacter,
    bond: float,
    cooperation: float,
) -> BirthOrderDynamics:
    gap = older.age - younger.age
    if gap == 0:
        dominance = DominancePattern.EQUAL
    elif gap >= 3:
        older_confidence = older.trait_value("confidence", 50.0)
        younger_confidence = younger.trait_value("confidence", 50.0)
        if younger_confidence > older_confidence + 20:
            dominance = DominancePattern.YOUNGER_LEADS
        else:
            dominance = DominancePattern.OLDER_LEADS
    else:
        dominance = DominancePattern.SITUATIONAL
    return BirthOrderDynamics(
        dominance_pattern=dominance,
        responsibility_sharing=clamp(cooperation * 0.8 + (10 if gap >= 4 else 0)),
        protectiveness=clamp(bond * 0.5 + gap * 5),
    )


# ---------------------------------------------------------------------------
#  Formation and updates
# ---------------------------------------------------------------------------

def form_relationship(
    first: ChildCharacter,
    second: ChildCharacter,
    dynamics: FamilyDynamics,
    age: int = 0,
) -> SiblingRelationship:
    """Initial relationship between two children; argument order does not matter."""
    older, younger = (first, second) if first.age >= second.age else (second, first)
    gap = older.age - younger.age

    bond = BASE_BOND
    rivalry = BASE_RIVALRY
    cooperation = BASE_COOPERATION
    if gap <= 2:
        rivalry += 20
        cooperation += 10
    if gap >= 5:
        bond += 15
        rivalry -= 15

    bond += (dynamics.cohesion - 50) * 0.3
    rivalry += (dynamics.stress - 50) * 0.2
    cooperation += (dynamics.attachment_security - 50) * 0.2

    bond = clamp(bond, 10, 90)
    rivalry = clamp(rivalry, 5, 80)
    cooperation = clamp(cooperation, 20, 90)

    favoritism_gap = abs(
        dynamics.favoritism.get(first.id, 0.0) - dynamics.favoritism.get(second.id, 0.0)
    )
    relationship = SiblingRelationship(
        child_id1=first.id,
        child_id2=second.id,
        bond=bond,
        rivalry=rivalry,
        cooperation=cooperation,
        jealousy=clamp(rivalry * 0.6 + favoritism_gap * 0.5),
        supportiveness=clamp((bond + cooperation) / 2),
        relationship_type=classify_relationship(bond, rivalry, gap),
        conflict_resolution=conflict_resolution_style(dynamics.communication_pattern, gap),
        developmental_stage=developmental_stage(younger.age, gap),
        birth_order_dynamics=birth_order_dynamics(older, younger, bond, cooperation),
        shared_interests=sorted(set(first.interests) & set(second.interests)),
        last_interaction=age,
    )
    logger.debug(
        "Formed %s relationship between %s and %s (bond %.0f, rivalry %.0f).",
        relationship.relationship_type.value, first.id, second.id, bond, rivalry,
    )
    return relationship


def find_relationship(
    relationships: Iterable[SiblingRelationship],
    first_id: str,
    second_id: str,
) -> SiblingRelationship | None:
    for relationship in relationships:
        if relationship.matches(first_id, second_id):
            return relationship
    return None


def relationships_for(
    relationships: Iterable[SiblingRelationship],
    child_id: str,
) -> list[SiblingRelationship]:
    return [relationship for relationship in relationships if relationship.involves(child_id)]


def apply_relationship_delta(
    relationship: SiblingRelationship,
    delta: SiblingRelationshipDelta,
    age: int,
) -> None:
    for field in SIBLING_SCORE_FIELDS:
        change = getattr(delta, field)
        if change:
            setattr(relationship, field, clamp(getattr(relationship, field) + change))
    if delta.relationship_type is not None:
        relationship.relationship_type = delta.relationship_type
    relationship.last_interaction = age


def evolve_relationship(
    relationship: SiblingRelationship,
    first: ChildCharacter,
    second: ChildCharacter,
    age: int,
) -> None:
    """Yearly drift of the bond with trait compatibility; type and stage follow."""
    gap = abs(first.age - second.age)
    score = compatibility(
        trait_map(first), first.interests, first.age,
        trait_map(second), second.interests, second.age,
    )
    relationship.bond = clamp(relationship.bond + drift_amount(score, gap))
    relationship.relationship_type = classify_relationship(relationship.bond, relationship.rivalry, gap)
    relationship.developmental_stage = developmental_stage(min(first.age, second.age), gap)
    relationship.last_interaction = age
