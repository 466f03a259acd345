"""
babysim/character.py
~~~~~~~~~~~~~~~~~~~~
State model for a single simulated child: personality traits, skills,
relationships, milestones and the append-only development history.

Besides the pydantic records this module holds the low-level mutators that
every other engine component funnels through, so the clamping rules live in
exactly one place:
  - apply_trait_delta: clamp to [0, 100]
  - apply_skill_delta: experience overflow into levels
  - apply_relationship_delta: clamp quality / trust / communication
"""

from __future__ import annotations

import logging
from enum import Enum
from statistics import mean
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from babysim.utils import clamp

if TYPE_CHECKING:
    from babysim.config_models import DevelopmentConfig, SkillDefinition
    from babysim.rng import RandomSource

logger = logging.getLogger(__name__)

MAX_SKILL_LEVEL = 10
EXPERIENCE_PER_LEVEL = 100
# Experience ceiling once a skill sits at MAX_SKILL_LEVEL.
MAX_EXPERIENCE_AT_CAP = 99.0

DEFAULT_TRAIT_SCORE = 50.0
DEFAULT_SKILL_SCORE = 30.0
DEFAULT_RELATIONSHIP_SCORE = 70.0


# ---------------------------------------------------------------------------
#  Enums
# ---------------------------------------------------------------------------

class TraitCategory(str, Enum):
    INTELLECTUAL = "intellectual"
    EMOTIONAL = "emotional"
    SOCIAL = "social"
    CREATIVE = "creative"
    PHYSICAL = "physical"


class SkillCategory(str, Enum):
    ACADEMIC = "academic"
    ARTISTIC = "artistic"
    ATHLETIC = "athletic"
    SOCIAL = "social"
    PRACTICAL = "practical"


class EventType(str, Enum):
    TRAIT_CHANGE = "trait_change"
    SKILL_GAIN = "skill_gain"
    MILESTONE = "milestone"
    RELATIONSHIP_CHANGE = "relationship_change"
    CRISIS = "crisis"


# ---------------------------------------------------------------------------
#  Records
# ---------------------------------------------------------------------------

class PersonalityTrait(BaseModel):
    id: str
    name: str
    category: TraitCategory
    value: float = Field(ge=0.0, le=100.0)
    description: str = ""


class Skill(BaseModel):
    id: str
    name: str
    category: SkillCategory
    level: int = Field(default=1, ge=1, le=MAX_SKILL_LEVEL)
    experience: float = Field(default=0.0, ge=0.0, lt=EXPERIENCE_PER_LEVEL)
    unlocked: bool = True


class RelationshipMetric(BaseModel):
    type: str
    quality: float = Field(ge=0.0, le=100.0)
    trust: float = Field(ge=0.0, le=100.0)
    communication: float = Field(ge=0.0, le=100.0)
    last_updated: int = 0


class RelationshipDelta(BaseModel):
    """Sparse change to a relationship; unrecognised keys are ignored."""

    quality: float = 0.0
    trust: float = 0.0
    communication: float = 0.0

    model_config = {"extra": "ignore"}


class ImpactSnapshot(BaseModel):
    """Trait / skill / relationship deltas, used for milestones and history."""

    traits: dict[str, float] = Field(default_factory=dict)
    skills: dict[str, float] = Field(default_factory=dict)
    relationships: dict[str, RelationshipDelta] = Field(default_factory=dict)


class Milestone(BaseModel):
    id: str
    name: str
    age: int = Field(ge=0)
    achieved: bool = False
    impact: ImpactSnapshot = Field(default_factory=ImpactSnapshot)


class DevelopmentEvent(BaseModel):
    age: int
    type: EventType
    description: str
    impact: ImpactSnapshot = Field(default_factory=ImpactSnapshot)

    model_config = {"frozen": True}


class ChildCharacter(BaseModel):
    id: str
    name: str
    age: int = Field(ge=0)
    gender: str
    interests: list[str] = Field(default_factory=list)
    personality_traits: list[PersonalityTrait] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    relationships: dict[str, RelationshipMetric] = Field(default_factory=dict)
    milestones: list[Milestone] = Field(default_factory=list)
    development_history: list[DevelopmentEvent] = Field(default_factory=list)

    def get_trait(self, trait_id: str) -> PersonalityTrait | None:
        for trait in self.personality_traits:
            if trait.id == trait_id:
                return trait
        return None

    def get_skill(self, skill_id: str) -> Skill | None:
        for skill in self.skills:
            if skill.id == skill_id:
                return skill
        return None

    def trait_value(self, trait_id: str, default: float | None = None) -> float | None:
        trait = self.get_trait(trait_id)
        return trait.value if trait is not None else default

    def record(self, event: DevelopmentEvent) -> None:
        self.development_history.append(event)


# ---------------------------------------------------------------------------
#  Creation
# ---------------------------------------------------------------------------

def create_child(
    child_id: str,
    name: str,
    age: int,
    gender: str,
    tables: DevelopmentConfig,
    rng: RandomSource,
    interests: list[str] | None = None,
) -> ChildCharacter:
    """
    Build a fully initialised child.

    One jitter draw is consumed per base trait, in table order. Skills whose
    unlock age has been reached start at level 1, and milestones already in
    the past are marked achieved without applying their impact.
    """
    age = max(0, age)

    traits = []
    for definition in tables.baseTraits:
        base = definition.baseValue + definition.ageSlope * age
        jitter = rng.uniform(-tables.traitJitter, tables.traitJitter)
        traits.append(PersonalityTrait(
            id=definition.id,
            name=definition.name,
            category=definition.category,
            value=clamp(base + jitter, tables.initialTraitMin, tables.initialTraitMax),
            description=definition.description,
        ))

    skills = [
        Skill(id=definition.id, name=definition.name, category=definition.category)
        for definition in tables.skills
        if definition.unlockAge <= age
    ]

    relationships = {
        key: RelationshipMetric(
            type=seed.type,
            quality=seed.quality,
            trust=seed.trust,
            communication=seed.communication,
            last_updated=age,
        )
        for key, seed in tables.initialRelationships.items()
    }

    milestones = [
        Milestone(
            id=definition.id,
            name=definition.name,
            age=definition.age,
            achieved=age >= definition.age,
            impact=definition.impact.model_copy(deep=True),
        )
        for definition in tables.milestones
    ]

    return ChildCharacter(
        id=child_id,
        name=name,
        age=age,
        gender=gender,
        interests=list(interests or []),
        personality_traits=traits,
        skills=skills,
        relationships=relationships,
        milestones=milestones,
    )


# ---------------------------------------------------------------------------
#  Mutators
# ---------------------------------------------------------------------------

def apply_trait_delta(character: ChildCharacter, trait_id: str, delta: float) -> bool:
    """Add ``delta`` to a trait, clamped to [0, 100]. Returns False if absent."""
    trait = character.get_trait(trait_id)
    if trait is None:
        logger.debug("Trait '%s' not found on %s; skipping.", trait_id, character.id)
        return False
    trait.value = clamp(trait.value + delta)
    return True


def apply_skill_delta(
    character: ChildCharacter,
    skill_id: str,
    delta: float,
    catalog: dict[str, SkillDefinition],
) -> bool:
    """
    Add experience to a skill. Experience is clamped to [0, 100] and a full
    bar gives at most one level per call; the excess is not carried over.

    A catalog skill the child does not have yet is unlocked at level 1 first;
    ids outside the catalog are ignored.
    """
    skill = character.get_skill(skill_id)
    if skill is None:
        definition = catalog.get(skill_id)
        if definition is None:
            logger.debug("Skill '%s' is not in the catalog; skipping.", skill_id)
            return False
        skill = Skill(id=definition.id, name=definition.name, category=definition.category)
        character.skills.append(skill)
        logger.debug("Unlocked skill '%s' for %s.", skill_id, character.id)

    experience = clamp(skill.experience + delta, 0.0, EXPERIENCE_PER_LEVEL)
    level = skill.level
    if experience >= EXPERIENCE_PER_LEVEL and level < MAX_SKILL_LEVEL:
        level += 1
        experience -= EXPERIENCE_PER_LEVEL
    if level >= MAX_SKILL_LEVEL:
        experience = min(experience, MAX_EXPERIENCE_AT_CAP)

    skill.level = level
    skill.experience = experience
    return True


def apply_relationship_delta(
    character: ChildCharacter,
    key: str,
    delta: RelationshipDelta,
    age: int,
) -> bool:
    relationship = character.relationships.get(key)
    if relationship is None:
        logger.debug("Relationship '%s' not found on %s; skipping.", key, character.id)
        return False
    relationship.quality = clamp(relationship.quality + delta.quality)
    relationship.trust = clamp(relationship.trust + delta.trust)
    relationship.communication = clamp(relationship.communication + delta.communication)
    relationship.last_updated = age
    return True


def apply_natural_evolution(
    character: ChildCharacter,
    tables: DevelopmentConfig,
    rng: RandomSource,
) -> None:
    """Small yearly drift per trait category; one draw per eligible trait."""
    for trait in character.personality_traits:
        rule = tables.naturalEvolution.get(trait.category)
        if rule is None or character.age < rule.minAge:
            continue
        trait.value = clamp(trait.value + rng.uniform(-rule.amplitude, rule.amplitude))


# ---------------------------------------------------------------------------
#  Summaries
# ---------------------------------------------------------------------------

def traits_by_category(character: ChildCharacter) -> dict[TraitCategory, list[PersonalityTrait]]:
    grouped: dict[TraitCategory, list[PersonalityTrait]] = {}
    for trait in character.personality_traits:
        grouped.setdefault(trait.category, []).append(trait)
    return grouped


def skills_by_category(character: ChildCharacter) -> dict[SkillCategory, list[Skill]]:
    grouped: dict[SkillCategory, list[Skill]] = {}
    for skill in character.skills:
        grouped.setdefault(skill.category, []).append(skill)
    return grouped


def development_score(character: ChildCharacter) -> float:
    """Mean of the trait average, skill level x10 average and relationship quality average."""
    trait_score = (
        mean(t.value for t in character.personality_traits)
        if character.personality_traits else DEFAULT_TRAIT_SCORE
    )
    skill_score = (
        mean(s.level * 10 for s in character.skills)
        if character.skills else DEFAULT_SKILL_SCORE
    )
    relationship_score = (
        mean(r.quality for r in character.relationships.values())
        if character.relationships else DEFAULT_RELATIONSHIP_SCORE
    )
    return (trait_score + skill_score + relationship_score) / 3
