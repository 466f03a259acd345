"""
babysim/effects.py
~~~~~~~~~~~~~~~~~~
Turns the raw effect payload of a chosen option into the changes actually
applied to a child, the household and the child's siblings.

Stages run in a fixed order, each consuming the previous one's output:

   1. diminishing returns on trait deltas (by current trait value)
   2. critical-period multiplier (by age)
   3. cross-trait secondary influence
   4. clear family boundaries amplify cooperation, then parenting-style scaling
   5. happiness dampened by family stress
   6. relationship quality / trust scaled by cohesion; open communication
      amplifies parent-child communication
   7. spending scaled by resource strain
   8. multi-child adjustments and sibling propagation, then age-based
      relationship boosts (parent-child when young, peers when older)
   9. skill experience
  10. relationship updates
  11. development history record

The target character is mutated in place; callers that need atomicity pass a
working copy (see ``babysim.game``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from babysim.character import (
    ChildCharacter,
    DevelopmentEvent,
    EventType,
    ImpactSnapshot,
    RelationshipDelta,
    apply_relationship_delta,
    apply_skill_delta,
    apply_trait_delta,
)
from babysim.family import CommunicationPattern, FamilyDynamics, FamilyDynamicsDelta, ParentingStyle
from babysim.sibling import SiblingEffect, SiblingRelationshipDelta
from babysim.utils import ceil_int, floor_int, truncate_int

if TYPE_CHECKING:
    from babysim.config_models import DevelopmentConfig

logger = logging.getLogger(__name__)

PARENT_CHILD_KEY = "parent-child"

SECONDARY_INFLUENCE = 0.3
SIBLING_PROPAGATION_THRESHOLD = 5
SIBLING_PROPAGATION_SCALE = 0.5

OPEN_COMMUNICATION = (CommunicationPattern.OPEN, CommunicationPattern.HEALTHY)
COMMUNICATION_BOOST = 1.2
CLEAR_BOUNDARIES = 70
COOPERATION_BOOST = 1.1
YOUNG_CHILD_AGE = 6
PARENT_ATTACHMENT_BOOST = 1.2
OLDER_CHILD_AGE = 10
PEER_QUALITY_BOOST = 1.15


class EffectPayload(BaseModel):
    """
    Sparse deltas carried by a scenario option. Missing keys mean "no
    change"; keys outside this shape are ignored.
    """

    happiness: float = 0.0
    finances: float = 0.0
    traits: dict[str, float] = Field(default_factory=dict)
    skills: dict[str, float] = Field(default_factory=dict)
    relationships: dict[str, RelationshipDelta] = Field(default_factory=dict)
    family_dynamics: FamilyDynamicsDelta | None = None
    sibling_effects: dict[str, SiblingEffect] = Field(default_factory=dict)

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


class DecisionOutcome(BaseModel):
    happiness: float
    finances: float
    trait_deltas: dict[str, float] = Field(default_factory=dict)
    relationship_deltas: dict[str, RelationshipDelta] = Field(default_factory=dict)
    family_dynamics: FamilyDynamicsDelta = Field(default_factory=FamilyDynamicsDelta)
    sibling_effects: dict[str, SiblingEffect] = Field(default_factory=dict)
    event: DevelopmentEvent


# ---------------------------------------------------------------------------
#  Trait stages (1-4)
# ---------------------------------------------------------------------------

def diminishing_returns(value: float, delta: float) -> float:
    if value > 75:
        return ceil_int(delta * 0.7)
    if value > 50:
        return ceil_int(delta * 0.85)
    if value < 25 and delta > 0:
        return ceil_int(delta * 1.3)
    return delta


def critical_period_multiplier(trait_id: str, delta: float, age: int, tables: DevelopmentConfig) -> float:
    window = tables.criticalPeriods.get(trait_id)
    if window is None or not (window.startAge <= age <= window.endAge):
        return delta
    return ceil_int(delta * window.multiplier)


def parenting_style_scaling(trait_id: str, delta: float, style: ParentingStyle) -> float:
    style = ParentingStyle(style)
    if style is ParentingStyle.NEGLECTFUL:
        return truncate_int(delta * 0.7)
    if delta <= 0:
        return delta
    if style is ParentingStyle.AUTHORITATIVE:
        return ceil_int(delta * 1.1)
    if style is ParentingStyle.ADAPTIVE:
        return ceil_int(delta * 1.15)
    if style is ParentingStyle.AUTHORITARIAN:
        if trait_id == "independence":
            return floor_int(delta * 0.8)
        if trait_id == "cooperation":
            return ceil_int(delta * 1.2)
    if style is ParentingStyle.PERMISSIVE:
        if trait_id == "independence":
            return ceil_int(delta * 1.3)
        if trait_id == "focus":
            return floor_int(delta * 0.9)
    return delta


def resolve_trait_deltas(
    character: ChildCharacter,
    raw_traits: dict[str, float],
    age: int,
    style: ParentingStyle,
    tables: DevelopmentConfig,
    boundary_clarity: float = 0.0,
) -> dict[str, float]:
    """Run stages 1-4 and return the deltas to add to each trait."""
    adjusted: dict[str, float] = {}
    for trait_id, raw in raw_traits.items():
        trait = character.get_trait(trait_id)
        if trait is None:
            logger.debug("Trait '%s' not found on %s; skipping.", trait_id, character.id)
            continue
        delta = diminishing_returns(trait.value, raw)
        adjusted[trait_id] = critical_period_multiplier(trait_id, delta, age, tables)

    for trait_id, raw in raw_traits.items():
        if raw <= 0 or character.get_trait(trait_id) is None:
            continue
        for related in tables.traitInteractions.get(trait_id, []):
            if related in raw_traits or related in adjusted:
                continue
            if character.get_trait(related) is None:
                continue
            adjusted[related] = ceil_int(raw * SECONDARY_INFLUENCE)

    if boundary_clarity > CLEAR_BOUNDARIES and adjusted.get("cooperation"):
        adjusted["cooperation"] = ceil_int(adjusted["cooperation"] * COOPERATION_BOOST)

    return {
        trait_id: parenting_style_scaling(trait_id, delta, style)
        for trait_id, delta in adjusted.items()
    }


# ---------------------------------------------------------------------------
#  Household stages (5-8)
# ---------------------------------------------------------------------------

def stress_adjusted_happiness(happiness: float, stress: float) -> float:
    return floor_int(happiness * max(0.5, 1 - stress / 200))


def cohesion_adjusted_relationships(
    relationships: dict[str, RelationshipDelta],
    cohesion: float,
) -> dict[str, RelationshipDelta]:
    factor = max(0.7, cohesion / 100)
    return {
        key: RelationshipDelta(
            quality=floor_int(delta.quality * factor),
            trust=floor_int(delta.trust * factor),
            communication=delta.communication,
        )
        for key, delta in relationships.items()
    }


def communication_adjusted_relationships(
    relationships: dict[str, RelationshipDelta],
    pattern: CommunicationPattern,
) -> dict[str, RelationshipDelta]:
    parent_child = relationships.get(PARENT_CHILD_KEY)
    if parent_child is not None and pattern in OPEN_COMMUNICATION and parent_child.communication:
        parent_child.communication = ceil_int(parent_child.communication * COMMUNICATION_BOOST)
    return relationships


def age_adjusted_relationships(
    character: ChildCharacter,
    relationships: dict[str, RelationshipDelta],
    age: int,
) -> dict[str, RelationshipDelta]:
    """
    Young children bond more strongly with their parents; from age 10 the
    boost moves to peer relationships instead.
    """
    if age < YOUNG_CHILD_AGE:
        parent_child = relationships.get(PARENT_CHILD_KEY)
        if parent_child is not None and parent_child.quality:
            parent_child.quality = ceil_int(parent_child.quality * PARENT_ATTACHMENT_BOOST)
    elif age >= OLDER_CHILD_AGE:
        for key, delta in relationships.items():
            metric = character.relationships.get(key)
            if metric is None or metric.type != "peer" or not delta.quality:
                continue
            delta.quality = ceil_int(delta.quality * PEER_QUALITY_BOOST)
    return relationships


def strain_adjusted_finances(finances: float, resource_strain: float) -> float:
    if finances >= 0:
        return finances
    return floor_int(finances * max(0.6, 1 - resource_strain / 150))


def sibling_age_influence(age_gap: int) -> float:
    if age_gap < 3:
        return 0.6
    if age_gap < 6:
        return 0.4
    return 0.2


def propagate_to_siblings(
    character: ChildCharacter,
    raw_traits: dict[str, float],
    happiness: float,
    siblings: Sequence[ChildCharacter],
    explicit: dict[str, SiblingEffect],
) -> dict[str, SiblingEffect]:
    """Derived effects on every other child, merged with explicit ones."""
    if abs(happiness) > 10:
        if happiness > 0:
            mood = SiblingRelationshipDelta(rivalry=2, cooperation=1)
        else:
            mood = SiblingRelationshipDelta(rivalry=-1, cooperation=2)
    else:
        mood = None

    known_ids = {sibling.id for sibling in siblings}
    for sibling_id in explicit:
        if sibling_id not in known_ids:
            logger.debug("Sibling '%s' not in family; dropping its effects.", sibling_id)

    effects: dict[str, SiblingEffect] = {}
    for sibling in siblings:
        factor = sibling_age_influence(abs(character.age - sibling.age))
        derived = SiblingEffect(
            traits={
                trait_id: ceil_int(SIBLING_PROPAGATION_SCALE * factor * raw)
                for trait_id, raw in raw_traits.items()
                if abs(raw) > SIBLING_PROPAGATION_THRESHOLD
            },
            relationship=mood.model_copy() if mood is not None else None,
        )
        if sibling.id in explicit:
            derived = derived.combined(explicit[sibling.id])
        if derived.traits or derived.relationship is not None:
            effects[sibling.id] = derived
    return effects


# ---------------------------------------------------------------------------
#  Resolver
# ---------------------------------------------------------------------------

def resolve_decision(
    character: ChildCharacter,
    payload: EffectPayload,
    age: int,
    dynamics: FamilyDynamics,
    siblings: Sequence[ChildCharacter],
    tables: DevelopmentConfig,
    label: str = "",
) -> DecisionOutcome:
    """
    Apply ``payload`` to ``character`` and work out its household and
    sibling consequences. ``siblings`` are the family's other children.
    """
    trait_deltas = resolve_trait_deltas(
        character, payload.traits, age, dynamics.parenting_style, tables, dynamics.boundary_clarity
    )
    happiness = stress_adjusted_happiness(payload.happiness, dynamics.stress)
    relationships = cohesion_adjusted_relationships(payload.relationships, dynamics.cohesion)
    relationships = communication_adjusted_relationships(relationships, dynamics.communication_pattern)
    finances = strain_adjusted_finances(payload.finances, dynamics.resource_strain)

    family_delta = (
        payload.family_dynamics.model_copy(deep=True)
        if payload.family_dynamics is not None
        else FamilyDynamicsDelta()
    )
    sibling_effects: dict[str, SiblingEffect] = {}

    child_count = 1 + len(siblings)
    if child_count > 1:
        crowding = max(0.8, 1 - 0.1 * (child_count - 1))
        if finances < 0:
            finances = floor_int(finances * crowding)
        parent_child = relationships.get(PARENT_CHILD_KEY)
        if parent_child is not None:
            parent_child.quality = floor_int(parent_child.quality * crowding)

        sibling_effects = propagate_to_siblings(
            character, payload.traits, happiness, siblings, payload.sibling_effects
        )
        if abs(happiness) > 15:
            family_delta.stress += -2 if happiness > 0 else 3

    relationships = age_adjusted_relationships(character, relationships, age)

    for trait_id, delta in trait_deltas.items():
        apply_trait_delta(character, trait_id, delta)

    for skill_id, delta in payload.skills.items():
        apply_skill_delta(character, skill_id, delta, tables.skill_catalog)

    for key, delta in relationships.items():
        apply_relationship_delta(character, key, delta, age)

    event = DevelopmentEvent(
        age=age,
        type=EventType.TRAIT_CHANGE,
        description=f"Decision: {label}" if label else "Decision",
        impact=ImpactSnapshot(
            traits=dict(payload.traits),
            skills=dict(payload.skills),
            relationships={key: delta.model_copy() for key, delta in payload.relationships.items()},
        ),
    )
    character.record(event)

    return DecisionOutcome(
        happiness=happiness,
        finances=finances,
        trait_deltas=trait_deltas,
        relationship_deltas=relationships,
        family_dynamics=family_delta,
        sibling_effects=sibling_effects,
        event=event,
    )
