"""
babysim/milestones.py
~~~~~~~~~~~~~~~~~~~~~
Developmental milestones. Each one goes pending -> achieved exactly once, the
first time the child is old enough *and* the eligibility predicate agrees.
The default predicate only looks at age; callers can plug in stricter rules
(e.g. requiring a minimum skill level) without touching the engine.

Milestone impacts bypass the decision pipeline: they are applied with the
plain clamp / level-up rules only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from babysim.character import (
    ChildCharacter,
    DevelopmentEvent,
    EventType,
    Milestone,
    apply_relationship_delta,
    apply_skill_delta,
    apply_trait_delta,
)

if TYPE_CHECKING:
    from babysim.config_models import SkillDefinition

logger = logging.getLogger(__name__)

EligibilityPredicate = Callable[[Milestone, ChildCharacter], bool]


def age_only(milestone: Milestone, character: ChildCharacter) -> bool:
    """Default predicate: the age gate is the only requirement."""
    return True


class MilestoneEngine:
    def __init__(
        self,
        skill_catalog: dict[str, SkillDefinition],
        predicate: EligibilityPredicate | None = None,
    ):
        self.skill_catalog = skill_catalog
        self.predicate = predicate or age_only

    def is_due(self, milestone: Milestone, character: ChildCharacter, age: int) -> bool:
        return not milestone.achieved and age >= milestone.age and self.predicate(milestone, character)

    def check(self, character: ChildCharacter, age: int) -> list[Milestone]:
        """Achieve every due milestone in catalog order; returns the newly achieved ones."""
        achieved = []
        for milestone in character.milestones:
            if not self.is_due(milestone, character, age):
                continue
            self._apply_impact(character, milestone, age)
            milestone.achieved = True
            character.record(DevelopmentEvent(
                age=age,
                type=EventType.MILESTONE,
                description=f"Milestone achieved: {milestone.name}",
                impact=milestone.impact.model_copy(deep=True),
            ))
            achieved.append(milestone)
            logger.info("%s reached milestone '%s' at age %d.", character.name, milestone.id, age)
        return achieved

    def _apply_impact(self, character: ChildCharacter, milestone: Milestone, age: int) -> None:
        impact = milestone.impact
        for trait_id, delta in impact.traits.items():
            apply_trait_delta(character, trait_id, delta)
        for skill_id, delta in impact.skills.items():
            apply_skill_delta(character, skill_id, delta, self.skill_catalog)
        for key, delta in impact.relationships.items():
            apply_relationship_delta(character, key, delta, age)
