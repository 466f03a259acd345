"""
babysim/scenarios.py
~~~~~~~~~~~~~~~~~~~~
Chooses the next narrative scenario for a child.

Selection is a fixed priority chain; the first stage that produces a
scenario wins:

  1. family: two or more children, template picked by family stress
  2. moral: ages 8-12, gated by a draw
  3. peer: peers supplied, gated by a draw
  4. trait: the most extreme trait with a template for the style
  5. skill: a skill well ahead of or behind its age expectation
  6. default: always available

Draws are only consumed by stages whose gate is actually evaluated, so the
same inputs and the same draws always give the same scenario. Display text
goes through an injected lookup; the bundled English is the fallback.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from babysim.character import ChildCharacter, PersonalityTrait, Skill
from babysim.config_models import DEFAULT_GAME_STYLE, OptionTemplate, ScenarioTemplate
from babysim.effects import EffectPayload
from babysim.family import BirthCircumstance, FamilyDynamics
from babysim.peers import PeerCharacter, best_peer
from babysim.utils import floor_int

if TYPE_CHECKING:
    from babysim.config_models import ScenarioConfig, ScenarioHeader
    from babysim.rng import RandomSource

logger = logging.getLogger(__name__)

# (key, bundled text) -> display text
Lookup = Callable[[str, str], str]

SIBLING_WILDCARD = "*"
FRIENDSHIP_QUALITY = 70
CONFLICT_QUALITY = 40


def default_lookup(key: str, default: str) -> str:
    return default


class StringTable:
    """Read-only key -> text table usable as a scenario lookup."""

    def __init__(self, strings: Mapping[str, str]):
        self._strings = MappingProxyType(dict(strings))

    def __call__(self, key: str, default: str) -> str:
        return self._strings.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._strings


# ---------------------------------------------------------------------------
#  Records
# ---------------------------------------------------------------------------

class ScenarioSource(str, Enum):
    FAMILY = "family"
    MORAL = "moral"
    PEER = "peer"
    TRAIT = "trait"
    SKILL = "skill"
    DEFAULT = "default"
    BIRTH = "birth"


class ScenarioOption(BaseModel):
    label: str
    consequence: str = ""
    effects: EffectPayload = Field(default_factory=EffectPayload)


class Scenario(BaseModel):
    id: str
    source: ScenarioSource
    title: str
    description: str
    options: list[ScenarioOption]
    custom_allowed: bool = True


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------

def fill_placeholders(text: str, context: Mapping[str, str]) -> str:
    for key, value in context.items():
        text = text.replace("{" + key + "}", value)
    return text


def fill_effects(
    effects: Mapping[str, Any],
    key_context: Mapping[str, str],
    sibling_ids: Sequence[str] = (),
) -> EffectPayload:
    """Resolve placeholder keys and expand the sibling wildcard into real ids."""
    data = copy.deepcopy(dict(effects))
    for section in ("traits", "skills", "relationships"):
        if section in data:
            data[section] = {fill_placeholders(key, key_context): value for key, value in data[section].items()}
    siblings = data.get("siblingEffects")
    if siblings and SIBLING_WILDCARD in siblings:
        template = siblings.pop(SIBLING_WILDCARD)
        for sibling_id in sibling_ids:
            siblings.setdefault(sibling_id, copy.deepcopy(template))
    return EffectPayload.model_validate(data)


def expected_skill_level(skill_id: str, age: int, tables: ScenarioConfig) -> int:
    rule = tables.expectedSkillLevels.get(skill_id)
    if rule is None:
        level = max(1, floor_int(age / tables.defaultExpectedDivisor))
    else:
        level = max(1, floor_int((age - rule.offset) / rule.divisor))
    return min(10, level)


def skill_trigger(skill: Skill, age: int, tables: ScenarioConfig) -> str | None:
    expected = expected_skill_level(skill.id, age, tables)
    if skill.level >= expected + 3:
        return "ADVANCED"
    if skill.level <= max(1, expected - 2):
        return "STRUGGLING"
    return None


def family_stress_bucket(stress: float) -> int:
    if stress > 60:
        return 2
    if stress > 30:
        return 1
    return 0


# ---------------------------------------------------------------------------
#  Selector
# ---------------------------------------------------------------------------

class ScenarioSelector:
    def __init__(self, tables: ScenarioConfig, lookup: Lookup | None = None):
        self.tables = tables
        self.lookup = lookup or default_lookup

    def select(
        self,
        character: ChildCharacter,
        game_style: str,
        dynamics: FamilyDynamics,
        rng: RandomSource,
        child_count: int = 1,
        peers: Sequence[PeerCharacter] = (),
        sibling_ids: Sequence[str] = (),
        age: int | None = None,
    ) -> Scenario:
        age = character.age if age is None else age
        scenario = (
            self.family_scenario(character, game_style, dynamics, child_count, sibling_ids, age)
            or self.moral_dilemma(character, game_style, rng, age)
            or self.peer_scenario(character, game_style, rng, peers, age)
            or self.trait_scenario(character, game_style, age)
            or self.skill_scenario(character, game_style, age)
            or self.default_scenario(character, game_style, age)
        )
        logger.debug("Selected %s scenario '%s' for %s.", scenario.source.value, scenario.id, character.id)
        return scenario

    # Stage 1
    def family_scenario(
        self,
        character: ChildCharacter,
        game_style: str,
        dynamics: FamilyDynamics,
        child_count: int,
        sibling_ids: Sequence[str] = (),
        age: int | None = None,
    ) -> Scenario | None:
        if child_count < 2:
            return None
        templates = self.tables.familyScenarios.get(game_style)
        if not templates:
            return None
        template = templates[min(len(templates) - 1, family_stress_bucket(dynamics.stress))]
        context = self._child_context(character, age)
        context["childCount"] = str(child_count)
        return self._build(template, ScenarioSource.FAMILY, context, {}, sibling_ids)

    # Stage 2
    def moral_dilemma(
        self,
        character: ChildCharacter,
        game_style: str,
        rng: RandomSource,
        age: int | None = None,
    ) -> Scenario | None:
        age = character.age if age is None else age
        if not self.tables.moralDilemmaMinAge <= age <= self.tables.moralDilemmaMaxAge:
            return None
        if not rng.chance(self.tables.moralDilemmaChance):
            return None
        eligible = [
            dilemma for dilemma in self.tables.moralDilemmas
            if dilemma.minAge <= age <= dilemma.maxAge and game_style in dilemma.styles
        ]
        if not eligible:
            return None
        dilemma = rng.choice(eligible)
        return self._build(
            dilemma.styles[game_style], ScenarioSource.MORAL, self._child_context(character, age), {}
        )

    # Stage 3
    def peer_scenario(
        self,
        character: ChildCharacter,
        game_style: str,
        rng: RandomSource,
        peers: Sequence[PeerCharacter],
        age: int | None = None,
    ) -> Scenario | None:
        age = character.age if age is None else age
        if not peers or age < self.tables.peerScenarioMinAge:
            return None
        if not rng.chance(self.tables.peerScenarioChance):
            return None
        found = best_peer(character, peers)
        if found is None:
            return None
        peer, relationship = found
        if relationship.quality > FRIENDSHIP_QUALITY:
            kind = "friendship"
        elif relationship.quality < CONFLICT_QUALITY:
            kind = "conflict"
        else:
            kind = "social_growth"
        styles = self.tables.peerScenarios.get(kind, {})
        template = styles.get(game_style) or styles.get(DEFAULT_GAME_STYLE)
        if template is None:
            return None
        context = self._child_context(character, age)
        context["peerName"] = peer.name
        return self._build(template, ScenarioSource.PEER, context, {"peerKey": peer.id})

    # Stage 4
    def trait_scenario(
        self,
        character: ChildCharacter,
        game_style: str,
        age: int | None = None,
    ) -> Scenario | None:
        age = character.age if age is None else age
        thresholds = self.tables.traitThresholds
        significant = [
            trait for trait in character.personality_traits
            if trait.id in self.tables.traitScenarios
            and age >= self.tables.traitScenarios[trait.id].minAge
            and (trait.value >= thresholds.high or trait.value <= thresholds.low)
        ]
        significant.sort(key=lambda trait: abs(trait.value - 50), reverse=True)

        for trait in significant:
            styles = self.tables.traitScenarios[trait.id].styles.get(game_style)
            if not styles:
                continue
            trigger = "HIGH" if trait.value >= thresholds.high else "LOW"
            header = styles.get(trigger)
            if header is not None:
                return self._build_trait_scenario(header, trait, trigger, character, age)
        return None

    # Stage 5
    def skill_scenario(
        self,
        character: ChildCharacter,
        game_style: str,
        age: int | None = None,
    ) -> Scenario | None:
        age = character.age if age is None else age
        for skill in character.skills:
            mapping = self.tables.skillScenarios.get(skill.id)
            if mapping is None:
                continue
            trigger = skill_trigger(skill, age, self.tables)
            if trigger is None:
                continue
            header = mapping.get(game_style, {}).get(trigger)
            if header is not None:
                return self._build_skill_scenario(header, skill, trigger, character, age)
        return None

    # Stage 6
    def default_scenario(
        self,
        character: ChildCharacter,
        game_style: str,
        age: int | None = None,
    ) -> Scenario:
        template = (
            self.tables.defaultScenarios.get(game_style)
            or self.tables.defaultScenarios[DEFAULT_GAME_STYLE]
        )
        return self._build(template, ScenarioSource.DEFAULT, self._child_context(character, age), {})

    def birth_scenario(
        self,
        circumstances: BirthCircumstance,
        game_style: str,
        existing_child_count: int,
    ) -> Scenario:
        styles = self.tables.birthScenarios.get(BirthCircumstance(circumstances), {})
        template = (
            styles.get(game_style)
            or styles.get(DEFAULT_GAME_STYLE)
            or self.tables.genericBirthScenario
        )
        context = {
            "childCount": str(existing_child_count),
            "nextCount": str(existing_child_count + 1),
            "twinsCount": str(existing_child_count + 2),
        }
        return self._build(template, ScenarioSource.BIRTH, context, {})

    # -- building ------------------------------------------------------------

    def _child_context(self, character: ChildCharacter, age: int | None = None) -> dict[str, str]:
        return {
            "childName": character.name,
            "age": str(character.age if age is None else age),
        }

    def _text(self, key: str, default: str, context: Mapping[str, str]) -> str:
        return fill_placeholders(self.lookup(key, default), context)

    def _build_option(
        self,
        key_prefix: str,
        option: OptionTemplate,
        context: Mapping[str, str],
        key_context: Mapping[str, str],
        sibling_ids: Sequence[str] = (),
    ) -> ScenarioOption:
        return ScenarioOption(
            label=self._text(f"{key_prefix}.label", option.label, context),
            consequence=self._text(f"{key_prefix}.consequence", option.consequence, context),
            effects=fill_effects(option.effects, key_context, sibling_ids),
        )

    def _build(
        self,
        template: ScenarioTemplate,
        source: ScenarioSource,
        context: Mapping[str, str],
        key_context: Mapping[str, str],
        sibling_ids: Sequence[str] = (),
    ) -> Scenario:
        return Scenario(
            id=template.id,
            source=source,
            title=self._text(f"{template.id}.title", template.title, context),
            description=self._text(f"{template.id}.description", template.description, context),
            options=[
                self._build_option(f"{template.id}.option{index}", option, context, key_context, sibling_ids)
                for index, option in enumerate(template.options)
            ],
        )

    def _build_from_header(
        self,
        header: ScenarioHeader,
        source: ScenarioSource,
        options: list[tuple[str, OptionTemplate]],
        context: Mapping[str, str],
        key_context: Mapping[str, str],
    ) -> Scenario:
        return Scenario(
            id=header.id,
            source=source,
            title=self._text(f"{header.id}.title", header.title, context),
            description=self._text(f"{header.id}.description", header.description, context),
            options=[
                self._build_option(key_prefix, option, context, key_context)
                for key_prefix, option in options
            ],
        )

    def _build_trait_scenario(
        self,
        header: ScenarioHeader,
        trait: PersonalityTrait,
        trigger: str,
        character: ChildCharacter,
        age: int,
    ) -> Scenario:
        option_set = self.tables.traitOptions
        base = option_set.HIGH if trigger == "HIGH" else option_set.LOW
        options = [(f"trait_options.{trigger}.option{index}", option) for index, option in enumerate(base)]
        guidance = option_set.guidance.get(trigger)
        if age >= option_set.guidanceMinAge and guidance is not None:
            options.append((f"trait_options.guidance.{trigger}", guidance))

        context = self._child_context(character, age)
        context["trait"] = trait.name.lower()
        return self._build_from_header(header, ScenarioSource.TRAIT, options, context, {"trait": trait.id})

    def _build_skill_scenario(
        self,
        header: ScenarioHeader,
        skill: Skill,
        trigger: str,
        character: ChildCharacter,
        age: int,
    ) -> Scenario:
        options = [
            (f"skill_options.{trigger}.option{index}", option)
            for index, option in enumerate(self.tables.skillOptions.get(trigger, []))
        ]
        context = self._child_context(character, age)
        context["skill"] = skill.name.lower()
        return self._build_from_header(header, ScenarioSource.SKILL, options, context, {"skill": skill.id})
