"""
babysim/game.py
~~~~~~~~~~~~~~~
Turn orchestration over a ``GameState``.

``DevelopmentEngine`` wires the component engines together: it asks the
selector for the next scenario, resolves the chosen option on the target
child, spreads the consequences to siblings and the household, checks
milestones and ages the family year by year.

Every state-changing method works on a deep copy of the incoming state and
returns the copy, so the caller's state is never modified and a failure
half-way through leaves nothing behind.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from babysim.character import (
    ChildCharacter,
    DevelopmentEvent,
    apply_natural_evolution,
    apply_skill_delta,
    apply_trait_delta,
    create_child,
)
from babysim.config_loader import ConfigLoader, get_default_config
from babysim.config_models import DEFAULT_GAME_STYLE, GAME_STYLES
from babysim.effects import EffectPayload, resolve_decision
from babysim.family import (
    BirthCircumstance,
    BirthImpact,
    CrisisReport,
    CrisisSeverity,
    CrisisType,
    FamilyDynamics,
    FamilyOverview,
    apply_birth_impact,
    apply_dynamics_delta,
    family_overview,
    handle_crisis,
    initialize_family_dynamics,
    new_child_impact,
    update_favoritism,
)
from babysim.milestones import EligibilityPredicate, MilestoneEngine
from babysim.peers import (
    PeerCharacter,
    apply_peer_influence,
    evolve_peer_relationships,
    generate_peers,
    initialize_peer_relationships,
)
from babysim.rng import RandomSource
from babysim.scenarios import Lookup, Scenario, ScenarioOption, ScenarioSelector
from babysim.sibling import (
    SiblingEffect,
    SiblingRelationship,
    apply_relationship_delta as apply_sibling_delta,
    evolve_relationship,
    find_relationship,
    form_relationship,
)
from babysim.utils import clamp, generate_child_id

logger = logging.getLogger(__name__)

STARTING_HAPPINESS = 75.0
STARTING_FINANCES = 50000.0
FINANCES_FLOOR = -100000.0


# ---------------------------------------------------------------------------
#  State
# ---------------------------------------------------------------------------

class ChildBirthEvent(BaseModel):
    child_id: str
    name: str
    # Family age (``GameState.current_age``) when the child arrived.
    birth_age: int
    circumstances: BirthCircumstance
    impact: BirthImpact


class GameState(BaseModel):
    children: dict[str, ChildCharacter]
    active_child_id: str
    family_dynamics: FamilyDynamics
    sibling_relationships: list[SiblingRelationship] = Field(default_factory=list)
    peers: dict[str, list[PeerCharacter]] = Field(default_factory=dict)
    current_age: int = Field(default=0, ge=0)
    game_style: str = DEFAULT_GAME_STYLE
    happiness: float = Field(default=STARTING_HAPPINESS, ge=0.0, le=100.0)
    finances: float = STARTING_FINANCES
    birth_events: list[ChildBirthEvent] = Field(default_factory=list)
    family_prefix: str = "family"
    child_counters: dict[str, int] = Field(default_factory=dict)

    @field_validator("game_style")
    @classmethod
    def known_style(cls, style: str) -> str:
        if style not in GAME_STYLES:
            raise ValueError(f"Unknown game style '{style}'; expected one of {GAME_STYLES}.")
        return style

    @property
    def active_child(self) -> ChildCharacter | None:
        return self.children.get(self.active_child_id)

    def siblings_of(self, child_id: str) -> list[ChildCharacter]:
        return [child for other_id, child in self.children.items() if other_id != child_id]


class DecisionResult(BaseModel):
    child_id: str
    applied: bool
    event: DevelopmentEvent | None = None
    happiness_change: float = 0.0
    finances_change: float = 0.0
    sibling_effects: dict[str, SiblingEffect] = Field(default_factory=dict)
    achieved_milestones: list[str] = Field(default_factory=list)
    favoritism_updated: bool = False


class YearReport(BaseModel):
    age: int
    achieved_milestones: dict[str, list[str]] = Field(default_factory=dict)
    unlocked_skills: dict[str, list[str]] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
#  Engine
# ---------------------------------------------------------------------------

class DevelopmentEngine:
    def __init__(
        self,
        config: ConfigLoader | None = None,
        milestone_predicate: EligibilityPredicate | None = None,
        lookup: Lookup | None = None,
    ):
        config = config or get_default_config()
        self.development = config.get_development()
        self.family = config.get_family()
        self.milestones = MilestoneEngine(self.development.skill_catalog, milestone_predicate)
        self.selector = ScenarioSelector(config.get_scenarios(), lookup)

    # -- setup ---------------------------------------------------------------

    def new_game(
        self,
        name: str,
        gender: str,
        rng: RandomSource,
        age: int = 0,
        game_style: str = DEFAULT_GAME_STYLE,
        interests: list[str] | None = None,
        family_prefix: str = "family",
    ) -> GameState:
        """
        Start a family with one child.

        Draw order: parenting style, communication pattern, then one jitter
        draw per base trait.
        """
        dynamics = initialize_family_dynamics(self.family, rng)
        counters: dict[str, int] = {}
        child_id = generate_child_id(family_prefix, counters)
        child = create_child(child_id, name, age, gender, self.development, rng, interests)

        first = self.family.firstChildImpact
        impact = BirthImpact(
            cohesion=first.cohesion,
            stress=first.stress,
            resource_strain=first.resourceStrain,
            happiness=first.happiness,
            finances=first.finances,
        )
        apply_birth_impact(dynamics, impact)

        state = GameState(
            children={child_id: child},
            active_child_id=child_id,
            family_dynamics=dynamics,
            current_age=child.age,
            game_style=game_style,
            happiness=clamp(STARTING_HAPPINESS + impact.happiness),
            finances=STARTING_FINANCES + impact.finances,
            family_prefix=family_prefix,
            child_counters=counters,
        )
        state.birth_events.append(ChildBirthEvent(
            child_id=child_id,
            name=name,
            birth_age=state.current_age,
            circumstances=BirthCircumstance.PLANNED,
            impact=impact,
        ))
        logger.info(
            "New %s game: %s (%s), %s parenting, %s communication.",
            game_style, name, child_id,
            dynamics.parenting_style.value, dynamics.communication_pattern.value,
        )
        return state

    def add_child(
        self,
        state: GameState,
        name: str,
        gender: str,
        rng: RandomSource,
        circumstances: BirthCircumstance = BirthCircumstance.PLANNED,
        age: int = 0,
        interests: list[str] | None = None,
    ) -> GameState:
        """Welcome a new child; it becomes the active child."""
        circumstances = BirthCircumstance(circumstances)
        new_state = state.model_copy(deep=True)
        existing = list(new_state.children.values())

        child_id = generate_child_id(new_state.family_prefix, new_state.child_counters)
        child = create_child(child_id, name, age, gender, self.development, rng, interests)

        for sibling in existing:
            new_state.sibling_relationships.append(
                form_relationship(sibling, child, new_state.family_dynamics, new_state.current_age)
            )

        impact = new_child_impact(self.family, circumstances, len(existing))
        apply_birth_impact(new_state.family_dynamics, impact)
        new_state.happiness = clamp(new_state.happiness + impact.happiness)
        new_state.finances = max(FINANCES_FLOOR, new_state.finances + impact.finances)

        new_state.children[child_id] = child
        new_state.active_child_id = child_id
        new_state.birth_events.append(ChildBirthEvent(
            child_id=child_id,
            name=name,
            birth_age=new_state.current_age,
            circumstances=circumstances,
            impact=impact,
        ))
        logger.info(
            "%s joined the family (%s, %s); %d children now.",
            name, child_id, circumstances.value, len(new_state.children),
        )
        return new_state

    def introduce_peers(
        self,
        state: GameState,
        rng: RandomSource,
        child_id: str | None = None,
    ) -> GameState:
        """Generate a peer group for a child and seed the peer relationships."""
        new_state = state.model_copy(deep=True)
        target_id = child_id or new_state.active_child_id
        child = new_state.children.get(target_id)
        if child is None:
            logger.debug("Cannot introduce peers: no child '%s'.", target_id)
            return new_state
        peers = generate_peers(child, self.development, rng)
        initialize_peer_relationships(child, peers, rng)
        new_state.peers[target_id] = peers
        return new_state

    # -- turns ---------------------------------------------------------------

    def next_scenario(
        self,
        state: GameState,
        rng: RandomSource,
        child_id: str | None = None,
    ) -> Scenario:
        target_id = child_id or state.active_child_id
        character = state.children.get(target_id)
        if character is None:
            raise KeyError(f"Unknown child '{target_id}'.")
        return self.selector.select(
            character,
            state.game_style,
            state.family_dynamics,
            rng,
            child_count=len(state.children),
            peers=state.peers.get(target_id, []),
            sibling_ids=[sibling.id for sibling in state.siblings_of(target_id)],
        )

    def birth_scenario(self, state: GameState, circumstances: BirthCircumstance) -> Scenario:
        return self.selector.birth_scenario(circumstances, state.game_style, len(state.children))

    def apply_decision(
        self,
        state: GameState,
        choice: ScenarioOption | EffectPayload,
        child_id: str | None = None,
    ) -> tuple[GameState, DecisionResult]:
        """
        Resolve a chosen option on one child and spread it through the family.

        An unknown child id leaves the state untouched.
        """
        new_state = state.model_copy(deep=True)
        target_id = child_id or new_state.active_child_id
        character = new_state.children.get(target_id)
        if character is None:
            logger.debug("Decision skipped: no child '%s'.", target_id)
            return new_state, DecisionResult(child_id=target_id, applied=False)

        if isinstance(choice, ScenarioOption):
            payload, label = choice.effects, choice.label
        else:
            payload, label = choice, ""

        age = character.age
        dynamics = new_state.family_dynamics
        outcome = resolve_decision(
            character,
            payload,
            age,
            dynamics,
            new_state.siblings_of(target_id),
            self.development,
            label,
        )

        for sibling_id, effect in outcome.sibling_effects.items():
            sibling = new_state.children[sibling_id]
            for trait_id, delta in effect.traits.items():
                apply_trait_delta(sibling, trait_id, delta)
            if effect.relationship is not None:
                relationship = find_relationship(new_state.sibling_relationships, target_id, sibling_id)
                if relationship is None:
                    logger.debug("No relationship between %s and %s; skipping.", target_id, sibling_id)
                else:
                    apply_sibling_delta(relationship, effect.relationship, age)

        apply_dynamics_delta(dynamics, outcome.family_dynamics)
        favoritism_updated = update_favoritism(
            dynamics, target_id, new_state.children.keys(), payload.happiness, payload.finances
        )

        new_state.happiness = clamp(new_state.happiness + outcome.happiness)
        new_state.finances = max(FINANCES_FLOOR, new_state.finances + outcome.finances)

        achieved = self.milestones.check(character, age)
        logger.debug(
            "Decision '%s' on %s: happiness %+.0f, finances %+.0f.",
            label, target_id, outcome.happiness, outcome.finances,
        )
        return new_state, DecisionResult(
            child_id=target_id,
            applied=True,
            event=outcome.event,
            happiness_change=outcome.happiness,
            finances_change=outcome.finances,
            sibling_effects=outcome.sibling_effects,
            achieved_milestones=[milestone.id for milestone in achieved],
            favoritism_updated=favoritism_updated,
        )

    def apply_crisis(
        self,
        state: GameState,
        crisis_type: CrisisType,
        severity: CrisisSeverity,
    ) -> tuple[GameState, CrisisReport]:
        new_state = state.model_copy(deep=True)
        report = handle_crisis(
            new_state.family_dynamics,
            new_state.children.values(),
            crisis_type,
            severity,
            self.family,
        )
        return new_state, report

    def advance_year(self, state: GameState, rng: RandomSource) -> tuple[GameState, YearReport]:
        """
        Age every child by one year.

        Per child, in insertion order: natural trait drift (one draw per
        eligible trait), newly age-eligible skills, peer drift and influence.
        Sibling bonds drift afterwards and milestones are checked last.
        """
        new_state = state.model_copy(deep=True)
        new_state.current_age += 1
        report = YearReport(age=new_state.current_age)

        for child in new_state.children.values():
            child.age += 1
            apply_natural_evolution(child, self.development, rng)
            unlocked = self._unlock_age_skills(child)
            if unlocked:
                report.unlocked_skills[child.id] = unlocked
            peers = new_state.peers.get(child.id, [])
            if peers:
                evolve_peer_relationships(child, peers, child.age)
                apply_peer_influence(child, peers)

        for relationship in new_state.sibling_relationships:
            first = new_state.children.get(relationship.child_id1)
            second = new_state.children.get(relationship.child_id2)
            if first is None or second is None:
                continue
            evolve_relationship(relationship, first, second, new_state.current_age)

        for child in new_state.children.values():
            achieved = self.milestones.check(child, child.age)
            if achieved:
                report.achieved_milestones[child.id] = [milestone.id for milestone in achieved]

        logger.debug("Advanced family to age %d.", new_state.current_age)
        return new_state, report

    def overview(self, state: GameState) -> FamilyOverview:
        return family_overview(state.children, state.family_dynamics, state.sibling_relationships)

    def _unlock_age_skills(self, child: ChildCharacter) -> list[str]:
        unlocked = []
        for definition in self.development.skills:
            if definition.unlockAge <= child.age and child.get_skill(definition.id) is None:
                apply_skill_delta(child, definition.id, 0, self.development.skill_catalog)
                unlocked.append(definition.id)
        return unlocked
