"""
babysim/config_models.py
~~~~~~~~~~~~~~~~~~~~~~~~
Pydantic schemas for the JSON tables under ``babysim/config``.

Field names mirror the JSON keys exactly. Every model is frozen: the tables
are loaded once and then only read.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from babysim.character import ImpactSnapshot, SkillCategory, TraitCategory
from babysim.effects import EffectPayload
from babysim.family import BirthCircumstance, CommunicationPattern, CrisisSeverity, ParentingStyle

GAME_STYLES = ("Realistic", "Fantasy", "Thrilling")
DEFAULT_GAME_STYLE = "Realistic"

TRAIT_TRIGGERS = ("HIGH", "LOW")
SKILL_TRIGGERS = ("ADVANCED", "STRUGGLING")


def _check_unique(ids: list[str], what: str) -> None:
    seen = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"Duplicate {what} id '{item}'.")
        seen.add(item)


def _check_styles(styles: dict[str, Any], what: str) -> None:
    for style in styles:
        if style not in GAME_STYLES:
            raise ValueError(f"Unknown game style '{style}' in {what}.")


def _check_triggers(triggers: dict[str, Any], allowed: tuple[str, ...], what: str) -> None:
    for trigger in triggers:
        if trigger not in allowed:
            raise ValueError(f"Unknown trigger '{trigger}' in {what}; expected one of {allowed}.")


# ---------------------------------------------------------------------------
#  development.json
# ---------------------------------------------------------------------------


class TraitDefinition(BaseModel):
    """A base personality trait every child starts with."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: TraitCategory
    description: str = ""
    baseValue: float = Field(ge=0.0, le=100.0)
    # Added to baseValue for every year of age at creation.
    ageSlope: float = 0.0

    model_config = {"frozen": True}


class SkillDefinition(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: SkillCategory
    unlockAge: int = Field(ge=0)

    model_config = {"frozen": True}


class MilestoneDefinition(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    age: int = Field(ge=0)
    impact: ImpactSnapshot = Field(default_factory=ImpactSnapshot)

    model_config = {"frozen": True}


class CriticalPeriod(BaseModel):
    """An age window during which a trait responds more strongly to parenting."""

    startAge: int = Field(ge=0)
    endAge: int = Field(ge=0)
    multiplier: float = Field(gt=0.0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def end_after_start(self) -> CriticalPeriod:
        if self.endAge < self.startAge:
            raise ValueError("endAge must be greater than or equal to startAge.")
        return self


class RelationshipSeed(BaseModel):
    type: str = Field(min_length=1)
    quality: float = Field(ge=0.0, le=100.0)
    trust: float = Field(ge=0.0, le=100.0)
    communication: float = Field(ge=0.0, le=100.0)

    model_config = {"frozen": True}


class EvolutionRule(BaseModel):
    amplitude: float = Field(ge=0.0)
    minAge: int = Field(ge=0)

    model_config = {"frozen": True}


class DevelopmentConfig(BaseModel):
    """Full shape of config/development.json."""

    baseTraits: list[TraitDefinition] = Field(min_length=1)
    traitJitter: float = Field(default=10.0, ge=0.0)
    initialTraitMin: float = Field(default=10.0, ge=0.0, le=100.0)
    initialTraitMax: float = Field(default=90.0, ge=0.0, le=100.0)
    skills: list[SkillDefinition] = Field(min_length=1)
    milestones: list[MilestoneDefinition] = Field(default_factory=list)
    criticalPeriods: dict[str, CriticalPeriod] = Field(default_factory=dict)
    traitInteractions: dict[str, list[str]] = Field(default_factory=dict)
    initialRelationships: dict[str, RelationshipSeed] = Field(default_factory=dict)
    naturalEvolution: dict[TraitCategory, EvolutionRule] = Field(default_factory=dict)
    peerNames: dict[str, list[str]] = Field(min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def consistent_tables(self) -> DevelopmentConfig:
        _check_unique([trait.id for trait in self.baseTraits], "trait")
        _check_unique([skill.id for skill in self.skills], "skill")
        _check_unique([milestone.id for milestone in self.milestones], "milestone")
        if self.initialTraitMax < self.initialTraitMin:
            raise ValueError("initialTraitMax must be greater than or equal to initialTraitMin.")
        for gender, names in self.peerNames.items():
            if not names:
                raise ValueError(f"peerNames['{gender}'] must not be empty.")
        return self

    @property
    def trait_ids(self) -> list[str]:
        return [trait.id for trait in self.baseTraits]

    @property
    def skill_catalog(self) -> dict[str, SkillDefinition]:
        return {skill.id: skill for skill in self.skills}


# ---------------------------------------------------------------------------
#  family.json
# ---------------------------------------------------------------------------


class DynamicsProfile(BaseModel):
    cohesion: float = Field(ge=0.0, le=100.0)
    stress: float = Field(ge=0.0, le=100.0)
    resourceStrain: float = Field(ge=0.0, le=100.0)
    attachmentSecurity: float = Field(ge=0.0, le=100.0)
    resilience: float = Field(ge=0.0, le=100.0)
    emotionalExpressiveness: float = Field(ge=0.0, le=100.0)
    boundaryClarity: float = Field(ge=0.0, le=100.0)
    traditionalValues: float = Field(ge=0.0, le=100.0)
    adaptability: float = Field(ge=0.0, le=100.0)

    model_config = {"frozen": True}


class BirthImpactRule(BaseModel):
    cohesion: float = 0.0
    stress: float = 0.0
    resourceStrain: float = 0.0
    happiness: float = 0.0
    finances: float = 0.0

    model_config = {"frozen": True}


class NewChildImpactConfig(BaseModel):
    base: BirthImpactRule
    perExistingChild: BirthImpactRule = Field(default_factory=BirthImpactRule)
    circumstances: dict[BirthCircumstance, BirthImpactRule] = Field(default_factory=dict)

    model_config = {"frozen": True}


class FamilyConfig(BaseModel):
    """Full shape of config/family.json."""

    parentingStyleWeights: dict[ParentingStyle, float] = Field(min_length=1)
    communicationPatterns: dict[ParentingStyle, list[CommunicationPattern]]
    baseDynamics: DynamicsProfile
    styleProfiles: dict[ParentingStyle, dict[str, float]] = Field(default_factory=dict)
    crisisBaseImpact: dict[CrisisSeverity, float]
    firstChildImpact: BirthImpactRule = Field(default_factory=BirthImpactRule)
    newChildImpact: NewChildImpactConfig

    model_config = {"frozen": True}

    @field_validator("parentingStyleWeights")
    @classmethod
    def weights_sum_to_one(cls, weights: dict[ParentingStyle, float]) -> dict[ParentingStyle, float]:
        if any(weight < 0 for weight in weights.values()):
            raise ValueError("parentingStyleWeights must not be negative.")
        total = sum(weights.values())
        if abs(total - 1.0) >= 1e-6:
            raise ValueError(f"parentingStyleWeights must sum to 1.0 (got {total:.6f}).")
        return weights

    @model_validator(mode="after")
    def every_style_covered(self) -> FamilyConfig:
        for style in self.parentingStyleWeights:
            if not self.communicationPatterns.get(style):
                raise ValueError(f"No communication patterns defined for '{style.value}'.")
        known = set(DynamicsProfile.model_fields)
        for style, overrides in self.styleProfiles.items():
            for key, value in overrides.items():
                if key not in known:
                    raise ValueError(f"Unknown dynamics field '{key}' in styleProfiles['{style.value}'].")
                if not 0 <= value <= 100:
                    raise ValueError(f"styleProfiles['{style.value}'].{key} must be between 0 and 100.")
        for severity in CrisisSeverity:
            if severity not in self.crisisBaseImpact:
                raise ValueError(f"Missing crisisBaseImpact for '{severity.value}'.")
        return self


# ---------------------------------------------------------------------------
#  scenarios.json
# ---------------------------------------------------------------------------


class OptionTemplate(BaseModel):
    label: str = Field(min_length=1)
    consequence: str = ""
    # Raw payload; "{trait}", "{skill}", "{peerKey}" and "*" keys are filled
    # in when the scenario is built.
    effects: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("effects")
    @classmethod
    def payload_shape(cls, effects: dict[str, Any]) -> dict[str, Any]:
        EffectPayload.model_validate(effects)
        return effects


class ScenarioTemplate(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    options: list[OptionTemplate] = Field(min_length=1)

    model_config = {"frozen": True}


class ScenarioHeader(BaseModel):
    """Title and description only; options are generated."""

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""

    model_config = {"frozen": True}


class ExpectedLevelRule(BaseModel):
    offset: float = 0.0
    divisor: float = Field(gt=0.0)

    model_config = {"frozen": True}


class TraitThresholds(BaseModel):
    high: float = Field(ge=0.0, le=100.0)
    low: float = Field(ge=0.0, le=100.0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def low_below_high(self) -> TraitThresholds:
        if self.low >= self.high:
            raise ValueError("traitThresholds.low must be below traitThresholds.high.")
        return self


class MoralDilemma(BaseModel):
    id: str = Field(min_length=1)
    minAge: int = Field(ge=0)
    maxAge: int = Field(ge=0)
    styles: dict[str, ScenarioTemplate] = Field(min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def valid_window(self) -> MoralDilemma:
        if self.maxAge < self.minAge:
            raise ValueError(f"Moral dilemma '{self.id}': maxAge must be >= minAge.")
        _check_styles(self.styles, f"moral dilemma '{self.id}'")
        return self


class TraitScenarioMapping(BaseModel):
    minAge: int = Field(ge=0)
    styles: dict[str, dict[str, ScenarioHeader]] = Field(min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def valid_styles(self) -> TraitScenarioMapping:
        _check_styles(self.styles, "traitScenarios")
        for triggers in self.styles.values():
            _check_triggers(triggers, TRAIT_TRIGGERS, "traitScenarios")
        return self


class TraitOptionSet(BaseModel):
    HIGH: list[OptionTemplate] = Field(min_length=1)
    LOW: list[OptionTemplate] = Field(min_length=1)
    guidanceMinAge: int = Field(ge=0)
    guidance: dict[str, OptionTemplate] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("guidance")
    @classmethod
    def guidance_triggers(cls, guidance: dict[str, OptionTemplate]) -> dict[str, OptionTemplate]:
        _check_triggers(guidance, TRAIT_TRIGGERS, "traitOptions.guidance")
        return guidance


class ScenarioConfig(BaseModel):
    """Full shape of config/scenarios.json."""

    traitThresholds: TraitThresholds
    moralDilemmaChance: float = Field(ge=0.0, le=1.0)
    moralDilemmaMinAge: int = Field(ge=0)
    moralDilemmaMaxAge: int = Field(ge=0)
    peerScenarioChance: float = Field(ge=0.0, le=1.0)
    peerScenarioMinAge: int = Field(ge=0)
    expectedSkillLevels: dict[str, ExpectedLevelRule] = Field(default_factory=dict)
    defaultExpectedDivisor: float = Field(gt=0.0)
    familyScenarios: dict[str, list[ScenarioTemplate]] = Field(default_factory=dict)
    moralDilemmas: list[MoralDilemma] = Field(default_factory=list)
    peerScenarios: dict[str, dict[str, ScenarioTemplate]] = Field(default_factory=dict)
    traitScenarios: dict[str, TraitScenarioMapping] = Field(default_factory=dict)
    traitOptions: TraitOptionSet
    skillScenarios: dict[str, dict[str, dict[str, ScenarioHeader]]] = Field(default_factory=dict)
    skillOptions: dict[str, list[OptionTemplate]] = Field(default_factory=dict)
    defaultScenarios: dict[str, ScenarioTemplate]
    birthScenarios: dict[BirthCircumstance, dict[str, ScenarioTemplate]] = Field(default_factory=dict)
    genericBirthScenario: ScenarioTemplate

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def consistent_tables(self) -> ScenarioConfig:
        if self.moralDilemmaMaxAge < self.moralDilemmaMinAge:
            raise ValueError("moralDilemmaMaxAge must be >= moralDilemmaMinAge.")
        if DEFAULT_GAME_STYLE not in self.defaultScenarios:
            raise ValueError(f"defaultScenarios must define the '{DEFAULT_GAME_STYLE}' style.")
        _check_styles(self.defaultScenarios, "defaultScenarios")
        _check_styles(self.familyScenarios, "familyScenarios")
        for kind, styles in self.peerScenarios.items():
            _check_styles(styles, f"peerScenarios['{kind}']")
        for skill_id, styles in self.skillScenarios.items():
            _check_styles(styles, f"skillScenarios['{skill_id}']")
            for triggers in styles.values():
                _check_triggers(triggers, SKILL_TRIGGERS, f"skillScenarios['{skill_id}']")
        _check_triggers(self.skillOptions, SKILL_TRIGGERS, "skillOptions")
        for circumstance, styles in self.birthScenarios.items():
            _check_styles(styles, f"birthScenarios['{circumstance.value}']")
        _check_unique([dilemma.id for dilemma in self.moralDilemmas], "moral dilemma")
        return self
