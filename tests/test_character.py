import pytest

from babysim.character import (
    MAX_EXPERIENCE_AT_CAP,
    RelationshipDelta,
    TraitCategory,
    apply_natural_evolution,
    apply_relationship_delta,
    apply_skill_delta,
    apply_trait_delta,
    create_child,
    development_score,
    skills_by_category,
    traits_by_category,
)
from babysim.rng import DrawSequence


def _midpoint_draws(development):
    return DrawSequence([0.5] * len(development.baseTraits))


# ── create_child ────────────────────────────────────────────


def test_create_child_base_values(development):
    draws = _midpoint_draws(development)
    child = create_child("c1", "Ada", 5, "female", development, draws)
    assert child.trait_value("curiosity") == 70
    assert child.trait_value("independence") == 45  # 30 + 3 * 5
    assert child.trait_value("focus") == 45  # 35 + 2 * 5
    assert draws.consumed == 10
    assert [trait.id for trait in child.personality_traits] == development.trait_ids


def test_create_child_jitter_and_clamp(development):
    draws = DrawSequence([1.0] * 10)
    child = create_child("c1", "Ada", 30, "female", development, draws)
    assert child.trait_value("creativity") == 85
    assert child.trait_value("independence") == 90

    draws = DrawSequence([0.0] * 10)
    child = create_child("c2", "Bo", 0, "male", development, draws)
    assert child.trait_value("independence") == 20
    assert child.trait_value("focus") == 25


def test_create_child_negative_age(development):
    child = create_child("c1", "Ada", -3, "female", development, _midpoint_draws(development))
    assert child.age == 0


def test_create_child_skills_by_age(development):
    baby = create_child("c1", "Ada", 0, "female", development, _midpoint_draws(development))
    assert [skill.id for skill in baby.skills] == ["communication"]

    child = create_child("c2", "Bo", 5, "male", development, _midpoint_draws(development))
    assert {skill.id for skill in child.skills} == {
        "communication", "art", "reading", "music", "math", "sports", "writing", "problem_solving",
    }
    assert all(skill.level == 1 and skill.experience == 0 for skill in child.skills)


def test_create_child_relationships_and_milestones(development):
    child = create_child("c1", "Ada", 5, "female", development, _midpoint_draws(development))
    parent = child.relationships["parent-child"]
    assert (parent.quality, parent.trust, parent.communication) == (80, 85, 70)

    achieved = {milestone.id for milestone in child.milestones if milestone.achieved}
    assert achieved == {"first_words", "social_play", "reading_readiness"}
    assert child.development_history == []


# ── mutators ────────────────────────────────────────────────


def test_trait_delta_clamps(make_child):
    child = make_child(confidence=95)
    assert apply_trait_delta(child, "confidence", 20)
    assert child.trait_value("confidence") == 100
    apply_trait_delta(child, "confidence", -150)
    assert child.trait_value("confidence") == 0


def test_trait_delta_missing_is_noop(make_child):
    child = make_child()
    before = child.model_dump()
    assert apply_trait_delta(child, "patience", 10) is False
    assert child.model_dump() == before


def test_skill_experience_levels_up(make_child, development):
    child = make_child()
    reading = child.get_skill("reading")
    reading.experience = 60
    apply_skill_delta(child, "reading", 40, development.skill_catalog)
    assert (reading.level, reading.experience) == (2, 0)


def test_large_gain_levels_up_once(make_child, development):
    child = make_child()
    apply_skill_delta(child, "reading", 350, development.skill_catalog)
    reading = child.get_skill("reading")
    assert (reading.level, reading.experience) == (2, 0)


def test_skill_caps_at_level_ten(make_child, development):
    child = make_child()
    reading = child.get_skill("reading")
    reading.level = 9
    reading.experience = 50
    apply_skill_delta(child, "reading", 200, development.skill_catalog)
    assert (reading.level, reading.experience) == (10, 0)

    apply_skill_delta(child, "reading", 120, development.skill_catalog)
    assert reading.level == 10
    assert reading.experience == MAX_EXPERIENCE_AT_CAP


def test_skill_experience_never_negative(make_child, development):
    child = make_child()
    apply_skill_delta(child, "reading", -40, development.skill_catalog)
    reading = child.get_skill("reading")
    assert (reading.level, reading.experience) == (1, 0)


def test_skill_unlocks_catalog_skill(make_child, development):
    child = make_child(age=0)
    assert child.get_skill("science") is None
    assert apply_skill_delta(child, "science", 30, development.skill_catalog)
    science = child.get_skill("science")
    assert (science.level, science.experience) == (1, 30)


def test_skill_outside_catalog_is_ignored(make_child, development):
    child = make_child()
    count = len(child.skills)
    assert apply_skill_delta(child, "juggling", 30, development.skill_catalog) is False
    assert len(child.skills) == count


def test_relationship_delta_clamps(make_child):
    child = make_child()
    apply_relationship_delta(child, "parent-child", RelationshipDelta(quality=30, trust=-100), 6)
    parent = child.relationships["parent-child"]
    assert parent.quality == 100
    assert parent.trust == 0
    assert parent.last_updated == 6
    assert apply_relationship_delta(child, "grandparent", RelationshipDelta(quality=5), 6) is False


# ── natural evolution ───────────────────────────────────────


def test_natural_evolution_respects_min_age(make_child, development):
    baby = make_child(age=0)
    draws = DrawSequence([1.0] * 10)
    apply_natural_evolution(baby, development, draws)
    # Only emotional and creative traits drift before age 4
    assert draws.consumed == 4
    assert baby.trait_value("empathy") == 50.5
    assert baby.trait_value("curiosity") == 50


def test_natural_evolution_all_categories(make_child, development):
    child = make_child(age=8)
    draws = DrawSequence([0.0] * 10)
    apply_natural_evolution(child, development, draws)
    assert draws.consumed == 10
    assert child.trait_value("curiosity") == 49
    assert child.trait_value("confidence") == 49.25


# ── summaries ───────────────────────────────────────────────


def test_grouping(make_child):
    child = make_child()
    grouped = traits_by_category(child)
    assert {trait.id for trait in grouped[TraitCategory.EMOTIONAL]} == {"empathy", "resilience", "compassion"}
    skills = skills_by_category(child)
    assert sum(len(group) for group in skills.values()) == len(child.skills)


def test_development_score(make_child):
    child = make_child()
    # traits 50, every skill level 1 (x10), parent-child quality 80
    assert development_score(child) == pytest.approx((50 + 10 + 80) / 3)


def test_development_score_defaults(make_child):
    child = make_child()
    child.personality_traits.clear()
    child.skills.clear()
    child.relationships.clear()
    assert development_score(child) == pytest.approx((50 + 30 + 70) / 3)
