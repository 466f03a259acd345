from babysim.character import EventType
from babysim.milestones import MilestoneEngine, age_only


def _pending(child):
    return [milestone.id for milestone in child.milestones if not milestone.achieved]


# ── default predicate ───────────────────────────────────────


def test_age_only_predicate(make_child):
    child = make_child(age=0)
    assert age_only(child.milestones[0], child) is True


def test_milestone_achieved_once(make_child, development):
    engine = MilestoneEngine(development.skill_catalog)
    child = make_child(age=0)

    achieved = engine.check(child, 1)
    assert [milestone.id for milestone in achieved] == ["first_words"]
    assert child.trait_value("confidence") == 55
    assert child.get_skill("communication").experience == 5
    event = child.development_history[-1]
    assert event.type is EventType.MILESTONE
    assert event.description == "Milestone achieved: First Words"

    assert engine.check(child, 1) == []
    assert child.trait_value("confidence") == 55


def test_milestones_in_catalog_order(make_child, development):
    engine = MilestoneEngine(development.skill_catalog)
    child = make_child(age=0)
    achieved = engine.check(child, 10)
    assert [milestone.id for milestone in achieved] == [
        "first_words", "social_play", "reading_readiness",
        "peer_relationships", "academic_foundation", "independence",
    ]
    assert _pending(child) == []


def test_milestone_unlocks_skill(make_child, development):
    engine = MilestoneEngine(development.skill_catalog)
    child = make_child(age=0)
    engine.check(child, 8)
    # academic_foundation adds experience to skills the toddler never unlocked
    assert child.get_skill("math").experience == 15
    assert child.get_skill("writing").experience == 10


def test_milestone_not_due_before_age(make_child, development):
    engine = MilestoneEngine(development.skill_catalog)
    child = make_child(age=0)
    assert engine.check(child, 0) == []
    assert len(_pending(child)) == 6


# ── custom predicate ────────────────────────────────────────


def test_custom_predicate_blocks(make_child, development):
    def confident_enough(milestone, character):
        return character.trait_value("confidence", 0) >= 70

    engine = MilestoneEngine(development.skill_catalog, confident_enough)
    child = make_child(age=0)
    assert engine.check(child, 1) == []

    child.get_trait("confidence").value = 75
    assert [milestone.id for milestone in engine.check(child, 1)] == ["first_words"]
