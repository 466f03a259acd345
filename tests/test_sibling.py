import pytest
from pydantic import ValidationError

from babysim.family import CommunicationPattern
from babysim.sibling import (
    ConflictResolution,
    DevelopmentalStage,
    DominancePattern,
    SiblingRelationship,
    SiblingRelationshipDelta,
    SiblingRelationshipType,
    apply_relationship_delta,
    classify_relationship,
    conflict_resolution_style,
    developmental_stage,
    evolve_relationship,
    find_relationship,
    form_relationship,
    relationships_for,
)


# ── formation ───────────────────────────────────────────────


def test_formation_worked_example(make_child, neutral_dynamics):
    older = make_child("c1", age=9)
    younger = make_child("c2", age=3)
    relationship = form_relationship(older, younger, neutral_dynamics)

    assert relationship.bond == 75
    assert relationship.rivalry == 15
    assert relationship.cooperation == 50
    assert relationship.relationship_type is SiblingRelationshipType.PROTECTIVE
    assert relationship.developmental_stage is DevelopmentalStage.MENTORING
    assert relationship.conflict_resolution is ConflictResolution.COLLABORATIVE
    assert relationship.jealousy == pytest.approx(9)
    assert relationship.supportiveness == pytest.approx(62.5)

    order = relationship.birth_order_dynamics
    assert order.dominance_pattern is DominancePattern.OLDER_LEADS
    assert order.responsibility_sharing == pytest.approx(50)
    assert order.protectiveness == pytest.approx(67.5)


def test_formation_is_order_independent(make_child, neutral_dynamics):
    a = make_child("c1", age=9, interests=["music"])
    b = make_child("c2", age=3, interests=["music", "art"])
    assert form_relationship(a, b, neutral_dynamics) == form_relationship(b, a, neutral_dynamics)


def test_close_in_age(make_child, neutral_dynamics):
    a = make_child("c1", age=5)
    b = make_child("c2", age=4)
    relationship = form_relationship(a, b, neutral_dynamics)
    assert relationship.rivalry == 50
    assert relationship.cooperation == 60
    assert relationship.relationship_type is SiblingRelationshipType.NEUTRAL
    assert relationship.developmental_stage is DevelopmentalStage.COOPERATIVE
    assert relationship.birth_order_dynamics.dominance_pattern is DominancePattern.SITUATIONAL


def test_formation_clamps(make_child, neutral_dynamics):
    neutral_dynamics.cohesion = 100
    neutral_dynamics.stress = 0
    a = make_child("c1", age=12)
    b = make_child("c2", age=1)
    relationship = form_relationship(a, b, neutral_dynamics)
    assert relationship.bond == 90
    assert relationship.rivalry == 5


def test_shared_interests(make_child, neutral_dynamics):
    a = make_child("c1", age=6, interests=["music", "sports"])
    b = make_child("c2", age=4, interests=["art", "music"])
    assert form_relationship(a, b, neutral_dynamics).shared_interests == ["music"]


def test_shared_interests_are_order_independent(make_child, neutral_dynamics):
    a = make_child("c1", age=6, interests=["sports", "music", "art"])
    b = make_child("c2", age=4, interests=["art", "music"])
    forward = form_relationship(a, b, neutral_dynamics)
    assert forward.shared_interests == ["art", "music"]
    assert forward == form_relationship(b, a, neutral_dynamics)


def test_younger_leads(make_child, neutral_dynamics):
    older = make_child("c1", age=8, confidence=40)
    younger = make_child("c2", age=4, confidence=65)
    relationship = form_relationship(older, younger, neutral_dynamics)
    assert relationship.birth_order_dynamics.dominance_pattern is DominancePattern.YOUNGER_LEADS


def test_twins_are_equal(make_child, neutral_dynamics):
    relationship = form_relationship(make_child("c1", age=2), make_child("c2", age=2), neutral_dynamics)
    assert relationship.birth_order_dynamics.dominance_pattern is DominancePattern.EQUAL
    assert relationship.developmental_stage is DevelopmentalStage.PARALLEL_PLAY


# ── classification ──────────────────────────────────────────


@pytest.mark.parametrize("bond, rivalry, gap, expected", [
    (75, 15, 6, SiblingRelationshipType.PROTECTIVE),
    (80, 20, 2, SiblingRelationshipType.CLOSE),
    (50, 70, 1, SiblingRelationshipType.COMPETITIVE),
    (30, 30, 2, SiblingRelationshipType.DISTANT),
    (50, 50, 2, SiblingRelationshipType.NEUTRAL),
])
def test_classify_relationship(bond, rivalry, gap, expected):
    assert classify_relationship(bond, rivalry, gap) is expected


@pytest.mark.parametrize("younger_age, gap, expected", [
    (2, 1, DevelopmentalStage.PARALLEL_PLAY),
    (4, 2, DevelopmentalStage.COOPERATIVE),
    (7, 3, DevelopmentalStage.COMPETITIVE),
    (4, 6, DevelopmentalStage.MENTORING),
    (11, 4, DevelopmentalStage.INDEPENDENT),
])
def test_developmental_stage(younger_age, gap, expected):
    assert developmental_stage(younger_age, gap) is expected


@pytest.mark.parametrize("pattern, gap, expected", [
    (CommunicationPattern.HEALTHY, 5, ConflictResolution.COLLABORATIVE),
    (CommunicationPattern.OPEN, 2, ConflictResolution.INDEPENDENT),
    (CommunicationPattern.RESTRICTED, 2, ConflictResolution.AVOIDANT),
    (CommunicationPattern.CHAOTIC, 2, ConflictResolution.AGGRESSIVE),
    (CommunicationPattern.CONFLICT_AVOIDANT, 2, ConflictResolution.PARENT_MEDIATED),
])
def test_conflict_resolution_style(pattern, gap, expected):
    assert conflict_resolution_style(pattern, gap) is expected


# ── pair bookkeeping ────────────────────────────────────────


def test_pair_is_canonical():
    relationship = SiblingRelationship(child_id1="zed", child_id2="amy", bond=50, rivalry=30, cooperation=50)
    assert relationship.pair == ("amy", "zed")
    assert relationship.involves("amy")


def test_pair_needs_two_children():
    with pytest.raises(ValidationError):
        SiblingRelationship(child_id1="amy", child_id2="amy", bond=50, rivalry=30, cooperation=50)


def test_lookup_is_order_independent(make_child, neutral_dynamics):
    a, b, c = make_child("c1", age=9), make_child("c2", age=3), make_child("c3", age=6)
    relationships = [form_relationship(a, b, neutral_dynamics), form_relationship(b, c, neutral_dynamics)]
    assert find_relationship(relationships, "c2", "c1") is relationships[0]
    assert find_relationship(relationships, "c1", "c3") is None
    assert relationships_for(relationships, "c2") == relationships


# ── updates ─────────────────────────────────────────────────


def test_relationship_delta(make_child, neutral_dynamics):
    relationship = form_relationship(make_child("c1", age=9), make_child("c2", age=3), neutral_dynamics)
    apply_relationship_delta(relationship, SiblingRelationshipDelta.model_validate({
        "bond": 40, "rivalry": -30, "relationshipType": "close",
    }), 10)
    assert relationship.bond == 100
    assert relationship.rivalry == 0
    assert relationship.relationship_type is SiblingRelationshipType.CLOSE
    assert relationship.last_interaction == 10


def test_yearly_drift(make_child, neutral_dynamics):
    older = make_child("c1", age=9)
    younger = make_child("c2", age=3)
    relationship = form_relationship(older, younger, neutral_dynamics)
    evolve_relationship(relationship, older, younger, 1)
    # compatible (+2) but far apart in age (-3)
    assert relationship.bond == 74
    assert relationship.relationship_type is SiblingRelationshipType.PROTECTIVE
    assert relationship.last_interaction == 1


def test_drift_for_close_ages(make_child, neutral_dynamics):
    a = make_child("c1", age=5)
    b = make_child("c2", age=4)
    relationship = form_relationship(a, b, neutral_dynamics)
    evolve_relationship(relationship, a, b, 1)
    assert relationship.bond == 62
