import pytest

from babysim.character import EventType
from babysim.family import (
    BirthCircumstance,
    CommunicationPattern,
    CrisisSeverity,
    CrisisType,
    FamilyDynamics,
    FamilyDynamicsDelta,
    ParentingStyle,
    age_vulnerability,
    apply_dynamics_delta,
    cohesion_level,
    family_overview,
    handle_crisis,
    initialize_family_dynamics,
    new_child_impact,
    stress_level,
    update_favoritism,
)
from babysim.rng import DrawSequence
from babysim.sibling import form_relationship


@pytest.fixture
def household():
    return FamilyDynamics(cohesion=85, stress=15, resource_strain=20, attachment_security=70, resilience=60)


# ── initialisation ──────────────────────────────────────────


def test_initialize_first_style(family_tables):
    dynamics = initialize_family_dynamics(family_tables, DrawSequence([0.0, 0.0]))
    assert dynamics.parenting_style is ParentingStyle.AUTHORITATIVE
    assert dynamics.communication_pattern is CommunicationPattern.OPEN
    assert dynamics.attachment_security == 80
    assert dynamics.boundary_clarity == 75
    assert dynamics.cohesion == 85
    assert dynamics.favoritism == {}


def test_initialize_cumulative_weights(family_tables):
    dynamics = initialize_family_dynamics(family_tables, DrawSequence([0.5, 0.99]))
    assert dynamics.parenting_style is ParentingStyle.PERMISSIVE
    assert dynamics.communication_pattern is CommunicationPattern.CHAOTIC

    dynamics = initialize_family_dynamics(family_tables, DrawSequence([0.99, 0.99]))
    assert dynamics.parenting_style is ParentingStyle.NEGLECTFUL
    assert dynamics.communication_pattern is CommunicationPattern.CONFLICT_AVOIDANT
    assert dynamics.cohesion == 60


def test_dynamics_delta_clamps(household):
    apply_dynamics_delta(household, FamilyDynamicsDelta(
        cohesion=30, stress=-40, favoritism={"c1": 5}, communication_pattern=CommunicationPattern.HEALTHY,
    ))
    assert household.cohesion == 100
    assert household.stress == 0
    assert household.favoritism == {"c1": 5}
    assert household.communication_pattern is CommunicationPattern.HEALTHY


# ── crisis ──────────────────────────────────────────────────


def test_severe_crisis_worked_example(household, family_tables):
    report = handle_crisis(household, [], CrisisType.FINANCIAL, CrisisSeverity.SEVERE, family_tables)
    assert report.actual_impact == pytest.approx(45)
    assert household.stress == pytest.approx(60)
    assert household.cohesion == pytest.approx(85 - 13.5)


def test_relationship_crisis_hits_cohesion_harder(household, family_tables):
    handle_crisis(household, [], CrisisType.RELATIONSHIP, CrisisSeverity.SEVERE, family_tables)
    assert household.cohesion == pytest.approx(49)


def test_crisis_cohesion_floor(family_tables):
    dynamics = FamilyDynamics(cohesion=40, stress=0, resource_strain=0, resilience=0)
    handle_crisis(dynamics, [], CrisisType.RELATIONSHIP, CrisisSeverity.SEVERE, family_tables)
    assert dynamics.cohesion == 20

    dynamics = FamilyDynamics(cohesion=15, stress=0, resource_strain=0, resilience=0)
    handle_crisis(dynamics, [], CrisisType.RELATIONSHIP, CrisisSeverity.SEVERE, family_tables)
    assert dynamics.cohesion == 15


def test_crisis_stress_capped(family_tables):
    dynamics = FamilyDynamics(cohesion=80, stress=90, resource_strain=0, resilience=0)
    handle_crisis(dynamics, [], CrisisType.HEALTH, CrisisSeverity.SEVERE, family_tables)
    assert dynamics.stress == 100


def test_age_vulnerability():
    assert age_vulnerability(5) == 1.5
    assert age_vulnerability(10) == 1.2
    assert age_vulnerability(14) == 1.0


def test_crisis_child_impact(household, family_tables, make_child):
    young = make_child("c1", age=5)
    older = make_child("c2", age=14, resilience=22)
    report = handle_crisis(household, [young, older], CrisisType.EXTERNAL, CrisisSeverity.SEVERE, family_tables)

    # 45 x 1.5 x (1 - 0.35)
    assert report.child_impacts["c1"] == pytest.approx(43.875)
    assert young.trait_value("resilience") == pytest.approx(50 - 43.875 * 0.3)
    assert young.trait_value("confidence") == pytest.approx(50 - 43.875 * 0.2)
    # floored at 20
    assert older.trait_value("resilience") == 20
    assert young.development_history[-1].type is EventType.CRISIS


def test_minor_crisis_spares_traits(household, family_tables, make_child):
    child = make_child("c1", age=14)
    handle_crisis(household, [child], CrisisType.HEALTH, CrisisSeverity.MINOR, family_tables)
    assert child.trait_value("resilience") == 50
    assert child.development_history[-1].impact.traits == {}


# ── new arrivals and favoritism ─────────────────────────────


def test_new_child_impact_planned(family_tables):
    impact = new_child_impact(family_tables, BirthCircumstance.PLANNED, 1)
    assert (impact.cohesion, impact.stress, impact.resource_strain) == (-5, 15, 20)
    assert (impact.happiness, impact.finances) == (15, -8000)


def test_new_child_impact_twins(family_tables):
    impact = new_child_impact(family_tables, BirthCircumstance.TWINS, 2)
    assert (impact.cohesion, impact.stress, impact.resource_strain) == (-25, 45, 45)
    assert (impact.happiness, impact.finances) == (20, -13000)


def test_favoritism_on_happiness(household):
    assert update_favoritism(household, "c1", ["c1", "c2"], 5, 0)
    assert household.favoritism == {"c1": 5, "c2": 2}


def test_favoritism_on_big_spending(household):
    assert update_favoritism(household, "c2", ["c1", "c2"], 0, -6000)
    assert household.favoritism == {"c1": 2, "c2": 5}


def test_favoritism_not_triggered(household):
    assert update_favoritism(household, "c1", ["c1", "c2"], 0, -5000) is False
    assert household.favoritism == {}


# ── overview ────────────────────────────────────────────────


@pytest.mark.parametrize("stress, label", [(10, "Low"), (30, "Moderate"), (60, "High"), (80, "Critical")])
def test_stress_level(stress, label):
    assert stress_level(stress) == label


@pytest.mark.parametrize("cohesion, label", [(20, "Poor"), (40, "Fair"), (60, "Good"), (80, "Excellent")])
def test_cohesion_level(cohesion, label):
    assert cohesion_level(cohesion) == label


def test_family_overview(household, make_child):
    a = make_child("c1", age=9)
    b = make_child("c2", age=3)
    c = make_child("c3", age=8)
    relationships = [form_relationship(a, b, household), form_relationship(a, c, household)]
    overview = family_overview({"c1": a, "c2": b, "c3": c}, household, relationships)
    assert overview.child_count == 3
    assert overview.oldest_child_id == "c1"
    assert overview.youngest_child_id == "c2"
    assert overview.stress_level == "Low"
    assert overview.cohesion_level == "Excellent"
    assert overview.strongest_bond == ("c1", "c2")
    assert overview.weakest_bond == ("c1", "c3")


def test_empty_overview(household):
    overview = family_overview({}, household, [])
    assert overview.child_count == 0
    assert overview.oldest_child_id is None
    assert overview.strongest_bond is None
