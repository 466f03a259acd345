import pytest

from babysim.character import create_child
from babysim.config_loader import get_default_config
from babysim.family import CommunicationPattern, FamilyDynamics, ParentingStyle
from babysim.game import DevelopmentEngine
from babysim.rng import DrawSequence, SeededRandom


@pytest.fixture
def config():
    return get_default_config()


@pytest.fixture
def development(config):
    return config.get_development()


@pytest.fixture
def family_tables(config):
    return config.get_family()


@pytest.fixture
def scenario_tables(config):
    return config.get_scenarios()


@pytest.fixture
def engine(config):
    return DevelopmentEngine(config)


@pytest.fixture
def rng():
    return SeededRandom(1234)


@pytest.fixture
def make_child(development):
    """Build a child with every trait at 50 unless overridden by keyword."""

    def _make(child_id="c1", name="Ada", age=5, gender="female", interests=None, **traits):
        draws = DrawSequence([0.5] * len(development.baseTraits))
        child = create_child(child_id, name, age, gender, development, draws, interests)
        for trait in child.personality_traits:
            trait.value = traits.get(trait.id, 50.0)
        return child

    return _make


@pytest.fixture
def neutral_dynamics():
    return FamilyDynamics(
        cohesion=50,
        stress=50,
        resource_strain=50,
        attachment_security=50,
        parenting_style=ParentingStyle.AUTHORITATIVE,
        communication_pattern=CommunicationPattern.OPEN,
    )
