import json
import shutil

import pytest

from babysim.config_loader import ConfigLoader, get_default_config
from babysim.family import CrisisSeverity, ParentingStyle
from babysim.paths import CONFIG_DIR


@pytest.fixture
def config_copy(tmp_path):
    """Editable copy of the packaged tables."""
    folder = tmp_path / "config"
    shutil.copytree(CONFIG_DIR, folder)
    return folder


def _edit(folder, filename, change):
    path = folder / filename
    data = json.loads(path.read_text(encoding="utf-8"))
    change(data)
    path.write_text(json.dumps(data), encoding="utf-8")


# ── packaged tables ─────────────────────────────────────────


def test_default_config_is_cached():
    assert get_default_config() is get_default_config()


def test_packaged_tables_load(config):
    development = config.get_development()
    assert len(development.baseTraits) == 10
    assert development.trait_ids[0] == "curiosity"
    assert development.skill_catalog["reading"].unlockAge == 3


def test_family_tables(config):
    family = config.get_family()
    assert list(family.parentingStyleWeights)[0] is ParentingStyle.AUTHORITATIVE
    assert abs(sum(family.parentingStyleWeights.values()) - 1.0) < 1e-6
    assert family.crisisBaseImpact[CrisisSeverity.SEVERE] == 50


def test_tables_are_frozen(config):
    with pytest.raises(Exception):
        config.get_scenarios().moralDilemmaChance = 0.9


# ── failures ────────────────────────────────────────────────


def test_missing_file(config_copy):
    (config_copy / "family.json").unlink()
    with pytest.raises(FileNotFoundError):
        ConfigLoader(config_copy)


def test_unparsable_json(config_copy):
    (config_copy / "scenarios.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Error parsing scenarios.json"):
        ConfigLoader(config_copy)


def test_weights_must_sum_to_one(config_copy):
    _edit(config_copy, "family.json",
          lambda data: data["parentingStyleWeights"].update({"neglectful": 0.5}))
    with pytest.raises(ValueError, match="Invalid family.json"):
        ConfigLoader(config_copy)


def test_critical_period_window_order(config_copy):
    _edit(config_copy, "development.json",
          lambda data: data["criticalPeriods"].update({"empathy": {"startAge": 7, "endAge": 3, "multiplier": 1.3}}))
    with pytest.raises(ValueError, match="Invalid development.json"):
        ConfigLoader(config_copy)


def test_duplicate_trait_ids(config_copy):
    _edit(config_copy, "development.json",
          lambda data: data["baseTraits"].append(dict(data["baseTraits"][0])))
    with pytest.raises(ValueError, match="Duplicate trait id"):
        ConfigLoader(config_copy)


def test_unknown_game_style(config_copy):
    def change(data):
        data["defaultScenarios"]["Cozy"] = data["defaultScenarios"]["Realistic"]
    _edit(config_copy, "scenarios.json", change)
    with pytest.raises(ValueError, match="Unknown game style"):
        ConfigLoader(config_copy)


def test_unknown_reference_only_warns(config_copy, caplog):
    _edit(config_copy, "development.json",
          lambda data: data["criticalPeriods"].update({"patience": {"startAge": 2, "endAge": 4, "multiplier": 1.1}}))
    loader = ConfigLoader(config_copy)
    assert "patience" in loader.get_development().criticalPeriods
    assert "unknown trait 'patience'" in caplog.text
