import pytest
from crible.config import CorefConfig, load_config, save_config
from crible.errors import ConfigurationError
from crible.sieves import DEFAULT_SIEVES


def test_defaults():
    config = CorefConfig()
    assert config.sieves == DEFAULT_SIEVES
    assert config.max_dist == -1
    assert config.remove_singletons
    assert config.optimize_score == "pairwise.Precision"


def test_from_properties():
    config = CorefConfig.from_properties(
        {
            "crible.sieves": "MarkRole, ExactStringMatch,PronounMatch",
            "crible.maxdist": 3,
            "crible.removeSingletons": False,
            "crible.optimize.sieves.keepOrder": "MarkRole < *",
        }
    )
    assert config.sieves == ["MarkRole", "ExactStringMatch", "PronounMatch"]
    assert config.max_dist == 3
    assert not config.remove_singletons
    assert config.optimize_constraints == "MarkRole < *"


def test_unknown_property_raises():
    with pytest.raises(ConfigurationError):
        CorefConfig.from_properties({"crible.nope": True})


def test_invalid_value_raises():
    with pytest.raises(ConfigurationError):
        CorefConfig.from_properties({"crible.optimize.executor": "gpu"})


def test_with_updates_does_not_modify_config():
    config = CorefConfig()
    updated = config.with_updates(sieves=["PronounMatch"], score=True)
    assert updated.sieves == ["PronounMatch"]
    assert updated.score
    assert config.sieves == DEFAULT_SIEVES
    assert not config.score


def test_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    config = CorefConfig(sieves=["ExactStringMatch"], max_dist=2, score_file="out.score")
    save_config(config, path)
    assert "crible.maxdist: 2" in path.read_text()
    assert load_config(path) == config


def test_yaml_file_must_be_a_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_config(path)
