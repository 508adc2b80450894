import json

import pytest

import config as config_module
from config import (
    ConfigValidationError,
    config_help,
    get_default_config,
    load_config,
    validate_config,
)


class TestDefaults:
    def test_defaults_are_valid(self):
        validated = validate_config(get_default_config())
        assert validated["disease"]["transmission_rate"] == 0.8
        assert validated["simulation"]["num_days"] == 200
        # 0 means 10% of the population
        assert validated["environment"]["medical_capacity"] == 100

    def test_default_config_is_a_copy(self):
        config = get_default_config()
        config["population"]["population_size"] = 5
        assert config_module.population_config["population_size"] == 1000

    def test_validate_does_not_modify_input(self):
        config = get_default_config()
        validate_config(config)
        assert config["environment"]["medical_capacity"] == 0

    def test_explicit_capacity_is_kept(self):
        config = get_default_config()
        config["environment"]["medical_capacity"] = 25
        assert validate_config(config)["environment"]["medical_capacity"] == 25


class TestValidation:
    def test_reports_every_error(self):
        config = get_default_config()
        config["disease"]["transmission_rate"] = 1.5
        config["population"]["population_size"] = 0
        with pytest.raises(ConfigValidationError) as excinfo:
            validate_config(config)
        assert len(excinfo.value.errors) == 2
        assert "transmission_rate" in str(excinfo.value)

    @pytest.mark.parametrize("section, key, value", [
        ("disease", "transmission_distance", 0.0),
        ("disease", "name", ""),
        ("disease", "latent_period", 2.5),
        ("environment", "area_size", 20000.0),
        ("environment", "mobility_rate", 11.0),
        ("environment", "hygiene_level", True),
        ("visualization", "canvas_width", 50),
        ("visualization", "point_radius", 0.1),
        ("visualization", "gif_filename", "output.png"),
        ("visualization", "gif_filename", "dir/output.gif"),
    ])
    def test_out_of_range(self, section, key, value):
        config = get_default_config()
        config[section][key] = value
        with pytest.raises(ConfigValidationError):
            validate_config(config)

    def test_missing_parameter(self):
        config = get_default_config()
        del config["simulation"]["num_days"]
        with pytest.raises(ConfigValidationError):
            validate_config(config)

    @pytest.mark.parametrize("section, key, value", [
        ("population", "initial_infected", 1001),
        ("environment", "medical_capacity", 2000),
        ("environment", "social_distance_threshold", 60.0),
        ("disease", "transmission_distance", 60.0),
        ("visualization", "frame_frequency", 500),
    ])
    def test_cross_field_constraints(self, section, key, value):
        config = get_default_config()
        config["environment"]["area_size"] = 50.0
        config[section][key] = value
        with pytest.raises(ConfigValidationError):
            validate_config(config)


class TestLoadConfig:
    def test_merges_over_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"population": {"population_size": 50}, "simulation": {"num_days": 7}}))
        config = load_config(str(path))
        assert config["population"]["population_size"] == 50
        assert config["simulation"]["num_days"] == 7
        assert config["disease"]["transmission_rate"] == 0.8

    def test_unknown_keys_warn(self, tmp_path, capsys):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"population": {"crowd": 3}, "weather": {}}))
        config = load_config(str(path))
        output = capsys.readouterr().out
        assert "Warning: unknown parameter 'population.crowd'" in output
        assert "Warning: unknown config section 'weather'" in output
        assert "crowd" not in config["population"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.json"))

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigValidationError):
            load_config(str(path))


def test_config_help_lists_parameters():
    text = config_help()
    assert "transmission_rate" in text
    assert "gif_filename" in text
    assert "initial_infected <= population_size" in text
