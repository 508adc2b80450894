import copy
import json
import os
from typing import Any, Dict, List

# Disease Parameters
disease_config = {
    "name": "DemoDisease",
    "transmission_rate": 0.8,
    "transmission_distance": 2.0,
    "recovery_rate": 0.05,
    "mortality_rate": 0.01,
    "latent_period": 3,
    "infectious_period": 10,
    "immunity_duration": 90
}

# Population Parameters
population_config = {
    "population_size": 1000,
    "initial_infected": 10
}

# Environment Parameters
env_config = {
    "area_size": 100.0,
    "social_distance_threshold": 2.0,
    "hygiene_level": 0.1,
    "mobility_rate": 1.0,
    "vaccination_rate": 0.20,
    "medical_care_level": 0.7,
    "medical_capacity": 0           # 0 -> 10% of the population
}

# Simulation Parameters
sim_config = {
    "num_days": 200
}

# Rendering and GIF output
render_config = {
    "canvas_width": 800,
    "point_radius": 3.0,
    "frame_frequency": 2,           # record a frame every N days
    "gif_delay": 5,                 # centiseconds between frames
    "gif_filename": "env_sim.gif"
}

SECTIONS = {
    "disease": disease_config,
    "population": population_config,
    "environment": env_config,
    "simulation": sim_config,
    "visualization": render_config
}

# (kind, min, max, min inclusive)
PARAMETER_RULES = {
    "disease": {
        "name": ("str", None, 100, True),
        "transmission_rate": ("float", 0.0, 1.0, True),
        "transmission_distance": ("float", 0.0, 100.0, False),
        "recovery_rate": ("float", 0.0, 1.0, True),
        "mortality_rate": ("float", 0.0, 1.0, True),
        "latent_period": ("int", 0, 365, True),
        "infectious_period": ("int", 1, 365, True),
        "immunity_duration": ("int", 0, 3650, True),
    },
    "population": {
        "population_size": ("int", 1, 1000000, True),
        "initial_infected": ("int", 0, 1000000, True),
    },
    "environment": {
        "area_size": ("float", 0.0, 10000.0, False),
        "social_distance_threshold": ("float", 0.0, 100.0, True),
        "hygiene_level": ("float", 0.0, 1.0, True),
        "mobility_rate": ("float", 0.0, 10.0, True),
        "vaccination_rate": ("float", 0.0, 1.0, True),
        "medical_care_level": ("float", 0.0, 1.0, True),
        "medical_capacity": ("int", 0, 1000000, True),
    },
    "simulation": {
        "num_days": ("int", 1, 10000, True),
    },
    "visualization": {
        "canvas_width": ("int", 100, 4096, True),
        "point_radius": ("float", 0.5, 50.0, True),
        "frame_frequency": ("int", 1, 10000, True),
        "gif_delay": ("int", 1, 1000, True),
        "gif_filename": ("filename", None, None, True),
    },
}

INVALID_FILENAME_CHARS = ["/", "\\", ":", "*", "?", "\"", "<", ">", "|"]


class ConfigValidationError(ValueError):
    """Raised with every configuration problem found, not just the first"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        message = f"configuration validation failed with {len(self.errors)} error(s):\n" + "\n".join(
            f"  - {error}" for error in self.errors
        )
        super().__init__(message)


def get_default_config() -> Dict[str, Dict[str, Any]]:
    """Sectioned copy of the defaults, safe to modify"""
    return copy.deepcopy(SECTIONS)


def _check_value(section: str, key: str, value, rule) -> List[str]:
    kind, low, high, low_inclusive = rule
    name = f"{section}.{key}"

    if kind == "str":
        if not isinstance(value, str) or not value.strip():
            return [f"Invalid parameter '{name}' with value '{value}': must be a non-empty string"]
        if len(value) > high:
            return [f"Invalid parameter '{name}' with value '{value}': must be at most {high} characters"]
        return []

    if kind == "filename":
        if not isinstance(value, str) or not value:
            return [f"Invalid parameter '{name}' with value '{value}': filename cannot be empty"]
        errors = []
        if not value.lower().endswith(".gif"):
            errors.append(f"Invalid parameter '{name}' with value '{value}': filename must end with .gif extension")
        for char in INVALID_FILENAME_CHARS:
            if char in value:
                errors.append(f"Invalid parameter '{name}' with value '{value}': filename contains invalid character '{char}'")
        return errors

    # bool is an int subclass but never a valid number here
    if isinstance(value, bool):
        return [f"Invalid parameter '{name}' with value '{value}': must be a number"]
    if kind == "int":
        if not isinstance(value, int):
            return [f"Invalid parameter '{name}' with value '{value}': must be a valid integer"]
    elif not isinstance(value, (int, float)):
        return [f"Invalid parameter '{name}' with value '{value}': must be a valid decimal number"]

    if low_inclusive:
        too_low = value < low
        lower = f"[{low}"
    else:
        too_low = value <= low
        lower = f"({low}"
    if too_low or value > high:
        return [f"Invalid parameter '{name}' with value '{value}': must be in range {lower}, {high}]"]
    return []


def validate_config(config: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Check every parameter against PARAMETER_RULES plus the cross-field constraints

    Args:
        config: Sectioned configuration (see get_default_config)

    Returns:
        A validated copy of the config, with medical_capacity 0 resolved to 10% of the population

    Raises:
        ConfigValidationError: listing every problem found
    """
    errors = []
    for section, rules in PARAMETER_RULES.items():
        values = config.get(section, {})
        for key, rule in rules.items():
            if key not in values:
                errors.append(f"Missing parameter '{section}.{key}'")
                continue
            errors.extend(_check_value(section, key, values[key], rule))

    if errors:
        # cross-field checks need well-typed values
        raise ConfigValidationError(errors)

    disease = config["disease"]
    population = config["population"]
    environment = config["environment"]
    simulation = config["simulation"]
    visualization = config["visualization"]

    if population["initial_infected"] > population["population_size"]:
        errors.append(
            f"Invalid parameter 'population.initial_infected' with value '{population['initial_infected']}': "
            f"cannot exceed population_size ({population['population_size']})"
        )
    if environment["medical_capacity"] > population["population_size"]:
        errors.append(
            f"Invalid parameter 'environment.medical_capacity' with value '{environment['medical_capacity']}': "
            f"cannot exceed population_size ({population['population_size']})"
        )
    if environment["social_distance_threshold"] > environment["area_size"]:
        errors.append(
            f"Invalid parameter 'environment.social_distance_threshold' with value "
            f"'{environment['social_distance_threshold']:.2f}': cannot exceed area_size ({environment['area_size']:.2f})"
        )
    if disease["transmission_distance"] > environment["area_size"]:
        errors.append(
            f"Invalid parameter 'disease.transmission_distance' with value "
            f"'{disease['transmission_distance']:.2f}': cannot exceed area_size ({environment['area_size']:.2f})"
        )
    if visualization["frame_frequency"] > simulation["num_days"]:
        errors.append(
            f"Invalid parameter 'visualization.frame_frequency' with value '{visualization['frame_frequency']}': "
            f"cannot exceed num_days ({simulation['num_days']})"
        )

    if errors:
        raise ConfigValidationError(errors)

    validated = copy.deepcopy(config)
    if validated["environment"]["medical_capacity"] == 0:
        validated["environment"]["medical_capacity"] = int(0.1 * validated["population"]["population_size"])
    return validated


def load_config(config_path: str) -> Dict[str, Dict[str, Any]]:
    """
    Load a JSON config file and merge it over the defaults.

    Sections and keys that are not recognised are reported and ignored. The result is not
    validated; pass it through validate_config.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found at {config_path}")

    with open(config_path, 'r') as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict):
        raise ConfigValidationError([f"Config file {config_path} must contain a JSON object"])

    config = get_default_config()
    for section, values in overrides.items():
        if section not in config:
            print(f"Warning: unknown config section '{section}'")
            continue
        if not isinstance(values, dict):
            print(f"Warning: config section '{section}' is not an object, ignoring it")
            continue
        for key, value in values.items():
            if key not in config[section]:
                print(f"Warning: unknown parameter '{section}.{key}'")
                continue
            config[section][key] = value
    return config


def config_help() -> str:
    """Human readable table of the accepted parameter ranges"""
    lines = ["=== Configuration Parameter Ranges ==="]
    for section, rules in PARAMETER_RULES.items():
        lines.append(f"\n[{section}]")
        for key, (kind, low, high, low_inclusive) in rules.items():
            default = SECTIONS[section][key]
            if kind == "str":
                allowed = f"non-empty string, at most {high} characters"
            elif kind == "filename":
                allowed = "file name ending in .gif, no path or reserved characters"
            else:
                bracket = "[" if low_inclusive else "("
                allowed = f"{kind} in {bracket}{low}, {high}]"
            lines.append(f"  {key:<28} {allowed:<55} default: {default}")
    lines.append("")
    lines.append("Cross-field constraints:")
    lines.append("  initial_infected <= population_size")
    lines.append("  medical_capacity <= population_size (0 means 10% of the population)")
    lines.append("  social_distance_threshold <= area_size")
    lines.append("  transmission_distance <= area_size")
    lines.append("  frame_frequency <= num_days")
    return "\n".join(lines)
