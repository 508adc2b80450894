import numpy as np
import pytest

from utils import STATE_DICT
from population import Disease, Environment, Individual
from movement import MovementHandler


class FixedRng:
    """
    Deterministic stand-in for numpy.random.Generator.

    random() returns the given draws in order (cycling), uniform() maps uniform_value onto
    [low, high] (0.5 means zero noise for symmetric ranges), permutation() keeps the population order.
    """

    def __init__(self, draws=(0.5,), uniform_value=0.5):
        self.draws = list(draws)
        self.uniform_value = uniform_value
        self.calls = 0

    def random(self):
        value = self.draws[self.calls % len(self.draws)]
        self.calls += 1
        return value

    def uniform(self, low, high):
        return low + (high - low) * self.uniform_value

    def permutation(self, n):
        return np.arange(n)

    def integers(self, low, high=None):
        return low


@pytest.fixture
def fixed_rng():
    return FixedRng


@pytest.fixture
def disease() -> Disease:
    """Default demo disease"""
    return Disease(
        name="TestDisease",
        transmission_rate=0.8,
        transmission_distance=2.0,
        recovery_rate=0.05,
        mortality_rate=0.01,
        latent_period=3,
        infectious_period=10,
        immunity_duration=90,
    )


@pytest.fixture
def make_individual(disease):
    """Factory for individuals with neutral behavior and a Walk pattern"""

    def _make(x=10.0, y=10.0, status='H', age=30, hygiene=0.5, compliance=0.5,
              move_type="Walk", area_size=100.0, attach_disease=True):
        pattern = MovementHandler(area_size).new_pattern(move_type) if move_type else None
        return Individual(
            x=x,
            y=y,
            age=age,
            health_status=STATE_DICT[status],
            hygiene_level=hygiene,
            social_distance_compliance=compliance,
            movement_pattern=pattern,
            disease=disease if attach_disease else None,
        )

    return _make


@pytest.fixture
def make_environment(disease):
    """Factory for environments around a given population"""

    def _make(population, area_size=100.0, **kwargs):
        params = dict(
            social_distance_threshold=2.0,
            hygiene_level=0.1,
            mobility_rate=1.0,
            vaccination_rate=0.2,
            medical_care_level=0.7,
            medical_capacity=0,
        )
        params.update(kwargs)
        return Environment(area_size=area_size, population=list(population), disease=disease, **params)

    return _make


@pytest.fixture
def disease_params():
    return {
        "name": "TestDisease",
        "transmission_rate": 0.8,
        "transmission_distance": 2.0,
        "recovery_rate": 0.05,
        "mortality_rate": 0.01,
        "latent_period": 3,
        "infectious_period": 10,
        "immunity_duration": 90,
    }


@pytest.fixture
def environment_params():
    return {
        "social_distance_threshold": 2.0,
        "hygiene_level": 0.1,
        "mobility_rate": 1.0,
        "vaccination_rate": 0.2,
        "medical_care_level": 0.7,
        "medical_capacity": 0,
    }
