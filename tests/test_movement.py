import numpy as np
import pytest

from movement import MovementHandler, MovementPattern, baseline_move_radius, move_population
from population import initialize_environment


class TestPatterns:
    def test_baseline_radius(self):
        assert baseline_move_radius("Walk", 100.0) == pytest.approx(0.1)
        assert baseline_move_radius("Train", 100.0) == pytest.approx(10.0)
        assert baseline_move_radius("Flight", 100.0) == pytest.approx(100.0)

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            baseline_move_radius("Teleport", 100.0)
        with pytest.raises(ValueError):
            MovementPattern("Teleport", 1.0)

    def test_sample_pattern_thresholds(self, fixed_rng):
        handler = MovementHandler(100.0)
        assert handler.sample_pattern(fixed_rng([0.005])).move_type == "Flight"
        assert handler.sample_pattern(fixed_rng([0.01])).move_type == "Train"
        assert handler.sample_pattern(fixed_rng([0.049])).move_type == "Train"
        assert handler.sample_pattern(fixed_rng([0.05])).move_type == "Walk"


class TestWrap:
    def test_wraps_into_area(self):
        handler = MovementHandler(10.0)
        assert handler.wrap(-1.0) == pytest.approx(9.0)
        assert handler.wrap(10.0) == 0.0
        assert handler.wrap(10.5) == pytest.approx(0.5)
        assert handler.wrap(5.0) == 5.0

    def test_tiny_negative_does_not_land_on_the_edge(self):
        handler = MovementHandler(10.0)
        assert handler.wrap(-1e-17) == 0.0


class TestMove:
    def test_get_new_position(self, fixed_rng):
        handler = MovementHandler(10.0)
        # distance sqrt(0.25) * 4 = 2, angle 0
        x, y = handler.get_new_position(5.0, 5.0, 4.0, fixed_rng([0.25, 0.0]))
        assert x == pytest.approx(7.0)
        assert y == pytest.approx(5.0)

    def test_dead_do_not_move(self, make_individual, fixed_rng):
        individual = make_individual(x=50.0, y=50.0, status='D')
        rng = fixed_rng([0.9])
        assert MovementHandler(100.0).move(individual, rng) is False
        assert (individual.x, individual.y) == (50.0, 50.0)
        assert rng.calls == 0

    def test_no_pattern_does_not_move(self, make_individual, fixed_rng):
        individual = make_individual(move_type=None)
        assert MovementHandler(100.0).move(individual, fixed_rng()) is False

    def test_infected_are_forced_to_walk(self, make_individual, fixed_rng):
        individual = make_individual(x=50.0, y=50.0, status='I', move_type="Flight")
        moved = MovementHandler(100.0).move(individual, fixed_rng([1.0, 0.0, 0.5]))
        assert moved
        # full Walk radius (0.1) along the x axis
        assert individual.x == pytest.approx(50.1)
        assert individual.y == pytest.approx(50.0)
        assert individual.movement_pattern.move_type == "Walk"

    def test_zero_radius_is_reset_to_baseline(self, make_individual, fixed_rng):
        individual = make_individual(x=20.0, y=20.0, move_type="Train")
        individual.movement_pattern.move_radius = 0.0
        MovementHandler(100.0).move(individual, fixed_rng([1.0, 0.0, 0.02]))
        assert individual.x == pytest.approx(30.0)
        # pattern resampled for tomorrow with the last draw
        assert individual.movement_pattern.move_type == "Train"
        assert individual.movement_pattern.move_radius == pytest.approx(10.0)

    def test_move_population_counts_living(self, make_individual, make_environment, fixed_rng):
        population = [make_individual(), make_individual(status='D'), make_individual(status='I')]
        environment = make_environment(population)
        assert move_population(environment, fixed_rng([0.5])) == 2


def test_positions_stay_inside_area(disease, environment_params):
    rng = np.random.default_rng(7)
    environment = initialize_environment(60, 20.0, disease, environment_params, 0, rng)
    for individual in environment.population:
        individual.movement_pattern = MovementHandler(20.0).new_pattern("Flight")
    for _ in range(30):
        move_population(environment, rng)
        for individual in environment.population:
            assert 0 <= individual.x < 20.0
            assert 0 <= individual.y < 20.0
