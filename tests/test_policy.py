import pytest

from utils import InvalidInputError, UnknownStateError
from policy import (
    PopulationStats,
    compute_population_stats,
    count_health_states,
    threshold_factor,
    update_environment,
    update_environment_hygiene,
    update_environment_vaccination_rate,
    update_social_distance_threshold,
)


def stats(infected_fraction=0.0, total_infected=0, total_vaccinated=0, hygiene_mean=0.5,
          avg_transmission_distance=2.0, population_size=100):
    return PopulationStats(infected_fraction, total_infected, total_vaccinated, hygiene_mean,
                           avg_transmission_distance, population_size)


class TestStats:
    def test_empty_environment(self, make_environment):
        assert compute_population_stats(make_environment([])) == PopulationStats(0.0, 0, 0, 0.0, 1.0, 0)

    def test_aggregates(self, make_individual, make_environment):
        population = [make_individual(status='I'), make_individual(), make_individual(status='D'),
                      make_individual(hygiene=0.9)]
        population[1].vaccinate()
        result = compute_population_stats(make_environment(population))
        assert result.infected_fraction == pytest.approx(0.25)
        assert result.total_infected == 1
        assert result.total_vaccinated == 1
        assert result.hygiene_mean == pytest.approx(0.6)
        assert result.avg_transmission_distance == pytest.approx(2.0)
        assert result.population_size == 4

    def test_no_disease_reference_falls_back_to_one(self, make_individual, make_environment):
        population = [make_individual(attach_disease=False)]
        assert compute_population_stats(make_environment(population)).avg_transmission_distance == 1.0

    def test_count_health_states(self, make_individual, make_environment):
        population = [make_individual(status='I'), make_individual(status='I'), make_individual(status='R')]
        counts = count_health_states(make_environment(population))
        assert counts == {'Healthy': 0, 'Susceptible': 0, 'Infected': 2, 'Recovered': 1, 'Dead': 0}

    def test_count_health_states_rejects_unknown_status(self, make_individual, make_environment):
        individual = make_individual()
        individual.health_status = 9
        with pytest.raises(UnknownStateError):
            count_health_states(make_environment([individual]))


class TestThreshold:
    @pytest.mark.parametrize("fraction, factor", [
        (0.0, 2.0), (0.009, 2.0), (0.01, 1.5), (0.05, 1.0), (0.1, 0.7), (0.2, 0.4), (0.9, 0.4),
    ])
    def test_prevalence_buckets(self, fraction, factor):
        assert threshold_factor(fraction) == factor

    def test_relaxes_when_prevalence_is_low(self, make_environment):
        environment = make_environment([], social_distance_threshold=2.0)
        assert update_social_distance_threshold(environment, stats()) is False
        assert environment.social_distance_threshold == pytest.approx(2.0 * 0.75 + 4.0 * 0.25)

    def test_tightens_when_prevalence_is_high(self, make_environment):
        environment = make_environment([], social_distance_threshold=2.0)
        assert update_social_distance_threshold(environment, stats(infected_fraction=0.5, total_infected=50)) is True
        assert environment.social_distance_threshold == pytest.approx(2.0 * 0.75 + 0.8 * 0.25)

    def test_overload_uses_infected_count(self, make_environment):
        environment = make_environment([], social_distance_threshold=2.0, medical_capacity=10)
        update_social_distance_threshold(environment, stats(infected_fraction=0.3, total_infected=30))
        # factor 0.4 halved by an overload ratio of 2
        assert environment.social_distance_threshold == pytest.approx(2.0 * 0.75 + 0.4 * 0.25)

    def test_first_threshold_is_the_candidate(self, make_environment):
        environment = make_environment([], social_distance_threshold=0.0)
        assert update_social_distance_threshold(environment, stats()) is False
        assert environment.social_distance_threshold == pytest.approx(4.0)

    def test_clamped_to_four_transmission_distances(self, make_environment):
        environment = make_environment([], social_distance_threshold=100.0)
        update_social_distance_threshold(environment, stats())
        assert environment.social_distance_threshold == pytest.approx(8.0)


class TestHygieneAndVaccinationRate:
    def test_hygiene_policy_boost(self, make_environment, fixed_rng):
        environment = make_environment([], hygiene_level=0.1, social_distance_threshold=2.0)
        # strictness 1 - 2/(4*2) = 0.75, policy boost 0.15, weighted 0.4
        value = update_environment_hygiene(environment, stats(), fixed_rng())
        assert value == pytest.approx(0.1 * 0.65 + 0.5 * 0.35 + 0.06)

    def test_hygiene_strictness_is_relative_to_current_threshold(self, make_environment, fixed_rng):
        # any positive threshold gives strictness 0.75, whatever the transmission distance
        environment = make_environment([], hygiene_level=0.1, social_distance_threshold=4.0)
        value = update_environment_hygiene(environment, stats(avg_transmission_distance=2.0), fixed_rng())
        assert value == pytest.approx(0.1 * 0.65 + 0.5 * 0.35 + 0.2 * 0.75 * 0.4)

    def test_hygiene_zero_threshold_is_fully_strict(self, make_environment, fixed_rng):
        environment = make_environment([], hygiene_level=0.1, social_distance_threshold=0.0)
        value = update_environment_hygiene(environment, stats(), fixed_rng())
        assert value == pytest.approx(0.1 * 0.65 + 0.5 * 0.35 + 0.2 * 1.0 * 0.4)

    def test_hygiene_campaign_at_high_prevalence(self, make_environment, fixed_rng):
        environment = make_environment([], hygiene_level=0.1, social_distance_threshold=2.0)
        value = update_environment_hygiene(environment, stats(infected_fraction=0.5), fixed_rng())
        assert value == pytest.approx(0.1 * 0.65 + 0.5 * 0.35 + 0.75 * 0.6 + 0.06)

    def test_vaccination_rate_follows_coverage(self, make_environment):
        environment = make_environment([], vaccination_rate=0.2)
        value = update_environment_vaccination_rate(environment, stats(total_vaccinated=25))
        assert value == pytest.approx(0.2 * 0.7 + 0.25 * 0.3)

    def test_vaccination_rate_needs_population(self, make_environment):
        with pytest.raises(InvalidInputError):
            update_environment_vaccination_rate(make_environment([]), stats(population_size=0))


class TestUpdateEnvironment:
    def test_returns_fraction_and_tightened(self, make_individual, make_environment, fixed_rng):
        population = [make_individual(status='I'), make_individual(), make_individual(), make_individual()]
        environment = make_environment(population, social_distance_threshold=2.0)
        fraction, tightened = update_environment(environment, fixed_rng())
        assert fraction == pytest.approx(0.25)
        assert tightened is True
        assert environment.social_distance_threshold < 2.0

    def test_empty_environment_raises(self, make_environment, fixed_rng):
        with pytest.raises(InvalidInputError):
            update_environment(make_environment([]), fixed_rng())
