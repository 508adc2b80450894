from typing import Dict, NamedTuple, Tuple
import numpy as np

from utils import STATE_DICT, STATE_LABELS, InvalidInputError, clamp01, state_label

# Exponential smoothing weight of the new candidate social distance threshold
THRESHOLD_SMOOTHING = 0.25
# Weight of the population's mean personal hygiene in the environment hygiene level
HYGIENE_BLEND = 0.35
HYGIENE_NOISE = 0.02
# Speed at which the vaccination-rate estimate follows real coverage
VACCINATION_SMOOTHING = 0.3


class PopulationStats(NamedTuple):
    infected_fraction: float
    total_infected: int
    total_vaccinated: int
    hygiene_mean: float
    avg_transmission_distance: float
    population_size: int


def compute_population_stats(environment) -> PopulationStats:
    """
    Aggregate statistics over the whole population, dead individuals included.

    avg_transmission_distance averages over individuals that carry a disease reference and
    falls back to 1.0 when nobody does.
    """
    if environment is None or not environment.population:
        return PopulationStats(0.0, 0, 0, 0.0, 1.0, 0)

    total = 0
    infected = 0
    vaccinated = 0
    hygiene_sum = 0.0
    distance_sum = 0.0
    distance_count = 0

    for individual in environment.population:
        if individual is None:
            continue
        total += 1
        if individual.health_status == STATE_DICT['I']:
            infected += 1
        if individual.vaccinated:
            vaccinated += 1
        hygiene_sum += clamp01(individual.hygiene_level)
        if individual.disease is not None and individual.disease.transmission_distance > 0:
            distance_sum += individual.disease.transmission_distance
            distance_count += 1

    hygiene_mean = hygiene_sum / total if total > 0 else 0.0
    avg_distance = distance_sum / distance_count if distance_count > 0 else 1.0
    infected_fraction = infected / total if total > 0 else 0.0

    return PopulationStats(infected_fraction, infected, vaccinated, hygiene_mean, avg_distance, total)


def count_health_states(environment) -> Dict[str, int]:
    """Number of individuals per health status, keyed by status name"""
    counts = {label: 0 for label in STATE_LABELS.values()}
    if environment is None:
        return counts
    for individual in environment.population:
        if individual is None:
            continue
        counts[state_label(individual.health_status)] += 1
    return counts


def threshold_factor(infected_fraction: float) -> float:
    """Prevalence bucket -> multiple of the transmission distance to keep apart"""
    if infected_fraction < 0.01:
        return 2.0
    elif infected_fraction < 0.05:
        return 1.5
    elif infected_fraction < 0.10:
        return 1.0
    elif infected_fraction < 0.20:
        return 0.7
    return 0.4


def update_social_distance_threshold(environment, stats: PopulationStats) -> bool:
    """
    Policy decision on the social distance threshold

    Args:
        environment: Environment to update in place
        stats: Today's population statistics

    Returns:
        True if the unsmoothed candidate is below the previous threshold (policy tightened)
    """
    if environment is None:
        raise InvalidInputError("missing environment")

    avg_distance = stats.avg_transmission_distance
    if avg_distance <= 0:
        avg_distance = 1.0

    factor = threshold_factor(stats.infected_fraction)

    capacity = environment.medical_capacity
    if capacity > 0 and stats.total_infected > capacity:
        overload_ratio = (stats.total_infected - capacity) / capacity
        factor *= 1.0 - clamp01(0.25 * overload_ratio)

    candidate = avg_distance * factor

    previous = environment.social_distance_threshold
    if previous <= 0:
        threshold = candidate
    else:
        threshold = previous * (1.0 - THRESHOLD_SMOOTHING) + candidate * THRESHOLD_SMOOTHING

    min_threshold = max(0.1, 0.1 * avg_distance)
    max_threshold = 4.0 * avg_distance
    environment.social_distance_threshold = min(max(threshold, min_threshold), max_threshold)

    return previous > 0 and candidate < previous


def update_environment_hygiene(environment, stats: PopulationStats, rng: np.random.Generator) -> float:
    """
    Blend environment hygiene with the population's mean hygiene, then add a public campaign
    boost (driven by high prevalence and by how strict the distancing policy is) and noise.
    """
    if environment is None:
        raise InvalidInputError("missing environment")

    campaign_base = 0.0
    if stats.infected_fraction > 0.4:
        campaign_base = clamp01(stats.infected_fraction * 1.5)

    # Strictness is measured against the current threshold itself; a zero threshold reads as fully strict
    reference = environment.social_distance_threshold if environment.social_distance_threshold > 0 else 1.0
    strictness = clamp01(1.0 - environment.social_distance_threshold / (4.0 * reference))
    policy_boost = 0.2 * strictness

    campaign_boost = clamp01(campaign_base * 0.6 + policy_boost * 0.4)
    noise = rng.uniform(-HYGIENE_NOISE, HYGIENE_NOISE)

    value = (
        environment.hygiene_level * (1.0 - HYGIENE_BLEND)
        + stats.hygiene_mean * HYGIENE_BLEND
        + campaign_boost
        + noise
    )
    environment.hygiene_level = clamp01(value)
    return environment.hygiene_level


def update_environment_vaccination_rate(environment, stats: PopulationStats) -> float:
    """Move the vaccination-rate estimate toward real coverage"""
    if environment is None:
        raise InvalidInputError("missing environment")
    if stats.population_size <= 0:
        raise InvalidInputError("invalid population size")

    coverage = stats.total_vaccinated / stats.population_size
    rate = environment.vaccination_rate * (1.0 - VACCINATION_SMOOTHING) + coverage * VACCINATION_SMOOTHING
    environment.vaccination_rate = clamp01(rate)
    return environment.vaccination_rate


def update_environment(environment, rng: np.random.Generator) -> Tuple[float, bool]:
    """
    Environment-level update for one day: statistics, distancing policy, hygiene and the
    vaccination-rate estimate, in that order.

    Returns:
        (infected_fraction, tightened)
    """
    if environment is None or not environment.population:
        raise InvalidInputError("empty environment or population")

    stats = compute_population_stats(environment)
    tightened = update_social_distance_threshold(environment, stats)
    update_environment_hygiene(environment, stats, rng)
    update_environment_vaccination_rate(environment, stats)
    return stats.infected_fraction, tightened
