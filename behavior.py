import numpy as np

from utils import STATE_DICT, InvalidInputError, clamp01, get_neighbors, round_half_up
from movement import baseline_move_radius

# Personal hygiene
HYGIENE_FATIGUE_DECAY = 0.01
HYGIENE_INFLUENCE_RADIUS = 2.0
HYGIENE_INFLUENCE_WEIGHT = 0.35
HYGIENE_INFECTION_BOOST = 0.20
HYGIENE_HOSPITAL_BOOST = 0.30
HYGIENE_VACCINE_COMPLACENCY = 0.12
HYGIENE_NOISE = 0.03

# Social distance compliance
COMPLIANCE_NORM_RADIUS = 3.0
COMPLIANCE_NORM_WEIGHT = 0.4
COMPLIANCE_POLICY_WEIGHT = 0.4
COMPLIANCE_VACCINE_COMPLACENCY = 0.25
COMPLIANCE_INFECTION_BOOST = 0.35
COMPLIANCE_HOSPITAL_BOOST = 0.6
COMPLIANCE_JITTER = 0.04
MIN_MOVE_RADIUS = 0.01
MIN_MOVE_PROBABILITY = 0.15

# Complacency after vaccination builds up linearly over this many days
COMPLACENCY_DAYS = 180.0


def _complacency_progress(individual) -> float:
    return clamp01(individual.days_since_vaccination / COMPLACENCY_DAYS)


def policy_signal(environment) -> float:
    """Social distance threshold mapped into [0,1]; a threshold of 10 or more is the strongest signal"""
    return clamp01(environment.social_distance_threshold / 10.0)


def update_hygiene_level(environment, individual, rng: np.random.Generator) -> float:
    """
    Update an individual's personal hygiene for one day.

    Fatigue decays hygiene slowly, neighbors within 2.0 pull it toward their mean (environment
    hygiene when alone), infection and hospitalization push it up, vaccination breeds complacency,
    and a little noise is added.

    Returns:
        The new hygiene level in [0,1]
    """
    current = clamp01(individual.hygiene_level)
    after_decay = current * (1.0 - HYGIENE_FATIGUE_DECAY)

    neighbors = get_neighbors(environment.population, individual, HYGIENE_INFLUENCE_RADIUS)
    if neighbors:
        neighbor_mean = sum(clamp01(n.hygiene_level) for n in neighbors) / len(neighbors)
    else:
        neighbor_mean = clamp01(environment.hygiene_level)

    combined = after_decay * (1.0 - HYGIENE_INFLUENCE_WEIGHT) + neighbor_mean * HYGIENE_INFLUENCE_WEIGHT

    if individual.in_hospital:
        combined = max(combined, clamp01(current + HYGIENE_HOSPITAL_BOOST))
    elif individual.health_status == STATE_DICT['I']:
        combined = max(combined, clamp01(current + HYGIENE_INFECTION_BOOST))

    if individual.vaccinated:
        combined *= 1.0 - HYGIENE_VACCINE_COMPLACENCY * _complacency_progress(individual)

    combined += rng.uniform(-HYGIENE_NOISE, HYGIENE_NOISE)

    individual.hygiene_level = clamp01(combined)
    return individual.hygiene_level


def update_social_distance_compliance(environment, individual, rng: np.random.Generator) -> float:
    """
    Update an individual's social distancing compliance and shrink its movement radius to match.

    Factors: local norms (neighbors within 3.0), the policy signal from the social distance
    threshold, infection/hospitalization, vaccination complacency, how the individual travels
    (trains and flights make distancing harder) and random jitter.

    Returns:
        Movement likelihood in [0.15, 1.0]. Informational: movement is not gated on it.
    """
    current = clamp01(individual.social_distance_compliance)
    signal = policy_signal(environment)

    neighbors = get_neighbors(environment.population, individual, COMPLIANCE_NORM_RADIUS)
    if neighbors:
        neighbor_mean = sum(clamp01(n.social_distance_compliance) for n in neighbors) / len(neighbors)
    else:
        neighbor_mean = signal

    compliance = (
        current * (1.0 - COMPLIANCE_NORM_WEIGHT - COMPLIANCE_POLICY_WEIGHT)
        + neighbor_mean * COMPLIANCE_NORM_WEIGHT
        + signal * COMPLIANCE_POLICY_WEIGHT
    )

    if individual.in_hospital:
        compliance = max(compliance, clamp01(current + COMPLIANCE_HOSPITAL_BOOST))
    elif individual.health_status == STATE_DICT['I']:
        compliance = max(compliance, clamp01(current + COMPLIANCE_INFECTION_BOOST))

    if individual.vaccinated:
        compliance *= 1.0 - COMPLIANCE_VACCINE_COMPLACENCY * _complacency_progress(individual)

    pattern = individual.movement_pattern
    if pattern is not None:
        if pattern.move_type == "Train":
            compliance *= 0.9
        elif pattern.move_type == "Flight":
            compliance *= 0.8
        elif pattern.move_type == "Walk":
            compliance = compliance * (1.0 - 0.02) + 0.02
        else:
            raise ValueError(f"Invalid movement type: {pattern.move_type}")

    compliance += rng.uniform(-COMPLIANCE_JITTER, COMPLIANCE_JITTER)
    compliance = clamp01(compliance)
    individual.social_distance_compliance = compliance

    if pattern is not None:
        radius = baseline_move_radius(pattern.move_type, environment.area_size) * (1.0 - 0.6 * compliance)
        pattern.move_radius = max(radius, MIN_MOVE_RADIUS)

    return clamp01(MIN_MOVE_PROBABILITY + (1.0 - MIN_MOVE_PROBABILITY) * (1.0 - compliance))


######## Vaccination rollout ########

def vaccine_acceptance_probability(individual) -> float:
    """Willingness of an unvaccinated individual to accept a dose"""
    if individual.age >= 60:
        age_mod = 0.20
    elif individual.age >= 40:
        age_mod = 0.10
    else:
        age_mod = 0.0

    compliance_mod = 0.15 * clamp01(individual.social_distance_compliance)
    hygiene_mod = 0.08 * clamp01(individual.hygiene_level)

    if individual.in_hospital:
        health_mod = 0.30
    elif individual.health_status == STATE_DICT['I']:
        health_mod = 0.10
    else:
        health_mod = 0.0

    return clamp01(0.55 + age_mod + compliance_mod + hygiene_mod + health_mod)


def daily_vaccine_slots(environment) -> int:
    """Doses available today: the gap to the coverage target, capped at 2% of the population (at least 1)"""
    n = len(environment.population)
    current = sum(1 for ind in environment.population if ind is not None and ind.vaccinated)
    desired = round_half_up(clamp01(environment.vaccination_rate) * n)
    available = desired - current
    if available <= 0:
        return 0
    max_daily = max(1, round_half_up(0.02 * n))
    return min(available, max_daily)


def update_vaccination(environment, rng: np.random.Generator) -> int:
    """
    Environment-level vaccination rollout for one day.

    Every unvaccinated individual is a candidate, in random order, until today's slots run out.
    Dead individuals are candidates too.

    Returns:
        Number of newly vaccinated individuals
    """
    if environment is None or not environment.population:
        raise InvalidInputError("empty environment or population")

    slots = daily_vaccine_slots(environment)
    if slots <= 0:
        return 0

    newly_vaccinated = 0
    for idx in rng.permutation(len(environment.population)):
        if slots <= 0:
            break
        individual = environment.population[int(idx)]
        if individual is None or individual.vaccinated:
            continue
        if rng.random() < vaccine_acceptance_probability(individual):
            individual.vaccinate()
            newly_vaccinated += 1
            slots -= 1

    return newly_vaccinated
