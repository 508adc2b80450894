import math
from typing import NamedTuple, Tuple
import numpy as np

from utils import (
    STATE_DICT,
    InvalidInputError,
    InvalidProbabilityError,
    UnknownStateError,
    clamp01,
    get_neighbors_with_distance,
    is_valid_state,
)
from behavior import (
    update_hygiene_level,
    update_social_distance_compliance,
    update_vaccination,
)

# Vaccine protection against Healthy -> Susceptible: full for VACCINE_DELAY_DAYS, then linear waning
VACCINE_DELAY_DAYS = 30.0
VACCINE_WANING_DAYS = 180.0


class TransitionProbabilities(NamedTuple):
    """One day's transition probabilities for one individual. Only the entry matching its status is non-zero."""
    a: float = 0.0  # Healthy -> Susceptible
    b: float = 0.0  # Susceptible -> Infected
    c: float = 0.0  # Infected -> Dead
    d: float = 0.0  # Infected -> Recovered
    e: float = 0.0  # Recovered -> Healthy

    def validate(self):
        for name, value in zip(self._fields, self):
            if not (0.0 <= value <= 1.0):
                raise InvalidProbabilityError(f"probability {name}={value} is outside [0,1]")
        if self.c + self.d > 1.0:
            raise InvalidProbabilityError(f"death + recovery probability exceeds 1 (c={self.c}, d={self.d})")


def _disease_for(environment, individual):
    if individual.disease is not None:
        return individual.disease
    return environment.disease


def _count_infected(environment) -> int:
    return sum(1 for ind in environment.population if ind is not None and ind.health_status == STATE_DICT['I'])


def vaccine_protection(individual) -> float:
    """Protection from a vaccination: 1 for the first 30 days, then linear decay to 0 over 180 days"""
    if not individual.vaccinated:
        return 0.0
    days = float(individual.days_since_vaccination)
    if days <= VACCINE_DELAY_DAYS:
        return 1.0
    progress = clamp01((days - VACCINE_DELAY_DAYS) / VACCINE_WANING_DAYS)
    return clamp01(1.0 - progress)


####### TRANSITION FUNCTIONS FOR MOVING BETWEEN H, S, I, R AND DEAD #######

def compute_a(environment, individual) -> float:
    """
    Healthy -> Susceptible.
    Triggered when an infected individual is inside the compliance-shrunk social distance and
    environment hygiene is below 0.5; vaccine protection lowers it.
    """
    if individual is None or individual.health_status != STATE_DICT['H']:
        return 0.0

    radius = environment.social_distance_threshold
    disease = _disease_for(environment, individual)
    if radius <= 0 and disease is not None and disease.transmission_distance > 0:
        radius = 0.5 * disease.transmission_distance
    if radius <= 0:
        radius = 1.0

    effective_radius = radius * (1 - 0.6 * clamp01(individual.social_distance_compliance))
    infected = get_neighbors_with_distance(environment.population, individual, effective_radius, STATE_DICT['I'])
    if not infected or environment.hygiene_level >= 0.5:
        return 0.0

    return clamp01(1.0 - vaccine_protection(individual))


def compute_b(environment, individual) -> float:
    """
    Susceptible -> Infected.
    Independent exposures from every infected individual within 3*D0: b = 1 - prod(1 - p_i),
    p_i = rate * exp(-d/D0) * vaccine factor * hygiene factor * compliance factor.
    """
    if individual is None or individual.health_status != STATE_DICT['S']:
        return 0.0
    disease = _disease_for(environment, individual)
    if disease is None:
        return 0.0

    d0 = disease.transmission_distance
    if d0 <= 0:
        d0 = 1.0
    base_rate = clamp01(disease.transmission_rate)

    if individual.vaccinated:
        vax_factor = 0.5
    else:
        # population coverage as the expected protection
        vax_factor = 1.0 - 0.5 * clamp01(environment.vaccination_rate)
    hygiene_factor = 1.0 - 0.4 * clamp01(environment.hygiene_level)
    compliance_factor = 1.0 - 0.4 * clamp01(individual.social_distance_compliance)

    no_infection = 1.0
    for _, distance in get_neighbors_with_distance(environment.population, individual, 3 * d0, STATE_DICT['I']):
        p_i = base_rate * math.exp(-distance / d0) * vax_factor * hygiene_factor * compliance_factor
        no_infection *= (1 - clamp01(p_i))
    return clamp01(1 - no_infection)


def _mortality_age_multiplier(age: int) -> float:
    if age < 40:
        return 0.6
    elif age <= 60:
        return 1.0
    return 1.6


def _recovery_age_multiplier(age: int) -> float:
    if age < 40:
        return 1.4
    elif age <= 60:
        return 1.0
    return 0.7


def overload_multiplier(environment, infected_total: int) -> float:
    """1 while infections fit into hospital capacity, then 1 + (infected - capacity) / capacity"""
    capacity = environment.medical_capacity
    if capacity <= 0 or infected_total <= capacity:
        return 1.0
    return 1.0 + (infected_total - capacity) / capacity


def compute_c(environment, individual, infected_total: int) -> float:
    """Infected -> Dead"""
    if individual is None or individual.health_status != STATE_DICT['I']:
        return 0.0
    disease = _disease_for(environment, individual)
    if disease is None:
        return 0.0

    care_factor = 1.0 - 0.6 * clamp01(environment.medical_care_level)
    vax_factor = 0.5 if individual.vaccinated else 1.0
    c = (
        clamp01(disease.mortality_rate)
        * _mortality_age_multiplier(individual.age)
        * overload_multiplier(environment, infected_total)
        * care_factor
        * vax_factor
    )
    return clamp01(c)


def compute_d(environment, individual) -> float:
    """Infected -> Recovered. Grows logarithmically with the days already spent infected."""
    if individual is None or individual.health_status != STATE_DICT['I']:
        return 0.0
    disease = _disease_for(environment, individual)
    if disease is None:
        return 0.0

    care_factor = 1.0 + 0.5 * clamp01(environment.medical_care_level)
    time_factor = 1.0 + math.log(individual.days_infected + 1) / 10.0
    d = clamp01(disease.recovery_rate) * _recovery_age_multiplier(individual.age) * care_factor * time_factor
    return clamp01(d)


def compute_e(environment, individual) -> float:
    """Recovered -> Healthy (loss of immunity)"""
    if individual is None or individual.health_status != STATE_DICT['R']:
        return 0.0
    base = 0.01 + math.log(individual.days_since_recovery + 1) / 50.0
    vax_factor = 0.5 if individual.vaccinated else 1.0
    return clamp01(base * vax_factor)


def compute_probabilities(environment, individual, infected_total: int) -> TransitionProbabilities:
    """Probability set for the individual's current status"""
    if individual is None:
        raise InvalidInputError("missing individual")
    status = individual.health_status
    if status == STATE_DICT['H']:
        return TransitionProbabilities(a=compute_a(environment, individual))
    elif status == STATE_DICT['S']:
        return TransitionProbabilities(b=compute_b(environment, individual))
    elif status == STATE_DICT['I']:
        return TransitionProbabilities(
            c=compute_c(environment, individual, infected_total),
            d=compute_d(environment, individual)
        )
    elif status == STATE_DICT['R']:
        return TransitionProbabilities(e=compute_e(environment, individual))
    elif status == STATE_DICT['D']:
        return TransitionProbabilities()
    raise UnknownStateError(f"Unknown health status: {status!r}")


####### HEALTH-STATE MACHINE #######

def update_individual_health(
    environment,
    individual,
    probabilities: TransitionProbabilities,
    rng: np.random.Generator
) -> int:
    """
    Apply one day's behavior update and stochastic status transition to a single individual

    Args:
        environment: Environment the individual lives in
        individual: The individual to update
        probabilities: Precomputed probabilities from the snapshot phase
        rng: Random number generator for reproducibility

    Returns:
        The individual's new health status
    """
    if individual is None:
        raise InvalidInputError("missing individual")
    probabilities.validate()

    status = individual.health_status
    if not is_valid_state(status):
        raise UnknownStateError(f"Unknown health status: {status!r}")
    if status == STATE_DICT['D']:
        return status

    # Behavior reads neighbors' current values, including ones already updated this day
    update_hygiene_level(environment, individual, rng)
    update_social_distance_compliance(environment, individual, rng)

    draw = rng.random()
    if status == STATE_DICT['H']:
        if draw < probabilities.a:
            individual.health_status = STATE_DICT['S']
            individual.days_since_recovery = 0
    elif status == STATE_DICT['S']:
        if draw < probabilities.b:
            individual.infect()
        else:
            individual.health_status = STATE_DICT['H']
    elif status == STATE_DICT['I']:
        if draw < probabilities.c:
            individual.health_status = STATE_DICT['D']
            individual.in_hospital = False
        elif draw < probabilities.c + probabilities.d:
            individual.health_status = STATE_DICT['R']
            individual.days_since_recovery = 0
            individual.days_infected = 0
            individual.in_hospital = False
        else:
            individual.days_infected += 1
    elif status == STATE_DICT['R']:
        if draw < probabilities.e:
            individual.health_status = STATE_DICT['H']
            individual.days_since_recovery = 0
        else:
            individual.days_since_recovery += 1

    if individual.vaccinated:
        individual.days_since_vaccination += 1

    return individual.health_status


def snapshot_probabilities(environment) -> Tuple[TransitionProbabilities, ...]:
    """Read-only phase: every individual's probabilities from the same pre-update state"""
    infected_total = _count_infected(environment)
    return tuple(
        compute_probabilities(environment, individual, infected_total)
        for individual in environment.population
    )


def update_population_health(environment, rng: np.random.Generator) -> int:
    """
    One simulated day of vaccination, behavior adaptation and health transitions.

    Probabilities are computed for everyone before anyone changes, then applied in population order.
    The first error aborts the rest of the day; individuals already updated keep their new state.

    Returns:
        Number of individuals newly vaccinated today
    """
    if environment is None or not environment.population:
        raise InvalidInputError("empty environment or population")
    if any(individual is None for individual in environment.population):
        raise InvalidInputError("population contains a missing individual")

    newly_vaccinated = update_vaccination(environment, rng)

    probabilities = snapshot_probabilities(environment)

    for individual, probs in zip(environment.population, probabilities):
        update_individual_health(environment, individual, probs, rng)

    return newly_vaccinated
