from dataclasses import dataclass
from typing import List, Mapping, Optional
import numpy as np

from utils import (
    STATE_DICT,
    InvalidInputError,
    UnknownStateError,
    is_valid_state,
)
from movement import MovementHandler, MovementPattern


######## Disease ########
@dataclass(frozen=True)
class Disease:
    """Disease parameters, shared by reference across the whole population and never mutated"""
    name: str
    transmission_rate: float
    transmission_distance: float
    recovery_rate: float
    mortality_rate: float
    latent_period: int = 0
    infectious_period: int = 1
    immunity_duration: int = 0

    def __post_init__(self):
        for field_name in ("transmission_rate", "recovery_rate", "mortality_rate"):
            value = getattr(self, field_name)
            if value < 0 or value > 1:
                raise InvalidInputError(f"{field_name} must be in [0,1], got {value}")
        if self.transmission_distance <= 0:
            raise InvalidInputError("transmission_distance must be positive")
        if self.latent_period < 0:
            raise InvalidInputError("latent_period must be 0 or greater")
        if self.infectious_period < 1:
            raise InvalidInputError("infectious_period must be 1 or greater")
        if self.immunity_duration < 0:
            raise InvalidInputError("immunity_duration must be 0 or greater")


######## Individual class ########
class Individual:
    def __init__(
        self,
        x: float,
        y: float,
        age: int = 30,
        gender: str = "Female",
        health_status: int = STATE_DICT['H'],
        hygiene_level: float = 0.5,
        social_distance_compliance: float = 0.5,
        movement_pattern: Optional[MovementPattern] = None,
        disease: Optional[Disease] = None,
        id: Optional[int] = None
    ):
        """
        Initialize an individual

        Args:
            x: x position
            y: y position
            age: age in years
            gender: "Male" or "Female"
            health_status: one of STATE_DICT values
            hygiene_level: personal hygiene in [0,1]
            social_distance_compliance: compliance with distancing in [0,1]
            movement_pattern: today's movement pattern (exclusively owned)
            disease: shared Disease reference
            id: insertion index, informational only
        """
        if not is_valid_state(health_status):
            raise UnknownStateError(f"Unknown health status: {health_status!r}")
        if age < 0:
            raise InvalidInputError("age must be 0 or greater")

        self.id = id
        self.x = x
        self.y = y
        self.age = age
        self.gender = gender
        self.health_status = health_status
        self.disease = disease
        self.days_infected = 0
        self.days_since_recovery = 0
        self.days_since_vaccination = 0
        self.vaccinated = False
        self.hygiene_level = hygiene_level
        self.social_distance_compliance = social_distance_compliance
        self.movement_pattern = movement_pattern
        self.in_hospital = False

    @property
    def is_alive(self) -> bool:
        return self.health_status != STATE_DICT['D']

    def move(self, new_x: float, new_y: float, area_size: float):
        """Move individual to a new position inside the area"""
        if not (0 <= new_x < area_size) or not (0 <= new_y < area_size):
            raise InvalidInputError(f"position ({new_x}, {new_y}) is outside [0, {area_size})")
        self.x = new_x
        self.y = new_y

    def infect(self, disease: Optional[Disease] = None):
        """Set status to Infected and restart the infection clock"""
        self.health_status = STATE_DICT['I']
        self.days_infected = 0
        self.days_since_recovery = 0
        if disease is not None:
            self.disease = disease

    def vaccinate(self):
        """Vaccination is write-once"""
        if self.vaccinated:
            return
        self.vaccinated = True
        self.days_since_vaccination = 0


######## Environment ########
class Environment:
    def __init__(
        self,
        area_size: float,
        population: Optional[List[Individual]] = None,
        social_distance_threshold: float = 2.0,
        hygiene_level: float = 0.1,
        mobility_rate: float = 1.0,
        vaccination_rate: float = 0.2,
        medical_care_level: float = 0.7,
        medical_capacity: int = 0,
        disease: Optional[Disease] = None
    ):
        """
        Shared simulation context: the area, the population and the environment-level policy knobs.

        Args:
            area_size: Side length of the square area
            population: Ordered list of individuals (iteration order is insertion order)
            social_distance_threshold: Policy distance, updated daily by the feedback loop
            hygiene_level: Environment-level hygiene in [0,1]
            mobility_rate: Carried for reporting, not used by the dynamics
            vaccination_rate: Smoothed estimate of coverage in [0,1], used as the rollout target
            medical_care_level: Quality of care in [0,1]
            medical_capacity: Hospital beds; 0 disables overload effects
            disease: The disease circulating in this run
        """
        if area_size <= 0:
            raise InvalidInputError("area_size must be positive")
        if social_distance_threshold < 0:
            raise InvalidInputError("social_distance_threshold must be 0 or greater")
        if hygiene_level < 0 or hygiene_level > 1:
            raise InvalidInputError("hygiene_level must be in [0,1]")
        if mobility_rate < 0:
            raise InvalidInputError("mobility_rate must be 0 or greater")
        if vaccination_rate < 0 or vaccination_rate > 1:
            raise InvalidInputError("vaccination_rate must be in [0,1]")
        if medical_care_level < 0 or medical_care_level > 1:
            raise InvalidInputError("medical_care_level must be in [0,1]")
        if medical_capacity < 0:
            raise InvalidInputError("medical_capacity must be 0 or greater")

        self.population: List[Individual] = population if population is not None else []
        self.area_size = area_size
        self.social_distance_threshold = social_distance_threshold
        self.hygiene_level = hygiene_level
        self.mobility_rate = mobility_rate
        self.vaccination_rate = vaccination_rate
        self.medical_care_level = medical_care_level
        self.medical_capacity = medical_capacity
        self.disease = disease

    def __len__(self):
        return len(self.population)

    def living(self) -> List[Individual]:
        return [ind for ind in self.population if ind is not None and ind.is_alive]


####### Initialization #######

def initialize_disease(params: Mapping) -> Disease:
    """Build the run's Disease from a mapping of its fields"""
    return Disease(
        name=params.get("name", "DemoDisease"),
        transmission_rate=params["transmission_rate"],
        transmission_distance=params["transmission_distance"],
        recovery_rate=params["recovery_rate"],
        mortality_rate=params["mortality_rate"],
        latent_period=params.get("latent_period", 0),
        infectious_period=params.get("infectious_period", 1),
        immunity_duration=params.get("immunity_duration", 0),
    )


def initialize_individual(
    handler: MovementHandler,
    rng: np.random.Generator,
    position: Optional[tuple] = None,
    id: Optional[int] = None
) -> Individual:
    """
    Randomly initialize one healthy individual

    Age is uniform on 0-90, hygiene and compliance uniform on [0,1], movement type
    sampled with the same 1%/4%/95% split used for daily resampling.
    """
    if position is None:
        position = handler.initialize_positions(1, rng)[0]
    x, y = position
    age = int(rng.integers(0, 91))
    hygiene = rng.random()
    compliance = rng.random()
    movement = handler.sample_pattern(rng)
    gender = "Male" if rng.integers(0, 2) == 0 else "Female"

    return Individual(
        x=x,
        y=y,
        age=age,
        gender=gender,
        health_status=STATE_DICT['H'],
        hygiene_level=hygiene,
        social_distance_compliance=compliance,
        movement_pattern=movement,
        id=id
    )


def apply_initial_infections(environment: Environment, initial_infected: int, rng: np.random.Generator) -> List[Individual]:
    """
    Infect initial_infected individuals chosen at random (everyone if it exceeds the population).
    Seeded cases start in hospital.
    """
    n = len(environment.population)
    initial_infected = max(0, min(initial_infected, n))
    order = rng.permutation(n)

    infected = []
    for idx in order[:initial_infected]:
        individual = environment.population[int(idx)]
        individual.infect(environment.disease)
        individual.in_hospital = True
        infected.append(individual)
    return infected


def initialize_environment(
    population_size: int,
    area_size: float,
    disease: Disease,
    environment_params: Mapping,
    initial_infected: int,
    rng: np.random.Generator
) -> Environment:
    """
    Build the environment and its population.

    Everybody starts Healthy with the disease attached; then initial_infected are forced to Infected.
    """
    if population_size <= 0:
        raise InvalidInputError("population_size must be positive")
    if initial_infected < 0:
        raise InvalidInputError("initial_infected must be 0 or greater")

    environment = Environment(
        area_size=area_size,
        social_distance_threshold=environment_params.get("social_distance_threshold", 2.0),
        hygiene_level=environment_params.get("hygiene_level", 0.1),
        mobility_rate=environment_params.get("mobility_rate", 1.0),
        vaccination_rate=environment_params.get("vaccination_rate", 0.2),
        medical_care_level=environment_params.get("medical_care_level", 0.7),
        medical_capacity=environment_params.get("medical_capacity", 0),
        disease=disease
    )

    handler = MovementHandler(area_size)
    positions = handler.initialize_positions(population_size, rng)
    for i, position in enumerate(positions):
        individual = initialize_individual(handler, rng, position=position, id=i)
        individual.disease = disease
        environment.population.append(individual)

    apply_initial_infections(environment, initial_infected, rng)
    return environment
