import math
from typing import List, Optional, Sequence, Tuple

# Health state definitions
STATE_DICT = {
    'H': 0,  # Healthy
    'S': 1,  # Susceptible
    'I': 2,  # Infected
    'R': 3,  # Recovered
    'D': 4   # Dead
}

STATE_LABELS = {
    STATE_DICT['H']: 'Healthy',
    STATE_DICT['S']: 'Susceptible',
    STATE_DICT['I']: 'Infected',
    STATE_DICT['R']: 'Recovered',
    STATE_DICT['D']: 'Dead'
}

# Movement types and their baseline daily radius as a fraction of the area side length
MOVE_TYPES = ("Walk", "Train", "Flight")
MOVE_RADIUS_FRACTION = {
    "Walk": 0.001,
    "Train": 0.1,
    "Flight": 1.0
}


######## Errors ########
class SimulationError(ValueError):
    """Base class for every error raised by the simulation core."""


class InvalidInputError(SimulationError):
    """Missing/empty environment or population, or out-of-range parameters."""


class InvalidProbabilityError(SimulationError):
    """A transition probability outside [0, 1], or death + recovery > 1."""


class UnknownStateError(SimulationError):
    """An individual carries a health status that is not in STATE_DICT."""


######## Helpers ########
def clamp01(x: float) -> float:
    """Clamp a value into [0, 1]"""
    if x < 0:
        return 0.0
    if x > 1:
        return 1.0
    return float(x)


def round_half_up(x: float) -> int:
    """Round to the nearest integer with halves going away from zero (round() would go to even)"""
    if x < 0:
        return -int(math.floor(-x + 0.5))
    return int(math.floor(x + 0.5))


def is_valid_state(state: int) -> bool:
    return state in STATE_LABELS


def state_label(state: int) -> str:
    """Human-readable name for a health status code"""
    if not is_valid_state(state):
        raise UnknownStateError(f"Unknown health status: {state!r}")
    return STATE_LABELS[state]


def calculate_distance(first, second) -> float:
    """
    Euclidean distance between two individuals.
    Positions are compared directly: the exposure model does not look across the wrapped border.
    """
    dx = first.x - second.x
    dy = first.y - second.y
    return math.sqrt(dx * dx + dy * dy)


######## Spatial proximity query ########
def get_neighbors_with_distance(
    population: Sequence,
    origin,
    radius: float,
    state_filter: Optional[int] = None
) -> List[Tuple[object, float]]:
    """
    Return (individual, distance) pairs for everyone within radius of origin.

    Args:
        population: Ordered collection of individuals
        origin: The individual the query is centred on (never part of the result)
        radius: Inclusive search radius; a non-positive radius matches nobody
        state_filter: Optional health status the neighbors must currently have

    Returns:
        List of (individual, distance) tuples in population order
    """
    if origin is None or radius <= 0:
        return []

    neighbors = []
    for other in population:
        if other is None or other is origin:
            continue
        if state_filter is not None and other.health_status != state_filter:
            continue
        distance = calculate_distance(origin, other)
        if distance <= radius:
            neighbors.append((other, distance))
    return neighbors


def get_neighbors(
    population: Sequence,
    origin,
    radius: float,
    state_filter: Optional[int] = None
) -> list:
    """Same as get_neighbors_with_distance but returns only the individuals"""
    return [other for other, _ in get_neighbors_with_distance(population, origin, radius, state_filter)]
