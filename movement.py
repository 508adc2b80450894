import math
import numpy as np
from typing import List, Tuple

from utils import STATE_DICT, MOVE_TYPES, MOVE_RADIUS_FRACTION


def baseline_move_radius(move_type: str, area_size: float) -> float:
    """Baseline daily radius for a movement type: Walk 0.1%, Train 10%, Flight 100% of the area side"""
    if move_type not in MOVE_RADIUS_FRACTION:
        raise ValueError(f"Movement type must be one of {list(MOVE_TYPES)}, got {move_type!r}")
    return area_size * MOVE_RADIUS_FRACTION[move_type]


class MovementPattern:
    """How an individual travels today. Replaced, not mutated, when the type changes."""

    def __init__(self, move_type: str, move_radius: float):
        if move_type not in MOVE_TYPES:
            raise ValueError(f"Movement type must be one of {list(MOVE_TYPES)}, got {move_type!r}")
        self.move_type = move_type
        self.move_radius = move_radius

    def __repr__(self):
        return f"MovementPattern(move_type={self.move_type!r}, move_radius={self.move_radius:.4f})"


######## Movement handler for individuals in the environment ########
class MovementHandler:
    # Cumulative thresholds for tomorrow's movement type: 1% flight, 4% train, 95% walk
    FLIGHT_PROB = 0.01
    TRAIN_PROB = 0.05

    def __init__(self, area_size: float):
        """
        Initialize movement handler

        Args:
            area_size: Side length of the square simulation area
        """
        if area_size <= 0:
            raise ValueError("area_size must be positive")
        self.area_size = area_size

    def new_pattern(self, move_type: str) -> MovementPattern:
        """Fresh movement pattern with the baseline radius for its type"""
        return MovementPattern(move_type, baseline_move_radius(move_type, self.area_size))

    def sample_pattern(self, rng: np.random.Generator) -> MovementPattern:
        """
        Draw a movement pattern for the next day

        Args:
            rng: Random number generator for reproducibility

        Returns:
            MovementPattern with the baseline radius of the sampled type
        """
        draw = rng.random()
        if draw < self.FLIGHT_PROB:
            return self.new_pattern("Flight")
        elif draw < self.TRAIN_PROB:
            return self.new_pattern("Train")
        return self.new_pattern("Walk")

    def initialize_positions(self, n_individuals: int, rng: np.random.Generator) -> List[Tuple[float, float]]:
        """Uniform random positions inside the area"""
        positions = []
        for _ in range(n_individuals):
            x = rng.random() * self.area_size
            y = rng.random() * self.area_size
            positions.append((x, y))
        return positions

    def wrap(self, value: float) -> float:
        """Toroidal wraparound of one coordinate into [0, area_size)"""
        if value < 0:
            value = self.area_size + value
        elif value >= self.area_size:
            value = value - self.area_size
        # Float rounding can land exactly on the far edge (e.g. area_size + -1e-17)
        if value >= self.area_size or value < 0:
            value = 0.0
        return value

    def get_new_position(self, x: float, y: float, radius: float, rng: np.random.Generator) -> Tuple[float, float]:
        """
        Random step inside a disk of the given radius

        Args:
            x: Current x position
            y: Current y position
            radius: Maximum distance travelled this step
            rng: Random number generator for reproducibility

        Returns:
            Tuple of (new_x, new_y), wrapped into the area
        """
        # sqrt gives uniform density over the disk rather than uniform distance
        distance = math.sqrt(rng.random()) * radius
        angle = rng.random() * 2 * math.pi

        new_x = self.wrap(x + distance * math.cos(angle))
        new_y = self.wrap(y + distance * math.sin(angle))
        return new_x, new_y

    def move(self, individual, rng: np.random.Generator) -> bool:
        """
        Move one individual and resample its movement pattern for tomorrow

        Returns:
            True if the individual moved
        """
        if individual.movement_pattern is None or individual.health_status == STATE_DICT['D']:
            return False

        # Infected individuals stay local
        if individual.health_status == STATE_DICT['I']:
            individual.movement_pattern = self.new_pattern("Walk")

        radius = individual.movement_pattern.move_radius
        if radius <= 0:
            individual.movement_pattern = self.new_pattern(individual.movement_pattern.move_type)
            radius = individual.movement_pattern.move_radius

        new_x, new_y = self.get_new_position(individual.x, individual.y, radius, rng)
        individual.move(new_x, new_y, self.area_size)

        individual.movement_pattern = self.sample_pattern(rng)
        return True


def move_population(environment, rng: np.random.Generator) -> int:
    """
    Move every living individual once, in population order

    Returns:
        Number of individuals that moved
    """
    handler = MovementHandler(environment.area_size)
    moved = 0
    for individual in environment.population:
        if individual is None:
            continue
        if handler.move(individual, rng):
            moved += 1
    return moved
