import gymnasium as gym
import numpy as np
from typing import Any, Dict, Mapping, Optional, Tuple
import matplotlib.pyplot as plt

from utils import STATE_DICT, InvalidInputError
from population import Environment, initialize_disease, initialize_environment
from transitions import update_population_health
from policy import compute_population_stats, count_health_states, update_environment
from movement import move_population

# health status code -> STATE_DICT key
STATE_KEYS = {code: key for key, code in STATE_DICT.items()}


######## Simulation driver ########

def initialize(
    population_size: int,
    area_size: float,
    disease_params: Mapping,
    environment_params: Mapping,
    initial_infected_count: int,
    rng: Optional[np.random.Generator] = None
) -> Environment:
    """
    Build a fresh environment: the disease, a randomized healthy population and the seeded infections

    Args:
        population_size: Number of individuals
        area_size: Side length of the square area
        disease_params: Disease fields (transmission_rate, transmission_distance, recovery_rate, ...)
        environment_params: social_distance_threshold, hygiene_level, mobility_rate,
            vaccination_rate, medical_care_level, medical_capacity
        initial_infected_count: Individuals forced to Infected at the start
        rng: Random number generator for reproducibility

    Returns:
        The initialized Environment
    """
    if population_size <= 0:
        raise InvalidInputError("population_size must be positive")
    if area_size <= 0:
        raise InvalidInputError("area_size must be positive")
    if rng is None:
        rng = np.random.default_rng()

    disease = initialize_disease(disease_params)
    return initialize_environment(
        population_size,
        area_size,
        disease,
        environment_params,
        initial_infected_count,
        rng
    )


def advance_one_day(environment: Environment, rng: np.random.Generator) -> Tuple[float, bool]:
    """
    One simulated day: vaccination and health transitions (with behavior updates), then the
    environment policy update, then movement.

    Returns:
        (infected_fraction, tightened) from the environment update
    """
    if environment is None or not environment.population:
        raise InvalidInputError("empty environment or population")

    update_population_health(environment, rng)
    infected_fraction, tightened = update_environment(environment, rng)
    move_population(environment, rng)
    return infected_fraction, tightened


######## Adaptive epidemic environment class ########
class AdaptiveEpidemicEnv(gym.Env):
    """
    Gymnasium wrapper around the simulation driver. One step is one simulated day.

    The simulation has no external control, so the only action is 0 ("advance one day").
    The reward is the negative infected fraction after the day.
    """
    metadata = {
        "render_modes": ["rgb_array"],
        "render_fps": 20,
    }

    # RGB 0-255, converted for matplotlib when drawing
    COLORS = {
        'background': (0, 0, 0),
        'vaccinated': (64, 128, 64),     # Dark green, living vaccinated individuals
        'H': (128, 255, 0),              # Green for Healthy
        'S': (255, 255, 0),              # Yellow for Susceptible
        'I': (255, 0, 0),                # Red for Infected
        'R': (0, 128, 255),              # Blue for Recovered
        'D': (160, 160, 160),            # Grey for Dead
    }

    def __init__(
        self,
        population_size: int = 1000,
        initial_infected: int = 10,
        area_size: float = 100.0,
        disease_name: str = "DemoDisease",
        transmission_rate: float = 0.8,
        transmission_distance: float = 2.0,
        recovery_rate: float = 0.05,
        mortality_rate: float = 0.01,
        latent_period: int = 3,
        infectious_period: int = 10,
        immunity_duration: int = 90,
        social_distance_threshold: float = 2.0,
        hygiene_level: float = 0.1,
        mobility_rate: float = 1.0,
        vaccination_rate: float = 0.2,
        medical_care_level: float = 0.7,
        medical_capacity: Optional[int] = None,  # None means 10% of the population
        num_days: int = 200,
        render_mode: Optional[str] = None,
        canvas_width: int = 800,
        point_radius: float = 3.0,
        frame_frequency: int = 2
    ):
        super().__init__()

        # Validate parameters
        if population_size <= 0:
            raise ValueError("population_size must be positive")
        if initial_infected < 0 or initial_infected > population_size:
            raise ValueError("initial_infected must be in [0, population_size]")
        if area_size <= 0:
            raise ValueError("area_size must be positive")
        if num_days < 1:
            raise ValueError("num_days must be 1 or greater")
        if frame_frequency < 1:
            raise ValueError("frame_frequency must be 1 or greater")
        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"render_mode must be one of {self.metadata['render_modes']}")
        if medical_capacity is None:
            medical_capacity = int(0.1 * population_size)

        self.render_mode = render_mode
        self.canvas_width = canvas_width
        self.point_radius = point_radius
        self.frame_frequency = frame_frequency
        self.frames = []
        self.pie_frames = []

        # General parameters
        self.population_size = population_size
        self.initial_infected = initial_infected
        self.area_size = area_size
        self.num_days = num_days
        self.counter = 0  # elapsed simulated days

        self.disease_params = {
            "name": disease_name,
            "transmission_rate": transmission_rate,
            "transmission_distance": transmission_distance,
            "recovery_rate": recovery_rate,
            "mortality_rate": mortality_rate,
            "latent_period": latent_period,
            "infectious_period": infectious_period,
            "immunity_duration": immunity_duration,
        }
        self.environment_params = {
            "social_distance_threshold": social_distance_threshold,
            "hygiene_level": hygiene_level,
            "mobility_rate": mobility_rate,
            "vaccination_rate": vaccination_rate,
            "medical_care_level": medical_care_level,
            "medical_capacity": medical_capacity,
        }

        ##############################
        ####### Observation and Action spaces
        ##############################
        self.observation_space = gym.spaces.Dict({
            # Healthy, Susceptible, Infected, Recovered, Dead, Vaccinated
            "health_counts": gym.spaces.Box(
                low=0,
                high=population_size,
                shape=(len(STATE_DICT) + 1,),
                dtype=np.float32
            ),
            # hygiene_level, vaccination_rate, social_distance_threshold, infected_fraction
            "policy": gym.spaces.Box(
                low=0,
                high=np.inf,
                shape=(4,),
                dtype=np.float32
            )
        })
        self.action_space = gym.spaces.Discrete(1)

        self.environment: Optional[Environment] = None
        self.last_tightened = False

    @classmethod
    def from_config(cls, config: Dict[str, Dict[str, Any]], render_mode: Optional[str] = None) -> "AdaptiveEpidemicEnv":
        """Build the environment from a validated, sectioned configuration (see config.py)"""
        disease = config["disease"]
        population = config["population"]
        environment = config["environment"]
        simulation = config["simulation"]
        visualization = config["visualization"]
        return cls(
            population_size=population["population_size"],
            initial_infected=population["initial_infected"],
            area_size=environment["area_size"],
            disease_name=disease["name"],
            transmission_rate=disease["transmission_rate"],
            transmission_distance=disease["transmission_distance"],
            recovery_rate=disease["recovery_rate"],
            mortality_rate=disease["mortality_rate"],
            latent_period=disease["latent_period"],
            infectious_period=disease["infectious_period"],
            immunity_duration=disease["immunity_duration"],
            social_distance_threshold=environment["social_distance_threshold"],
            hygiene_level=environment["hygiene_level"],
            mobility_rate=environment["mobility_rate"],
            vaccination_rate=environment["vaccination_rate"],
            medical_care_level=environment["medical_care_level"],
            medical_capacity=environment["medical_capacity"],
            num_days=simulation["num_days"],
            render_mode=render_mode,
            canvas_width=visualization["canvas_width"],
            point_radius=visualization["point_radius"],
            frame_frequency=visualization["frame_frequency"],
        )

    def reset(self, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[dict, dict]:
        """Reset the environment to a freshly initialized population"""
        super().reset(seed=seed)

        self.frames = []
        self.pie_frames = []
        self.counter = 0
        self.last_tightened = False

        self.environment = initialize(
            self.population_size,
            self.area_size,
            self.disease_params,
            self.environment_params,
            self.initial_infected,
            rng=self.np_random
        )

        if self.render_mode is not None:
            self.record_frames()

        return self._get_observation(), self._get_info(infected_fraction=None)

    def step(self, action: int = 0) -> Tuple[dict, float, bool, bool, dict]:
        """
        Advance the simulation by one day
        Args:
            action: must be 0
        Returns:
            observation: dict of gym.spaces.Space objects
            reward: negative infected fraction
            terminated: bool, True once num_days days have been simulated
            truncated: bool, True once no infected individual is left
            info: dict
        """
        if self.environment is None:
            raise RuntimeError("Call reset() before step()")
        if action != 0:
            raise ValueError(f"Invalid action {action}: the only action is 0 (advance one day)")

        self.counter += 1
        infected_fraction, tightened = advance_one_day(self.environment, self.np_random)
        self.last_tightened = tightened

        observation = self._get_observation()
        reward = -float(infected_fraction)

        terminated = self.counter >= self.num_days
        # No infection can ever arise again once nobody is infected
        truncated = not terminated and compute_population_stats(self.environment).total_infected == 0

        if self.render_mode is not None and self.counter % self.frame_frequency == 0:
            self.record_frames()

        info = self._get_info(infected_fraction=infected_fraction)
        info["truncation_reason"] = "timeout" if terminated else ("no_infection_possible" if truncated else None)
        return observation, reward, terminated, truncated, info

    def _get_observation(self) -> dict:
        """Build the observation dict from the current population and environment"""
        counts = count_health_states(self.environment)
        stats = compute_population_stats(self.environment)
        health_counts = np.array(
            [counts['Healthy'], counts['Susceptible'], counts['Infected'], counts['Recovered'], counts['Dead'],
             stats.total_vaccinated],
            dtype=np.float32
        )
        policy = np.array(
            [self.environment.hygiene_level,
             self.environment.vaccination_rate,
             self.environment.social_distance_threshold,
             stats.infected_fraction],
            dtype=np.float32
        )
        return {"health_counts": health_counts, "policy": policy}

    def _get_info(self, infected_fraction: Optional[float]) -> dict:
        counts = count_health_states(self.environment)
        stats = compute_population_stats(self.environment)
        return {
            "day": self.counter,
            "healthy_count": counts['Healthy'],
            "susceptible_count": counts['Susceptible'],
            "infected_count": counts['Infected'],
            "recovered_count": counts['Recovered'],
            "dead_count": counts['Dead'],
            "vaccinated_count": stats.total_vaccinated,
            "infected_fraction": stats.infected_fraction if infected_fraction is None else infected_fraction,
            "hygiene_level": self.environment.hygiene_level,
            "vaccination_rate": self.environment.vaccination_rate,
            "social_distance_threshold": self.environment.social_distance_threshold,
            "tightened": self.last_tightened,
        }

    ####### Rendering #######

    def _color_for(self, individual) -> Tuple[float, float, float]:
        if individual.vaccinated and individual.health_status != STATE_DICT['D']:
            rgb = self.COLORS['vaccinated']
        else:
            key = STATE_KEYS[individual.health_status]
            rgb = self.COLORS[key]
        return tuple(channel / 255.0 for channel in rgb)

    def _figure(self):
        dpi = 100
        size = self.canvas_width / dpi
        background = tuple(channel / 255.0 for channel in self.COLORS['background'])
        fig = plt.figure(figsize=(size, size), dpi=dpi, facecolor=background)
        ax = fig.add_axes([0, 0, 1, 1])
        ax.set_facecolor(background)
        ax.axis('off')
        return fig, ax

    @staticmethod
    def _to_rgb_array(fig) -> np.ndarray:
        fig.canvas.draw()
        buf = np.asarray(fig.canvas.buffer_rgba())
        data = buf[:, :, :3].copy()
        plt.close(fig)
        return data

    def _render_frame(self) -> Optional[np.ndarray]:
        """
        Spatial distribution of the population: one filled circle per individual on black.
        Returns:
            np.ndarray: RGB array of shape (canvas_width, canvas_width, 3)
        """
        if self.environment is None:
            return None

        fig, ax = self._figure()
        individuals = [ind for ind in self.environment.population if ind is not None]
        if individuals:
            # marker size is in points^2; point_radius is in pixels at 100 dpi
            marker_size = (2 * max(self.point_radius, 0.5) * 72 / 100) ** 2
            ax.scatter(
                [ind.x for ind in individuals],
                [ind.y for ind in individuals],
                c=[self._color_for(ind) for ind in individuals],
                s=marker_size,
                linewidths=0
            )
        ax.set_xlim(0, self.area_size)
        ax.set_ylim(0, self.area_size)
        return self._to_rgb_array(fig)

    def render_pie(self) -> Optional[np.ndarray]:
        """
        Pie chart of the population: Dead, Recovered, Infected, Susceptible, Vaccinated (alive), Healthy.
        Vaccinated living individuals get their own slice and are not counted in their status slice.
        """
        if self.environment is None:
            return None

        slices = {key: 0 for key in ['D', 'R', 'I', 'S', 'vaccinated', 'H']}
        for individual in self.environment.population:
            if individual is None:
                continue
            if individual.vaccinated and individual.health_status != STATE_DICT['D']:
                slices['vaccinated'] += 1
            else:
                key = STATE_KEYS[individual.health_status]
                slices[key] += 1

        fig, ax = self._figure()
        counts = [count for count in slices.values() if count > 0]
        colors = [tuple(c / 255.0 for c in self.COLORS[key]) for key, count in slices.items() if count > 0]
        if counts:
            # clockwise from 12 o'clock, radius 0.4 of the canvas
            ax.pie(counts, colors=colors, startangle=90, counterclock=False, radius=0.8,
                   wedgeprops={"linewidth": 0})
        ax.set_xlim(-1, 1)
        ax.set_ylim(-1, 1)
        ax.set_aspect('equal')
        return self._to_rgb_array(fig)

    def record_frames(self):
        """Append the current spatial and pie-chart frames to frames and pie_frames"""
        frame = self._render_frame()
        if frame is not None:
            self.frames.append(frame)
        pie = self.render_pie()
        if pie is not None:
            self.pie_frames.append(pie)

    def render(self):
        """
        Render the environment.
        Returns:
            numpy array if mode is 'rgb_array'
        """
        return self._render_frame()

    def close(self):
        """Close the environment and cleanup resources."""
        self.frames = []
        self.pie_frames = []
        plt.close('all')
