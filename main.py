import argparse
import sys
from typing import Callable, Dict, List, Optional

import pandas as pd
from tqdm import tqdm

from config import ConfigValidationError, config_help, get_default_config, load_config, validate_config
from environment import AdaptiveEpidemicEnv, advance_one_day
from policy import compute_population_stats, count_health_states
from utils import SimulationError
from visualize import save_run_gifs

STATS_HEADER = (
    "Day, Healthy, Susceptible, Infected, Recovered, Dead, InfectedFrac, Vaccinated, "
    "EnvHygiene, EnvVaxRate, SDThreshold, PolicyTightened"
)


def print_stats(day: int, environment, tightened: bool, write: Callable[[str], None] = print) -> Dict:
    """
    Print one CSV row of daily statistics and return it as a dict

    Args:
        day: Day number (0 is the initial state)
        environment: The simulated Environment
        tightened: Whether the distancing policy tightened today
        write: Output function, print by default (tqdm.write inside the progress bar)
    """
    stats = compute_population_stats(environment)
    counts = count_health_states(environment)

    write(
        f"{day}, {counts['Healthy']}, {counts['Susceptible']}, {stats.total_infected}, "
        f"{counts['Recovered']}, {counts['Dead']}, {stats.infected_fraction:.4f}, {stats.total_vaccinated}, "
        f"{environment.hygiene_level:.3f}, {environment.vaccination_rate:.3f}, "
        f"{environment.social_distance_threshold:.3f}, {tightened}"
    )

    return {
        "day": day,
        "healthy": counts['Healthy'],
        "susceptible": counts['Susceptible'],
        "infected": stats.total_infected,
        "recovered": counts['Recovered'],
        "dead": counts['Dead'],
        "infected_fraction": stats.infected_fraction,
        "vaccinated": stats.total_vaccinated,
        "env_hygiene": environment.hygiene_level,
        "env_vaccination_rate": environment.vaccination_rate,
        "social_distance_threshold": environment.social_distance_threshold,
        "policy_tightened": tightened,
    }


def run_simulation(env: AdaptiveEpidemicEnv, num_days: int, seed: Optional[int] = None) -> pd.DataFrame:
    """
    Run the simulation day by day, printing a stats row per day.

    The env only builds the population and draws frames. Days are advanced with the driver
    directly, so they keep running after the last infection and the full horizon is reported.

    Returns:
        DataFrame with one row per day, day 0 included
    """
    env.reset(seed=seed)

    print(STATS_HEADER)
    history: List[Dict] = [print_stats(0, env.environment, False)]

    for day in tqdm(range(1, num_days + 1), desc="Simulating", unit="day"):
        try:
            _, tightened = advance_one_day(env.environment, env.np_random)
        except SimulationError as e:
            raise SimulationError(f"error on day {day}: {e}") from e
        history.append(print_stats(day, env.environment, tightened, write=tqdm.write))

        if env.render_mode is not None and day % env.frame_frequency == 0:
            env.record_frames()

    return pd.DataFrame(history)


def main(args) -> int:
    if args.help_config:
        print(config_help())
        return 0

    try:
        config = load_config(args.config) if args.config else get_default_config()
        if args.days is not None:
            config["simulation"]["num_days"] = args.days
        config = validate_config(config)
    except (ConfigValidationError, FileNotFoundError) as e:
        print(f"Error loading config file: {e}")
        print("\nRun with --help-config to see valid parameter ranges.")
        return 2

    if args.config:
        print(f"Loaded configuration from: {args.config}")

    render_mode = None if args.no_gif else "rgb_array"
    env = AdaptiveEpidemicEnv.from_config(config, render_mode=render_mode)
    num_days = config["simulation"]["num_days"]

    try:
        history = run_simulation(env, num_days, seed=args.seed)
    except SimulationError as e:
        print(e)
        env.close()
        return 1

    if args.stats_csv:
        history.to_csv(args.stats_csv, index=False)
        print(f"Statistics saved to {args.stats_csv}")

    if not args.no_gif:
        visualization = config["visualization"]
        save_run_gifs(env, args.output_dir, visualization["gif_filename"], visualization["gif_delay"])

    env.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the adaptive epidemic simulation')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to a JSON configuration file')
    parser.add_argument('--help-config', action='store_true',
                        help='Show configuration parameter validation rules and exit')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (random if omitted)')
    parser.add_argument('--days', type=int, default=None,
                        help='Override the number of simulated days')
    parser.add_argument('--output-dir', type=str, default='output_gif',
                        help='Directory to save the GIFs')
    parser.add_argument('--no-gif', action='store_true',
                        help='Skip frame rendering and GIF output')
    parser.add_argument('--stats-csv', type=str, default=None,
                        help='Write the daily statistics to this CSV file')
    return parser


def cli():
    sys.exit(main(build_parser().parse_args()))


if __name__ == "__main__":
    cli()
