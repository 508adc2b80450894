import os
from typing import List, Optional, Tuple

import imageio.v3 as iio
import numpy as np


def save_gif(path: str, frames: List[np.ndarray], delay_cs: int = 5):
    """
    Encode RGB frames as an animated GIF that loops forever.

    Args:
        path: Output file
        frames: List of H x W x 3 uint8 arrays, all the same size
        delay_cs: Delay between frames in centiseconds
    """
    if not frames:
        raise ValueError("No frames to save")
    if delay_cs < 1:
        raise ValueError("delay_cs must be 1 or greater")

    iio.imwrite(path, np.stack(frames), duration=delay_cs * 10, loop=0)


def save_run_gifs(env, output_dir: str, gif_filename: str, delay_cs: int = 5) -> Tuple[str, str]:
    """Write the spatial and pie-chart animations recorded by an AdaptiveEpidemicEnv"""
    os.makedirs(output_dir, exist_ok=True)
    gif_path = os.path.join(output_dir, gif_filename)
    pie_path = os.path.join(output_dir, f"pie_{gif_filename}")

    save_gif(gif_path, env.frames, delay_cs)
    print(f"GIF saved to {gif_path}")
    save_gif(pie_path, env.pie_frames, delay_cs)
    print(f"Pie chart GIF saved to {pie_path}")
    return gif_path, pie_path


def record_run(
    env,
    num_days: int,
    output_dir: str,
    gif_filename: str = "env_sim.gif",
    delay_cs: int = 5,
    seed: Optional[int] = None
) -> Tuple[str, str]:
    """
    Run an environment for up to num_days days and save both animations.
    The environment must have been created with render_mode="rgb_array".

    Returns:
        (gif_path, pie_gif_path)
    """
    if env.render_mode != "rgb_array":
        raise ValueError("record_run needs an environment created with render_mode='rgb_array'")

    env.reset(seed=seed)
    for _ in range(num_days):
        _, _, terminated, truncated, _ = env.step(0)
        if terminated or truncated:
            break

    return save_run_gifs(env, output_dir, gif_filename, delay_cs)
