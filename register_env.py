from gymnasium.envs.registration import register
# Register the environment with Gymnasium
register(
    id='AdaptiveEpidemic-v0',
    entry_point='environment:AdaptiveEpidemicEnv',
    # num_days in the constructor ends the episode, so no max_episode_steps here
)
