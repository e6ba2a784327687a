from stable_fluids.constants.enums import *  # noqa: F401, F403
