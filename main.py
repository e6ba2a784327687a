from stable_fluids.solvers import FluidSolver2D, FluidSolver3D
from stable_fluids.renderer import GUI, HeadlessRenderer
from stable_fluids.logging_config import setup_logging
from stable_fluids.constants import DebuggingMode
from stable_fluids.presets import preset_list
from stable_fluids.parsing import arguments

import taichi as ti
import logging


def main():
    setup_logging(getattr(logging, arguments.log_level))

    # Initialize Taichi on the chosen architecture:
    if arguments.arch.lower() == "cpu":
        ti.init(arch=ti.cpu, debug=arguments.debug)
    elif arguments.arch.lower() == "gpu":
        ti.init(arch=ti.gpu, debug=arguments.debug)
    else:
        ti.init(arch=ti.cuda, debug=arguments.debug)

    if len(arguments.dimensions) == 2:
        solver = FluidSolver2D(arguments.dimensions)
    elif len(arguments.dimensions) == 3:
        solver = FluidSolver3D(arguments.dimensions)
    else:
        raise SystemExit(f"--dimensions takes two or three values, got {arguments.dimensions}")

    simulation_name = "Stable Fluids - Smoke and Fire"
    if arguments.gui.lower() == "gui":
        debugging_mode = {
            "density": DebuggingMode.Density,
            "velocity": DebuggingMode.Velocity,
            "temperature": DebuggingMode.Temperature,
        }[arguments.debugging_mode]
        renderer = GUI(
            name=simulation_name,
            solver=solver,
            presets=preset_list,
            initial_preset=arguments.preset,
            debugging_mode=debugging_mode,
        )
        print("\n", "#" * 100, sep="")
        print("###", simulation_name)
        print("#" * 100)
        print(">>> R        -> [R]eset the simulation.")
        print(">>> N        -> Load the [N]ext preset.")
        print(">>> D|V|T    -> Show [D]ensity, [V]elocity or [T]emperature.")
        print(">>> P|SPACE  -> [P]ause/Un[P]ause the simulation.")
        print(">>> LMB|RMB  -> Add smoke or an upwards push at the cursor.")
        print()
        renderer.run()
    else:
        renderer = HeadlessRenderer(
            solver=solver,
            presets=preset_list,
            initial_preset=arguments.preset,
            max_frames=arguments.frames,
        )
        statistics = renderer.run()
        if statistics:
            last = statistics[-1]
            print(f"{last['frame']} frames, total density {last['total_density']:.4f}")


if __name__ == "__main__":
    main()
