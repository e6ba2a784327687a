from argparse import ArgumentParser, RawTextHelpFormatter

parser = ArgumentParser(prog="main.py", formatter_class=RawTextHelpFormatter)

arch_help = "Taichi backend the kernels are compiled for."
parser.add_argument("-a", "--arch", default="cpu", choices=["cpu", "gpu", "cuda"], help=arch_help)

gui_help = "Show a window, or run a fixed number of frames and log statistics."
parser.add_argument("-g", "--gui", default="gui", choices=["gui", "headless"], help=gui_help)

dimensions_help = "Interior cell counts, two values for 2D and three for 3D."
parser.add_argument("--dimensions", default=[128, 128], nargs="+", type=int, help=dimensions_help)

preset_help = "Index of the preset to start with:\n" + "\n".join(
    [
        "  0: Rising Smoke",
        "  1: Campfire",
        "  2: Colliding Jets",
        "  3: Single Puff",
    ]
)
parser.add_argument("-p", "--preset", default=0, type=int, help=preset_help)

frames_help = "Number of frames to run in headless mode."
parser.add_argument("-f", "--frames", default=300, type=int, help=frames_help)

mode_help = "Which quantity the window shows initially."
parser.add_argument(
    "-m",
    "--debugging-mode",
    default="density",
    choices=["density", "velocity", "temperature"],
    help=mode_help,
)

log_level_help = "Verbosity of the solver diagnostics."
parser.add_argument(
    "-l",
    "--log-level",
    default="WARNING",
    choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    help=log_level_help,
)

debug_help = "Turn on Taichi's debug mode (bounds checks)."
parser.add_argument("-d", "--debug", default=False, action="store_true", help=debug_help)

arguments = parser.parse_args()
