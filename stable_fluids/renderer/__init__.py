from stable_fluids.renderer.base import BaseRenderer
from stable_fluids.renderer.headless import HeadlessRenderer
from stable_fluids.renderer.gui import GUI
