from stable_fluids.grid.fields import BORDER, ScalarField, VectorField, padded_shape
from stable_fluids.grid.boundary import reflect, reflect_border, smear, smear_border
