
from .computational_model import ComputationalModel
from .poisson_iga_model import PoissonIGAModel
