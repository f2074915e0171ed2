from .quadrature import Quadrature
from .gauss_legendre import GaussLegendreQuadrature
from .tensor_gauss_rule import TensorGaussRule
