
from .assembler_options import AssemblerOptions
from .visitor import Visitor, NormVisitor, quadrature_rule
from .poisson_visitor import PoissonVisitor
from .norm_visitor import NormData, L2NormVisitor, H1SemiNormVisitor, H1NormVisitor
from .sparse_system import SparseSystem
from .dirichlet_bc import DirichletCondition, BoundaryConditions
from .assembler import Assembler, InconsistentTopologyError
from .norm import Norm
