
from .geometry_evaluator import EvalFlag, GeometryEvaluator
from .bspline_patch import BSplinePatch
from .multipatch import MultiPatch
