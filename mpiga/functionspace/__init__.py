
from .bspline_basis import BSplineBasis, TensorBSplineBasis, BoxElement
from .dof_mapper import DofMapper
from .function import PatchFunction, MultiPatchField
