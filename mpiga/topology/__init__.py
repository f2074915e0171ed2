"""Multi-patch topology: sides, corners, interfaces and vertices."""

from .boundary import *
from .box_topology import BoxTopology, DuplicateSideError, UnsupportedDimensionError
