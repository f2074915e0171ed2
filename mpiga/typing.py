import builtins
from typing import Union, Callable

from numpy.typing import NDArray

### Types

Number = Union[builtins.int, builtins.float]
CoefLike = Union[Number, NDArray, Callable[..., NDArray]]
SourceLike = CoefLike
