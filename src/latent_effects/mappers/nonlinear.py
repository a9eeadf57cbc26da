from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

from ..util import as_vector, numdiff_jacobian
from .common import MapperInput, all_valid, as_state


class FunctionMapper:
    """Arbitrary (typically non-linear) effect values = func(main, state).

    The jacobian is computed by forward differences, so only linearization
    around a reference state is available for this mapper.
    """

    def __init__(self, func: Callable[[Any, np.ndarray], Any], n: int, *, linear: bool = False):
        self.func = func
        self.n = int(n)
        self.linear = bool(linear)

    @staticmethod
    def from_values(values: Any = None, *, func: Callable[..., Any], n: int = 1, linear: bool = False) -> "FunctionMapper":
        return FunctionMapper(func, n, linear=linear)

    def is_linear(self) -> bool:
        return self.linear

    def evaluate(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        values = as_vector(self.func(input.main, as_state(state, self.n)))
        if values.shape[0] == 1 and input.size > 1:
            values = np.repeat(values, input.size)
        return values

    def jacobian(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return numdiff_jacobian(lambda s: self.evaluate(input, s), as_state(state, self.n))

    def invalid_output(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return all_valid(input)

    def __repr__(self) -> str:
        name = getattr(self.func, "__name__", "func")
        return f"FunctionMapper({name}, n={self.n}, linear={self.linear})"
