from __future__ import annotations

from typing import Any, Optional

import numpy as np
import scipy.sparse as sp

from ..util import as_vector
from .common import Mapper, MapperInput, as_state


class TaylorMapper:
    """First order (affine) mapper: values = offset + A @ (state - state0).

    The offset and jacobian are evaluated once for a fixed input, so the
    input passed to :meth:`evaluate` is ignored.
    """

    def __init__(self, offset: Any, jacobian: Any, state0: Optional[Any] = None):
        self.offset = as_vector(offset)
        self.A = sp.csr_matrix(jacobian, dtype=float)
        self.n = int(self.A.shape[1])
        self.state0 = None if state0 is None else as_state(state0, self.n)
        if self.A.shape[0] != self.offset.shape[0]:
            raise ValueError(
                f"Jacobian has {self.A.shape[0]} rows but offset has {self.offset.shape[0]} values."
            )

    @staticmethod
    def from_linear(mapper: Mapper, input: MapperInput) -> "TaylorMapper":
        """Linearize an affine mapper; no reference state is needed."""
        return TaylorMapper(
            offset=mapper.evaluate(input, None),
            jacobian=mapper.jacobian(input, None),
        )

    @staticmethod
    def linearize(mapper: Mapper, input: MapperInput, state: Any) -> "TaylorMapper":
        """First order Taylor expansion of any mapper around ``state``."""
        state0 = as_state(state, mapper.n)
        return TaylorMapper(
            offset=mapper.evaluate(input, state0),
            jacobian=mapper.jacobian(input, state0),
            state0=state0,
        )

    def is_linear(self) -> bool:
        return True

    def _delta(self, state: Optional[Any]) -> np.ndarray:
        s = as_state(state, self.n)
        return s if self.state0 is None else s - self.state0

    def evaluate(self, input: Optional[MapperInput] = None, state: Optional[Any] = None) -> np.ndarray:
        if self.n == 0:
            return self.offset.copy()
        return self.offset + self.A @ self._delta(state)

    def jacobian(self, input: Optional[MapperInput] = None, state: Optional[Any] = None):
        return self.A

    def invalid_output(self, input: Optional[MapperInput] = None, state: Optional[Any] = None) -> np.ndarray:
        return np.zeros(self.offset.shape, dtype=bool)

    def __repr__(self) -> str:
        return f"TaylorMapper(n={self.n}, n_out={self.offset.shape[0]})"
