from __future__ import annotations

from typing import Any, Optional

import numpy as np
import scipy.sparse as sp

from .common import MapperInput, all_valid, as_state


def _covariate_matrix(main: Any, n: int) -> np.ndarray:
    x = np.asarray(main, dtype=float)
    if x.ndim == 0:
        x = x.reshape((1,))
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or x.shape[1] != n:
        raise ValueError(
            f"Linear mapper expects covariates with {n} column(s); got shape {x.shape}."
        )
    return x


class LinearMapper:
    """Covariate effect: values = X @ beta, with X given by the main input."""

    def __init__(self, n: int = 1):
        self.n = int(n)

    @staticmethod
    def from_values(values: Any = None, **options: Any) -> "LinearMapper":
        if values is None or "n" in options:
            return LinearMapper(**options)
        x = np.asarray(values)
        return LinearMapper(n=1 if x.ndim <= 1 else int(x.shape[1]))

    def is_linear(self) -> bool:
        return True

    def jacobian(self, input: MapperInput, state: Optional[np.ndarray] = None):
        return sp.csr_matrix(_covariate_matrix(input.main, self.n))

    def evaluate(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        beta = as_state(state, self.n)
        return _covariate_matrix(input.main, self.n) @ beta

    def invalid_output(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return all_valid(input)

    def __repr__(self) -> str:
        return f"LinearMapper(n={self.n})"


class OffsetMapper:
    """Known offset: values are the main input itself, no latent variables."""

    n = 0

    @staticmethod
    def from_values(values: Any = None, **options: Any) -> "OffsetMapper":
        return OffsetMapper()

    def is_linear(self) -> bool:
        return True

    def jacobian(self, input: MapperInput, state: Optional[np.ndarray] = None):
        return sp.csr_matrix((input.size, 0), dtype=float)

    def evaluate(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return np.asarray(input.main, dtype=float).reshape((-1,))

    def invalid_output(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return all_valid(input)

    def __repr__(self) -> str:
        return "OffsetMapper()"
