from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import numpy as np
import scipy.sparse as sp

from .common import MapperInput, as_state


def _key(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


class IndexMapper:
    """Unstructured (iid) effect indexed by the levels observed when fitting.

    Each main value selects one latent variable. Values outside the known
    levels are reported by :meth:`invalid_output` and evaluate to zero.
    """

    def __init__(self, levels: Sequence[Any]):
        self.levels = tuple(_key(v) for v in levels)
        self._lookup: Dict[Any, int] = {v: i for i, v in enumerate(self.levels)}
        if len(self._lookup) != len(self.levels):
            raise ValueError("IndexMapper levels must be unique.")
        self.n = len(self.levels)

    @staticmethod
    def from_values(values: Any = None, *, levels: Optional[Sequence[Any]] = None) -> "IndexMapper":
        if levels is not None:
            return IndexMapper(levels)
        if values is None:
            raise ValueError("IndexMapper needs either levels=... or observed values.")
        return IndexMapper(np.unique(np.asarray(values).reshape((-1,))).tolist())

    def _positions(self, main: Any) -> np.ndarray:
        keys = np.asarray(main, dtype=object).reshape((-1,))
        return np.array([self._lookup.get(_key(k), -1) for k in keys], dtype=int)

    def is_linear(self) -> bool:
        return True

    def jacobian(self, input: MapperInput, state: Optional[np.ndarray] = None):
        pos = self._positions(input.main)
        ok = pos >= 0
        rows = np.flatnonzero(ok)
        return sp.csr_matrix(
            (np.ones(rows.shape[0]), (rows, pos[ok])), shape=(pos.shape[0], self.n)
        )

    def evaluate(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        values = as_state(state, self.n)
        pos = self._positions(input.main)
        out = np.zeros(pos.shape, dtype=float)
        ok = pos >= 0
        out[ok] = values[pos[ok]]
        return out

    def invalid_output(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray:
        return self._positions(input.main) < 0

    def __repr__(self) -> str:
        return f"IndexMapper(n={self.n})"
