from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from ..util import as_vector
from .common import Mapper, MapperInput, as_state


def _take(values: Any, rows: np.ndarray) -> Any:
    arr = np.asarray(values)
    if arr.ndim == 0:
        return arr.reshape((1,))
    return arr[rows]


def _index(values: Any, size: int, count: int, what: str) -> np.ndarray:
    if values is None:
        return np.ones((size,), dtype=int)
    idx = np.asarray(values).reshape((-1,))
    if idx.shape[0] == 1 and size > 1:
        idx = np.repeat(idx, size)
    idx = idx.astype(int)
    if idx.shape[0] != size:
        raise ValueError(f"{what} has {idx.shape[0]} values; main has {size}.")
    if np.any(idx < 1) or np.any(idx > count):
        raise ValueError(f"{what} values must lie in 1..{count}.")
    return idx


class ComponentMapper:
    """Full component mapper: main mapper replicated over group/replicate blocks.

    The latent vector is laid out main-fastest, then group, then replicate, and
    the resulting values are multiplied by the input ``scale`` (weights).
    """

    def __init__(self, main: Mapper, n_group: int = 1, n_replicate: int = 1):
        self.main = main
        self.n_group = int(n_group)
        self.n_replicate = int(n_replicate)
        self.n = int(main.n) * self.n_group * self.n_replicate

    @property
    def mappers(self) -> Tuple[Mapper, ...]:
        return (self.main,)

    def is_linear(self) -> bool:
        return self.main.is_linear()

    def _blocks(self, input: MapperInput) -> np.ndarray:
        size = input.size
        g = _index(input.group, size, self.n_group, "group")
        r = _index(input.replicate, size, self.n_replicate, "replicate")
        return (g - 1) + self.n_group * (r - 1)

    def _scale(self, input: MapperInput) -> Optional[np.ndarray]:
        if input.scale is None:
            return None
        scale = as_vector(input.scale)
        if scale.shape[0] == 1:
            return np.repeat(scale, input.size)
        return scale

    def evaluate(self, input: MapperInput, state: Optional[Any] = None) -> np.ndarray:
        s = as_state(state, self.n)
        m = int(self.main.n)
        blocks = self._blocks(input)
        out = np.zeros((input.size,), dtype=float)
        for b in np.unique(blocks):
            rows = np.flatnonzero(blocks == b)
            sub = MapperInput(main=_take(input.main, rows))
            out[rows] = as_vector(self.main.evaluate(sub, s[b * m : (b + 1) * m]))
        scale = self._scale(input)
        return out if scale is None else out * scale

    def jacobian(self, input: MapperInput, state: Optional[Any] = None):
        s = as_state(state, self.n)
        m = int(self.main.n)
        blocks = self._blocks(input)
        ii, jj, vv = [], [], []
        for b in np.unique(blocks):
            rows = np.flatnonzero(blocks == b)
            sub = MapperInput(main=_take(input.main, rows))
            J = sp.coo_matrix(self.main.jacobian(sub, s[b * m : (b + 1) * m]))
            ii.append(rows[J.row])
            jj.append(J.col + b * m)
            vv.append(J.data)
        if not vv:
            return sp.csr_matrix((input.size, self.n), dtype=float)
        A = sp.csr_matrix(
            (np.concatenate(vv), (np.concatenate(ii), np.concatenate(jj))),
            shape=(input.size, self.n),
        )
        scale = self._scale(input)
        return A if scale is None else sp.diags(scale) @ A

    def invalid_output(self, input: MapperInput, state: Optional[Any] = None) -> np.ndarray:
        return np.asarray(
            self.main.invalid_output(MapperInput(main=input.main), None), dtype=bool
        )

    def __repr__(self) -> str:
        return (
            f"ComponentMapper({self.main!r}, n_group={self.n_group}, "
            f"n_replicate={self.n_replicate})"
        )


def first_stage(mapper: Mapper) -> Mapper:
    """Return the first sub-mapper of a composite mapper, or the mapper itself."""
    stages = getattr(mapper, "mappers", None)
    if stages:
        return stages[0]
    return mapper
