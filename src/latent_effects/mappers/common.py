from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

from ..util import nrow


@dataclass(frozen=True)
class MapperInput:
    """Evaluated inputs for one component at a set of evaluation points."""

    main: Any
    group: Any = None
    replicate: Any = None
    scale: Any = None

    @property
    def size(self) -> int:
        return nrow(self.main)


@runtime_checkable
class Mapper(Protocol):
    """Mapper protocol: map component inputs and a latent state to effect values.

    A ``state`` of ``None`` is treated as the all-zero latent state.
    """

    n: int

    def is_linear(self) -> bool: ...

    def evaluate(self, input: MapperInput, state: Optional[np.ndarray] = None) -> np.ndarray: ...

    def jacobian(self, input: MapperInput, state: Optional[np.ndarray] = None) -> Any: ...

    def invalid_output(
        self, input: MapperInput, state: Optional[np.ndarray] = None
    ) -> np.ndarray: ...


def as_state(state: Optional[Any], n: int) -> np.ndarray:
    """Return state as a float vector of length n (zeros when state is None)."""
    if state is None:
        return np.zeros((n,), dtype=float)
    s = np.asarray(state, dtype=float).reshape((-1,))
    if s.shape != (n,):
        raise ValueError(f"State vector has length {s.shape[0]}; mapper expects {n}.")
    return s


def all_valid(input: MapperInput) -> np.ndarray:
    return np.zeros((input.size,), dtype=bool)
