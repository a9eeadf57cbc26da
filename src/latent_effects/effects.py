"""Evaluation of component effects for one or several latent states."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Union

import numpy as np

from .components import ComponentList
from .mappers import Mapper, MapperInput
from .simplify import SimplifiedMappers, simplify_mappers
from .util import as_vector

State = Mapping[str, Any]
Effects = Dict[str, np.ndarray]
Evaluable = Union[Mapper, SimplifiedMappers, ComponentList]


def _evaluate_mapper(mapper: Mapper, input: MapperInput, state: Any) -> np.ndarray:
    return as_vector(mapper.evaluate(input, state))


def _evaluate_mappers(
    mappers: SimplifiedMappers, inputs: Mapping[str, MapperInput], state: State
) -> Effects:
    return {
        label: _evaluate_mapper(mapper, (inputs or {}).get(label), state.get(label))
        for label, mapper in mappers.items()
    }


def evaluate_effect_single(mappers: Evaluable, inputs: Any, state: Any) -> Any:
    """Evaluate effects for a single latent state.

    - ``Mapper``: ``inputs`` is one :class:`MapperInput`, ``state`` one latent
      vector; returns a 1-D array.
    - ``SimplifiedMappers``: ``inputs`` and ``state`` are label mappings;
      returns a label -> 1-D array dict.
    - ``ComponentList``: simplified first, then as above.
    """
    if isinstance(mappers, ComponentList):
        return _evaluate_mappers(simplify_mappers(mappers, inputs), inputs, state)
    if isinstance(mappers, SimplifiedMappers):
        return _evaluate_mappers(mappers, inputs, state)
    if isinstance(mappers, Mapper):
        return _evaluate_mapper(mappers, inputs, state)
    raise TypeError(
        "evaluate_effect_single expects a Mapper, SimplifiedMappers or ComponentList; "
        f"got {type(mappers).__name__}."
    )


def evaluate_effect_multi(
    mappers: Evaluable, inputs: Any, states: Sequence[Any]
) -> List[Any]:
    """Evaluate effects independently for each state in ``states``."""
    if isinstance(mappers, ComponentList):
        mappers = simplify_mappers(mappers, inputs)
    if not isinstance(mappers, (SimplifiedMappers, Mapper)):
        raise TypeError(
            "evaluate_effect_multi expects a Mapper, SimplifiedMappers or ComponentList; "
            f"got {type(mappers).__name__}."
        )
    return [evaluate_effect_single(mappers, inputs, state) for state in states]
