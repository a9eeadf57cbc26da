"""Mapper implementations + registry."""

from __future__ import annotations

from typing import Any, Callable, Dict

from .common import Mapper, MapperInput
from .index import IndexMapper
from .linear import LinearMapper, OffsetMapper
from .nonlinear import FunctionMapper
from .pipe import ComponentMapper, first_stage
from .taylor import TaylorMapper

_MAPPERS: Dict[str, Callable[..., Mapper]] = {
    "linear": LinearMapper.from_values,
    "intercept": LinearMapper.from_values,
    "offset": OffsetMapper.from_values,
    "iid": IndexMapper.from_values,
    "function": FunctionMapper.from_values,
}


def make_mapper(model: str, values: Any = None, **options: Any) -> Mapper:
    """Build a main mapper for a component model name.

    ``values`` are the main input values observed in the data, used by
    mappers whose latent size depends on the data (e.g. iid levels).
    """
    try:
        factory = _MAPPERS[model]
    except KeyError as e:
        raise ValueError(
            f"Unknown component model {model!r}. Available: {tuple(_MAPPERS.keys())}"
        ) from e
    return factory(values, **options)


AVAILABLE_MODELS = tuple(_MAPPERS.keys())

__all__ = [
    "AVAILABLE_MODELS",
    "ComponentMapper",
    "FunctionMapper",
    "IndexMapper",
    "LinearMapper",
    "Mapper",
    "MapperInput",
    "OffsetMapper",
    "TaylorMapper",
    "first_stage",
    "make_mapper",
]
