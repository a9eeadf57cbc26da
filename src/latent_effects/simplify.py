from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Tuple
from warnings import warn

from .components import Component
from .errors import ConfigurationError, UnsupportedModelWarning
from .mappers import Mapper, MapperInput, TaylorMapper


class SimplifiedMappers(Mapping[str, Mapper]):
    """Per-component mappers ready for evaluation, in component order."""

    def __init__(self, mappers: Mapping[str, Mapper]):
        self._mappers: Dict[str, Mapper] = dict(mappers)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(self._mappers.keys())

    def __getitem__(self, label: str) -> Mapper:
        return self._mappers[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mappers)

    def __len__(self) -> int:
        return len(self._mappers)

    def __repr__(self) -> str:
        return f"SimplifiedMappers({self._mappers!r})"


def _mapper_of(cmp: Component) -> Mapper:
    if cmp.mapper is None:
        raise ConfigurationError(
            f"Component {cmp.label!r} has no mapper yet; build the model with data first."
        )
    return cmp.mapper


def _input_of(inputs: Mapping[str, MapperInput], label: str) -> MapperInput:
    try:
        return inputs[label]
    except KeyError:
        raise ConfigurationError(f"No input evaluated for component {label!r}.") from None


def simplify_mappers(
    components: Iterable[Component], inputs: Mapping[str, MapperInput]
) -> SimplifiedMappers:
    """Linearize linear component mappers; keep non-linear mappers as they are.

    Linear mappers become a :class:`TaylorMapper` (fixed offset + design
    matrix) evaluated once for the component input. Non-linear mappers are
    passed through with an :class:`UnsupportedModelWarning`.
    """
    components = list(components)
    linear = [c for c in components if _mapper_of(c).is_linear()]
    nonlinear = [c for c in components if not _mapper_of(c).is_linear()]

    built: Dict[str, Mapper] = {}
    for cmp in linear:
        built[cmp.label] = TaylorMapper.from_linear(cmp.mapper, _input_of(inputs, cmp.label))

    if nonlinear:
        warn("Non-linear mappers are experimental!", UnsupportedModelWarning, stacklevel=2)
        for cmp in nonlinear:
            built[cmp.label] = cmp.mapper

    return SimplifiedMappers({c.label: built[c.label] for c in components})


def linearize_mappers(
    components: Iterable[Component],
    inputs: Mapping[str, MapperInput],
    state: Mapping[str, Any],
) -> SimplifiedMappers:
    """First order Taylor linearization of every component around ``state``."""
    components = list(components)
    if any(not _mapper_of(c).is_linear() for c in components):
        warn("Non-linear mappers are experimental!", UnsupportedModelWarning, stacklevel=2)
    return SimplifiedMappers(
        {
            c.label: TaylorMapper.linearize(c.mapper, _input_of(inputs, c.label), state.get(c.label))
            for c in components
        }
    )
