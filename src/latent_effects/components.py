from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError
from .expression import Expression, data_length, data_scope
from .mappers import ComponentMapper, Mapper, MapperInput, make_mapper

__all__ = ["Component", "ComponentList", "input_eval", "COMPONENT_TYPES"]

COMPONENT_TYPES = ("fixed", "offset", "const", "iid", "other")

_MODEL_TYPES = {
    "linear": "fixed",
    "intercept": "const",
    "offset": "offset",
    "iid": "iid",
}


@dataclass(frozen=True)
class Component:
    """A named model effect: input specification plus a mapper to effect values.

    Input specifications (``main``, ``group``, ``replicate``, ``weights``) may
    be an expression string evaluated against the data, a callable of the
    data, or a constant/array. ``main=None`` means the data field named like
    the label, or the constant 1 for intercepts.
    """

    label: str
    main: Any = None
    group: Any = None
    replicate: Any = None
    weights: Any = None
    model: str = "linear"
    type: str = "fixed"
    mapper: Optional[Mapper] = None
    n_group: Optional[int] = None
    n_replicate: Optional[int] = None
    mapper_options: Dict[str, Any] = field(default_factory=dict)

    # ---- constructors ----
    @staticmethod
    def define(
        label: str,
        main: Any = None,
        *,
        model: str = "linear",
        type: Optional[str] = None,
        group: Any = None,
        replicate: Any = None,
        weights: Any = None,
        mapper: Optional[Mapper] = None,
        n_group: Optional[int] = None,
        n_replicate: Optional[int] = None,
        **mapper_options: Any,
    ) -> "Component":
        """Define a component; the mapper is built now if the data is not needed."""
        if type is None:
            type = _MODEL_TYPES.get(model, "other")
        if type not in COMPONENT_TYPES:
            raise ConfigurationError(
                f"Unknown component type {type!r}. Available: {COMPONENT_TYPES}"
            )
        cmp = Component(
            label=label,
            main=main,
            group=group,
            replicate=replicate,
            weights=weights,
            model=model,
            type=type,
            mapper=mapper,
            n_group=n_group,
            n_replicate=n_replicate,
            mapper_options=dict(mapper_options),
        )
        if cmp.mapper is not None:
            return cmp.with_mapper(cmp.mapper)
        if cmp._needs_data():
            return cmp
        return cmp.with_mapper(make_mapper(model, None, **cmp.mapper_options))

    @staticmethod
    def fixed(label: str, main: Any = None, *, n: int = 1, **kwargs: Any) -> "Component":
        """Linear covariate effect (``n`` coefficients for an n-column main input)."""
        return Component.define(label, main, model="linear", n=n, **kwargs)

    @staticmethod
    def intercept(label: str = "Intercept", **kwargs: Any) -> "Component":
        """Constant covariate effect, main input 1."""
        return Component.define(label, 1.0, model="intercept", **kwargs)

    @staticmethod
    def offset(label: str, main: Any = None, **kwargs: Any) -> "Component":
        """Known offset with no latent variables."""
        return Component.define(label, main, model="offset", **kwargs)

    @staticmethod
    def iid(
        label: str, main: Any = None, *, levels: Optional[Sequence[Any]] = None, **kwargs: Any
    ) -> "Component":
        """Unstructured effect; levels default to the main values seen in the data."""
        if levels is not None:
            kwargs["levels"] = levels
        return Component.define(label, main, model="iid", **kwargs)

    @staticmethod
    def nonlinear(
        label: str, func: Callable[[Any, np.ndarray], Any], main: Any = None, *, n: int = 1, **kwargs: Any
    ) -> "Component":
        """Effect values = func(main, state) for an arbitrary function."""
        return Component.define(label, main, model="function", func=func, n=n, **kwargs)

    # ---- helpers ----
    def _needs_data(self) -> bool:
        if self.model == "iid" and "levels" not in self.mapper_options:
            return True
        if self.group is not None and self.n_group is None:
            return True
        return self.replicate is not None and self.n_replicate is None

    def with_mapper(self, mapper: Mapper) -> "Component":
        """Return a copy with ``mapper`` wrapped as the full component mapper."""
        if not isinstance(mapper, ComponentMapper):
            mapper = ComponentMapper(
                mapper, n_group=self.n_group or 1, n_replicate=self.n_replicate or 1
            )
        return replace(self, mapper=mapper)

    def complete(self, data: Sequence[Any]) -> "Component":
        """Build a missing mapper from the main/group/replicate values in ``data``."""
        if self.mapper is not None:
            return self
        inputs = [_input_for(self, d) for d in data]
        if not inputs:
            raise ConfigurationError(
                f"Component {self.label!r} needs data to construct its mapper."
            )
        main = np.concatenate([np.atleast_1d(np.asarray(i.main)) for i in inputs])
        n_group = self.n_group
        if n_group is None:
            n_group = max(_max_index(i.group) for i in inputs)
        n_replicate = self.n_replicate
        if n_replicate is None:
            n_replicate = max(_max_index(i.replicate) for i in inputs)
        mapper = make_mapper(self.model, main, **self.mapper_options)
        return replace(self, n_group=n_group, n_replicate=n_replicate).with_mapper(mapper)

    @property
    def term(self) -> str:
        """Term contributed to the joint solver formula."""
        if self.type == "offset":
            return f"offset({self.label})"
        if self.type in ("fixed", "const"):
            return self.label
        return f'f({self.label}, model="{self.model}")'

    def summary(self) -> str:
        mapper = "<incomplete>" if self.mapper is None else repr(self.mapper)
        return f"{self.label}: main={_describe(self.main, self.label)}, model={self.model!r}, type={self.type!r}, mapper={mapper}"


def _describe(spec: Any, label: str) -> str:
    if spec is None:
        return label
    if isinstance(spec, str):
        return spec
    if callable(spec):
        return getattr(spec, "__name__", "<function>")
    return repr(spec)


def _max_index(values: Any) -> int:
    if values is None:
        return 1
    return int(np.max(np.asarray(values, dtype=float)))


class ComponentList:
    """Ordered, label-unique collection of components."""

    def __init__(self, components: Iterable[Component] = ()):
        self._components: Dict[str, Component] = {}
        for cmp in components:
            if cmp.label in self._components:
                raise ConfigurationError(f"Duplicate component label {cmp.label!r}.")
            self._components[cmp.label] = cmp

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(self._components.keys())

    def __getitem__(self, label: str) -> Component:
        try:
            return self._components[label]
        except KeyError:
            raise KeyError(f"No component labelled {label!r}.") from None

    def __contains__(self, label: object) -> bool:
        return label in self._components

    def __iter__(self) -> Iterator[Component]:
        return iter(self._components.values())

    def __len__(self) -> int:
        return len(self._components)

    def subset(self, labels: Iterable[str]) -> "ComponentList":
        """Components named in ``labels``, kept in this list's order."""
        wanted = set(labels)
        unknown = wanted.difference(self._components)
        if unknown:
            raise ConfigurationError(f"Unknown component label(s): {sorted(unknown)}.")
        return ComponentList(c for c in self if c.label in wanted)

    def complete(self, data: Sequence[Any]) -> "ComponentList":
        return ComponentList(c.complete(data) for c in self)

    def summary(self) -> str:
        lines = [f"ComponentList({len(self)} components)"]
        lines.extend("  " + c.summary() for c in self)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ComponentList({list(self.labels)!r})"


def _eval_spec(spec: Any, data: Any) -> Any:
    if isinstance(spec, str):
        return Expression.parse(spec).evaluate(data_scope(data))
    if callable(spec):
        return spec(data)
    return spec


def _broadcast(values: Any, size: int) -> Any:
    if values is None:
        return None
    arr = np.asarray(values)
    if arr.ndim == 0 or (arr.ndim == 1 and arr.shape[0] == 1 and size > 1):
        return np.repeat(arr.reshape((1,)), size)
    return arr


def _input_for(cmp: Component, data: Any) -> MapperInput:
    main = cmp.main if cmp.main is not None else cmp.label
    size = data_length(data)
    return MapperInput(
        main=_broadcast(_eval_spec(main, data), size),
        group=_broadcast(_eval_spec(cmp.group, data), size),
        replicate=_broadcast(_eval_spec(cmp.replicate, data), size),
        scale=_broadcast(_eval_spec(cmp.weights, data), size),
    )


def input_eval(components: Iterable[Component], data: Any) -> Dict[str, MapperInput]:
    """Evaluate the inputs of each component against ``data``."""
    return {cmp.label: _input_for(cmp, data) for cmp in components}
