"""Predictor evaluation: run a user expression once per latent state.

For every component ``label`` with an entry in the first state, the
evaluation scope binds

- ``label_latent``: the current state's latent vector,
- ``label_eval(main, group, replicate, weights, state)``: evaluates the
  component mapper at arbitrary inputs,
- ``label``: the precomputed effect vector, when effects are supplied.

State entries that are not component labels (hyperparameters such as
``Precision_for_label``) are bound under their own name, and every data
field is bound by name next to the raw data object (``_data_``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Sequence

import numpy as np
import pandas as pd

from .components import Component
from .errors import ConfigurationError, EvaluationError
from .expression import Expression, Scope, data_scope
from .mappers import MapperInput, first_stage
from .util import as_column, as_vector, nrow

Format = Literal["auto", "matrix", "list"]
FORMATS = ("auto", "matrix", "list")

_GLOBAL_RNG = np.random.default_rng()


@dataclass
class IIDCache:
    """Deviates drawn for out-of-index iid keys, per component label.

    Owned by one :class:`EvaluationContext` and reset whenever the active
    state changes, so a deviate is never shared between two states.
    """

    values: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def lookup(self, label: str, key: str) -> Optional[float]:
        return self.values.get(label, {}).get(key)

    def store(self, label: str, key: str, value: float) -> None:
        self.values.setdefault(label, {})[key] = float(value)

    def reset(self) -> None:
        self.values.clear()


@dataclass
class EvaluationContext:
    """Per-call evaluation state: scope, random source, iid cache and state index."""

    scope: Scope
    rng: Any
    cache: IIDCache = field(default_factory=IIDCache)
    state_index: Optional[int] = None

    def advance(self, k: int) -> None:
        """Make state ``k`` active, clearing the iid cache if the index changed."""
        if k != self.state_index:
            self.state_index = k
            self.cache.reset()


def latent_name(name: str, labels: Sequence[str]) -> str:
    return f"{name}_latent" if name in labels else name


@dataclass(frozen=True)
class ComponentEvaluator:
    """Callable bound in predictor scopes as ``<label>_eval``."""

    component: Component
    context: EvaluationContext

    @property
    def label(self) -> str:
        return self.component.label

    def _resolve_state(self, state: Any) -> Any:
        if state is not None:
            return state
        name = f"{self.label}_latent"
        if self.component.type in ("offset", "const"):
            return self.context.scope.get(name)
        return self.context.scope.lookup(name)

    def _precision(self) -> float:
        value = self.context.scope.lookup(f"Precision_for_{self.label}")
        return float(as_vector(value)[0])

    def __call__(
        self,
        main: Any = None,
        group: Any = None,
        replicate: Any = None,
        weights: Any = None,
        state: Any = None,
    ) -> np.ndarray:
        main = np.ones((1,)) if main is None else np.asarray(main)
        if main.ndim == 0:
            main = main.reshape((1,))
        size = nrow(main)
        if group is None:
            group = np.ones((size,))
        if replicate is None:
            replicate = np.ones((size,))
        state = self._resolve_state(state)

        mapper = self.component.mapper
        input = MapperInput(main=main, group=group, replicate=replicate, scale=weights)
        values = as_vector(mapper.evaluate(input, state))

        if self.component.type == "iid":
            # Validity is decided by the first mapper stage; later stages keep
            # the same length and validity.
            not_ok = np.asarray(
                first_stage(mapper).invalid_output(MapperInput(main=main), state), dtype=bool
            )
            if np.any(not_ok):
                values = self._substitute(values, main, not_ok)

        return values.reshape((-1, 1))

    def _substitute(self, values: np.ndarray, main: np.ndarray, not_ok: np.ndarray) -> np.ndarray:
        cache = self.context.cache
        keys = [str(k) for k in np.asarray(main, dtype=object).reshape((-1,))[not_ok]]
        missing = [k for k in dict.fromkeys(keys) if cache.lookup(self.label, k) is None]
        if missing:
            sd = self._precision() ** -0.5
            for k in missing:
                cache.store(self.label, k, self.context.rng.normal(0.0, sd))
        values = values.copy()
        values[not_ok] = [cache.lookup(self.label, k) for k in keys]
        return values

    def __repr__(self) -> str:
        return f"ComponentEvaluator({self.label!r})"


def component_eval(*args: Any, **kwargs: Any) -> Any:
    """Placeholder for the generic name; predictors must call ``<label>_eval``."""
    raise EvaluationError(
        "In your predictor expression, use 'mylabel_eval(...)' instead of "
        "'component_eval(...)'."
    )


def _is_column_like(value: Any) -> bool:
    if isinstance(value, (pd.Series, np.number, np.bool_, int, float)):
        return True
    if isinstance(value, pd.DataFrame):
        return value.shape[1] == 1
    if isinstance(value, np.ndarray):
        return value.dtype != object and (value.ndim <= 1 or (value.ndim == 2 and value.shape[1] == 1))
    return False


def _row_index(value: Any) -> Optional[pd.Index]:
    if isinstance(value, (pd.Series, pd.DataFrame)):
        return value.index
    return None


def evaluate_predictor(
    model: Any,
    states: Sequence[Any],
    data: Any,
    effects: Optional[Sequence[Any]],
    predictor: Any,
    format: Format = "auto",
    *,
    rng: Optional[Any] = None,
    seed: int = 0,
) -> Any:
    """Evaluate ``predictor`` once per state.

    Returns a matrix with one column per state (``format="matrix"``) or a list
    with one element per state (``format="list"``). With ``format="auto"``
    the result for the first state decides: a vector or single column gives
    a matrix, anything else a list. Later states are not re-checked.

    IID deviates come from ``rng`` if given, else from a generator seeded
    with ``[seed, 1]`` when ``seed`` is nonzero (a stream separate from the
    posterior sampler seeded with ``seed``), else from a process-wide
    generator.
    """
    if format is None:
        format = "auto"
    if format not in FORMATS:
        raise ConfigurationError(f"Unknown format {format!r}. Available: {FORMATS}")
    if states is None or len(states) == 0:
        raise ConfigurationError("Not enough information to evaluate model states.")

    expr = Expression.parse(predictor)
    if rng is None:
        rng = np.random.default_rng([seed, 1]) if seed != 0 else _GLOBAL_RNG

    components = getattr(model, "components", model)
    labels = components.labels

    scope = data_scope(data)
    context = EvaluationContext(scope=scope, rng=rng)

    for label in states[0]:
        if label in labels:
            scope.bind(f"{label}_eval", ComponentEvaluator(components[label], context))
    scope.bind("component_eval", component_eval)

    n = len(states)
    fmt = format
    result: Any = None
    index: Optional[pd.Index] = None
    for k, state in enumerate(states):
        context.advance(k)
        for name, value in state.items():
            scope.bind(latent_name(name, labels), np.asarray(value))
        if effects is not None:
            for name, value in effects[k].items():
                scope.bind(name, value)

        value = expr.evaluate(scope)
        if k == 0:
            if fmt == "auto":
                fmt = "matrix" if _is_column_like(value) else "list"
            if fmt == "matrix":
                result = np.zeros((nrow(value), n), dtype=float)
                index = _row_index(value)
            else:
                result = [None] * n

        if fmt == "list":
            result[k] = value
        else:
            try:
                result[:, k] = as_column(value)[:, 0]
            except (TypeError, ValueError) as e:
                raise EvaluationError(
                    f"Predictor value for state {k} does not fit a column of {result.shape[0]} rows: {e}"
                ) from e

    if fmt == "matrix" and index is not None:
        return pd.DataFrame(result, index=index)
    return result
