from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

import numpy as np

from .errors import ConfigurationError

State = Dict[str, np.ndarray]

SUMMARY_PROPERTIES = ("mode", "mean", "sd", "median")
_QUANTILE = re.compile(r"^(0(?:\.\d+)?|1(?:\.0*)?|\.\d+)quant$")


class PosteriorResult(Protocol):
    """Fitted result protocol: summary extraction and posterior sampling."""

    def extract_property(
        self, property: str, internal_hyperpar: bool = False
    ) -> Mapping[str, Any]: ...

    def posterior_sample(
        self, n: int, seed: int = 0, num_threads: Optional[str] = None, **kwargs: Any
    ) -> List[Mapping[str, Any]]: ...


def parse_property(property: str) -> Tuple[str, Optional[float]]:
    """Split a state property into (kind, quantile probability).

    Accepted: "mode", "mean", "sd", "median", "sample" and "<p>quant",
    e.g. "0.025quant".
    """
    if property in SUMMARY_PROPERTIES or property == "sample":
        return property, None
    if isinstance(property, str):
        m = _QUANTILE.match(property)
        if m:
            return "quantile", float(m.group(1))
    raise ConfigurationError(
        f"Unknown state property {property!r}. "
        f"Use one of {SUMMARY_PROPERTIES + ('sample',)} or '<p>quant', e.g. '0.025quant'."
    )


def _components(model: Any) -> Any:
    return getattr(model, "components", model)


def zero_state(model: Any) -> State:
    """All-zero latent state sized by each component's mapper."""
    out: State = {}
    for cmp in _components(model):
        if cmp.mapper is None:
            raise ConfigurationError(
                f"Component {cmp.label!r} has no mapper yet; build the model with data first."
            )
        out[cmp.label] = np.zeros((int(cmp.mapper.n),), dtype=float)
    return out


def _as_state(values: Mapping[str, Any]) -> State:
    return {k: np.asarray(v, dtype=float).reshape((-1,)) for k, v in values.items()}


def extract_states(
    model: Any,
    result: Optional[PosteriorResult],
    property: str = "mode",
    n: int = 1,
    seed: int = 0,
    num_threads: Optional[str] = None,
    internal_hyperpar: bool = False,
    **sample_kwargs: Any,
) -> List[State]:
    """Latent states from a fitted result: a summary property or posterior samples.

    - ``property="sample"`` draws ``n`` samples. A nonzero ``seed`` forces
      single threaded sampling (``num_threads="1:1"``) so draws are reproducible.
    - Other properties return a single state; ``internal_hyperpar`` selects the
      internal scale for hyperparameters.
    - ``result=None`` returns a single all-zero state.
    """
    kind, _ = parse_property(property)
    if int(n) < 1:
        raise ConfigurationError(f"n must be >= 1; got {n!r}.")

    if result is None:
        return [zero_state(model)]

    if kind == "sample":
        if seed != 0:
            num_threads = "1:1"
        samples = result.posterior_sample(
            n=int(n), seed=int(seed), num_threads=num_threads, **sample_kwargs
        )
        return [_as_state(s) for s in samples]

    return [
        _as_state(result.extract_property(property, internal_hyperpar=internal_hyperpar))
    ]


evaluate_state = extract_states
