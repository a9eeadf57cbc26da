from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .components import Component, ComponentList, input_eval
from .effects import evaluate_effect_multi
from .errors import ConfigurationError
from .inclusion import Labels, resolve_inclusion
from .mappers import MapperInput
from .predictor import Format, evaluate_predictor
from .simplify import SimplifiedMappers, linearize_mappers, simplify_mappers
from .state import PosteriorResult, extract_states
from .summary import summarize


@dataclass(frozen=True)
class Likelihood:
    """Observation model metadata needed to assemble the joint model."""

    data: Any = None
    family: str = "gaussian"
    linear: bool = True
    include: Optional[Labels] = None
    exclude: Optional[Labels] = None


@dataclass(frozen=True)
class JointFormula:
    """Joint formula handed to the solver: intercept-free base plus component terms."""

    response: str = "BRU_response"
    terms: Tuple[str, ...] = ()

    def update(self, term: str) -> "JointFormula":
        return replace(self, terms=self.terms + (term,))

    def __str__(self) -> str:
        return " + ".join([f"{self.response} ~ -1", *self.terms])


@dataclass(frozen=True)
class Model:
    """Component list plus the joint formula used by the solver."""

    components: ComponentList
    formula: JointFormula
    likelihoods: Tuple[Likelihood, ...] = ()

    # ---- constructor ----
    @staticmethod
    def build(
        components: Union[ComponentList, Iterable[Component]],
        likelihoods: Union[Likelihood, Sequence[Likelihood]] = (),
    ) -> "Model":
        """Complete the components from the likelihood data and build the joint formula.

        Terms are added in component order for the union of the components
        included by every likelihood. Offset/const components are part of the
        formula only when every likelihood is linear; otherwise their
        contribution is carried by the linearization offset.
        """
        if isinstance(likelihoods, Likelihood):
            likelihoods = (likelihoods,)
        likelihoods = tuple(likelihoods)
        if not isinstance(components, ComponentList):
            components = ComponentList(components)

        data = [lh.data for lh in likelihoods if lh.data is not None]
        components = components.complete(data)

        linear = all(lh.linear for lh in likelihoods)
        included = set()
        for lh in likelihoods or (Likelihood(),):
            included.update(resolve_inclusion(components.labels, lh.include, lh.exclude))

        formula = JointFormula()
        for cmp in components:
            if cmp.label not in included:
                continue
            if linear or cmp.type not in ("offset", "const"):
                formula = formula.update(cmp.term)

        return Model(components=components, formula=formula, likelihoods=likelihoods)

    # ---- inclusion / inputs ----
    @property
    def labels(self) -> Tuple[str, ...]:
        return self.components.labels

    def included(self, likelihood: Optional[Likelihood] = None) -> Tuple[str, ...]:
        """Labels included by one likelihood, or by any likelihood when None."""
        if likelihood is not None:
            return resolve_inclusion(self.labels, likelihood.include, likelihood.exclude)
        selected = set()
        for lh in self.likelihoods or (Likelihood(),):
            selected.update(resolve_inclusion(self.labels, lh.include, lh.exclude))
        return tuple(lab for lab in self.labels if lab in selected)

    def evaluate_inputs(self) -> List[Dict[str, MapperInput]]:
        """Component inputs for the included components of each likelihood."""
        return [
            input_eval(self.components.subset(self.included(lh)), lh.data)
            for lh in self.likelihoods
        ]

    def simplify(self, inputs: Sequence[Mapping[str, MapperInput]]) -> List[SimplifiedMappers]:
        """Simplified mappers per likelihood, for the components present in each input."""
        return [simplify_mappers(self.components.subset(inp.keys()), inp) for inp in inputs]

    def linearize(
        self, inputs: Sequence[Mapping[str, MapperInput]], state: Mapping[str, Any]
    ) -> List[SimplifiedMappers]:
        """Taylor linearizations per likelihood around ``state``."""
        return [
            linearize_mappers(self.components.subset(inp.keys()), inp, state) for inp in inputs
        ]

    # ---- evaluation ----
    def state(
        self,
        result: Optional[PosteriorResult],
        property: str = "mode",
        n: int = 1,
        seed: int = 0,
        **kwargs: Any,
    ) -> List[Dict[str, np.ndarray]]:
        """Latent states from ``result``; see :func:`extract_states`."""
        return extract_states(self, result, property=property, n=n, seed=seed, **kwargs)

    def evaluate(self, states: Sequence[Any], data: Any = None, **kwargs: Any) -> Any:
        """Effects or predictor values; see :func:`evaluate_model`."""
        return evaluate_model(self, states, data=data, **kwargs)

    def predict(
        self,
        result: Optional[PosteriorResult],
        data: Any,
        predictor: Any,
        *,
        n: int = 100,
        seed: int = 0,
        conf_int: Tuple[float, float] = (0.025, 0.975),
        include: Optional[Labels] = None,
        exclude: Optional[Labels] = None,
    ):
        """Sample ``n`` states, evaluate ``predictor`` and summarize per row."""
        states = self.state(result, property="sample", n=n, seed=seed)
        values = evaluate_model(
            self,
            states,
            data=data,
            predictor=predictor,
            format="matrix",
            include=include,
            exclude=exclude,
            seed=seed,
        )
        return summarize(values, conf_int=conf_int)

    def summary(self) -> str:
        """Return a human-readable summary of the model."""
        lines = [f"Model({len(self.components)} components, {len(self.likelihoods)} likelihoods)"]
        lines.append(f"  formula: {self.formula}")
        for cmp in self.components:
            lines.append("  " + cmp.summary())
        return "\n".join(lines)


def evaluate_model(
    model: Model,
    states: Optional[Sequence[Any]],
    data: Any = None,
    inputs: Optional[Mapping[str, MapperInput]] = None,
    simplified: Optional[SimplifiedMappers] = None,
    predictor: Any = None,
    format: Optional[Format] = None,
    include: Optional[Labels] = None,
    exclude: Optional[Labels] = None,
    **kwargs: Any,
) -> Any:
    """Evaluate states, effects and (optionally) a predictor in one call.

    Inputs and simplified mappers are built from ``data`` for the included
    components unless given. Returns the per-state effects when
    ``predictor`` is None, else the predictor values (extra keyword
    arguments go to :func:`evaluate_predictor`).
    """
    included = resolve_inclusion(model.labels, include, exclude)

    if states is None:
        raise ConfigurationError("Not enough information to evaluate model states.")

    components = model.components.subset(included)
    if inputs is None and data is not None:
        inputs = input_eval(components, data)
    if simplified is None and inputs is not None:
        simplified = simplify_mappers(components, inputs)

    effects = None
    if simplified is not None:
        effects = evaluate_effect_multi(simplified, inputs, states)

    if predictor is None:
        return effects

    return evaluate_predictor(
        model,
        states=states,
        data=data,
        effects=effects,
        predictor=predictor,
        format=format or "auto",
        **kwargs,
    )
