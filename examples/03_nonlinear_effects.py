import warnings

import numpy as np
from latent_effects import Component, ComponentList, evaluate_effect_multi, input_eval, simplify_mappers


def saturating(x, state):
    return state[0] * x / (state[1] + x)


x = np.linspace(0.0, 5.0, 6)
components = ComponentList(
    [
        Component.fixed("slope", "x"),
        Component.nonlinear("sat", saturating, "x", n=2),
    ]
)
inputs = input_eval(components, {"x": x})

with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter("always")
    simplified = simplify_mappers(components, inputs)
print(simplified)
print([str(w.message) for w in caught])

states = [
    {"slope": [0.2], "sat": [1.0, 1.0]},
    {"slope": [0.1], "sat": [2.0, 0.5]},
]
for effects in evaluate_effect_multi(simplified, inputs, states):
    print({label: np.round(v, 3) for label, v in effects.items()})
