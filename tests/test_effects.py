import numpy as np
import pytest

from latent_effects import (
    Component,
    ComponentList,
    SimplifiedMappers,
    UnsupportedModelWarning,
    evaluate_effect_multi,
    evaluate_effect_single,
    input_eval,
    linearize_mappers,
    simplify_mappers,
)
from latent_effects.mappers import FunctionMapper, TaylorMapper


def _components():
    return ComponentList(
        [
            Component.intercept("Intercept"),
            Component.fixed("beta", "x"),
            Component.offset("off", "w"),
        ]
    )


DATA = {"x": np.array([1.0, 2.0, 3.0]), "w": np.array([0.1, 0.2, 0.3])}


def test_simplified_mappers_follow_component_order():
    cmps = ComponentList(
        [
            Component.nonlinear("curve", lambda x, s: s[0] * np.asarray(x) ** 2, "x"),
            Component.fixed("beta", "x"),
        ]
    )
    inputs = input_eval(cmps, DATA)
    with pytest.warns(UnsupportedModelWarning, match="Non-linear mappers are experimental"):
        simple = simplify_mappers(cmps, inputs)

    assert isinstance(simple, SimplifiedMappers)
    assert simple.labels == ("curve", "beta")
    assert isinstance(simple["beta"], TaylorMapper)
    assert simple["curve"] is cmps["curve"].mapper


def test_linear_components_do_not_warn(recwarn):
    cmps = _components()
    simplify_mappers(cmps, input_eval(cmps, DATA))
    assert not [w for w in recwarn if issubclass(w.category, UnsupportedModelWarning)]


def test_evaluate_single_state():
    cmps = _components()
    inputs = input_eval(cmps, DATA)
    state = {"Intercept": [1.0], "beta": [2.0], "off": []}
    effects = evaluate_effect_single(simplify_mappers(cmps, inputs), inputs, state)

    assert list(effects) == ["Intercept", "beta", "off"]
    assert np.allclose(effects["Intercept"], [1.0, 1.0, 1.0])
    assert np.allclose(effects["beta"], [2.0, 4.0, 6.0])
    assert np.allclose(effects["off"], [0.1, 0.2, 0.3])
    assert all(v.ndim == 1 for v in effects.values())


def test_evaluate_single_is_deterministic():
    cmps = _components()
    inputs = input_eval(cmps, DATA)
    simple = simplify_mappers(cmps, inputs)
    state = {"Intercept": [0.3], "beta": [-1.7]}

    first = evaluate_effect_single(simple, inputs, state)
    second = evaluate_effect_single(simple, inputs, state)
    for label in first:
        assert np.array_equal(first[label], second[label])


def test_evaluate_single_mapper_variant():
    cmps = _components()
    inputs = input_eval(cmps, DATA)
    values = evaluate_effect_single(cmps["beta"].mapper, inputs["beta"], [0.5])
    assert np.allclose(values, [0.5, 1.0, 1.5])


def test_evaluate_multi_is_per_state():
    cmps = _components()
    inputs = input_eval(cmps, DATA)
    states = [{"Intercept": [0.0], "beta": [1.0]}, {"Intercept": [1.0], "beta": [0.0]}]
    effects = evaluate_effect_multi(cmps, inputs, states)

    assert len(effects) == 2
    assert np.allclose(effects[0]["beta"], [1.0, 2.0, 3.0])
    assert np.allclose(effects[1]["beta"], [0.0, 0.0, 0.0])
    assert np.allclose(effects[1]["Intercept"], [1.0, 1.0, 1.0])


def test_evaluate_rejects_unknown_variant():
    with pytest.raises(TypeError, match="expects a Mapper"):
        evaluate_effect_single({"beta": None}, {}, {})
    with pytest.raises(TypeError, match="expects a Mapper"):
        evaluate_effect_multi([1, 2], {}, [{}])


def test_linearize_around_reference_state():
    cmps = ComponentList(
        [Component.define("curve", "x", mapper=FunctionMapper(lambda x, s: np.exp(s[0] * np.asarray(x)), n=1))]
    )
    inputs = input_eval(cmps, DATA)
    with pytest.warns(UnsupportedModelWarning):
        lin = linearize_mappers(cmps, inputs, {"curve": [0.1]})

    values = lin["curve"].evaluate(None, [0.1])
    assert np.allclose(values, np.exp(0.1 * DATA["x"]))
