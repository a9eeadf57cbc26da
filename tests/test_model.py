import numpy as np
import pandas as pd
import pytest

from latent_effects import (
    Component,
    ConfigurationError,
    GaussianPosterior,
    Likelihood,
    Model,
    SimplifiedMappers,
    evaluate_model,
)

DATA = {"x": np.array([1.0, 2.0, 3.0]), "site": np.array([1, 2, 2])}


def _components():
    return [
        Component.intercept("Intercept"),
        Component.fixed("beta", "x"),
        Component.iid("u", "site"),
        Component.offset("off", "x"),
    ]


def _state():
    return {"Intercept": [1.0], "beta": [0.5], "u": [0.1, -0.1], "Precision_for_u": [4.0]}


def test_formula_for_linear_likelihoods():
    model = Model.build(_components(), Likelihood(data=DATA))
    assert str(model.formula) == (
        'BRU_response ~ -1 + Intercept + beta + f(u, model="iid") + offset(off)'
    )


def test_formula_drops_offsets_for_nonlinear_likelihoods():
    model = Model.build(_components(), [Likelihood(data=DATA), Likelihood(data=DATA, linear=False)])
    assert str(model.formula) == 'BRU_response ~ -1 + beta + f(u, model="iid")'


def test_formula_uses_union_of_included_components():
    model = Model.build(
        _components(),
        [Likelihood(data=DATA, include=["u"]), Likelihood(data=DATA, include="beta")],
    )
    assert model.formula.terms == ("beta", 'f(u, model="iid")')
    assert model.included() == ("beta", "u")


def test_build_completes_iid_levels_from_data():
    model = Model.build(_components(), Likelihood(data=DATA))
    assert model.components["u"].mapper.n == 2


def test_build_without_data_for_data_dependent_component():
    with pytest.raises(ConfigurationError, match="needs data"):
        Model.build([Component.iid("u", "site")])


def test_inputs_and_simplified_per_likelihood():
    model = Model.build(
        _components(),
        [Likelihood(data=DATA), Likelihood(data=DATA, exclude=["u", "off"])],
    )
    inputs = model.evaluate_inputs()
    simplified = model.simplify(inputs)

    assert [list(inp) for inp in inputs] == [
        ["Intercept", "beta", "u", "off"],
        ["Intercept", "beta"],
    ]
    assert all(isinstance(s, SimplifiedMappers) for s in simplified)
    assert simplified[1].labels == ("Intercept", "beta")


def test_evaluate_model_returns_effects():
    model = Model.build(_components(), Likelihood(data=DATA))
    effects = evaluate_model(model, [_state()], data=DATA)

    assert len(effects) == 1
    eff = effects[0]
    assert list(eff) == ["Intercept", "beta", "u", "off"]
    assert np.allclose(eff["Intercept"], [1.0, 1.0, 1.0])
    assert np.allclose(eff["beta"], [0.5, 1.0, 1.5])
    assert np.allclose(eff["u"], [0.1, -0.1, -0.1])
    assert np.allclose(eff["off"], [1.0, 2.0, 3.0])


def test_evaluate_model_with_exclusion():
    model = Model.build(_components(), Likelihood(data=DATA))
    effects = model.evaluate([_state()], data=DATA, exclude=["u"])
    assert "u" not in effects[0]


def test_evaluate_model_predictor_uses_effects():
    model = Model.build(_components(), Likelihood(data=DATA))
    out = evaluate_model(model, [_state(), _state()], data=DATA, predictor="Intercept + beta + u + off")

    assert out.shape == (3, 2)
    assert np.allclose(out[:, 0], [2.6, 3.9, 5.4])
    assert np.allclose(out[:, 0], out[:, 1])


def test_evaluate_model_requires_states():
    model = Model.build(_components(), Likelihood(data=DATA))
    with pytest.raises(ConfigurationError, match="Not enough information"):
        evaluate_model(model, None, data=DATA)


def test_predict_summarizes_samples():
    model = Model.build(_components(), Likelihood(data=DATA))
    posterior = GaussianPosterior.from_blocks(
        mean={"Intercept": [1.0], "beta": [0.5], "u": [0.0, 0.0]},
        sd={"Intercept": [0.1], "beta": [0.05], "u": [0.2, 0.2]},
        hyperpar={"Precision_for_u": (4.0, 1.0)},
    )
    summary = model.predict(posterior, DATA, "Intercept + beta", n=200, seed=3)

    assert isinstance(summary, pd.DataFrame)
    assert list(summary.columns) == ["mean", "sd", "q0.025", "median", "q0.975"]
    assert np.allclose(summary["mean"], [1.5, 2.0, 2.5], atol=0.1)
    assert np.all(summary["q0.025"] <= summary["median"])
    assert np.all(summary["median"] <= summary["q0.975"])


def test_summary_lists_formula_and_components():
    model = Model.build(_components(), Likelihood(data=DATA))
    text = model.summary()

    assert "4 components, 1 likelihoods" in text
    assert "formula: BRU_response ~ -1 + Intercept" in text
    assert "u: main=site, model='iid', type='iid'" in text
