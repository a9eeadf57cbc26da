import numpy as np
import pandas as pd
import pytest

from latent_effects import summarize


def test_summarize_rows():
    values = np.array([[1.0, 2.0, 3.0], [10.0, 10.0, 10.0]])
    out = summarize(values)

    assert list(out.columns) == ["mean", "sd", "q0.025", "median", "q0.975"]
    assert np.allclose(out["mean"], [2.0, 10.0])
    assert np.allclose(out["sd"], [1.0, 0.0])
    assert np.allclose(out["median"], [2.0, 10.0])


def test_summarize_keeps_row_labels():
    values = pd.DataFrame([[1.0, 3.0]], index=["obs1"])
    out = summarize(values, conf_int=(0.1, 0.9))

    assert list(out.index) == ["obs1"]
    assert "q0.1" in out.columns and "q0.9" in out.columns


def test_summarize_single_state_has_zero_sd():
    out = summarize(np.array([1.0, 2.0]))
    assert np.allclose(out["sd"], 0.0)


def test_summarize_level_and_conf_int_are_exclusive():
    with pytest.raises(ValueError):
        summarize(np.ones((2, 2)), level=1.0, conf_int=(0.1, 0.9))


def test_summarize_level():
    out = summarize(np.ones((1, 3)), level=1.0)
    assert "q0.158655" in out.columns
