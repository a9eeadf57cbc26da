import pytest

from latent_effects import ConfigurationError, resolve_inclusion


LABELS = ("Intercept", "x", "field", "u")


def test_no_filters_is_identity():
    assert resolve_inclusion(LABELS) == LABELS


def test_exclude_keeps_original_order():
    assert resolve_inclusion(LABELS, exclude=["u", "Intercept"]) == ("x", "field")


def test_include_order_is_not_used():
    assert resolve_inclusion(LABELS, include=["u", "x"]) == ("x", "u")


def test_exclude_wins_over_include():
    assert resolve_inclusion(["a", "b"], include=["a"], exclude=["a"]) == ()
    assert resolve_inclusion(LABELS, include=["x", "u"], exclude="u") == ("x",)


def test_single_label_string():
    assert resolve_inclusion(LABELS, include="field") == ("field",)


@pytest.mark.parametrize("kwargs", [{"include": ["nope"]}, {"exclude": ["x", "nope"]}])
def test_unknown_labels_raise(kwargs):
    with pytest.raises(ConfigurationError, match="Unknown component label"):
        resolve_inclusion(LABELS, **kwargs)
