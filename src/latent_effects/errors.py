"""Exception and warning types raised by latent_effects."""

from __future__ import annotations

__all__ = ["ConfigurationError", "EvaluationError", "UnsupportedModelWarning"]


class ConfigurationError(ValueError):
    """Invalid call configuration (labels, states, property or format)."""


class EvaluationError(RuntimeError):
    """A predictor or input expression could not be evaluated."""


class UnsupportedModelWarning(UserWarning):
    """An experimental model path (e.g. non-linear mappers) was taken."""
