"""latent_effects public API."""
from .components import Component, ComponentList, input_eval
from .effects import evaluate_effect_multi, evaluate_effect_single
from .errors import ConfigurationError, EvaluationError, UnsupportedModelWarning
from .expression import Expression
from .inclusion import resolve_inclusion
from .model import JointFormula, Likelihood, Model, evaluate_model
from .posterior import GaussianPosterior
from .predictor import evaluate_predictor
from .simplify import SimplifiedMappers, linearize_mappers, simplify_mappers
from .state import evaluate_state, extract_states
from .summary import summarize
from . import mappers

__all__ = [
    "Component",
    "ComponentList",
    "ConfigurationError",
    "EvaluationError",
    "Expression",
    "GaussianPosterior",
    "JointFormula",
    "Likelihood",
    "Model",
    "SimplifiedMappers",
    "UnsupportedModelWarning",
    "evaluate_effect_multi",
    "evaluate_effect_single",
    "evaluate_model",
    "evaluate_predictor",
    "evaluate_state",
    "extract_states",
    "input_eval",
    "linearize_mappers",
    "mappers",
    "resolve_inclusion",
    "simplify_mappers",
    "summarize",
]
