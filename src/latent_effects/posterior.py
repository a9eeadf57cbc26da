from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import scipy.linalg
import scipy.stats

from .state import parse_property
from .util import sample_mvn

_GLOBAL_RNG = np.random.default_rng()


def _normal_quantile(p: float, loc: Any, scale: Any) -> np.ndarray:
    """Normal quantile; a zero scale gives the point mass at ``loc``."""
    loc = np.asarray(loc, dtype=float)
    scale = np.asarray(scale, dtype=float)
    positive = scale > 0
    q = scipy.stats.norm.ppf(p, loc=loc, scale=np.where(positive, scale, 1.0))
    return np.where(positive, q, loc)


@dataclass
class GaussianPosterior:
    """Gaussian approximation of a fitted model posterior.

    Latent blocks are jointly Gaussian (``mean`` per component, ``cov`` over
    the concatenation in ``mean`` order). Hyperparameters are positive and
    given as (value, sd) on the model scale; their internal scale is the log,
    with sd propagated to first order.
    """

    mean: Dict[str, np.ndarray]
    cov: np.ndarray
    hyperpar: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.mean = {k: np.asarray(v, dtype=float).reshape((-1,)) for k, v in self.mean.items()}
        self.cov = np.asarray(self.cov, dtype=float)
        size = sum(v.shape[0] for v in self.mean.values())
        if self.cov.shape != (size, size):
            raise ValueError(
                f"cov must have shape ({size}, {size}) for the given mean blocks; got {self.cov.shape}."
            )
        for name, (value, sd) in self.hyperpar.items():
            if value <= 0 or sd < 0:
                raise ValueError(f"Hyperparameter {name!r} needs value > 0 and sd >= 0.")

    @staticmethod
    def from_blocks(
        mean: Mapping[str, Any],
        sd: Mapping[str, Any],
        hyperpar: Optional[Mapping[str, Tuple[float, float]]] = None,
    ) -> "GaussianPosterior":
        """Independent blocks with marginal standard deviations."""
        blocks = [np.diag(np.asarray(sd[k], dtype=float).reshape((-1,)) ** 2) for k in mean]
        cov = scipy.linalg.block_diag(*blocks) if blocks else np.zeros((0, 0))
        return GaussianPosterior(mean=dict(mean), cov=cov, hyperpar=dict(hyperpar or {}))

    def _slices(self) -> Dict[str, slice]:
        out: Dict[str, slice] = {}
        start = 0
        for k, v in self.mean.items():
            out[k] = slice(start, start + v.shape[0])
            start += v.shape[0]
        return out

    def _latent_sd(self) -> np.ndarray:
        return np.sqrt(np.clip(np.diag(self.cov), 0.0, None))

    def extract_property(self, property: str, internal_hyperpar: bool = False) -> Dict[str, np.ndarray]:
        """Posterior summary (mode/mean/sd/median/<p>quant) for latents and hyperparameters."""
        kind, p = parse_property(property)
        if kind == "sample":
            raise ValueError("Use posterior_sample() to draw samples.")

        sd_all = self._latent_sd()
        out: Dict[str, np.ndarray] = {}
        for k, sl in self._slices().items():
            mu = self.mean[k]
            sd = sd_all[sl]
            if kind == "sd":
                out[k] = sd
            elif kind == "quantile":
                out[k] = _normal_quantile(p, mu, sd)
            else:
                out[k] = mu.copy()

        for name, (value, sd) in self.hyperpar.items():
            log_value = np.log(value)
            log_sd = sd / value
            if kind == "sd":
                v = log_sd if internal_hyperpar else sd
            elif kind == "quantile":
                q = _normal_quantile(p, log_value, log_sd)
                v = q if internal_hyperpar else np.exp(q)
            else:
                v = log_value if internal_hyperpar else value
            out[name] = np.array([float(v)])
        return out

    def posterior_sample(
        self,
        n: int,
        seed: int = 0,
        num_threads: Optional[str] = None,
        rng: Optional[np.random.Generator] = None,
        **kwargs: Any,
    ) -> List[Dict[str, np.ndarray]]:
        """Draw ``n`` joint samples; a nonzero seed makes the draws reproducible.

        Other solver sampling options are accepted and ignored.
        """
        if rng is None:
            rng = np.random.default_rng(seed) if seed != 0 else _GLOBAL_RNG
        self.stats["num_threads"] = num_threads

        flat_mean = (
            np.concatenate(list(self.mean.values())) if self.mean else np.zeros((0,))
        )
        latent = sample_mvn(flat_mean, self.cov, int(n), rng)
        hyper = {
            name: np.exp(rng.normal(np.log(value), sd / value, size=int(n)))
            for name, (value, sd) in self.hyperpar.items()
        }

        slices = self._slices()
        samples: List[Dict[str, np.ndarray]] = []
        for i in range(int(n)):
            s = {k: latent[i, sl].copy() for k, sl in slices.items()}
            for name, values in hyper.items():
                s[name] = np.array([values[i]])
            samples.append(s)
        return samples
