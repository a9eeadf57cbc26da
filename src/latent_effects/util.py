from __future__ import annotations

import math
from typing import Any, Callable, Tuple

import numpy as np


def normal_cdf(z: float) -> float:
    """Standard Normal CDF Φ(z)."""
    return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))


def level_to_conf_int(level: float) -> Tuple[float, float]:
    """Central interval for a Normal-equivalent ±level sigma."""
    lo = normal_cdf(-float(level))
    hi = normal_cdf(+float(level))
    return (lo, hi)


def nrow(x: Any) -> int:
    """Number of rows of x, treating scalars as one row and 1-D arrays as columns."""
    if hasattr(x, "shape") and len(getattr(x, "shape")) > 0:
        return int(x.shape[0])
    if isinstance(x, (list, tuple)):
        return len(x)
    return 1


def as_vector(x: Any) -> np.ndarray:
    """Flatten any array-like (including sparse/pandas objects) to a 1-D float array."""
    if hasattr(x, "toarray"):
        x = x.toarray()
    elif hasattr(x, "to_numpy"):
        x = x.to_numpy()
    return np.asarray(x, dtype=float).reshape((-1,))


def as_column(x: Any) -> np.ndarray:
    """Return x as a float array of shape (N, 1)."""
    return as_vector(x).reshape((-1, 1))


def numdiff_jacobian(
    func: Callable[[np.ndarray], np.ndarray], x0: np.ndarray, step: float = 1e-6
) -> np.ndarray:
    """Forward-difference jacobian of a vector function, shape (M, P)."""
    x0 = np.asarray(x0, dtype=float).reshape((-1,))
    f0 = as_vector(func(x0))
    npar = int(x0.shape[0])
    jac = np.zeros((f0.shape[0], npar), dtype=float)
    eps = step * (np.abs(x0) + 1.0)
    for i in range(npar):
        xi = x0.copy()
        xi[i] += eps[i]
        jac[:, i] = (as_vector(func(xi)) - f0) / eps[i]
    return jac


def _jittered_cholesky(cov: np.ndarray, max_tries: int = 6) -> np.ndarray:
    cov = np.asarray(cov, dtype=float)
    cov = 0.5 * (cov + cov.T)
    diag = np.diag(cov)
    scale = float(np.max(diag)) if diag.size else 1.0
    scale = 1.0 if not np.isfinite(scale) or scale <= 0 else scale

    jitter = 0.0
    for i in range(max_tries):
        try:
            return np.linalg.cholesky(cov + jitter * np.eye(cov.shape[0]))
        except np.linalg.LinAlgError:
            jitter = (10.0 ** (-(max_tries - i))) * 1e-6 * scale + (
                jitter * 10.0 if jitter else 0.0
            )

    w, v = np.linalg.eigh(cov)
    w = np.clip(w, 0.0, None)
    return v @ np.diag(np.sqrt(w))


def sample_mvn(
    mean: np.ndarray, cov: np.ndarray, nsamples: int, rng: np.random.Generator
) -> np.ndarray:
    """Sample from MVN(mean, cov) robustly. Returns shape (nsamples, P)."""
    mean = np.asarray(mean, dtype=float)
    cov = np.asarray(cov, dtype=float)
    if mean.shape[0] == 0:
        return np.zeros((int(nsamples), 0))
    L = _jittered_cholesky(cov)
    z = rng.normal(size=(nsamples, mean.shape[0]))
    return mean[None, :] + z @ L.T
