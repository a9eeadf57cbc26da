from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np
import pandas as pd

from .util import level_to_conf_int


def _quantile_name(q: float) -> str:
    return f"q{q:g}"


def summarize(
    values: Any,
    *,
    level: Optional[float] = None,
    conf_int: Optional[Tuple[float, float]] = None,
) -> pd.DataFrame:
    """Per-row posterior summary of a predictor matrix (rows = points, columns = states).

    Returns mean, sd, the lower/upper interval quantiles and the median.
    ``level`` gives a Normal-equivalent ±level sigma interval instead of
    explicit ``conf_int`` probabilities (default 95%).
    """
    if level is not None and conf_int is not None:
        raise ValueError("Provide only one of level= or conf_int=.")
    if conf_int is None:
        conf_int = (0.025, 0.975) if level is None else level_to_conf_int(float(level))
    qlo, qhi = (float(q) for q in conf_int)

    index = values.index if isinstance(values, pd.DataFrame) else None
    m = np.asarray(values, dtype=float)
    if m.ndim == 1:
        m = m[:, None]
    if m.ndim != 2 or m.shape[1] == 0:
        raise ValueError(f"values must be a (rows, states) matrix; got shape {m.shape}.")

    sd = np.std(m, axis=1, ddof=1) if m.shape[1] > 1 else np.zeros(m.shape[0])
    return pd.DataFrame(
        {
            "mean": np.mean(m, axis=1),
            "sd": sd,
            _quantile_name(qlo): np.quantile(m, qlo, axis=1),
            "median": np.quantile(m, 0.5, axis=1),
            _quantile_name(qhi): np.quantile(m, qhi, axis=1),
        },
        index=index,
    )
