from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError

Labels = Union[str, Iterable[str]]


def _as_labels(labels: Optional[Labels]) -> Optional[Tuple[str, ...]]:
    if labels is None:
        return None
    if isinstance(labels, str):
        return (labels,)
    return tuple(labels)


def resolve_inclusion(
    labels: Sequence[str],
    include: Optional[Labels] = None,
    exclude: Optional[Labels] = None,
) -> Tuple[str, ...]:
    """Return the labels selected by include/exclude filters.

    ``include=None`` selects every label and ``exclude=None`` removes none.
    Exclusion is applied after inclusion, so a label named in both is dropped.
    The result keeps the order of ``labels``.
    """
    labels = tuple(labels)
    inc = _as_labels(include)
    exc = _as_labels(exclude)

    known = set(labels)
    for what, given in (("include", inc), ("exclude", exc)):
        if given is None:
            continue
        unknown = [lab for lab in given if lab not in known]
        if unknown:
            raise ConfigurationError(
                f"Unknown component label(s) in {what}: {unknown}. Available: {labels}"
            )

    selected = known if inc is None else set(inc)
    if exc is not None:
        selected = selected.difference(exc)
    return tuple(lab for lab in labels if lab in selected)
