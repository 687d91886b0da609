"""Length and positional selection for anything that can be linked to samples.

``subset_by`` (1 or 2) names the axis: 1 selects rows/elements, 2 selects
columns of matrix-like values; one-dimensional values have a single axis
and ignore it. Selection indices here are 0-based and may repeat; repeats
duplicate elements.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
import pandas as pd


@runtime_checkable
class NamedCollection(Protocol):
    """Capability implemented by collections stored in experiment slots."""

    default_subset_by: int

    def __len__(self) -> int: ...

    def n_elements(self, subset_by: int = 1) -> int: ...

    def get_field(self, name: str) -> Optional[Any]: ...

    def set_field(self, name: str, value: Any) -> "NamedCollection": ...

    def select(self, indices: Sequence[int], subset_by: int = 1) -> "NamedCollection": ...


def _check_axis(subset_by: int) -> int:
    subset_by = int(subset_by)
    if subset_by not in (1, 2):
        raise ValueError(f"subset_by must be 1 or 2, got {subset_by}.")
    return subset_by


def _is_scalar(x: object) -> bool:
    return isinstance(x, (str, bytes)) or not hasattr(x, "__len__")


def n_elements(x: object, subset_by: int = 1) -> int:
    """Number of elements of ``x`` along ``subset_by`` (0 for ``None``)."""
    subset_by = _check_axis(subset_by)
    if x is None:
        return 0
    if isinstance(x, NamedCollection):
        return int(x.n_elements(subset_by))
    if isinstance(x, pd.DataFrame):
        return int(x.shape[subset_by - 1])
    if isinstance(x, np.ndarray) and x.ndim >= 2:
        return int(x.shape[subset_by - 1])
    if _is_scalar(x):
        return 1
    return len(x)  # type: ignore[arg-type]


def subset_dim(x: object, indices: Sequence[int], subset_by: int = 1) -> Any:
    """Select positions ``indices`` of ``x`` along ``subset_by``.

    Scalars behave like length-1 vectors and come back as lists. The
    container type of ``x`` is kept otherwise.
    """
    subset_by = _check_axis(subset_by)
    idx = np.asarray(indices, dtype=np.int64).ravel()
    if x is None:
        return None
    if isinstance(x, NamedCollection):
        return x.select(idx, subset_by=subset_by)
    if isinstance(x, pd.DataFrame):
        return x.iloc[idx, :] if subset_by == 1 else x.iloc[:, idx]
    if isinstance(x, np.ndarray) and x.ndim >= 2:
        return np.take(x, idx, axis=subset_by - 1)
    if isinstance(x, pd.Series):
        return x.iloc[idx]
    if isinstance(x, np.ndarray):
        return x[idx]
    if _is_scalar(x):
        if np.any(idx != 0):
            raise IndexError(f"Index out of bounds for a single value: {idx.tolist()}")
        return [x] * int(idx.shape[0])
    if isinstance(x, Mapping):
        raise TypeError("Mappings cannot be subset by position; link one of their entries instead.")
    if isinstance(x, tuple):
        return tuple(x[int(i)] for i in idx)
    return [x[int(i)] for i in idx]  # type: ignore[index]
