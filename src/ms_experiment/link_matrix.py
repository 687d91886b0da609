"""Two-column link matrices relating sample rows to collection elements.

A link matrix is an ``(n, 2)`` integer array with 1-based indices: column 0
holds the sample row, column 1 the element of the linked collection. Rows
may repeat either index (n:1, 1:n and n:m relationships); an empty matrix
means no relationship has been recorded.
"""
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .errors import MalformedLinkError, OutOfRangeLinkError


def empty_link_matrix() -> np.ndarray:
    """Return a link matrix with zero rows."""
    return np.zeros((0, 2), dtype=np.int64)


def validate_link(
    matrix: object,
    max_from: Optional[int] = None,
    max_to: Optional[int] = None,
) -> np.ndarray:
    """Check shape, content and bounds of a link matrix.

    Returns the matrix as an ``int64`` array. Raises ``MalformedLinkError``
    for anything that is not a two-column integer matrix and
    ``OutOfRangeLinkError`` when an index is < 1 or exceeds ``max_from``
    (sample rows) / ``max_to`` (collection elements).
    """
    arr = matrix.to_numpy() if hasattr(matrix, "to_numpy") else np.asarray(matrix)
    if arr.ndim != 2 or arr.dtype == object or not np.issubdtype(arr.dtype, np.number):
        raise MalformedLinkError("'link' needs to be an integer matrix with 2 columns.")
    if arr.shape[1] != 2:
        raise MalformedLinkError(f"'link' is expected to have 2 columns, got {arr.shape[1]}.")
    if arr.shape[0] == 0:
        return empty_link_matrix()
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.isfinite(arr)) or not np.all(np.equal(np.mod(arr, 1), 0)):
            raise MalformedLinkError("'link' needs to be an integer matrix; found non-integer values.")
    out = arr.astype(np.int64)

    if np.any(out < 1):
        raise OutOfRangeLinkError("Indices in 'link' should not be smaller than 1.")
    if max_from is not None and np.any(out[:, 0] > int(max_from)):
        raise OutOfRangeLinkError(
            f"Sample indices in the first column of 'link' need to be <= {int(max_from)}."
        )
    if max_to is not None and np.any(out[:, 1] > int(max_to)):
        raise OutOfRangeLinkError(
            f"Element indices in the second column of 'link' need to be <= {int(max_to)}."
        )
    return out


def link_from_indices(sample_index: Sequence[int], with_index: Sequence[int]) -> np.ndarray:
    """Column-bind sample and element indices into a (not yet validated) link matrix."""
    from_idx = np.asarray(sample_index).ravel()
    to_idx = np.asarray(with_index).ravel()
    if from_idx.shape[0] != to_idx.shape[0]:
        raise MalformedLinkError(
            f"'sample_index' and 'with_index' need to have the same length "
            f"({from_idx.shape[0]} != {to_idx.shape[0]})."
        )
    if from_idx.shape[0] == 0:
        return empty_link_matrix()
    return np.column_stack([from_idx, to_idx])


def _key_codes(from_keys: Sequence[object], to_keys: Sequence[object]):
    # Factorize both sides on a shared vocabulary; missing values get code -1.
    left = pd.Series(list(from_keys), dtype=object)
    right = pd.Series(list(to_keys), dtype=object)
    codes, _ = pd.factorize(pd.concat([left, right], ignore_index=True), use_na_sentinel=True)
    return codes[: len(left)], codes[len(left):]


def build_link_matrix(
    from_keys: Optional[Sequence[object]] = None,
    to_keys: Optional[Sequence[object]] = None,
) -> np.ndarray:
    """Link every ``from_keys[i]`` to every ``to_keys[j]`` with an equal value.

    This is an inner join over all matching pairs (ties give the cross
    product), ordered by ``i`` then ``j``. Missing values never match.
    """
    if from_keys is None or to_keys is None:
        return empty_link_matrix()
    from_keys = _as_key_list(from_keys)
    to_keys = _as_key_list(to_keys)
    if not from_keys or not to_keys:
        return empty_link_matrix()

    from_codes, to_codes = _key_codes(from_keys, to_keys)
    by_code: dict[int, list[int]] = {}
    for j, code in enumerate(to_codes):
        if code >= 0:
            by_code.setdefault(int(code), []).append(j + 1)

    rows: list[tuple[int, int]] = []
    for i, code in enumerate(from_codes):
        for j in by_code.get(int(code), ()):
            rows.append((i + 1, j))
    if not rows:
        return empty_link_matrix()
    return np.asarray(rows, dtype=np.int64)


def _as_key_list(keys: object) -> list:
    if isinstance(keys, (str, bytes)):
        return [keys]
    if hasattr(keys, "tolist"):
        out = keys.tolist()
        return out if isinstance(out, list) else [out]
    return list(keys)
