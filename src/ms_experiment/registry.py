"""Registry of sample-data links kept by an experiment."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from .link_matrix import validate_link

SUBSET_BY_VALUES = (1, 2)


def check_subset_by(subset_by: object) -> int:
    try:
        value = int(subset_by)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"subset_by must be 1 or 2, got {subset_by!r}.") from exc
    if value not in SUBSET_BY_VALUES:
        raise ValueError(f"subset_by must be 1 or 2, got {subset_by!r}.")
    return value


class LinkRegistry(Mapping):
    """Immutable mapping ``address -> link matrix`` with a ``subset_by`` tag per link.

    ``subset_by`` is 1 when subsetting concatenates (and duplicates) the
    linked elements per sample and 2 when it selects columns of a
    column-aligned collection.
    """

    def __init__(
        self,
        links: Optional[Mapping[str, np.ndarray]] = None,
        subset_by: Optional[Mapping[str, int]] = None,
    ):
        links = dict(links or {})
        subset_by = dict(subset_by or {})
        self._links: Dict[str, np.ndarray] = {}
        self._subset_by: Dict[str, int] = {}
        for address, matrix in links.items():
            mat = validate_link(matrix)
            mat.setflags(write=False)
            self._links[str(address)] = mat
            self._subset_by[str(address)] = check_subset_by(subset_by.get(address, 1))

    def __getitem__(self, address: str) -> np.ndarray:
        return self._links[address]

    def __iter__(self) -> Iterator[str]:
        return iter(self._links)

    def __len__(self) -> int:
        return len(self._links)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LinkRegistry):
            return NotImplemented
        if list(self._links) != list(other._links) or self._subset_by != other._subset_by:
            return False
        return all(np.array_equal(m, other._links[a]) for a, m in self._links.items())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if not self._links:
            return "LinkRegistry(<no links>)"
        parts = ", ".join(
            f"{a}: {m.shape[0]} row(s), subset_by={self._subset_by[a]}" for a, m in self._links.items()
        )
        return f"LinkRegistry({parts})"

    def subset_by(self, address: str) -> int:
        return self._subset_by[address]

    def items_with_tag(self) -> Iterator[Tuple[str, np.ndarray, int]]:
        for address, matrix in self._links.items():
            yield address, matrix, self._subset_by[address]

    def with_link(self, address: str, matrix: np.ndarray, subset_by: int = 1) -> "LinkRegistry":
        """Return a registry with ``address`` set (replacing any previous entry)."""
        links = dict(self._links)
        tags = dict(self._subset_by)
        links[address] = matrix
        tags[address] = check_subset_by(subset_by)
        return LinkRegistry(links, tags)

    def without(self, address: str) -> "LinkRegistry":
        links = {a: m for a, m in self._links.items() if a != address}
        return LinkRegistry(links, self._subset_by)

    def select(self, addresses: Iterable[str]) -> "LinkRegistry":
        """Registry restricted to ``addresses``; unknown addresses are skipped."""
        keep = [a for a in addresses if a in self._links]
        return LinkRegistry({a: self._links[a] for a in keep}, self._subset_by)

    def to_frame(self) -> pd.DataFrame:
        """One row per link: address, number of link rows and subset_by tag."""
        return pd.DataFrame(
            {
                "address": list(self._links),
                "n_links": [int(m.shape[0]) for m in self._links.values()],
                "subset_by": [self._subset_by[a] for a in self._links],
            },
            columns=["address", "n_links", "subset_by"],
        )

    def to_long(self) -> pd.DataFrame:
        """All link rows stacked as ``address, sample, element`` (1-based)."""
        frames = [
            pd.DataFrame({"address": address, "sample": m[:, 0], "element": m[:, 1]})
            for address, m in self._links.items()
        ]
        if not frames:
            return pd.DataFrame(columns=["address", "sample", "element"])
        return pd.concat(frames, ignore_index=True)
