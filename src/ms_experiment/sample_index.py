"""Which sample(s) each element of a linked collection belongs to."""
from __future__ import annotations

import warnings
from typing import List, Optional, Set

import numpy as np

from .errors import AmbiguousMappingWarning
from .link_matrix import validate_link


def first_owner(link: np.ndarray, n_elements: int) -> List[Optional[int]]:
    """Sample index of the first link row mapping each element, ``None`` if unmapped.

    Element indices appearing in more than one row trigger an
    ``AmbiguousMappingWarning``; the first row (in link order) wins.
    """
    link = validate_link(link, max_to=n_elements)
    out: List[Optional[int]] = [None] * int(n_elements)
    elements = link[:, 1]
    if np.unique(elements).shape[0] != elements.shape[0]:
        warnings.warn(
            "Found at least one element assigned to more than one sample; "
            "reporting the first sample for each. Use mode='all' to get all of them.",
            AmbiguousMappingWarning,
            stacklevel=2,
        )
    for sample, element in link:
        pos = int(element) - 1
        if out[pos] is None:
            out[pos] = int(sample)
    return out


def all_owners(link: np.ndarray, n_elements: int) -> List[Set[int]]:
    """Set of every sample linked to each element (empty when unmapped)."""
    link = validate_link(link, max_to=n_elements)
    out: List[Set[int]] = [set() for _ in range(int(n_elements))]
    for sample, element in link:
        pos = int(element) - 1
        out[pos].add(int(sample))
    return out
