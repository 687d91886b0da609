"""Declarative joins of the form ``"sampleData.sample = qdata.sample"``."""
from __future__ import annotations

import re
from typing import Any, Tuple

import numpy as np

from .addressing import Address, get_element, parse_address
from .errors import UnsupportedJoinFormatError
from .link_matrix import build_link_matrix

_JOIN_RE = re.compile(r"^\s*([^=]+?)\s*=\s*([^=]+?)\s*$")


def parse_join(expr: str) -> Tuple[Address, Address]:
    """Split ``"<slot>.<field> = <slot>.<field>"`` into its two resolved addresses."""
    m = _JOIN_RE.match(str(expr))
    if m is None:
        raise UnsupportedJoinFormatError(
            f"Join expression {expr!r} has an unsupported format; expected '<slot>.<field> = <slot>.<field>'."
        )
    left, right = parse_address(m.group(1)), parse_address(m.group(2))
    if left.field is None or right.field is None:
        raise UnsupportedJoinFormatError(
            f"Join expression {expr!r} has an unsupported format; both sides need a field."
        )
    return left, right


def parse_join_string(expr: str) -> Tuple[str, str, str, str]:
    left, right = parse_join(expr)
    return left.slot.value, str(left.field), right.slot.value, str(right.field)


def _keys(value: Any) -> list:
    if value is None:
        return []
    if hasattr(value, "tolist"):
        out = value.tolist()
        return out if isinstance(out, list) else [out]
    if isinstance(value, (str, bytes)) or not hasattr(value, "__len__"):
        return [value]
    return list(value)


def resolve_join(experiment: Any, expr: str) -> np.ndarray:
    """Link matrix matching values of the left-hand field to the right-hand field.

    Addressing errors propagate; a field that does not exist contributes no
    keys and therefore yields an empty matrix.
    """
    left, right = parse_join(expr)
    from_keys = _keys(get_element(experiment, left))
    to_keys = _keys(get_element(experiment, right))
    return build_link_matrix(from_keys, to_keys)
