import numpy as np
import pandas as pd
import pytest

from ms_experiment.errors import MalformedLinkError, OutOfRangeLinkError
from ms_experiment.link_matrix import build_link_matrix, empty_link_matrix, link_from_indices, validate_link


def test_validate_link_accepts_integer_matrix():
    out = validate_link([[1, 2], [3, 1]], max_from=3, max_to=2)
    assert out.dtype == np.int64
    assert out.tolist() == [[1, 2], [3, 1]]


def test_validate_link_accepts_integral_floats_and_frames():
    out = validate_link(np.array([[1.0, 2.0]]))
    assert out.tolist() == [[1, 2]]
    df = pd.DataFrame({"sample": [1, 2], "element": [2, 2]})
    assert validate_link(df).tolist() == [[1, 2], [2, 2]]


def test_validate_link_rejects_wrong_shape():
    with pytest.raises(MalformedLinkError, match="integer matrix with 2 columns"):
        validate_link([1, 2, 3])
    with pytest.raises(MalformedLinkError, match="expected to have 2 columns"):
        validate_link([[1, 2, 3]])


def test_validate_link_rejects_non_integer_content():
    with pytest.raises(MalformedLinkError):
        validate_link(np.array([["a", "b"]]))
    with pytest.raises(MalformedLinkError, match="non-integer"):
        validate_link(np.array([[1.5, 2.0]]))


def test_validate_link_bounds():
    with pytest.raises(OutOfRangeLinkError, match="smaller than 1"):
        validate_link([[0, 1]])
    with pytest.raises(OutOfRangeLinkError, match="<= 2"):
        validate_link([[3, 1]], max_from=2)
    with pytest.raises(OutOfRangeLinkError):
        validate_link([[1, 5]], max_from=2, max_to=4)


def test_validate_link_empty():
    out = validate_link(np.zeros((0, 2)))
    assert out.shape == (0, 2)
    assert empty_link_matrix().shape == (0, 2)


def test_link_from_indices_requires_equal_length():
    assert link_from_indices([1, 2], [3, 3]).tolist() == [[1, 3], [2, 3]]
    with pytest.raises(MalformedLinkError, match="same length"):
        link_from_indices([1, 2], [1])
    assert link_from_indices([], []).shape == (0, 2)


def test_build_link_matrix_inner_join_order():
    out = build_link_matrix(["a", "b", "c", "a"], ["b", "a", "a", "z"])
    # every matching pair, ordered by i then j
    assert out.tolist() == [[1, 2], [1, 3], [2, 1], [4, 2], [4, 3]]


def test_build_link_matrix_no_match_and_missing():
    assert build_link_matrix(["a"], ["b"]).shape == (0, 2)
    assert build_link_matrix(None, ["a"]).shape == (0, 2)
    assert build_link_matrix([], ["a"]).shape == (0, 2)
    out = build_link_matrix([None, "a", np.nan], [None, "a", np.nan])
    assert out.tolist() == [[2, 2]]


def test_build_link_matrix_numeric_keys():
    out = build_link_matrix(pd.Series([1, 2, 3]), np.array([3, 3, 1]))
    assert out.tolist() == [[1, 3], [3, 1], [3, 2]]


def test_build_link_matrix_ties_on_both_sides():
    out = build_link_matrix(["a", "a", "b", "d", "b", "c"], ["g", "a", "b", "e"])
    assert out.tolist() == [[1, 2], [2, 2], [3, 3], [5, 3]]
