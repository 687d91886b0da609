import warnings

import numpy as np
import pandas as pd
import pytest

from ms_experiment import ExperimentFiles, MsExperiment, QuantData, Spectra, add_link
from ms_experiment.errors import (
    EmptyTargetError,
    IncompleteLinkWarning,
    MalformedLinkError,
    OutOfRangeLinkError,
    UnsupportedJoinFormatError,
)


def _experiment():
    return MsExperiment(
        sample_data=pd.DataFrame({"sample": ["s1", "s2"], "raw_file": ["a.mzML", "b.mzML"]}),
        experiment_files=ExperimentFiles(mzML_file=["a.mzML", "b.mzML"], annotations="annot.txt"),
        spectra=Spectra(pd.DataFrame({"dataOrigin": ["a.mzML", "b.mzML", "a.mzML"], "rtime": [1.0, 2.0, 3.0]})),
    )


def test_add_link_with_indices():
    exp = _experiment()
    out = add_link(exp, "experimentFiles.mzML_file", sample_index=[1, 2], with_index=[1, 2])
    assert out.links()["experimentFiles.mzML_file"].tolist() == [[1, 1], [2, 2]]
    assert out.links().subset_by("experimentFiles.mzML_file") == 1
    # the input is left untouched
    assert len(exp.links()) == 0


def test_add_link_canonicalizes_aliases():
    out = add_link(_experiment(), "experiment_files.annotations", sample_index=[1, 2], with_index=[1, 1])
    assert list(out.links()) == ["experimentFiles.annotations"]


def test_add_link_join_links_whole_spectra():
    out = add_link(_experiment(), join="sampleData.raw_file = spectra.dataOrigin")
    assert list(out.links()) == ["spectra"]
    assert out.links()["spectra"].tolist() == [[1, 1], [1, 3], [2, 2]]


def test_add_link_join_sides_swapped_and_target_expression():
    swapped = add_link(_experiment(), join="spectra.dataOrigin = sampleData.raw_file")
    as_target = add_link(_experiment(), "sampleData.raw_file = spectra.dataOrigin")
    assert swapped.links()["spectra"].tolist() == [[1, 1], [1, 3], [2, 2]]
    assert as_target.links() == swapped.links()


def test_add_link_join_against_file_field():
    out = add_link(_experiment(), join="sampleData.raw_file = experimentFiles.mzML_file")
    assert list(out.links()) == ["experimentFiles.mzML_file"]
    assert out.links()["experimentFiles.mzML_file"].tolist() == [[1, 1], [2, 2]]


def test_add_link_join_needs_sample_data():
    with pytest.raises(UnsupportedJoinFormatError, match="sampleData"):
        add_link(_experiment(), join="spectra.dataOrigin = experimentFiles.mzML_file")


def test_add_link_empty_join_leaves_registry_unchanged():
    exp = _experiment()
    out = add_link(exp, join="sampleData.sample = spectra.dataOrigin")
    assert len(out.links()) == 0


def test_add_link_replaces_previous_entry():
    exp = add_link(_experiment(), "experimentFiles.mzML_file", sample_index=[1, 2], with_index=[1, 2])
    exp = add_link(exp, "experimentFiles.mzML_file", sample_index=[1], with_index=[2])
    assert exp.links()["experimentFiles.mzML_file"].tolist() == [[1, 2]]


def test_add_link_errors():
    exp = _experiment()
    with pytest.raises(EmptyTargetError):
        add_link(exp, "experimentFiles.nope", sample_index=[1], with_index=[1])
    with pytest.raises(EmptyTargetError):
        add_link(exp, "qdata", sample_index=[1], with_index=[1])
    with pytest.raises(OutOfRangeLinkError):
        add_link(exp, "experimentFiles.mzML_file", sample_index=[1, 2], with_index=[1, 3])
    with pytest.raises(OutOfRangeLinkError):
        add_link(exp, "experimentFiles.mzML_file", sample_index=[3], with_index=[1])
    with pytest.raises(MalformedLinkError):
        add_link(exp, "experimentFiles.mzML_file", sample_index=[1, 2], with_index=[1])
    with pytest.raises(MalformedLinkError):
        add_link(exp, "experimentFiles.mzML_file", sample_index=[1, 2])
    with pytest.raises(ValueError, match="subset_by"):
        add_link(exp, "experimentFiles.mzML_file", sample_index=[1], with_index=[1], subset_by=3)


def test_add_link_without_arguments_is_noop():
    exp = _experiment()
    assert add_link(exp) is exp


def test_add_link_qdata_defaults_to_columns():
    exp = MsExperiment(
        sample_data=pd.DataFrame({"sample": ["s1", "s2"]}),
        qdata=QuantData(np.ones((4, 2)), col_data=pd.DataFrame({"sample": ["s2", "s1"]})),
    )
    with warnings.catch_warnings():
        warnings.simplefilter("error", IncompleteLinkWarning)
        out = add_link(exp, join="sampleData.sample = qdata.sample")
    assert out.links()["qdata"].tolist() == [[1, 2], [2, 1]]
    assert out.links().subset_by("qdata") == 2


def test_add_link_warns_on_unlinked_columns():
    exp = MsExperiment(
        sample_data=pd.DataFrame({"sample": ["s1", "s2"]}),
        qdata=QuantData(np.ones((4, 3)), col_data=pd.DataFrame({"sample": ["s1", "s2", "blank"]})),
    )
    with pytest.warns(IncompleteLinkWarning, match="only 2 are linked"):
        out = add_link(exp, join="sampleData.sample = qdata.sample")
    assert out.links().subset_by("qdata") == 2
