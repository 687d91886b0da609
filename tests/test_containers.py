import numpy as np
import pandas as pd
import pytest

from ms_experiment.containers import ExperimentFiles, QuantData, Spectra


def test_experiment_files_mapping():
    files = ExperimentFiles({"mzML_file": ["a.mzML", "b.mzML"]}, annotations="annot.txt")
    assert list(files) == ["mzML_file", "annotations"]
    assert files["annotations"] == ["annot.txt"]
    assert files.get_field("nope") is None
    updated = files.set_field("annotations", ["x.txt", "y.txt"])
    assert updated["annotations"] == ["x.txt", "y.txt"]
    assert files["annotations"] == ["annot.txt"]
    assert updated != files
    assert files.to_dict() == {"mzML_file": ["a.mzML", "b.mzML"], "annotations": ["annot.txt"]}


def test_experiment_files_rejects_non_paths():
    with pytest.raises(TypeError):
        ExperimentFiles(mzML_file=[1, 2])
    with pytest.raises(TypeError):
        ExperimentFiles(mzML_file=3)


def test_spectra_fields_and_select():
    sp = Spectra(
        pd.DataFrame({"dataOrigin": ["a", "a", "b"], "rtime": [1.0, 2.0, 3.0]}),
        peaks=[np.array([[100.0, 1.0]]), np.zeros((0, 2)), np.array([[200.0, 5.0], [201.0, 2.0]])],
    )
    assert len(sp) == 3
    assert sp.get_field("nope") is None
    sub = sp.select([2, 0, 2])
    assert sub.get_field("rtime").tolist() == [3.0, 1.0, 3.0]
    assert sub.peaks[0].shape == (2, 2)
    assert sp.set_field("msLevel", 1).get_field("msLevel").tolist() == [1, 1, 1]
    assert sp.drop_field("rtime").variables == ["dataOrigin"]
    with pytest.raises(ValueError, match="does not match"):
        sp.set_field("x", [1, 2])


def test_spectra_peaks_length_checked():
    with pytest.raises(ValueError, match="peak matrices"):
        Spectra(pd.DataFrame({"a": [1, 2]}), peaks=[np.zeros((0, 2))])
    assert len(Spectra(peaks=[np.zeros((1, 2))] * 4)) == 4


def test_quant_data_axes():
    assay = pd.DataFrame(np.arange(6).reshape(3, 2), columns=["s1", "s2"])
    qd = QuantData(assay, col_data=pd.DataFrame({"sample": ["s1", "s2"]}))
    assert qd.shape == (3, 2)
    assert len(qd) == 2
    assert qd.n_elements(1) == 3
    cols = qd.select([1, 1], subset_by=2)
    assert cols.assay.columns.tolist() == ["s2", "s2"]
    assert cols.col_data["sample"].tolist() == ["s2", "s2"]
    rows = qd.select([0], subset_by=1)
    assert rows.shape == (1, 2)
    assert qd.get_field("sample").tolist() == ["s1", "s2"]


def test_quant_data_validates_annotations():
    with pytest.raises(ValueError, match="2D"):
        QuantData([1, 2, 3])
    with pytest.raises(ValueError, match="col_data"):
        QuantData([[1.0, 2.0]], col_data=pd.DataFrame({"sample": ["a"]}))
