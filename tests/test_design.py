import json
from pathlib import Path

import pandas as pd
import pytest

from ms_experiment.design import DesignSpec, LinkSpec, build_experiment, load_design, load_experiment


def _write_tables(root: Path):
    pd.DataFrame({"sample": ["s1", "s2"], "raw_file": ["a.mzML", "b.mzML"]}).to_csv(root / "samples.csv", index=False)
    pd.DataFrame({"dataOrigin": ["a.mzML", "b.mzML", "a.mzML"], "rtime": [1.0, 2.0, 3.0]}).to_csv(
        root / "spectra.tsv", sep="\t", index=False
    )
    pd.DataFrame({"s2": [1.0, 2.0], "s1": [3.0, 4.0]}, index=["f1", "f2"]).to_csv(root / "assay.csv")
    pd.DataFrame({"sample": ["s2", "s1"]}).to_csv(root / "col_data.csv", index=False)


def _design_obj():
    return {
        "sample_data": "samples.csv",
        "experiment_files": {"mzML_file": ["a.mzML", "b.mzML"], "annotations": "annot.txt"},
        "spectra": "spectra.tsv",
        "qdata": {"assay": "assay.csv", "col_data": "col_data.csv"},
        "metadata": {"version": "1.0"},
        "links": [
            {"target": "experimentFiles.annotations", "sample_index": [1, 2], "with_index": [1, 1]},
            {"join": "sampleData.raw_file = spectra.dataOrigin"},
            {"join": "sampleData.sample = qdata.sample"},
        ],
    }


def test_load_design_json(tmp_path):
    path = tmp_path / "design.json"
    path.write_text(json.dumps(_design_obj()), encoding="utf-8")
    design = load_design(path)
    assert isinstance(design, DesignSpec)
    assert design.root == tmp_path
    assert design.sample_data == tmp_path / "samples.csv"
    assert design.experiment_files["annotations"] == ["annot.txt"]
    assert design.qdata_col_data == tmp_path / "col_data.csv"
    assert design.links[0] == LinkSpec(
        target="experimentFiles.annotations", sample_index=(1, 2), with_index=(1, 1)
    )
    assert design.links[1].join == "sampleData.raw_file = spectra.dataOrigin"


def test_load_design_yaml_builds_experiment(tmp_path):
    yaml = pytest.importorskip("yaml")
    _write_tables(tmp_path)
    path = tmp_path / "design.yaml"
    path.write_text(yaml.safe_dump(_design_obj()), encoding="utf-8")
    exp = load_experiment(path)
    assert len(exp) == 2
    assert exp.experiment_files["annotations"] == ["annot.txt"]
    assert exp.links()["experimentFiles.annotations"].tolist() == [[1, 1], [2, 1]]
    assert exp.links()["spectra"].tolist() == [[1, 1], [1, 3], [2, 2]]
    assert exp.links()["qdata"].tolist() == [[1, 2], [2, 1]]
    assert exp.qdata.assay.index.tolist() == ["f1", "f2"]
    assert exp.metadata == {"version": "1.0"}


def test_build_experiment_minimal(tmp_path):
    exp = build_experiment(DesignSpec(root=tmp_path))
    assert exp.is_empty()


def test_load_design_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_design(tmp_path / "missing.json")

    bad = tmp_path / "design.txt"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported design type"):
        load_design(bad)

    path = tmp_path / "design.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_design(path)

    path.write_text(json.dumps({"links": [{"target": "spectra", "sample_index": [1]}]}), encoding="utf-8")
    with pytest.raises(ValueError, match="with_index"):
        load_design(path)

    path.write_text(json.dumps({"links": [{"sample_index": [1]}]}), encoding="utf-8")
    with pytest.raises(ValueError, match="'join' or 'target'"):
        load_design(path)

    path.write_text(json.dumps({"qdata": {"col_data": "x.csv"}}), encoding="utf-8")
    with pytest.raises(ValueError, match="assay"):
        load_design(path)


def test_build_experiment_missing_table(tmp_path):
    design = DesignSpec(root=tmp_path, sample_data=tmp_path / "nope.csv")
    with pytest.raises(FileNotFoundError):
        build_experiment(design)
