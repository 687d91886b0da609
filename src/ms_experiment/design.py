"""Experiment designs: JSON/YAML manifests naming the tables, files and links of an experiment.

``load_design`` parses a manifest into a ``DesignSpec``; ``build_experiment``
reads the tables it names and applies its links in order.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .containers import ExperimentFiles, QuantData, Spectra
from .experiment import MsExperiment, add_link


@dataclass(frozen=True)
class LinkSpec:
    target: Optional[str] = None
    sample_index: Optional[Tuple[int, ...]] = None
    with_index: Optional[Tuple[int, ...]] = None
    join: Optional[str] = None
    subset_by: Optional[int] = None


@dataclass(frozen=True)
class DesignSpec:
    root: Path
    sample_data: Optional[Path] = None
    experiment_files: Dict[str, List[str]] = field(default_factory=dict)
    spectra: Optional[Path] = None
    qdata_assay: Optional[Path] = None
    qdata_col_data: Optional[Path] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    other_data: Dict[str, Any] = field(default_factory=dict)
    links: Tuple[LinkSpec, ...] = ()


def _safe_yaml_load(path: Path) -> Any:
    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "YAML design requested but PyYAML is not installed. "
            "Install `pyyaml` or provide a JSON design."
        ) from exc
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _resolve(root: Path, value: Any) -> Optional[Path]:
    if value is None or str(value).strip() == "":
        return None
    p = Path(str(value).strip())
    return p if p.is_absolute() else root / p


def _int_tuple(value: Any, what: str) -> Optional[Tuple[int, ...]]:
    if value is None:
        return None
    if isinstance(value, (int, str)):
        value = [value]
    try:
        return tuple(int(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{what} must be a list of integers, got {value!r}.") from exc


def _parse_link(item: Any, pos: int) -> LinkSpec:
    if not isinstance(item, dict):
        raise ValueError(f"links[{pos}]: each link entry must be a mapping/dict.")
    join = item.get("join")
    target = item.get("target")
    if not join and not target:
        raise ValueError(f"links[{pos}]: needs either 'join' or 'target'.")
    spec = LinkSpec(
        target=str(target) if target else None,
        sample_index=_int_tuple(item.get("sample_index"), f"links[{pos}].sample_index"),
        with_index=_int_tuple(item.get("with_index"), f"links[{pos}].with_index"),
        join=str(join) if join else None,
        subset_by=int(item["subset_by"]) if item.get("subset_by") is not None else None,
    )
    if spec.join is None and (spec.sample_index is None or spec.with_index is None):
        raise ValueError(f"links[{pos}]: '{spec.target}' needs both 'sample_index' and 'with_index'.")
    return spec


def load_design(path: Path) -> DesignSpec:
    """Load an experiment design from YAML or JSON.

    Table paths are resolved against the design file's directory; file
    lists under ``experiment_files`` are stored as given.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    suffix = path.suffix.lower().strip()
    if suffix in {".yaml", ".yml"}:
        obj = _safe_yaml_load(path)
    elif suffix == ".json":
        obj = json.loads(path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"Unsupported design type {suffix!r}; expected .yaml/.yml or .json")

    if not isinstance(obj, dict):
        raise ValueError("Design must be a mapping/dict.")
    root = path.parent

    files = obj.get("experiment_files") or {}
    if not isinstance(files, dict):
        raise ValueError("'experiment_files' must map names to file lists.")
    experiment_files = {
        str(k): [str(v)] if isinstance(v, str) else [str(x) for x in (v or [])]
        for k, v in files.items()
    }

    qdata = obj.get("qdata") or {}
    if isinstance(qdata, str):
        qdata = {"assay": qdata}
    if not isinstance(qdata, dict):
        raise ValueError("'qdata' must be a path or a mapping with 'assay' (and optional 'col_data').")
    if qdata and not qdata.get("assay"):
        raise ValueError("qdata: missing 'assay'.")

    for key in ("metadata", "other_data"):
        if not isinstance(obj.get(key) or {}, dict):
            raise ValueError(f"'{key}' must be a mapping/dict.")

    links_obj = obj.get("links") or []
    if not isinstance(links_obj, list):
        raise ValueError("'links' must be a list of link entries.")

    return DesignSpec(
        root=root,
        sample_data=_resolve(root, obj.get("sample_data")),
        experiment_files=experiment_files,
        spectra=_resolve(root, obj.get("spectra")),
        qdata_assay=_resolve(root, qdata.get("assay")),
        qdata_col_data=_resolve(root, qdata.get("col_data")),
        metadata=dict(obj.get("metadata") or {}),
        other_data=dict(obj.get("other_data") or {}),
        links=tuple(_parse_link(item, i) for i, item in enumerate(links_obj)),
    )


def _read_table(path: Path, **kwargs: Any) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(path)
    sep = "\t" if path.suffix.lower() in {".tsv", ".txt"} else ","
    return pd.read_csv(path, sep=sep, **kwargs)


def build_experiment(design: DesignSpec) -> MsExperiment:
    """Read the tables named by ``design`` and apply its links in order."""
    sample_data = _read_table(design.sample_data) if design.sample_data else pd.DataFrame()
    spectra = Spectra(_read_table(design.spectra)) if design.spectra else None
    qdata = None
    if design.qdata_assay is not None:
        assay = _read_table(design.qdata_assay, index_col=0)
        col_data = None
        if design.qdata_col_data is not None:
            col_data = _read_table(design.qdata_col_data)
        qdata = QuantData(assay, col_data=col_data)

    experiment = MsExperiment(
        sample_data=sample_data,
        experiment_files=ExperimentFiles(design.experiment_files),
        spectra=spectra,
        qdata=qdata,
        metadata=design.metadata,
        other_data=design.other_data,
    )
    for link in design.links:
        experiment = add_link(
            experiment,
            target=link.target,
            sample_index=link.sample_index,
            with_index=link.with_index,
            join=link.join,
            subset_by=link.subset_by,
        )
    return experiment


def load_experiment(path: Path) -> MsExperiment:
    return build_experiment(load_design(path))
