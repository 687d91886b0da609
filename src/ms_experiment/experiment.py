"""MsExperiment: a sample table plus the data collections linked to it.

Samples are rows of ``sample_data``. Any other piece of data (file lists,
spectra, quantification matrices, entries in ``metadata``/``other_data``)
can be linked to samples with ``add_link``; ``extract_samples`` then keeps
every linked collection consistent with the selected samples.

Experiments are values: every operation returns a new ``MsExperiment`` and
leaves the input untouched. Sample indices and link matrices are 1-based.
"""
from __future__ import annotations

import dataclasses
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

import numpy as np
import pandas as pd

from .addressing import Address, SlotKind, canonical_address, get_element, set_element
from .containers import ExperimentFiles, QuantData, Spectra
from .elements import NamedCollection, n_elements, subset_dim
from .errors import (
    EmptyTargetError,
    IncompleteLinkWarning,
    MalformedLinkError,
    OutOfRangeLinkError,
    UnsupportedJoinFormatError,
)
from .join import parse_join, resolve_join
from .link_matrix import empty_link_matrix, link_from_indices, validate_link
from .registry import LinkRegistry, check_subset_by
from .sample_index import all_owners, first_owner

SPECTRA_IDX_VARIABLE = "_spectra_idx"


@dataclass(frozen=True, eq=False, repr=False)
class MsExperiment:
    sample_data: pd.DataFrame = field(default_factory=pd.DataFrame)
    experiment_files: ExperimentFiles = field(default_factory=ExperimentFiles)
    spectra: Optional[Spectra] = None
    qdata: Optional[QuantData] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    other_data: Dict[str, Any] = field(default_factory=dict)
    sample_data_links: LinkRegistry = field(default_factory=LinkRegistry)

    def __post_init__(self) -> None:
        sample_data = pd.DataFrame() if self.sample_data is None else self.sample_data
        if not isinstance(sample_data, pd.DataFrame):
            raise TypeError(f"'sample_data' needs to be a pandas DataFrame, got {type(sample_data).__name__}.")
        files = ExperimentFiles() if self.experiment_files is None else self.experiment_files
        if not isinstance(files, ExperimentFiles):
            raise TypeError(f"'experiment_files' needs to be an ExperimentFiles, got {type(files).__name__}.")
        if self.spectra is not None and not isinstance(self.spectra, Spectra):
            raise TypeError(f"'spectra' needs to be a Spectra object, got {type(self.spectra).__name__}.")
        if self.qdata is not None and not isinstance(self.qdata, QuantData):
            raise TypeError(f"'qdata' needs to be a QuantData object, got {type(self.qdata).__name__}.")
        links = LinkRegistry() if self.sample_data_links is None else self.sample_data_links
        if not isinstance(links, LinkRegistry):
            raise TypeError(f"'sample_data_links' needs to be a LinkRegistry, got {type(links).__name__}.")

        object.__setattr__(self, "sample_data", sample_data.copy())
        object.__setattr__(self, "experiment_files", files)
        object.__setattr__(self, "metadata", _as_dict(self.metadata, "metadata"))
        object.__setattr__(self, "other_data", _as_dict(self.other_data, "other_data"))
        object.__setattr__(self, "sample_data_links", links)

    def __len__(self) -> int:
        return int(len(self.sample_data))

    def __getitem__(self, selector: Any) -> "MsExperiment":
        """Subset samples with a Python selector (0-based int, slice, mask or int sequence)."""
        return extract_samples(self, _resolve_selector(selector, len(self)))

    def __repr__(self) -> str:
        lines = ["Object of class MsExperiment"]
        if self.is_empty():
            lines.append(" Empty object")
            return "\n".join(lines)
        cols = ", ".join(str(c) for c in self.sample_data.columns)
        lines.append(f" Sample data: {len(self)} sample(s) [{cols}]")
        if len(self.experiment_files):
            lines.append(" Experiment files: " + ", ".join(self.experiment_files))
        if self.spectra is not None:
            lines.append(f" Spectra: {len(self.spectra)}")
        if self.qdata is not None:
            lines.append(f" Quantification data: {self.qdata.shape[0]} x {self.qdata.shape[1]}")
        if self.metadata:
            lines.append(" Metadata: " + ", ".join(self.metadata))
        if self.other_data:
            lines.append(" Other data: " + ", ".join(self.other_data))
        if len(self.sample_data_links):
            lines.append(" Sample data links:")
            for address, link, tag in self.sample_data_links.items_with_tag():
                n_samples = len(np.unique(link[:, 0]))
                n_el = len(np.unique(link[:, 1]))
                suffix = " (column)" if tag == 2 else ""
                lines.append(f"  - {address}: {n_samples} sample(s) to {n_el} element(s){suffix}")
        return "\n".join(lines)

    def is_empty(self) -> bool:
        return (
            len(self) == 0
            and len(self.sample_data.columns) == 0
            and len(self.experiment_files) == 0
            and (self.spectra is None or len(self.spectra) == 0)
            and self.qdata is None
            and not self.metadata
            and not self.other_data
        )

    def replace(self, **changes: Any) -> "MsExperiment":
        return dataclasses.replace(self, **changes)

    def with_sample_data(self, sample_data: pd.DataFrame) -> "MsExperiment":
        return self.replace(sample_data=sample_data)

    def with_experiment_files(self, experiment_files: ExperimentFiles) -> "MsExperiment":
        return self.replace(experiment_files=experiment_files)

    def with_spectra(self, spectra: Optional[Spectra]) -> "MsExperiment":
        return self.replace(spectra=spectra)

    def with_qdata(self, qdata: Optional[QuantData]) -> "MsExperiment":
        return self.replace(qdata=qdata)

    def with_metadata(self, metadata: Mapping[str, Any]) -> "MsExperiment":
        return self.replace(metadata=metadata)

    def links(self, *addresses: str) -> LinkRegistry:
        """The link registry, restricted to ``addresses`` when given."""
        if not addresses:
            return self.sample_data_links
        return self.sample_data_links.select(_canonical_or_raw(a) for a in addresses)

    def get_element(self, address: Union[str, Address]) -> Any:
        return get_element(self, address)

    def set_element(self, address: Union[str, Address], value: Any) -> "MsExperiment":
        return set_element(self, address, value)

    def link_sample_data(self, target: Optional[str] = None, **kwargs: Any) -> "MsExperiment":
        return add_link(self, target, **kwargs)

    def extract_samples(self, indices: Sequence[int]) -> "MsExperiment":
        return extract_samples(self, indices)

    def spectra_sample_index(self, mode: str = "first") -> Union[List[Optional[int]], List[Set[int]]]:
        return spectra_sample_index(self, mode=mode)


def _as_dict(value: Optional[Mapping[str, Any]], name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"'{name}' needs to be a mapping, got {type(value).__name__}.")
    return dict(value)


def _canonical_or_raw(address: str) -> str:
    try:
        return canonical_address(address)
    except ValueError:
        return address


def _resolve_selector(selector: Any, n: int) -> np.ndarray:
    if isinstance(selector, slice):
        pos = np.arange(n)[selector]
    elif isinstance(selector, (int, np.integer)) and not isinstance(selector, (bool, np.bool_)):
        pos = np.asarray([int(selector)])
    else:
        arr = np.asarray(selector)
        if arr.ndim == 0 and arr.dtype == bool:
            raise TypeError("A single boolean is not a sample selector; pass one boolean per sample.")
        if arr.dtype == bool:
            if arr.shape[0] != n:
                raise IndexError(f"Boolean selector has length {arr.shape[0]}, expected {n}.")
            pos = np.flatnonzero(arr)
        elif arr.size == 0:
            pos = np.zeros(0, dtype=np.int64)
        elif np.issubdtype(arr.dtype, np.integer):
            pos = arr.ravel().astype(np.int64)
        else:
            raise TypeError(f"Unsupported sample selector of type {type(selector).__name__}.")
    pos = np.where(pos < 0, pos + n, pos)
    if np.any((pos < 0) | (pos >= n)):
        raise IndexError(f"Sample selector out of range for {n} sample(s).")
    return pos + 1


def _as_sample_indices(indices: Sequence[int], n_samples: int) -> np.ndarray:
    idx = np.asarray(indices).ravel()
    if idx.size == 0:
        return np.zeros(0, dtype=np.int64)
    if not np.issubdtype(idx.dtype, np.number) or not np.all(np.equal(np.mod(idx, 1), 0)):
        raise MalformedLinkError("Sample indices need to be integers.")
    idx = idx.astype(np.int64)
    if np.any(idx < 1) or np.any(idx > n_samples):
        raise OutOfRangeLinkError(f"Sample indices need to be between 1 and {n_samples}.")
    return idx


def _join_target(expr: str) -> tuple[Address, Address]:
    left, right = parse_join(expr)
    if left.slot is not SlotKind.SAMPLE_DATA:
        if right.slot is not SlotKind.SAMPLE_DATA:
            raise UnsupportedJoinFormatError(
                f"Join expression {expr!r} needs to reference 'sampleData' on one side."
            )
        left, right = right, left
    return left, right


def _check_column_coverage(address: str, element: Any, link: np.ndarray) -> None:
    n_cols = n_elements(element, 2)
    n_linked = len(np.unique(link[:, 1]))
    if n_cols != n_linked:
        warnings.warn(
            f"'{address}' has {n_cols} element(s) along its columns but only {n_linked} are linked to "
            "samples; unlinked columns are dropped when samples are extracted.",
            IncompleteLinkWarning,
            stacklevel=3,
        )


def add_link(
    experiment: MsExperiment,
    target: Optional[str] = None,
    sample_index: Optional[Sequence[int]] = None,
    with_index: Optional[Sequence[int]] = None,
    join: Optional[str] = None,
    subset_by: Optional[int] = None,
) -> MsExperiment:
    """Link samples to the data at ``target``.

    Either pass ``sample_index``/``with_index`` (1-based, equal length; one
    link per pair) or a ``join`` expression such as
    ``"sampleData.raw_file = spectra.dataOrigin"``. A ``target`` containing
    ``=`` is treated as a join expression. Joins against spectra or qdata
    link the whole collection; joins against other slots link the field.

    ``subset_by`` defaults to the target's preferred axis (2 for
    ``QuantData``, 1 otherwise). An existing link for the same address is
    replaced; an empty link leaves the experiment unchanged.
    """
    if join is None and target is not None and "=" in str(target):
        join, target = str(target), None

    if join is not None:
        if sample_index is not None or with_index is not None:
            raise ValueError("Provide either 'join' or 'sample_index'/'with_index', not both.")
        left, right = _join_target(join)
        right_content = get_element(experiment, right.slot.value)
        if isinstance(right_content, NamedCollection):
            address = right.slot.value
        else:
            address = str(right)
        matrix = resolve_join(experiment, f"{left} = {right}")
    elif sample_index is not None or with_index is not None:
        if target is None:
            raise ValueError("'target' is required when linking with 'sample_index'/'with_index'.")
        if sample_index is None or with_index is None:
            raise MalformedLinkError("Both 'sample_index' and 'with_index' are required.")
        address = canonical_address(target)
        matrix = link_from_indices(sample_index, with_index)
    else:
        return experiment

    element = get_element(experiment, address)
    if subset_by is None:
        tag = int(getattr(element, "default_subset_by", 1))
    else:
        tag = check_subset_by(subset_by)
    n_to = n_elements(element, tag)
    if n_to == 0:
        raise EmptyTargetError(f"Can not link samples to '{address}': the element is empty or does not exist.")

    matrix = validate_link(matrix, max_from=len(experiment), max_to=n_to)
    if matrix.shape[0] == 0:
        return experiment
    if tag == 2:
        _check_column_coverage(address, element, matrix)
    links = experiment.sample_data_links.with_link(address, matrix, tag)
    return experiment.replace(sample_data_links=links)


def extract_samples(experiment: MsExperiment, indices: Sequence[int]) -> MsExperiment:
    """Experiment restricted to the samples at 1-based ``indices`` (any order, repeats allowed).

    Linked collections are reshaped along with the samples. With
    ``subset_by=1`` the elements of each selected sample are concatenated in
    order, so elements shared by several selected samples are duplicated and
    elements of unselected samples dropped. With ``subset_by=2`` the
    distinct referenced columns are kept once each. Unlinked data is carried
    over unchanged.
    """
    idx = _as_sample_indices(indices, len(experiment))
    result = experiment.replace(sample_data=experiment.sample_data.iloc[idx - 1])

    new_links: Dict[str, np.ndarray] = {}
    new_tags: Dict[str, int] = {}
    for address, link, tag in experiment.sample_data_links.items_with_tag():
        element = get_element(experiment, address)
        per_sample = [np.flatnonzero(link[:, 0] == s) for s in idx]
        counts = np.asarray([r.shape[0] for r in per_sample], dtype=np.int64)
        rows = np.concatenate(per_sample) if per_sample else np.zeros(0, dtype=np.int64)
        targets = link[rows, 1]
        new_from = np.repeat(np.arange(1, idx.shape[0] + 1, dtype=np.int64), counts)

        if tag == 1:
            subset = subset_dim(element, targets - 1, 1)
            new_to = np.arange(1, rows.shape[0] + 1, dtype=np.int64)
        else:
            codes, distinct = pd.factorize(targets)
            subset = subset_dim(element, np.asarray(distinct, dtype=np.int64) - 1, 2)
            new_to = codes.astype(np.int64) + 1

        result = set_element(result, address, subset)
        new_links[address] = (
            np.column_stack([new_from, new_to]) if rows.shape[0] else empty_link_matrix()
        )
        new_tags[address] = tag
    return result.replace(sample_data_links=LinkRegistry(new_links, new_tags))


def spectra_sample_index(
    experiment: MsExperiment, mode: str = "first"
) -> Union[List[Optional[int]], List[Set[int]]]:
    """Sample index of each spectrum.

    ``mode="first"`` returns one sample (or ``None``) per spectrum, warning
    when a spectrum is linked to several samples; ``mode="all"`` returns the
    set of all linked samples per spectrum.
    """
    if mode not in ("first", "all"):
        raise ValueError(f"mode must be 'first' or 'all', got {mode!r}.")
    spectra = experiment.spectra
    if spectra is None or len(spectra) == 0:
        return []
    key = SlotKind.SPECTRA.value
    links = experiment.sample_data_links
    link = links[key] if key in links else empty_link_matrix()
    if mode == "first":
        return first_owner(link, len(spectra))
    return all_owners(link, len(spectra))


def tag_spectra_index(experiment: MsExperiment, variable: str = SPECTRA_IDX_VARIABLE) -> MsExperiment:
    """Record each spectrum's current 1-based position in the spectra variable ``variable``."""
    if experiment.spectra is None:
        raise ValueError("The experiment has no spectra to tag.")
    positions = np.arange(1, len(experiment.spectra) + 1, dtype=np.int64)
    return experiment.replace(spectra=experiment.spectra.set_field(variable, positions))


def update_spectra_links(experiment: MsExperiment, variable: str = SPECTRA_IDX_VARIABLE) -> MsExperiment:
    """Re-link samples to spectra after the spectra were subset outside the experiment.

    ``variable`` must hold the position each spectrum had when the link was
    made (see ``tag_spectra_index``). The variable is dropped afterwards.
    """
    spectra = experiment.spectra
    original = None if spectra is None else spectra.get_field(variable)
    if original is None:
        raise ValueError(f"Spectra variable '{variable}' is required to update the spectra link.")
    spectra = spectra.drop_field(variable)

    key = SlotKind.SPECTRA.value
    links = experiment.sample_data_links
    if key not in links:
        return experiment.replace(spectra=spectra)

    positions: Dict[int, List[int]] = {}
    for pos, orig in enumerate(original.to_numpy(dtype=np.int64), start=1):
        positions.setdefault(int(orig), []).append(pos)
    rows = [
        (int(sample), pos)
        for sample, orig in links[key]
        for pos in positions.get(int(orig), ())
    ]
    link = np.asarray(rows, dtype=np.int64) if rows else empty_link_matrix()
    links = links.with_link(key, link, links.subset_by(key))
    return experiment.replace(spectra=spectra, sample_data_links=links)


def experiment_from_files(
    files: Optional[Iterable[Any]] = None,
    sample_data: Optional[pd.DataFrame] = None,
    spectra: Optional[Spectra] = None,
) -> MsExperiment:
    """Experiment with one sample per data file.

    The file paths are stored in ``experimentFiles.mzML_file`` and in the
    sample table column ``data_origin``. Spectra (read by the caller) with a
    ``dataOrigin`` variable are linked to the samples through that column.
    """
    files = [str(f) for f in (files or [])]
    if not files:
        warnings.warn("No files provided; returning an empty MsExperiment.", UserWarning, stacklevel=2)
        return MsExperiment()

    if sample_data is None:
        sample_data = pd.DataFrame(index=pd.RangeIndex(len(files)))
    elif len(sample_data) != len(files):
        raise ValueError(
            f"Number of files ({len(files)}) does not match the number of rows in 'sample_data' ({len(sample_data)})."
        )
    sample_data = sample_data.reset_index(drop=True).copy()
    sample_data["data_origin"] = files

    experiment = MsExperiment(
        sample_data=sample_data,
        experiment_files=ExperimentFiles(mzML_file=files),
        spectra=spectra,
    )
    if spectra is not None and spectra.get_field("dataOrigin") is not None:
        experiment = add_link(experiment, join="sampleData.data_origin = spectra.dataOrigin")
    return experiment
