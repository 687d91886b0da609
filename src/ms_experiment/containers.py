"""Collections stored in experiment slots.

- ``ExperimentFiles``: named lists of file paths (raw data, annotations, ...)
- ``Spectra``: one row of spectra variables per spectrum plus its peak array
- ``QuantData``: feature x sample quantification matrix with column/row annotations

All of them are immutable from the outside: ``set_field`` and ``select``
return new objects.
"""
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd


def _broadcast(value: Any, n: int, name: str) -> Any:
    if isinstance(value, (str, bytes)) or not hasattr(value, "__len__"):
        return [value] * n
    if len(value) != n:
        raise ValueError(f"Length of '{name}' ({len(value)}) does not match the number of rows ({n}).")
    return value.to_numpy() if isinstance(value, pd.Series) else value


class ExperimentFiles(Mapping):
    """Named lists of file paths attached to an experiment."""

    def __init__(self, files: Optional[Mapping[str, Any]] = None, **kwargs: Any):
        merged: Dict[str, Any] = dict(files or {})
        merged.update(kwargs)
        self._files: Dict[str, List[str]] = {
            str(name): self._as_paths(name, value) for name, value in merged.items()
        }

    @staticmethod
    def _as_paths(name: str, value: Any) -> List[str]:
        if isinstance(value, (str, Path)):
            return [str(value)]
        if isinstance(value, (list, tuple, np.ndarray, pd.Series)):
            out = list(value.tolist() if hasattr(value, "tolist") else value)
            if not all(isinstance(v, (str, Path)) for v in out):
                raise TypeError(f"Files in '{name}' need to be paths or strings.")
            return [str(v) for v in out]
        raise TypeError(f"'{name}' needs to be a file path or a sequence of file paths, got {type(value).__name__}.")

    def __getitem__(self, name: str) -> List[str]:
        return list(self._files[name])

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExperimentFiles):
            return self._files == other._files
        return NotImplemented

    def __repr__(self) -> str:
        parts = ", ".join(f"{k}: {len(v)} file(s)" for k, v in self._files.items())
        return f"ExperimentFiles({parts})"

    def get_field(self, name: str) -> Optional[List[str]]:
        if name not in self._files:
            return None
        return list(self._files[name])

    def set_field(self, name: str, value: Any) -> "ExperimentFiles":
        files = dict(self._files)
        files[name] = self._as_paths(name, value)
        return ExperimentFiles(files)

    def to_dict(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._files.items()}


class Spectra:
    """Spectra variables (``data``) with one peak matrix (m/z, intensity) per spectrum."""

    default_subset_by = 1

    def __init__(
        self,
        data: Optional[pd.DataFrame] = None,
        peaks: Optional[Sequence[np.ndarray]] = None,
    ):
        if data is None:
            n = 0 if peaks is None else len(peaks)
            data = pd.DataFrame(index=pd.RangeIndex(n))
        if not isinstance(data, pd.DataFrame):
            raise TypeError(f"'data' needs to be a pandas DataFrame, got {type(data).__name__}.")
        data = data.reset_index(drop=True)
        if peaks is None:
            peaks = [np.zeros((0, 2), dtype=float) for _ in range(len(data))]
        peaks = [np.asarray(p, dtype=float).reshape(-1, 2) for p in peaks]
        if len(peaks) != len(data):
            raise ValueError(
                f"Number of peak matrices ({len(peaks)}) does not match the number of spectra ({len(data)})."
            )
        self._data = data
        self._peaks = peaks

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Spectra(n_spectra={len(self)}, variables={self.variables})"

    @property
    def data(self) -> pd.DataFrame:
        return self._data.copy()

    @property
    def variables(self) -> List[str]:
        return [str(c) for c in self._data.columns]

    @property
    def peaks(self) -> List[np.ndarray]:
        return list(self._peaks)

    def n_elements(self, subset_by: int = 1) -> int:
        return len(self)

    def get_field(self, name: str) -> Optional[pd.Series]:
        if name not in self._data.columns:
            return None
        return self._data[name].copy()

    def set_field(self, name: str, value: Any) -> "Spectra":
        data = self._data.copy()
        data[name] = _broadcast(value, len(data), name)
        return Spectra(data, self._peaks)

    def drop_field(self, name: str) -> "Spectra":
        return Spectra(self._data.drop(columns=[name], errors="ignore"), self._peaks)

    def select(self, indices: Sequence[int], subset_by: int = 1) -> "Spectra":
        # single axis, subset_by is ignored
        idx = np.asarray(indices, dtype=np.int64).ravel()
        return Spectra(self._data.iloc[idx], [self._peaks[int(i)] for i in idx])


class QuantData:
    """Quantification matrix: rows are features, columns are (usually) samples.

    ``col_data`` annotates the columns and is what sample-table joins match
    against; subsetting defaults to the column axis (``subset_by=2``).
    """

    default_subset_by = 2

    def __init__(
        self,
        assay: Any,
        col_data: Optional[pd.DataFrame] = None,
        row_data: Optional[pd.DataFrame] = None,
    ):
        if isinstance(assay, pd.DataFrame):
            assay = assay.copy()
        else:
            arr = np.asarray(assay)
            if arr.ndim != 2:
                raise ValueError(f"'assay' must be 2D, got shape {arr.shape}.")
            assay = pd.DataFrame(arr)
        n_rows, n_cols = assay.shape

        if col_data is None:
            col_data = pd.DataFrame(index=assay.columns)
        if row_data is None:
            row_data = pd.DataFrame(index=assay.index)
        if len(col_data) != n_cols:
            raise ValueError(f"'col_data' has {len(col_data)} rows, expected one per assay column ({n_cols}).")
        if len(row_data) != n_rows:
            raise ValueError(f"'row_data' has {len(row_data)} rows, expected one per assay row ({n_rows}).")
        self._assay = assay
        self._col_data = col_data.copy()
        self._row_data = row_data.copy()

    def __len__(self) -> int:
        return self.n_elements(self.default_subset_by)

    def __repr__(self) -> str:
        return f"QuantData(n_features={self.shape[0]}, n_columns={self.shape[1]}, col_data={list(self._col_data.columns)})"

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self._assay.shape[0]), int(self._assay.shape[1]))

    @property
    def assay(self) -> pd.DataFrame:
        return self._assay.copy()

    @property
    def col_data(self) -> pd.DataFrame:
        return self._col_data.copy()

    @property
    def row_data(self) -> pd.DataFrame:
        return self._row_data.copy()

    def n_elements(self, subset_by: int = 2) -> int:
        return self.shape[int(subset_by) - 1]

    def get_field(self, name: str) -> Optional[pd.Series]:
        if name not in self._col_data.columns:
            return None
        return self._col_data[name].copy()

    def set_field(self, name: str, value: Any) -> "QuantData":
        col_data = self._col_data.copy()
        col_data[name] = _broadcast(value, len(col_data), name)
        return QuantData(self._assay, col_data, self._row_data)

    def select(self, indices: Sequence[int], subset_by: int = 2) -> "QuantData":
        idx = np.asarray(indices, dtype=np.int64).ravel()
        if int(subset_by) == 1:
            return QuantData(self._assay.iloc[idx, :], self._col_data, self._row_data.iloc[idx])
        return QuantData(self._assay.iloc[:, idx], self._col_data.iloc[idx], self._row_data)
