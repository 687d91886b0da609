"""Dotted addresses ("slot" or "slot.field") into the slots of an experiment.

Only the first dot separates slot from field, so field names may contain
dots themselves (``"metadata.new_entry.dot"``).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

import pandas as pd

from .containers import ExperimentFiles, Spectra
from .errors import UnknownSlotError


class SlotKind(str, Enum):
    SAMPLE_DATA = "sampleData"
    EXPERIMENT_FILES = "experimentFiles"
    SPECTRA = "spectra"
    QDATA = "qdata"
    METADATA = "metadata"
    OTHER_DATA = "otherData"

    @property
    def attribute(self) -> str:
        """Name of the ``MsExperiment`` attribute holding this slot."""
        return _ATTRIBUTES[self]


_ATTRIBUTES = {
    SlotKind.SAMPLE_DATA: "sample_data",
    SlotKind.EXPERIMENT_FILES: "experiment_files",
    SlotKind.SPECTRA: "spectra",
    SlotKind.QDATA: "qdata",
    SlotKind.METADATA: "metadata",
    SlotKind.OTHER_DATA: "other_data",
}

_SLOT_NAMES = {kind.value: kind for kind in SlotKind}
_SLOT_NAMES.update({attr: kind for kind, attr in _ATTRIBUTES.items()})


@dataclass(frozen=True)
class Address:
    slot: SlotKind
    field: Optional[str] = None

    def __str__(self) -> str:
        if self.field is None:
            return self.slot.value
        return f"{self.slot.value}.{self.field}"


def parse_address(address: Union[str, Address]) -> Address:
    """Split ``address`` on its first dot and resolve the slot name."""
    if isinstance(address, Address):
        return address
    text = str(address).strip()
    slot_name, _, field = text.partition(".")
    kind = _SLOT_NAMES.get(slot_name.strip())
    if kind is None:
        valid = ", ".join(k.value for k in SlotKind)
        raise UnknownSlotError(f"No slot named '{slot_name}' in an MsExperiment; valid slots are: {valid}.")
    field = field.strip()
    return Address(kind, field or None)


def canonical_address(address: Union[str, Address]) -> str:
    return str(parse_address(address))


def get_element(experiment: Any, address: Union[str, Address]) -> Any:
    """Return the slot content or one of its fields; ``None`` for an absent field."""
    addr = parse_address(address)
    content = getattr(experiment, addr.slot.attribute)
    if addr.field is None:
        return content
    if content is None:
        return None

    if addr.slot is SlotKind.SAMPLE_DATA:
        if addr.field not in content.columns:
            return None
        return content[addr.field].copy()
    if addr.slot in (SlotKind.METADATA, SlotKind.OTHER_DATA):
        return content.get(addr.field)
    return content.get_field(addr.field)


def set_element(experiment: Any, address: Union[str, Address], value: Any) -> Any:
    """Return a copy of ``experiment`` with the slot or field at ``address`` set to ``value``."""
    addr = parse_address(address)
    attr = addr.slot.attribute
    if addr.field is None:
        return experiment.replace(**{attr: value})

    content = getattr(experiment, attr)
    if addr.slot is SlotKind.SAMPLE_DATA:
        updated = content.copy()
        updated[addr.field] = value.to_numpy() if isinstance(value, pd.Series) else value
    elif addr.slot in (SlotKind.METADATA, SlotKind.OTHER_DATA):
        updated = dict(content)
        updated[addr.field] = value
    elif addr.slot is SlotKind.EXPERIMENT_FILES:
        updated = (content if content is not None else ExperimentFiles()).set_field(addr.field, value)
    elif addr.slot is SlotKind.SPECTRA:
        updated = (content if content is not None else Spectra()).set_field(addr.field, value)
    else:
        if content is None:
            raise ValueError(f"Cannot set '{addr}': the experiment has no qdata.")
        updated = content.set_field(addr.field, value)
    return experiment.replace(**{attr: updated})

