"""
ms_experiment: link samples to their data (files, spectra, quantification) and subset them together.
"""

__version__ = "0.1.0"

from .addressing import Address, SlotKind, canonical_address, get_element, parse_address, set_element
from .containers import ExperimentFiles, QuantData, Spectra
from .design import DesignSpec, LinkSpec, build_experiment, load_design, load_experiment
from .errors import (
    AmbiguousMappingWarning,
    EmptyTargetError,
    IncompleteLinkWarning,
    MalformedLinkError,
    MsExperimentError,
    OutOfRangeLinkError,
    UnknownSlotError,
    UnsupportedJoinFormatError,
)
from .experiment import (
    MsExperiment,
    add_link,
    experiment_from_files,
    extract_samples,
    spectra_sample_index,
    tag_spectra_index,
    update_spectra_links,
)
from .join import parse_join, parse_join_string, resolve_join
from .link_matrix import build_link_matrix, validate_link
from .registry import LinkRegistry
from .sample_index import all_owners, first_owner

__all__ = [
    "Address",
    "SlotKind",
    "canonical_address",
    "get_element",
    "parse_address",
    "set_element",
    "ExperimentFiles",
    "QuantData",
    "Spectra",
    "DesignSpec",
    "LinkSpec",
    "build_experiment",
    "load_design",
    "load_experiment",
    "AmbiguousMappingWarning",
    "EmptyTargetError",
    "IncompleteLinkWarning",
    "MalformedLinkError",
    "MsExperimentError",
    "OutOfRangeLinkError",
    "UnknownSlotError",
    "UnsupportedJoinFormatError",
    "MsExperiment",
    "add_link",
    "experiment_from_files",
    "extract_samples",
    "spectra_sample_index",
    "tag_spectra_index",
    "update_spectra_links",
    "parse_join",
    "parse_join_string",
    "resolve_join",
    "build_link_matrix",
    "validate_link",
    "LinkRegistry",
    "all_owners",
    "first_owner",
    "__version__",
]
