"""Exceptions and warnings raised by the sample-data linking engine."""

from __future__ import annotations


class MsExperimentError(ValueError):
    """Base class for structural errors; the operation is aborted."""


class MalformedLinkError(MsExperimentError):
    """Link matrix has the wrong shape or non-integer content."""


class OutOfRangeLinkError(MsExperimentError):
    """An index is smaller than 1 or exceeds the number of rows/elements."""


class UnknownSlotError(MsExperimentError):
    """An address names a slot the experiment does not have."""


class EmptyTargetError(MsExperimentError):
    """Attempt to link samples against a zero-length collection."""


class UnsupportedJoinFormatError(MsExperimentError):
    """Join expression is not of the form ``"a.x = b.y"``."""


class AmbiguousMappingWarning(UserWarning):
    """An element is assigned to more than one sample in a first-match lookup."""


class IncompleteLinkWarning(UserWarning):
    """A column-aligned collection has elements not covered by its link."""
