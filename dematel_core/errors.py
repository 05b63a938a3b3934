"""Error taxonomy shared by the question, report and transport paths."""
from __future__ import annotations

__all__ = [
    "DematelError",
    "ConfigurationError",
    "MalformedAnswerRow",
    "TransportError",
    "CompressionUnavailable",
    "EncodingError",
    "IncompleteTransport",
    "IntegrityMismatch",
    "MalformedEnvelope",
]


class DematelError(Exception):
    """Base class for every error raised by ``dematel_core``."""


class ConfigurationError(DematelError, ValueError):
    """The survey structure is missing fields, too small, or ambiguous."""


class MalformedAnswerRow(DematelError):
    """Reserved name for a bad ``left|right`` row.

    Never raised: malformed rows are skipped by the label graph.
    """


class TransportError(DematelError):
    """Base class for pack/unpack failures."""


class CompressionUnavailable(TransportError):
    pass


class EncodingError(TransportError):
    pass


class IncompleteTransport(TransportError):
    pass


class IntegrityMismatch(TransportError):
    pass


class MalformedEnvelope(TransportError):
    pass
