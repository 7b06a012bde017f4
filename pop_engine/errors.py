"""
Error hierarchy for the POP engine.

Only structural problems raise. Degenerate but well-formed input (empty
site lists, sites without coordinates, everything out of range) produces
empty results and skipped-id lists instead.
"""


class PopEngineError(Exception):
    """Base error for engine operations."""


class MissingIdentifierError(PopEngineError, ValueError):
    """A site or facility record has no usable id.

    Ids are used as dictionary keys throughout the engine, so this is the
    one failure that cannot be degraded into a skipped record.
    """

    def __init__(self, kind: str, record=None):
        self.kind = kind
        self.record = record
        super().__init__(f"{kind} record is missing a non-empty 'id': {record!r}")


class MixedCoordinateModeError(PopEngineError, ValueError):
    """Geographic and normalized-plane points used together in one run."""


class InvalidRecordError(PopEngineError, ValueError):
    """An ingestion record has a field the engine cannot interpret."""
