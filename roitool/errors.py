# roitool/errors.py
"""Exception hierarchy shared by the linker, identifier scheme and stores.

Every error here is fatal to a run.  Nothing in roitool retries; the CLI
turns any :class:`RoitoolError` into a non-zero exit status.
"""

from __future__ import annotations

from typing import Optional


class RoitoolError(Exception):
    """Base class for all roitool failures."""


# ---------------------------------------------------------------------------
# Input-shape errors
# ---------------------------------------------------------------------------


class GraphError(RoitoolError):
    """The input violates the object-graph construction invariants."""


class OrphanChildError(GraphError):
    """A child container names a parent position that has not been seen."""

    def __init__(self, lsid: str, roi_index: Optional[int]):
        self.lsid = lsid
        self.roi_index = roi_index
        super().__init__(
            f"{lsid} belongs to roiIndex={roi_index}, which has no ROI yet"
        )


class UnresolvedReferenceError(GraphError):
    """A reference record names an identifier missing from the registry."""

    def __init__(self, target: str, reference: str, missing: str):
        self.target = target
        self.reference = reference
        self.missing = missing
        super().__init__(
            f"Cannot link {reference} -> {target}: {missing} is not a known object"
        )


class NoLinkHandlerError(GraphError):
    """No link function exists for a (target, reference) kind pair."""

    def __init__(self, target_kind: str, reference_kind: str):
        self.target_kind = target_kind
        self.reference_kind = reference_kind
        super().__init__(
            f"No link handler for {reference_kind} -> {target_kind}"
        )


class UnsupportedObjectError(GraphError):
    """A container holds an object kind the linker does not place."""


class LinkerStateError(RoitoolError):
    """A linker operation was called out of order."""


# ---------------------------------------------------------------------------
# Identity errors
# ---------------------------------------------------------------------------


class IdentityError(RoitoolError):
    """An object lacks what is needed to compute its identifier."""

    def __init__(self, message: str, kind: str, object_id: Optional[int] = None):
        self.kind = kind
        self.object_id = object_id
        super().__init__(message)


class InvalidObjectKindError(IdentityError):
    """The object is not an instance of a concrete model kind."""

    def __init__(self, kind: str):
        super().__init__(f"must be of a specific model object type, got {kind}", kind)


class UnhydratedObjectError(IdentityError):
    """The object was fetched without its id or update event."""

    def __init__(self, kind: str, object_id: Optional[int], missing: str):
        self.missing = missing
        super().__init__(
            f"{kind}(id={object_id}) has no {missing}; was it fetched without "
            f"its details join?",
            kind,
            object_id,
        )


# ---------------------------------------------------------------------------
# Documents and export ordering
# ---------------------------------------------------------------------------


class DocumentError(RoitoolError):
    """An input document cannot be parsed."""


class DisplayOrderError(RoitoolError):
    """The ROI display-order annotation body is unreadable."""


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------


class StoreError(RoitoolError):
    """A request to the object store failed."""


class AuthenticationError(StoreError):
    """The store rejected the credentials or session key."""


class PersistenceError(StoreError):
    """The batch save of a linked graph failed."""
