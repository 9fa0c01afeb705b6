"""Exception hierarchy for knitcheck.

Structural defects found in a wiring are reported as :class:`Issue` records,
never raised.  The exceptions here signal faults in the analysis itself.
"""

from __future__ import annotations


class KnitcheckError(Exception):
    """Base class for every knitcheck fault."""


class GraphIntegrityError(KnitcheckError):
    """A graph operation would break an invariant (e.g. a dangling edge)."""


class ReconciliationError(KnitcheckError):
    """The reconciler could not produce a consistent issue list."""


class ExportError(KnitcheckError):
    """The exporter could not build the wire document."""


class ComponentLoadError(KnitcheckError, ValueError):
    """A component record could not be decoded."""


class SettingsError(KnitcheckError, ValueError):
    """A settings file is unreadable or contains unknown keys."""
