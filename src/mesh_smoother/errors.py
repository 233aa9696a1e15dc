"""Exceptions and the diagnostics sink used by the smoother."""

import warnings
from typing import Callable, Optional


class SmootherError(Exception):
    """Base class for errors raised while smoothing a mesh."""


class InternalConsistencyError(SmootherError):
    """Vertex labels or the system layout are inconsistent with the mesh."""


class SolverError(SmootherError):
    """The weighted least-squares system could not be solved."""


class DegenerateGeometryWarning(UserWarning):
    """Zero-length normals or tangents weakened a constraint row."""


DiagnosticsSink = Callable[[str], None]


def warn_sink(message: str) -> None:
    warnings.warn(message, DegenerateGeometryWarning, stacklevel=3)


def resolve_sink(sink: Optional[DiagnosticsSink]) -> DiagnosticsSink:
    return warn_sink if sink is None else sink
