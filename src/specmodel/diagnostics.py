"""
Diagnostics produced while resolving specifications.

Resolution never raises for schema problems. Each problem becomes a
Diagnostic, recorded in an explicitly passed DiagnosticCollector and also
attached to the ResolvedNode that the caller asked for.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from specmodel.identifiers import Identifier

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """Taxonomy of resolution problems."""

    UNRESOLVED_REFERENCE = "UnresolvedReference"
    CONSTRAINT_VIOLATION = "ConstraintViolation"
    AMBIGUOUS_OR_UNRESOLVED_PATH = "AmbiguousOrUnresolvedPath"
    CYCLIC_INHERITANCE = "CyclicInheritance"
    INCOMPLETE = "Incomplete"

    @property
    def is_error(self) -> bool:
        return self is not DiagnosticKind.INCOMPLETE


@dataclass(frozen=True)
class Diagnostic:
    """
    A single resolution problem.

    Properties:
        kind: DiagnosticKind
        element: Identifier of the element being resolved when it occurred
        path: Path (relative to element) that was being resolved
        message: Human-readable explanation
    """

    kind: DiagnosticKind
    element: Optional[Identifier]
    path: Tuple[Identifier, ...]
    message: str

    def __str__(self) -> str:
        where = str(self.element) if self.element is not None else "<unknown>"
        if self.path:
            where += "[" + ".".join(str(p) for p in self.path) + "]"
        return f"{self.kind.value} at {where}: {self.message}"


class DiagnosticCollector:
    """
    Append-only sink for diagnostics.

    Safe to share between threads resolving independent elements:
    all access is serialized by an internal lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._diagnostics: List[Diagnostic] = []

    def record(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)
        if diagnostic.kind.is_error:
            logger.warning("%s", diagnostic)
        else:
            logger.info("%s", diagnostic)

    def clear(self) -> None:
        with self._lock:
            self._diagnostics.clear()

    def all(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    def has_any(self) -> bool:
        with self._lock:
            return bool(self._diagnostics)

    def has_errors(self) -> bool:
        return any(d.kind.is_error for d in self.all())

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.all() if d.kind is kind]

    def __len__(self) -> int:
        with self._lock:
            return len(self._diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.all())
