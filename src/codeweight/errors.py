"""Exception hierarchy for codeweight."""

from __future__ import annotations

from typing import Any


class CodeweightError(Exception):
    """Base class for every error raised by codeweight."""


class GraphValidationError(CodeweightError):
    """The knowledge graph has dangling or inconsistent references."""

    def __init__(self, issues: list[Any]) -> None:
        self.issues = list(issues)
        preview = "; ".join(str(i) for i in self.issues[:5])
        more = f" (+{len(self.issues) - 5} more)" if len(self.issues) > 5 else ""
        super().__init__(f"{len(self.issues)} graph validation issue(s): {preview}{more}")


class GraphFrozenError(CodeweightError):
    """Raised when a frozen (read-only) graph is mutated."""


class IngestError(CodeweightError):
    """Collaborator input could not be parsed into graph facts."""


class QueryUnavailable(CodeweightError):
    """A structural query failed after all retries."""


class CircuitOpen(QueryUnavailable):
    """Raised when the circuit breaker is in OPEN state."""


class OperationTimeout(CodeweightError):
    """Raised when an operation exceeds its configured timeout."""
