"""
Diagnostics — non-fatal issues collected during a conversion run.

Every fallback, unsupported construct and collaborator failure is recorded
here instead of raised. Only contract violations raise ``ConversionError``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    FATAL = "fatal"


class ConversionError(Exception):
    """Contract violation in an upstream collaborator; aborts the run."""


class ConversionCancelled(ConversionError):
    """The run was aborted at a node boundary."""


@dataclass(frozen=True)
class Diagnostic:
    message: str
    severity: Severity = Severity.WARNING
    node_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"message": self.message, "severity": self.severity.value}
        if self.node_id:
            data["nodeId"] = self.node_id
        return data


class Diagnostics:
    """Ordered collector.

    Entries carry the traversal index of the node they concern so the final
    list reads in document order even when annotation tasks finish out of
    order. Run-level entries (no node) sort first.
    """

    def __init__(self):
        self._entries: list[tuple[int, int, Diagnostic]] = []
        self._seq = 0

    def add(self, message: str, severity: Severity = Severity.WARNING, node=None) -> Diagnostic:
        order = getattr(node, "order", -1) if node is not None else -1
        node_id = getattr(node, "id", None) if node is not None else None
        diag = Diagnostic(message=message, severity=severity, node_id=node_id)
        self._entries.append((order, self._seq, diag))
        self._seq += 1
        return diag

    def info(self, message: str, node=None) -> Diagnostic:
        return self.add(message, Severity.INFO, node)

    def warn(self, message: str, node=None) -> Diagnostic:
        return self.add(message, Severity.WARNING, node)

    def entries(self) -> list[Diagnostic]:
        return [d for _, _, d in sorted(self._entries, key=lambda e: (e[0], e[1]))]

    def messages(self) -> list[str]:
        return [d.message for d in self.entries()]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.entries())
