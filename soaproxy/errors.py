"""
Error types and non-fatal diagnostics for soaproxy.

Nothing on the transformation path aborts a run: rejected classes,
duplicate registrations, unresolved specializations and missing anchors are
recorded as :class:`Diagnostic` entries and logged. Exceptions are reserved
for broken inputs (configuration, unparsable files) and programming errors
(conflicting edits).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class SoaProxyError(Exception):
    """Base class of all soaproxy exceptions."""


class ConfigurationError(SoaProxyError):
    """Raised when configuration validation fails."""


class DeclarationStoreError(SoaProxyError):
    """Raised when a translation unit cannot be loaded."""


class RewriteConflictError(SoaProxyError):
    """Raised when two edits touch the same bytes of the original buffer."""


class DiagnosticStage(Enum):
    EXTRACTION = "extraction"
    GENERATION = "generation"


class DiagnosticKind(Enum):
    INELIGIBLE = "ineligible"
    DUPLICATE = "duplicate"
    UNRESOLVED_SPECIALIZATION = "unresolved_specialization"
    MISSING_ANCHOR = "missing_anchor"
    NOT_FOUND = "not_found"


_LOG_LEVELS = {
    DiagnosticKind.INELIGIBLE: logging.INFO,
    DiagnosticKind.DUPLICATE: logging.DEBUG,
    DiagnosticKind.UNRESOLVED_SPECIALIZATION: logging.DEBUG,
    DiagnosticKind.MISSING_ANCHOR: logging.DEBUG,
    DiagnosticKind.NOT_FOUND: logging.WARNING,
}


@dataclass
class Diagnostic:
    class_name: str
    stage: DiagnosticStage
    kind: DiagnosticKind
    message: str
    location: Optional[str] = None
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "stage": self.stage.value,
            "kind": self.kind.value,
            "message": self.message,
            "location": self.location,
            "reasons": list(self.reasons),
        }

    def __str__(self) -> str:
        where = f" ({self.location})" if self.location else ""
        text = f"{self.class_name}: {self.message}{where}"
        if self.reasons:
            text += ": " + "; ".join(self.reasons)
        return text


class DiagnosticsCollector:
    """
    Collects diagnostics for one transformation request.

    Every report is also forwarded to the module logger at a level that
    matches its kind.
    """

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def report(
        self,
        class_name: str,
        stage: DiagnosticStage,
        kind: DiagnosticKind,
        message: str,
        location: Optional[str] = None,
        reasons: Optional[List[str]] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            class_name=class_name,
            stage=stage,
            kind=kind,
            message=message,
            location=location,
            reasons=list(reasons or []),
        )
        self.diagnostics.append(diagnostic)
        logger.log(_LOG_LEVELS.get(kind, logging.INFO), "%s", diagnostic)
        return diagnostic

    def by_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def has(self, kind: DiagnosticKind) -> bool:
        return any(d.kind == kind for d in self.diagnostics)

    def clear(self) -> None:
        self.diagnostics.clear()

    def __len__(self) -> int:
        return len(self.diagnostics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.diagnostics),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
