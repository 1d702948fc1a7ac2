"""
Structural eligibility rules for proxy classes.

Every predicate is evaluated on its own before the results are combined,
so a report always names all the rules a definition breaks, not just the
first one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..interfaces import AccessKind, RecordHandle


@dataclass(frozen=True)
class EligibilityReport:
    """Outcome of the five eligibility rules for one definition."""

    structurally_plain: bool
    has_fields: bool
    has_public_fields: bool
    uniform_public_type: bool
    primitive_public_types: bool
    public_type: Optional[str] = None
    reasons: List[str] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return all(
            (
                self.structurally_plain,
                self.has_fields,
                self.has_public_fields,
                self.uniform_public_type,
                self.primitive_public_types,
            )
        )

    def to_dict(self):
        return {
            "eligible": self.eligible,
            "structurally_plain": self.structurally_plain,
            "has_fields": self.has_fields,
            "has_public_fields": self.has_public_fields,
            "uniform_public_type": self.uniform_public_type,
            "primitive_public_types": self.primitive_public_types,
            "public_type": self.public_type,
            "reasons": list(self.reasons),
        }


def evaluate(record: RecordHandle) -> EligibilityReport:
    """Apply the eligibility rules to a record definition."""
    reasons: List[str] = []

    structural_flags = [
        label
        for label, flag in (
            ("abstract", record.is_abstract),
            ("polymorphic", record.is_polymorphic),
            ("empty", record.is_empty),
        )
        if flag
    ]
    structurally_plain = not structural_flags
    if not structurally_plain:
        reasons.append("class is " + ", ".join(structural_flags))

    has_fields = len(record.fields) > 0
    if not has_fields:
        reasons.append("class has no fields")

    public_fields = [f for f in record.fields if f.access is AccessKind.PUBLIC]
    has_public_fields = len(public_fields) > 0
    if not has_public_fields:
        reasons.append("class has no public fields")

    public_types = []
    for public_field in public_fields:
        if public_field.type_name not in public_types:
            public_types.append(public_field.type_name)
    uniform_public_type = len(public_types) <= 1
    if not uniform_public_type:
        reasons.append("public fields have different types: " + ", ".join(public_types))

    offending = [
        f.name
        for f in public_fields
        if not (f.is_fundamental or f.is_template_type_param)
    ]
    primitive_public_types = not offending
    if not primitive_public_types:
        reasons.append(
            "public fields are neither builtin nor template parameters: " + ", ".join(offending)
        )

    return EligibilityReport(
        structurally_plain=structurally_plain,
        has_fields=has_fields,
        has_public_fields=has_public_fields,
        uniform_public_type=uniform_public_type,
        primitive_public_types=primitive_public_types,
        public_type=public_types[0] if len(public_types) == 1 else None,
        reasons=reasons,
    )
