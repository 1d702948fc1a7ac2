"""Class metadata and the proxy class eligibility rules."""

from .eligibility import EligibilityReport, evaluate
from .extractor import ClassMetaData, MetadataExtractor
from .models import ClassDeclaration, ClassDefinition, ClassKind, Indentation

__all__ = [
    "ClassDeclaration",
    "ClassDefinition",
    "ClassKind",
    "ClassMetaData",
    "EligibilityReport",
    "Indentation",
    "MetadataExtractor",
    "evaluate",
]
