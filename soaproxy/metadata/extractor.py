"""
Class metadata extraction.

:class:`ClassMetaData` accumulates the declaration and the definitions of
one class name, and :class:`MetadataExtractor` owns those entries for one
translation unit. Plain classes and class templates share the same
algorithm; the :class:`ClassKind` tag only changes how many bodies a name
may have.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..errors import DiagnosticKind, DiagnosticStage, DiagnosticsCollector
from ..interfaces import DeclarationStore, RecordHandle
from ..source import SourceRange, SourceRangeSet
from .models import ClassDeclaration, ClassDefinition, ClassKind

logger = logging.getLogger(__name__)


class ClassMetaData:
    """Declaration plus eligible definitions of one class name."""

    def __init__(
        self,
        declaration: ClassDeclaration,
        kind: ClassKind,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.declaration = declaration
        self.kind = kind
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsCollector()
        self.definitions: List[ClassDefinition] = []
        self.failed_attempts = 0
        self.rejections: List[ClassDefinition] = []

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def source(self):
        return self.declaration.source

    @property
    def is_rejected(self) -> bool:
        return self.failed_attempts > 0

    @property
    def is_proxy_class_candidate(self) -> bool:
        return bool(self.definitions) and self.failed_attempts == 0

    @property
    def state(self) -> str:
        if self.is_rejected:
            return "rejected"
        if self.definitions:
            return "candidate"
        return "pending"

    @property
    def primary_definition(self) -> Optional[ClassDefinition]:
        for definition in self.definitions:
            if not definition.is_partial_specialization:
                return definition
        return None

    def _report(self, kind: DiagnosticKind, message: str, record: RecordHandle, reasons=None):
        self.diagnostics.report(
            self.name,
            DiagnosticStage.EXTRACTION,
            kind,
            message,
            location=self.source.describe(record.range.begin),
            reasons=reasons,
        )

    def add_definition(self, record: RecordHandle, is_partial_specialization: bool = False) -> bool:
        """
        Register a class body.

        Returns True if the body is (or already was) part of this class and
        eligible. An ineligible body is discarded and counts as a failed
        attempt, which rejects the whole class.
        """
        if record.name != self.name or not record.is_definition:
            return False

        for definition in self.definitions:
            if definition.range == record.range:
                self._report(DiagnosticKind.DUPLICATE, "definition already registered", record)
                return True

        if self.kind is ClassKind.PLAIN and self.definitions:
            logger.warning(
                "%s: plain class already has a definition, ignoring %s",
                self.name,
                self.source.describe(record.range.begin),
            )
            return False

        if is_partial_specialization:
            primary = self.primary_definition
            expected = len(self.declaration.template_params)
            if primary is None:
                self._report(
                    DiagnosticKind.UNRESOLVED_SPECIALIZATION,
                    "partial specialization seen before the primary definition",
                    record,
                )
                return False
            if len(record.specialization_args) != expected:
                self._report(
                    DiagnosticKind.UNRESOLVED_SPECIALIZATION,
                    f"specialization has {len(record.specialization_args)} arguments, "
                    f"primary template has {expected}",
                    record,
                )
                return False

        definition = ClassDefinition(record, self.declaration, is_partial_specialization)
        if not definition.is_eligible:
            self.failed_attempts += 1
            self.rejections.append(definition)
            self._report(
                DiagnosticKind.INELIGIBLE,
                "definition is not a proxy class candidate",
                record,
                reasons=definition.report.reasons,
            )
            return False

        self.definitions.append(definition)
        logger.debug(
            "%s: registered %s at %s",
            self.name,
            "partial specialization" if is_partial_specialization else "definition",
            self.source.describe(record.range.begin),
        )
        return True

    @property
    def relevant_ranges(self) -> SourceRangeSet:
        """Ranges that survive in the proxy header."""
        ranges = SourceRangeSet()
        for source_range in self.declaration.keep_ranges():
            ranges.add(source_range)
        for definition in self.definitions:
            ranges.add(definition.keep_range)
        return ranges

    @property
    def extent(self) -> SourceRange:
        """From the top-most to the bottom-most relevant range, namespace scaffolding included."""
        ranges = self.relevant_ranges
        return SourceRange(ranges.first.begin, ranges.last.end)

    @property
    def top_most(self) -> int:
        return self.extent.begin

    @property
    def bottom_most(self) -> int:
        return self.extent.end

    def describe(self) -> str:
        """Indented text tree of everything known about the class."""
        source = self.source
        decl = self.declaration
        lines = [f"{decl.tag.value} {decl.name} [{self.kind.value}, {self.state}]"]
        lines.append(f"  declaration: {source.describe(decl.range.begin)}")
        lines.append(f"    is definition: {'yes' if decl.is_definition else 'no'}")
        if decl.namespaces:
            lines.append("    namespaces:")
            for namespace in decl.namespaces:
                label = namespace.name or "(anonymous)"
                lines.append(
                    f"      {label}: {{ {source.describe(namespace.lbrace)} "
                    f"}} {source.describe(namespace.rbrace)}"
                )
        if decl.template_params:
            lines.append(f"    template parameters: {decl.template_parameter_list}")
            for param in decl.template_params:
                lines.append(f"      {param.header_text} ({param.kind.value})")
        lines.append(f"    indentation: {len(decl.indentation.unit)} x {decl.indentation.depth}")

        for index, definition in enumerate(self.definitions):
            header = "partial specialization" if definition.is_partial_specialization else "definition"
            lines.append(f"  {header} #{index}: {source.describe(definition.range.begin)}")
            if definition.is_partial_specialization:
                lines.append(f"    arguments: <{', '.join(definition.template_arguments)}>")
            if definition.access_specs:
                lines.append("    access specifiers:")
                for spec in definition.access_specs:
                    lines.append(
                        f"      {spec.access.value}: scope begins at "
                        f"{source.describe(definition.scope_begin(spec))}"
                    )
            if definition.constructors:
                lines.append("    constructors:")
                for constructor in definition.constructors:
                    flags = [constructor.access.value]
                    if constructor.is_default:
                        flags.append("default")
                    if constructor.is_copy:
                        flags.append("copy")
                    if constructor.has_body:
                        flags.append("body")
                    lines.append(
                        f"      {source.describe(constructor.range.begin)} ({', '.join(flags)})"
                    )
            lines.append("    fields:")
            for field_handle in definition.fields:
                const = " const" if field_handle.is_const else ""
                primitive = (
                    "yes"
                    if field_handle.is_fundamental or field_handle.is_template_type_param
                    else "no"
                )
                lines.append(
                    f"      {field_handle.access.value} {field_handle.type_name} "
                    f"{field_handle.name}{const} (fundamental or templated: {primitive})"
                )
            if definition.methods:
                lines.append("    methods:")
                for method in definition.methods:
                    lines.append(f"      {method.name}({', '.join(method.parameters)})")

        for definition in self.rejections:
            lines.append(f"  rejected: {source.describe(definition.range.begin)}")
            for reason in definition.report.reasons:
                lines.append(f"    - {reason}")
        return "\n".join(lines)


class MetadataExtractor:
    """Registry of :class:`ClassMetaData` entries for one translation unit."""

    def __init__(
        self,
        store: DeclarationStore,
        diagnostics: Optional[DiagnosticsCollector] = None,
        default_indent_width: int = 4,
    ):
        self.store = store
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsCollector()
        self.default_indent_width = default_indent_width
        self._entries: Dict[str, ClassMetaData] = {}

    def register_declaration(self, name: str, is_template: bool) -> Optional[ClassMetaData]:
        """Create the entry for ``name`` on first sight; later calls return the same entry."""
        if name in self._entries:
            return self._entries[name]

        records = self.store.records(name)
        if not records:
            self.diagnostics.report(
                name,
                DiagnosticStage.EXTRACTION,
                DiagnosticKind.NOT_FOUND,
                f"no declaration in {self.store.source.path}",
            )
            return None

        declaration = ClassDeclaration(records[0], self.store.source, self.default_indent_width)
        kind = ClassKind.TEMPLATED if is_template else ClassKind.PLAIN
        entry = ClassMetaData(declaration, kind, self.diagnostics)
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> Optional[ClassMetaData]:
        return self._entries.get(name)

    def add_definition(self, record: RecordHandle, is_partial_specialization: bool = False) -> bool:
        entry = self._entries.get(record.name)
        if entry is None:
            return False
        return entry.add_definition(record, is_partial_specialization)

    def entries(self) -> List[ClassMetaData]:
        return list(self._entries.values())

    def candidates(self) -> List[ClassMetaData]:
        return [entry for entry in self._entries.values() if entry.is_proxy_class_candidate]
