"""
Class metadata models.

:class:`ClassDeclaration` captures the identity of a class or class
template (name, namespaces, template parameters, indentation style) and
:class:`ClassDefinition` one concrete body bound to it. Both are read-only
views over store handles plus the positions derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..interfaces import (
    AccessKind,
    AccessSpecHandle,
    ConstructorHandle,
    FieldHandle,
    MethodHandle,
    NamespaceHandle,
    ParamKind,
    RecordHandle,
    TagKind,
    TemplateParamHandle,
)
from ..source import SourceBuffer, SourceRange
from .eligibility import EligibilityReport, evaluate


class ClassKind(Enum):
    """Tag of a class entry: a plain class or a class template."""

    PLAIN = "plain"
    TEMPLATED = "templated"


@dataclass(frozen=True)
class Indentation:
    """
    Indentation style of a class.

    ``unit`` is one indentation step as used in the file, ``depth`` the
    number of enclosing namespaces.
    """

    unit: str
    depth: int

    def at(self, level: int) -> str:
        return self.unit * max(level, 0)

    @property
    def outer(self) -> str:
        """Indentation of the class head."""
        return self.at(self.depth)

    @property
    def member(self) -> str:
        """Indentation of the class members."""
        return self.at(self.depth + 1)

    @classmethod
    def detect(cls, source: SourceBuffer, offset: int, depth: int, default_width: int = 4):
        leading = source.leading_whitespace(offset)
        if depth > 0 and leading:
            width = len(leading) // depth
            if width > 0:
                return cls(leading[:width], depth)
        if leading.startswith("\t"):
            return cls("\t", depth)
        return cls(" " * default_width, depth)


def _keep_from_line_start(source: SourceBuffer, source_range: SourceRange) -> SourceRange:
    if source.only_whitespace_before(source_range.begin):
        return SourceRange(source.begin_of_line(source_range.begin), source_range.end)
    return source_range


class ClassDeclaration:
    """Identity of a class or class template within one translation unit."""

    def __init__(self, record: RecordHandle, source: SourceBuffer, default_indent_width: int = 4):
        self.record = record
        self.source = source
        self.name: str = record.name
        self.tag: TagKind = record.tag
        self.range: SourceRange = record.range
        self.name_range: SourceRange = record.name_range
        self.is_definition: bool = record.is_definition
        self.namespaces: Tuple[NamespaceHandle, ...] = record.namespaces
        self.template_params: Tuple[TemplateParamHandle, ...] = record.template_params
        self.indentation = Indentation.detect(
            source, record.range.begin, len(record.namespaces), default_indent_width
        )

    @property
    def is_template(self) -> bool:
        return bool(self.template_params)

    @property
    def namespace_path(self) -> str:
        """``fw::extra`` style path; anonymous and inline namespaces are skipped."""
        return "::".join(
            ns.name for ns in self.namespaces if not ns.is_anonymous and not ns.is_inline
        )

    @property
    def qualified_prefix(self) -> str:
        """Namespace path followed by ``::``; just ``::`` for the global namespace."""
        path = self.namespace_path
        return f"{path}::" if path else "::"

    @property
    def type_parameters(self) -> List[str]:
        return [p.name for p in self.template_params if p.kind is ParamKind.TYPE]

    @property
    def template_parameter_list(self) -> str:
        if not self.template_params:
            return ""
        return "<" + ", ".join(p.name for p in self.template_params) + ">"

    @property
    def template_header(self) -> str:
        if not self.template_params:
            return ""
        return "template <" + ", ".join(p.header_text for p in self.template_params) + ">"

    def keep_ranges(self) -> List[SourceRange]:
        """Namespace scaffolding plus, for forward declarations, the declaration itself."""
        source = self.source
        ranges: List[SourceRange] = []
        for namespace in self.namespaces:
            ranges.append(
                SourceRange(source.begin_of_line(namespace.range.begin), namespace.lbrace + 1)
            )
            if source.only_whitespace_before(namespace.rbrace):
                ranges.append(
                    SourceRange(
                        source.begin_of_line(namespace.rbrace), source.next_line(namespace.rbrace)
                    )
                )
            else:
                ranges.append(SourceRange(namespace.rbrace, namespace.rbrace + 1))
        if not self.is_definition:
            ranges.append(self.extended_range)
        return ranges

    @property
    def extended_range(self) -> SourceRange:
        return _keep_from_line_start(self.source, self.source.extend_through(self.range, ";"))


class ClassDefinition:
    """One concrete body of a class: its only definition, the primary, or a partial specialization."""

    def __init__(
        self,
        record: RecordHandle,
        declaration: ClassDeclaration,
        is_partial_specialization: bool = False,
    ):
        self.record = record
        self.declaration = declaration
        self.source = declaration.source
        self.name: str = record.name
        self.range: SourceRange = record.range
        self.is_partial_specialization = is_partial_specialization
        self.report: EligibilityReport = evaluate(record)

    @property
    def is_eligible(self) -> bool:
        return self.report.eligible

    @property
    def tag(self) -> TagKind:
        return self.record.tag

    @property
    def fields(self) -> Tuple[FieldHandle, ...]:
        return self.record.fields

    @property
    def public_fields(self) -> List[FieldHandle]:
        return [f for f in self.record.fields if f.access is AccessKind.PUBLIC]

    @property
    def non_public_fields(self) -> List[FieldHandle]:
        return [f for f in self.record.fields if f.access is not AccessKind.PUBLIC]

    @property
    def access_specs(self) -> Tuple[AccessSpecHandle, ...]:
        return self.record.access_specs

    @property
    def constructors(self) -> Tuple[ConstructorHandle, ...]:
        return self.record.constructors

    @property
    def methods(self) -> Tuple[MethodHandle, ...]:
        return self.record.methods

    def first_access(self, kind: AccessKind) -> Optional[AccessSpecHandle]:
        for spec in self.record.access_specs:
            if spec.access is kind:
                return spec
        return None

    @property
    def first_public(self) -> Optional[AccessSpecHandle]:
        return self.first_access(AccessKind.PUBLIC)

    @property
    def first_private(self) -> Optional[AccessSpecHandle]:
        return self.first_access(AccessKind.PRIVATE)

    @property
    def copy_constructor(self) -> Optional[ConstructorHandle]:
        for constructor in self.record.constructors:
            if constructor.is_copy:
                return constructor
        return None

    @property
    def template_params(self) -> Tuple[TemplateParamHandle, ...]:
        """The body's own template parameters (differs from the primary's for specializations)."""
        return self.record.template_params

    @property
    def type_parameters(self) -> List[str]:
        return [p.name for p in self.record.template_params if p.kind is ParamKind.TYPE]

    @property
    def template_header(self) -> str:
        params = self.record.template_params
        if not params:
            return ""
        return "template <" + ", ".join(p.header_text for p in params) + ">"

    @property
    def template_arguments(self) -> List[str]:
        """Arguments of ``Name<...>`` for this body: substitutions or the primary's parameters."""
        if self.is_partial_specialization:
            return list(self.record.specialization_args)
        return [p.name for p in self.declaration.template_params]

    @property
    def public_type(self) -> Optional[str]:
        return self.report.public_type

    @property
    def keep_range(self) -> SourceRange:
        """The body range through its trailing ``;``, from line start when alone on the line."""
        return _keep_from_line_start(self.source, self.source.extend_to_statement_end(self.range))

    @property
    def trailing_declarator(self) -> Optional[SourceRange]:
        """Text between the closing brace and the ``;``, as ``g`` in ``} g;``."""
        statement = self.source.extend_to_statement_end(self.range)
        if statement.end == self.range.end:
            return None
        between = SourceRange(self.range.end, statement.end - 1)
        if not self.source.dump(between).strip():
            return None
        return between

    def scope_begin(self, spec: AccessSpecHandle) -> int:
        """First position of an access scope: after the colon, or the next line if the colon ends it."""
        if self.source.only_whitespace_after(spec.colon + 1):
            return self.source.next_line(spec.colon)
        return spec.colon + 1

    @property
    def body_begin(self) -> int:
        """First position inside the braces; the next line when the braces span lines."""
        lbrace, rbrace = self.record.lbrace, self.record.rbrace
        if self.source.line_col(lbrace)[0] == self.source.line_col(rbrace)[0]:
            return lbrace + 1
        return self.source.next_line(lbrace)

    @property
    def body_end(self) -> int:
        return self.record.rbrace
