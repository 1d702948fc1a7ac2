"""
Declaration store interface.

The metadata extractor and the proxy generator never talk to a parser
directly. They query a :class:`DeclarationStore`, which hands out frozen,
parser-independent handles. Every position in a handle is a character
offset into ``store.source``; every range is half-open.

:mod:`soaproxy.clang_store` implements the protocol on top of libclang,
the test suite implements it with hand-built handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from .source import SourceBuffer, SourceRange


class AccessKind(Enum):
    """C++ member access levels."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


class TagKind(Enum):
    CLASS = "class"
    STRUCT = "struct"

    @property
    def default_access(self) -> AccessKind:
        return AccessKind.PUBLIC if self is TagKind.STRUCT else AccessKind.PRIVATE


class ParamKind(Enum):
    TYPE = "type"
    NON_TYPE = "non_type"


@dataclass(frozen=True)
class NamespaceHandle:
    """
    One enclosing namespace.

    ``range`` covers the ``namespace`` keyword up to and including the
    opening brace; ``lbrace``/``rbrace`` are the offsets of the braces.
    Anonymous namespaces have an empty name. Members of an inline namespace
    are reachable through the enclosing one.
    """

    name: str
    range: SourceRange
    lbrace: int
    rbrace: int
    is_inline: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.name == ""


@dataclass(frozen=True)
class TemplateParamHandle:
    name: str
    kind: ParamKind
    type_text: str = ""

    @property
    def header_text(self) -> str:
        if self.kind is ParamKind.TYPE:
            return f"typename {self.name}"
        return f"{self.type_text} {self.name}"


@dataclass(frozen=True)
class FieldHandle:
    name: str
    type_name: str
    access: AccessKind
    range: SourceRange
    is_const: bool = False
    is_fundamental: bool = False
    is_template_type_param: bool = False


@dataclass(frozen=True)
class AccessSpecHandle:
    """An access label such as ``public:``; ``colon`` is the offset of the colon."""

    access: AccessKind
    range: SourceRange
    colon: int


@dataclass(frozen=True)
class ConstructorHandle:
    range: SourceRange
    access: AccessKind
    is_default: bool = False
    is_copy: bool = False
    has_body: bool = False


@dataclass(frozen=True)
class MethodHandle:
    name: str
    range: SourceRange
    parameters: Tuple[str, ...] = ()
    is_virtual: bool = False
    is_pure: bool = False


@dataclass(frozen=True)
class RecordHandle:
    """
    A class, struct, class template or partial specialization.

    For records that are not definitions only the identity attributes are
    populated; member tuples stay empty and ``lbrace``/``rbrace`` are None.
    """

    name: str
    tag: TagKind
    range: SourceRange
    name_range: SourceRange
    is_definition: bool
    is_template: bool = False
    is_partial_specialization: bool = False
    template_params: Tuple[TemplateParamHandle, ...] = ()
    specialization_args: Tuple[str, ...] = ()
    namespaces: Tuple[NamespaceHandle, ...] = ()
    lbrace: Optional[int] = None
    rbrace: Optional[int] = None
    fields: Tuple[FieldHandle, ...] = ()
    access_specs: Tuple[AccessSpecHandle, ...] = ()
    constructors: Tuple[ConstructorHandle, ...] = ()
    methods: Tuple[MethodHandle, ...] = ()
    is_abstract: bool = False
    is_polymorphic: bool = False
    is_empty: bool = False


@dataclass(frozen=True)
class ContainerVariable:
    """A variable or member whose type is a tracked container of a record."""

    name: str
    container: str
    element_type: str
    range: SourceRange
    kind: str = field(default="variable")


@runtime_checkable
class DeclarationStore(Protocol):
    """Typed queries over one translation unit."""

    @property
    def source(self) -> SourceBuffer:
        """The immutable buffer of the main file."""
        ...

    def records(self, name: str) -> List[RecordHandle]:
        """All main-file records called ``name`` in source order."""
        ...

    def container_variables(self, containers: Iterable[str]) -> List[ContainerVariable]:
        """Main-file variables whose type is one of ``containers`` over a record type."""
        ...
