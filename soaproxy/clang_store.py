"""
libclang backed declaration store.

Parses one C++ file with :mod:`clang.cindex` and exposes the records and
container variables of the main file as :mod:`soaproxy.interfaces` handles.
libclang reports UTF-8 byte offsets; they are converted to character
offsets of the decoded buffer here so the rest of the package never sees
bytes.
"""

from __future__ import annotations

import bisect
import logging
import os
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from clang.cindex import (
    AccessSpecifier,
    Config,
    Cursor,
    CursorKind,
    Diagnostic,
    Index,
    TranslationUnit,
    TranslationUnitLoadError,
    TypeKind,
)

from .config import ParseConfig
from .errors import DeclarationStoreError
from .interfaces import (
    AccessKind,
    AccessSpecHandle,
    ConstructorHandle,
    ContainerVariable,
    FieldHandle,
    MethodHandle,
    NamespaceHandle,
    ParamKind,
    RecordHandle,
    TagKind,
    TemplateParamHandle,
)
from .source import SourceBuffer, SourceRange

logger = logging.getLogger(__name__)

RECORD_KINDS = (
    CursorKind.CLASS_DECL,
    CursorKind.STRUCT_DECL,
    CursorKind.CLASS_TEMPLATE,
    CursorKind.CLASS_TEMPLATE_PARTIAL_SPECIALIZATION,
)

SCOPE_KINDS = (
    CursorKind.NAMESPACE,
    CursorKind.LINKAGE_SPEC,
    CursorKind.UNEXPOSED_DECL,
)

FUNDAMENTAL_TYPE_KINDS = frozenset(
    kind
    for kind in (
        getattr(TypeKind, name, None)
        for name in (
            "VOID",
            "BOOL",
            "CHAR_U",
            "UCHAR",
            "CHAR16",
            "CHAR32",
            "USHORT",
            "UINT",
            "ULONG",
            "ULONGLONG",
            "UINT128",
            "CHAR_S",
            "SCHAR",
            "WCHAR",
            "SHORT",
            "INT",
            "LONG",
            "LONGLONG",
            "INT128",
            "FLOAT",
            "DOUBLE",
            "LONGDOUBLE",
            "NULLPTR",
            "HALF",
            "FLOAT16",
            "FLOAT128",
        )
    )
    if kind is not None
)

_ACCESS = {
    AccessSpecifier.PUBLIC: AccessKind.PUBLIC,
    AccessSpecifier.PROTECTED: AccessKind.PROTECTED,
    AccessSpecifier.PRIVATE: AccessKind.PRIVATE,
}


def create_index(library_file: Optional[str] = None) -> Index:
    """Create a clang Index, pointing the bindings at ``library_file`` when given."""
    if library_file and not Config.loaded:
        Config.set_library_file(library_file)
    return Index.create()


class _OffsetMap:
    """Translates UTF-8 byte offsets of a buffer into character offsets."""

    def __init__(self, text: str):
        encoded = text.encode("utf-8")
        self._identity = len(encoded) == len(text)
        self._byte_starts: List[int] = []
        if not self._identity:
            position = 0
            for char in text:
                self._byte_starts.append(position)
                position += len(char.encode("utf-8"))
            self._byte_starts.append(position)

    def __call__(self, byte_offset: int) -> int:
        if self._identity:
            return byte_offset
        return bisect.bisect_right(self._byte_starts, byte_offset) - 1


class ClangDeclarationStore:
    """
    :class:`~soaproxy.interfaces.DeclarationStore` over one libclang translation unit.

    Only declarations spelled in the main file are reported; included
    headers are parsed for semantics but never rewritten.
    """

    def __init__(
        self,
        path: str,
        text: Optional[str] = None,
        settings: Optional[ParseConfig] = None,
        index: Optional[Index] = None,
    ):
        self.settings = settings or ParseConfig()
        if text is None:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    text = f.read()
            except OSError as e:
                raise DeclarationStoreError(f"Cannot read {path}: {e}")
        self.path = path
        self._source = SourceBuffer(text, path)
        self._offset = _OffsetMap(text)
        self._index = index or create_index(self.settings.library_file)
        self.translation_unit = self._parse()
        self._records: Optional[Dict[str, List[RecordHandle]]] = None

    @property
    def source(self) -> SourceBuffer:
        return self._source

    def _parse(self) -> TranslationUnit:
        args = self.settings.compiler_arguments()
        logger.debug("Parsing %s with %s", self.path, " ".join(args))
        try:
            translation_unit = self._index.parse(
                self.path,
                args=args,
                unsaved_files=[(self.path, self._source.text)],
                options=TranslationUnit.PARSE_INCOMPLETE,
            )
        except TranslationUnitLoadError as e:
            raise DeclarationStoreError(f"Cannot parse {self.path}: {e}")

        fatal = []
        for diagnostic in translation_unit.diagnostics:
            if diagnostic.severity >= Diagnostic.Error:
                logger.warning("clang: %s", diagnostic)
            if diagnostic.severity >= Diagnostic.Fatal:
                fatal.append(str(diagnostic))
        if fatal:
            raise DeclarationStoreError(f"Cannot parse {self.path}: {fatal[0]}")
        return translation_unit

    # Cursor helpers

    def _in_main_file(self, cursor: Cursor) -> bool:
        location = cursor.location
        return location.file is not None and location.file.name == self.translation_unit.spelling

    def _begin(self, cursor: Cursor) -> int:
        return self._offset(cursor.extent.start.offset)

    def _end(self, cursor: Cursor) -> int:
        return self._offset(cursor.extent.end.offset)

    def _range(self, cursor: Cursor) -> SourceRange:
        return SourceRange(self._begin(cursor), self._end(cursor))

    def _name_range(self, cursor: Cursor) -> SourceRange:
        begin = self._offset(cursor.location.offset)
        return SourceRange(begin, begin + len(cursor.spelling))

    def _tokens(self, cursor: Cursor) -> List[Tuple[str, int]]:
        end = cursor.extent.end.offset
        return [
            (token.spelling, self._offset(token.extent.start.offset))
            for token in cursor.get_tokens()
            if token.extent.start.offset < end
        ]

    def _is_inline_namespace(self, cursor: Cursor) -> bool:
        # The extent of an inline namespace starts at the ``inline`` keyword.
        first = next(iter(cursor.get_tokens()), None)
        return first is not None and first.spelling == "inline"

    def _walk_main_file(self, cursor: Cursor) -> Iterator[Cursor]:
        for child in cursor.get_children():
            if not self._in_main_file(child):
                continue
            yield child
            yield from self._walk_main_file(child)

    # Records

    def records(self, name: str) -> List[RecordHandle]:
        if self._records is None:
            self._records = self._collect_records()
        return list(self._records.get(name, []))

    def _collect_records(self) -> Dict[str, List[RecordHandle]]:
        records: Dict[str, List[RecordHandle]] = {}
        for cursor in self._walk_main_file(self.translation_unit.cursor):
            if cursor.kind not in RECORD_KINDS or not cursor.spelling:
                continue
            if cursor.semantic_parent is not None and cursor.semantic_parent.kind in RECORD_KINDS:
                continue
            if cursor.kind in (CursorKind.CLASS_DECL, CursorKind.STRUCT_DECL) and (
                "<" in cursor.displayname
            ):
                logger.debug("Skipping explicit specialization %s", cursor.displayname)
                continue
            handle = self._record_handle(cursor)
            if handle is not None:
                records.setdefault(handle.name, []).append(handle)
        for handles in records.values():
            handles.sort(key=lambda handle: handle.range.begin)
        return records

    def _tag(self, cursor: Cursor, tokens: Sequence[Tuple[str, int]]) -> Optional[TagKind]:
        if cursor.kind == CursorKind.STRUCT_DECL:
            return TagKind.STRUCT
        if cursor.kind == CursorKind.CLASS_DECL:
            return TagKind.CLASS
        depth = 0
        for spelling, _ in tokens:
            if spelling == "<":
                depth += 1
            elif spelling == ">":
                depth -= 1
            elif spelling == ">>":
                depth -= 2
            elif depth == 0 and spelling in ("class", "struct"):
                return TagKind(spelling)
            elif depth == 0 and spelling == "union":
                return None
        return None

    def _record_handle(self, cursor: Cursor) -> Optional[RecordHandle]:
        tokens = self._tokens(cursor)
        tag = self._tag(cursor, tokens)
        if tag is None:
            return None

        name_range = self._name_range(cursor)
        is_template = cursor.kind in (
            CursorKind.CLASS_TEMPLATE,
            CursorKind.CLASS_TEMPLATE_PARTIAL_SPECIALIZATION,
        )
        is_partial = cursor.kind == CursorKind.CLASS_TEMPLATE_PARTIAL_SPECIALIZATION
        template_params = self._template_params(cursor) if is_template else ()
        namespaces = self._namespaces(cursor)
        common = dict(
            name=cursor.spelling,
            tag=tag,
            range=self._range(cursor),
            name_range=name_range,
            is_template=is_template,
            is_partial_specialization=is_partial,
            template_params=template_params,
            specialization_args=self._specialization_args(tokens, name_range)
            if is_partial
            else (),
            namespaces=namespaces,
        )
        if not cursor.is_definition():
            return RecordHandle(is_definition=False, **common)

        lbrace = next(
            (offset for spelling, offset in tokens if spelling == "{" and offset >= name_range.end),
            None,
        )
        rbrace = self._end(cursor) - 1
        if lbrace is None or self._source.text[rbrace] != "}":
            logger.debug("Cannot locate the body of %s", cursor.spelling)
            return RecordHandle(is_definition=False, **common)

        type_params = {p.name for p in template_params if p.kind is ParamKind.TYPE}
        polymorphic, abstract = self._dynamic_traits(cursor)
        fields = self._fields(cursor, type_params)
        return RecordHandle(
            is_definition=True,
            lbrace=lbrace,
            rbrace=rbrace,
            fields=fields,
            access_specs=self._access_specs(cursor),
            constructors=self._constructors(cursor),
            methods=self._methods(cursor),
            is_abstract=abstract,
            is_polymorphic=polymorphic,
            is_empty=not fields and not polymorphic and self._bases_empty(cursor),
            **common,
        )

    def _namespaces(self, cursor: Cursor) -> Tuple[NamespaceHandle, ...]:
        chain: List[NamespaceHandle] = []
        parent = cursor.semantic_parent
        text = self._source.text
        while parent is not None and parent.kind != CursorKind.TRANSLATION_UNIT:
            if parent.kind == CursorKind.NAMESPACE:
                begin = self._begin(parent)
                lbrace = text.find("{", begin)
                rbrace = text.rfind("}", begin, self._end(parent))
                chain.append(
                    NamespaceHandle(
                        name=parent.spelling,
                        range=SourceRange(begin, lbrace + 1),
                        lbrace=lbrace,
                        rbrace=rbrace,
                        is_inline=self._is_inline_namespace(parent),
                    )
                )
            parent = parent.semantic_parent
        return tuple(reversed(chain))

    def _template_params(self, cursor: Cursor) -> Tuple[TemplateParamHandle, ...]:
        params = []
        for child in cursor.get_children():
            if child.kind == CursorKind.TEMPLATE_TYPE_PARAMETER:
                params.append(TemplateParamHandle(child.spelling, ParamKind.TYPE))
            elif child.kind == CursorKind.TEMPLATE_NON_TYPE_PARAMETER:
                params.append(
                    TemplateParamHandle(child.spelling, ParamKind.NON_TYPE, child.type.spelling)
                )
            elif child.kind == CursorKind.TEMPLATE_TEMPLATE_PARAMETER:
                head = self._source.text[
                    self._begin(child) : self._offset(child.location.offset)
                ].strip()
                params.append(TemplateParamHandle(child.spelling, ParamKind.NON_TYPE, head))
        return tuple(params)

    def _specialization_args(
        self, tokens: Sequence[Tuple[str, int]], name_range: SourceRange
    ) -> Tuple[str, ...]:
        text = self._source.text
        arguments: List[str] = []
        depth = 0
        parens = 0
        start: Optional[int] = None
        for spelling, offset in tokens:
            if offset < name_range.end:
                continue
            if depth == 0:
                if spelling != "<":
                    break
                depth = 1
                start = None
                continue
            if spelling in ("(", "["):
                parens += 1
            elif spelling in (")", "]"):
                parens -= 1
            elif parens > 0:
                pass
            elif spelling == "<":
                depth += 1
            elif spelling in (">", ">>"):
                closing = 1 if spelling == ">" else 2
                if depth - closing <= 0:
                    end = offset + (depth - 1 if spelling == ">>" else 0)
                    if start is not None:
                        arguments.append(text[start:end].strip())
                    break
                depth -= closing
            elif spelling == "," and depth == 1:
                if start is not None:
                    arguments.append(text[start:offset].strip())
                start = None
                continue
            if start is None:
                start = offset
        return tuple(arguments)

    def _fields(self, cursor: Cursor, type_params: Iterable[str]) -> Tuple[FieldHandle, ...]:
        type_params = set(type_params)
        fields: List[FieldHandle] = []
        previous_end = -1
        for child in cursor.get_children():
            if child.kind != CursorKind.FIELD_DECL:
                continue
            field_range = self._range(child)
            if field_range.begin < previous_end:
                field_range = self._name_range(child)
            previous_end = field_range.end

            field_type = child.type
            bare = field_type.spelling.replace("const", "").replace("volatile", "").strip()
            fields.append(
                FieldHandle(
                    name=child.spelling,
                    type_name=field_type.spelling,
                    access=_ACCESS.get(child.access_specifier, AccessKind.PRIVATE),
                    range=field_range,
                    is_const=field_type.is_const_qualified(),
                    is_fundamental=field_type.get_canonical().kind in FUNDAMENTAL_TYPE_KINDS,
                    is_template_type_param=bare in type_params,
                )
            )
        return tuple(fields)

    def _access_specs(self, cursor: Cursor) -> Tuple[AccessSpecHandle, ...]:
        specs = []
        text = self._source.text
        for child in cursor.get_children():
            if child.kind != CursorKind.CXX_ACCESS_SPEC_DECL:
                continue
            begin = self._begin(child)
            colon = text.find(":", begin)
            specs.append(
                AccessSpecHandle(
                    access=_ACCESS.get(child.access_specifier, AccessKind.PRIVATE),
                    range=SourceRange(begin, colon + 1),
                    colon=colon,
                )
            )
        return tuple(specs)

    def _constructors(self, cursor: Cursor) -> Tuple[ConstructorHandle, ...]:
        constructors = []
        for child in cursor.get_children():
            if child.kind != CursorKind.CONSTRUCTOR:
                continue
            constructors.append(
                ConstructorHandle(
                    range=self._range(child),
                    access=_ACCESS.get(child.access_specifier, AccessKind.PRIVATE),
                    is_default=child.is_default_constructor(),
                    is_copy=child.is_copy_constructor(),
                    has_body=any(
                        grandchild.kind == CursorKind.COMPOUND_STMT
                        for grandchild in child.get_children()
                    ),
                )
            )
        return tuple(constructors)

    def _methods(self, cursor: Cursor) -> Tuple[MethodHandle, ...]:
        methods = []
        for child in cursor.get_children():
            if child.kind not in (CursorKind.CXX_METHOD, CursorKind.DESTRUCTOR):
                continue
            methods.append(
                MethodHandle(
                    name=child.spelling,
                    range=self._range(child),
                    parameters=tuple(argument.type.spelling for argument in child.get_arguments()),
                    is_virtual=child.is_virtual_method(),
                    is_pure=child.is_pure_virtual_method(),
                )
            )
        return tuple(methods)

    def _bases(self, cursor: Cursor) -> List[Cursor]:
        bases = []
        for child in cursor.get_children():
            if child.kind != CursorKind.CXX_BASE_SPECIFIER:
                continue
            declaration = child.type.get_declaration()
            definition = declaration.get_definition() if declaration is not None else None
            if definition is not None:
                bases.append(definition)
        return bases

    def _dynamic_traits(self, cursor: Cursor) -> Tuple[bool, bool]:
        polymorphic = False
        abstract = False
        for child in cursor.get_children():
            if child.kind in (CursorKind.CXX_METHOD, CursorKind.DESTRUCTOR):
                polymorphic |= child.is_virtual_method()
                abstract |= child.is_pure_virtual_method()
            elif child.kind == CursorKind.CXX_BASE_SPECIFIER and any(
                token.spelling == "virtual" for token in child.get_tokens()
            ):
                polymorphic = True
        for base in self._bases(cursor):
            base_polymorphic, base_abstract = self._dynamic_traits(base)
            polymorphic |= base_polymorphic
            abstract |= base_abstract
        return polymorphic, abstract

    def _bases_empty(self, cursor: Cursor) -> bool:
        for base in self._bases(cursor):
            has_fields = any(c.kind == CursorKind.FIELD_DECL for c in base.get_children())
            if has_fields or not self._bases_empty(base):
                return False
        return True

    # Containers

    @staticmethod
    def qualified_name(declaration: Cursor) -> str:
        """``std::vector`` style name; anonymous and ``__`` namespaces are skipped."""
        parts = [declaration.spelling]
        parent = declaration.semantic_parent
        while parent is not None and parent.kind != CursorKind.TRANSLATION_UNIT:
            if parent.spelling and not parent.spelling.startswith("__"):
                parts.append(parent.spelling)
            parent = parent.semantic_parent
        return "::".join(reversed(parts))

    def container_variables(self, containers: Iterable[str]) -> List[ContainerVariable]:
        tracked = {name.lstrip(":") for name in containers}
        found: List[ContainerVariable] = []
        for cursor in self._walk_main_file(self.translation_unit.cursor):
            if cursor.kind not in (CursorKind.VAR_DECL, CursorKind.FIELD_DECL):
                continue
            canonical = cursor.type.get_canonical()
            if canonical.kind != TypeKind.RECORD:
                continue
            container = self.qualified_name(canonical.get_declaration())
            if container not in tracked or canonical.get_num_template_arguments() < 1:
                continue
            element = canonical.get_template_argument_type(0).get_canonical()
            if element.kind != TypeKind.RECORD:
                continue
            found.append(
                ContainerVariable(
                    name=cursor.spelling,
                    container=container,
                    element_type=element.get_declaration().spelling,
                    range=self._range(cursor),
                    kind="member" if cursor.kind == CursorKind.FIELD_DECL else "variable",
                )
            )
        found.sort(key=lambda variable: variable.range.begin)
        return found


def open_store(path: str, settings: Optional[ParseConfig] = None) -> ClangDeclarationStore:
    """Parse ``path`` and return its declaration store."""
    if not os.path.isfile(path):
        raise DeclarationStoreError(f"Source file not found: {path}")
    return ClangDeclarationStore(path, settings=settings)
