"""
Proxy class generation.

For every proxy class candidate two edit streams are produced:

- the main file stream, shared by all candidates of a translation unit,
  which only inserts (forward declaration, member alias, converting
  constructor, include directive)
- a per-candidate proxy stream over the same original buffer, which keeps
  the relevant source ranges, deletes everything else and turns the kept
  definitions into the ``Name_proxy`` reference view
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..config import GenerationConfig
from ..context import TransformContext
from ..errors import DiagnosticKind, DiagnosticStage
from ..interfaces import AccessKind, ConstructorHandle
from ..metadata import ClassDeclaration, ClassDefinition, ClassMetaData, Indentation
from ..rewriter import SourceRewriter
from ..source import SourceBuffer, SourceRange
from . import snippets

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anchor:
    """Insertion point for generated members inside a class body."""

    offset: int
    at_line_start: bool
    kind: str
    needs_public_label: bool = False


class ProxyClassGenerator:
    """Emits the main file patch and the proxy header edits for candidates."""

    def __init__(self, context: TransformContext):
        self.context = context

    @property
    def settings(self) -> GenerationConfig:
        return self.context.generation

    @property
    def source(self) -> SourceBuffer:
        return self.context.source

    # Text builders

    def forward_declaration_text(self, declaration: ClassDeclaration) -> str:
        return snippets.forward_declaration_text(declaration, self.settings)

    def aggregate_constructor_text(self, definition: ClassDefinition) -> str:
        return snippets.aggregate_constructor_text(definition, self.settings)

    def copy_from_original_text(self, definition: ClassDefinition) -> str:
        return snippets.copy_from_original_text(definition, self.source, self.settings)

    def converting_constructor_text(self, definition: ClassDefinition) -> str:
        return snippets.converting_constructor_text(definition, self.source, self.settings)

    def template_alias_bindings(self, definition: ClassDefinition) -> List[str]:
        return snippets.template_alias_bindings(definition, self.settings)

    def type_alias_statement(self, definition: ClassDefinition) -> str:
        return snippets.type_alias_statement(definition, self.settings)

    def header_name(self, meta: ClassMetaData) -> str:
        return self.settings.header_name(meta.name)

    # Positions

    def _constructor_extent(self, constructor: ConstructorHandle) -> SourceRange:
        if constructor.has_body:
            return constructor.range
        return self.source.extend_through(constructor.range, ";")

    def _constructor_removal(self, constructor: ConstructorHandle) -> SourceRange:
        return self.source.whole_lines(self._constructor_extent(constructor))

    def constructor_anchor(self, definition: ClassDefinition, in_proxy: bool = False) -> Anchor:
        """
        Where generated constructors go.

        After the last public user constructor, else at the first public
        access scope, else at the start of a struct body, else at the end of
        the body behind a new ``public:`` label.
        """
        public_constructors = [
            c for c in definition.constructors if c.access is AccessKind.PUBLIC
        ]
        if public_constructors:
            last = public_constructors[-1]
            extent = self._constructor_removal(last) if in_proxy else self._constructor_extent(last)
            return Anchor(extent.end, self._at_line_start(extent.end), "constructor")

        first_public = definition.first_public
        if first_public is not None:
            offset = definition.scope_begin(first_public)
            return Anchor(offset, self._at_line_start(offset), "public_scope")

        if definition.tag.default_access is AccessKind.PUBLIC:
            offset = definition.body_begin
            return Anchor(offset, self._at_line_start(offset), "body_begin")

        rbrace = definition.body_end
        if not in_proxy:
            self.context.diagnostics.report(
                definition.name,
                DiagnosticStage.GENERATION,
                DiagnosticKind.MISSING_ANCHOR,
                "no public access scope, appending a public section",
                location=self.source.describe(rbrace),
            )
        if self.source.only_whitespace_before(rbrace):
            return Anchor(self.source.begin_of_line(rbrace), True, "body_end", True)
        return Anchor(rbrace, False, "body_end", True)

    def _at_line_start(self, offset: int) -> bool:
        return offset == self.source.begin_of_line(offset)

    def _member_block(
        self, anchor: Anchor, lines: List[str], indentation: Indentation
    ) -> Tuple[int, str]:
        """Offset and text for generated members; the rest of a split line is re-indented."""
        indent = indentation.member
        prefixed = [(indent, line) for line in lines]
        if anchor.needs_public_label:
            prefixed.insert(0, (indentation.outer, "public:"))

        if anchor.at_line_start:
            return anchor.offset, "".join(f"{prefix}{line}\n" for prefix, line in prefixed)
        text = "".join(f"\n{prefix}{line}" for prefix, line in prefixed)
        if self.source.only_whitespace_after(anchor.offset):
            return anchor.offset, text

        offset = anchor.offset
        while self.source.text[offset] in " \t":
            offset += 1
        rest_indent = indentation.outer if self.source.text[offset] == "}" else indent
        return offset, text + "\n" + rest_indent

    # Patch streams

    def main_file_patch(self, meta: ClassMetaData, rewriter: SourceRewriter) -> bool:
        """Insert forward declaration, aliases, converting constructors and the include."""
        if not meta.is_proxy_class_candidate:
            logger.debug("%s: no main file patch, class is %s", meta.name, meta.state)
            return False

        source = self.source
        declaration = meta.declaration
        indentation = declaration.indentation

        rewriter.insert(
            declaration.range.begin,
            self.forward_declaration_text(declaration)
            + "\n"
            + source.leading_whitespace(declaration.range.begin),
        )

        for definition in meta.definitions:
            anchor = self.constructor_anchor(definition)
            lines = [
                self.type_alias_statement(definition),
                self.converting_constructor_text(definition),
            ]
            rewriter.insert(*self._member_block(anchor, lines, indentation))

        include = snippets.include_directive(meta.name, self.settings)
        bottom = meta.bottom_most
        if bottom > 0 and source.text[bottom - 1] == "\n":
            position = bottom
        else:
            position = source.next_line(bottom)
        if position == source.end and not source.text.endswith("\n"):
            rewriter.insert(position, f"\n{include}\n")
        else:
            rewriter.insert(position, f"{include}\n")
        return True

    def relevant_range_patch_set(self, meta: ClassMetaData, rewriter: SourceRewriter) -> bool:
        """Strip the buffer to the relevant ranges and turn the kept bodies into the proxy."""
        if not meta.is_proxy_class_candidate:
            logger.debug("%s: no proxy header, class is %s", meta.name, meta.state)
            return False

        source = self.source
        settings = self.settings
        ranges = meta.relevant_ranges
        proxy_name = settings.proxy_name(meta.name)
        outer = meta.declaration.indentation.outer
        indentation = meta.declaration.indentation

        rewriter.replace(
            SourceRange(0, ranges.first.begin),
            snippets.header_preamble(meta.name, source.path, settings),
        )

        wrapped: List[Tuple[SourceRange, SourceRange]] = []
        if not meta.declaration.is_definition:
            wrapped.append((meta.declaration.extended_range, meta.declaration.name_range))
        for definition in meta.definitions:
            wrapped.append((definition.keep_range, definition.record.name_range))

        for keep, name_range in wrapped:
            rewriter.insert(
                keep.begin,
                f"{outer}namespace {settings.internal_namespace}\n{outer}{{\n",
            )
            rewriter.replace(name_range, proxy_name)
            rewriter.insert(keep.end, f"\n{outer}}}")

        for definition in meta.definitions:
            self._proxy_body(definition, rewriter, indentation)

        for gap in ranges.gaps():
            rewriter.replace(gap, "\n")

        rewriter.replace(SourceRange(ranges.last.end, source.end), snippets.header_footer())
        return True

    def _proxy_body(
        self, definition: ClassDefinition, rewriter: SourceRewriter, indentation: Indentation
    ) -> None:
        source = self.source
        declarator = definition.trailing_declarator
        if declarator is not None:
            rewriter.remove(declarator)

        for field_handle in definition.public_fields:
            if source.dump(field_handle.range) == field_handle.name:
                rewriter.replace(field_handle.range, f"&{field_handle.name}")
            else:
                rewriter.replace(
                    field_handle.range, f"{field_handle.type_name}& {field_handle.name}"
                )

        for constructor in definition.constructors:
            rewriter.remove(self._constructor_removal(constructor))

        anchor = self.constructor_anchor(definition, in_proxy=True)
        lines = self.template_alias_bindings(definition) + [
            self.aggregate_constructor_text(definition),
            self.copy_from_original_text(definition),
        ]
        rewriter.insert(*self._member_block(anchor, lines, indentation))

    def generate(self, meta: ClassMetaData, main_rewriter: SourceRewriter) -> Optional[Tuple[str, str]]:
        """
        Patch the main file and build the proxy header for one class.

        Returns ``(header file name, header text)``, or None when the class
        is not a candidate.
        """
        if not meta.is_proxy_class_candidate:
            return None
        proxy_rewriter = SourceRewriter(self.source)
        self.relevant_range_patch_set(meta, proxy_rewriter)
        self.main_file_patch(meta, main_rewriter)
        logger.info(
            "%s: generated %s for %d definition(s)",
            meta.name,
            self.header_name(meta),
            len(meta.definitions),
        )
        return self.header_name(meta), proxy_rewriter.materialize()
