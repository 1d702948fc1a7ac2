"""
Tests for soaproxy.metadata

Covers declaration properties, definition registration, whole-class
rejection and the relevant source range set.
"""

import logging

from conftest import TEMPLATE_SOURCE
from snippet_store import Snippet, SnippetStore, build_record
from soaproxy.errors import DiagnosticKind, DiagnosticsCollector
from soaproxy.interfaces import AccessKind
from soaproxy.metadata import ClassKind, Indentation, MetadataExtractor


def register(store, name, is_template=False):
    extractor = MetadataExtractor(store, DiagnosticsCollector())
    return extractor, extractor.register_declaration(name, is_template)


class TestClassDeclaration:
    """Tests for declaration-level properties."""

    def test_global_namespace_prefix(self, points):
        _, meta = register(points, "P")
        assert meta.declaration.qualified_prefix == "::"
        assert meta.declaration.namespace_path == ""
        assert meta.declaration.is_definition

    def test_namespaced_prefix_and_indentation(self, namespaced):
        _, meta = register(namespaced, "Q")
        declaration = meta.declaration
        assert declaration.qualified_prefix == "ns::"
        assert declaration.indentation == Indentation("    ", 1)
        assert declaration.indentation.outer == "    "
        assert declaration.indentation.member == "        "

    def test_template_header(self, templated):
        _, meta = register(templated, "B", is_template=True)
        declaration = meta.declaration
        assert not declaration.is_definition
        assert declaration.template_header == "template <typename T, int N>"
        assert declaration.template_parameter_list == "<T, N>"
        assert declaration.type_parameters == ["T"]
        assert meta.kind is ClassKind.TEMPLATED

    def test_tab_indentation_detected(self):
        snippet = Snippet("namespace a {\n\tstruct S { int x; };\n}\n")
        record = build_record(snippet, "struct S", "S", fields=[("int", "x")],
                              namespaces=[snippet.namespace("a")])
        _, meta = register(SnippetStore(snippet, [record]), "S")
        assert meta.declaration.indentation.unit == "\t"

    def test_reserved_namespace_names_stay_in_path(self):
        snippet = Snippet("namespace ns {\nnamespace __detail {\nstruct D { int a; };\n}\n}\n")
        record = build_record(snippet, "struct D", "D", fields=[("int", "a")],
                              namespaces=[snippet.namespace("ns"), snippet.namespace("__detail")])
        _, meta = register(SnippetStore(snippet, [record]), "D")
        assert meta.declaration.qualified_prefix == "ns::__detail::"

    def test_inline_namespace_is_skipped(self):
        """Members of an inline namespace are named through the enclosing one."""
        snippet = Snippet("namespace ns {\ninline namespace v1 {\nstruct D { int a; };\n}\n}\n")
        record = build_record(snippet, "struct D", "D", fields=[("int", "a")],
                              namespaces=[snippet.namespace("ns"),
                                          snippet.namespace("v1", inline=True)])
        _, meta = register(SnippetStore(snippet, [record]), "D")
        assert meta.declaration.qualified_prefix == "ns::"


class TestDefinitionRegistration:
    """Tests for ClassMetaData.add_definition."""

    def test_eligible_definition_makes_candidate(self, points):
        _, meta = register(points, "P")
        assert meta.state == "pending"
        assert meta.add_definition(points.records("P")[0])
        assert meta.is_proxy_class_candidate
        assert meta.state == "candidate"

    def test_readding_same_range_does_not_duplicate(self, points):
        extractor, meta = register(points, "P")
        record = points.records("P")[0]
        assert meta.add_definition(record)
        assert meta.add_definition(record)
        assert len(meta.definitions) == 1
        assert extractor.diagnostics.has(DiagnosticKind.DUPLICATE)

    def test_mismatched_name_is_ignored(self, points, namespaced):
        _, meta = register(points, "P")
        assert not meta.add_definition(namespaced.records("Q")[0])
        assert meta.state == "pending"

    def test_ineligible_definition_rejects_class(self):
        snippet = Snippet("struct M { int x; float y; };\n")
        record = build_record(snippet, "struct M", "M", fields=[("int", "x"), ("float", "y")])
        extractor, meta = register(SnippetStore(snippet, [record]), "M")
        assert not meta.add_definition(record)
        assert meta.is_rejected
        assert meta.state == "rejected"
        assert not meta.is_proxy_class_candidate
        diagnostic = extractor.diagnostics.by_kind(DiagnosticKind.INELIGIBLE)[0]
        assert "public fields have different types: int, float" in diagnostic.reasons
        assert extractor.candidates() == []

    def test_plain_class_accepts_one_definition(self, points, caplog):
        _, meta = register(points, "P")
        meta.add_definition(points.records("P")[0])
        other = Snippet(points.snippet.text.replace("struct P {", "struct P  {"))
        second = build_record(other, "struct P", "P", fields=[("int", "x")])
        with caplog.at_level(logging.WARNING):
            assert not meta.add_definition(second)
        assert len(meta.definitions) == 1
        assert "already has a definition" in caplog.text

    def test_template_definitions_and_specialization(self, templated):
        _, meta = register(templated, "B", is_template=True)
        forward, primary, specialization = templated.records("B")
        assert not meta.add_definition(forward)
        assert meta.add_definition(primary)
        assert meta.add_definition(specialization, is_partial_specialization=True)
        assert len(meta.definitions) == 2
        assert meta.primary_definition.record is primary
        assert meta.definitions[1].template_arguments == ["T", "2"]
        assert meta.definitions[0].template_arguments == ["T", "N"]

    def test_specialization_before_primary_is_dropped(self, templated):
        extractor, meta = register(templated, "B", is_template=True)
        specialization = templated.records("B")[2]
        assert not meta.add_definition(specialization, is_partial_specialization=True)
        assert not meta.is_rejected
        assert extractor.diagnostics.has(DiagnosticKind.UNRESOLVED_SPECIALIZATION)

    def test_one_bad_specialization_rejects_all(self):
        specialized_body = "class B<T, 2>\n{\npublic:\n    T v;"
        snippet = Snippet(TEMPLATE_SOURCE.replace(specialized_body, specialized_body + "\n    float f;"))
        primary = build_record(
            snippet,
            "template <typename T, int N>\nclass B\n{",
            "B",
            fields=[("T", "v"), ("T", "w")],
            template_params=["typename T", "int N"],
        )
        specialization = build_record(
            snippet,
            "template <typename T>\nclass B<T, 2>",
            "B",
            fields=[("T", "v"), ("float", "f")],
            template_params=["typename T"],
            specialization_args=["T", "2"],
        )
        store = SnippetStore(snippet, [primary, specialization])
        _, meta = register(store, "B", is_template=True)
        assert meta.add_definition(primary)
        assert not meta.add_definition(specialization, is_partial_specialization=True)
        assert meta.is_rejected
        assert not meta.is_proxy_class_candidate


class TestClassDefinition:
    """Tests for positions and member views of a definition."""

    def test_fields_keep_declaration_order(self, points):
        _, meta = register(points, "P")
        meta.add_definition(points.records("P")[0])
        definition = meta.definitions[0]
        assert [f.name for f in definition.fields] == ["x", "y"]
        assert [f.name for f in definition.public_fields] == ["x"]
        assert [f.name for f in definition.non_public_fields] == ["y"]
        assert definition.public_type == "int"
        assert definition.first_private.access is AccessKind.PRIVATE

    def test_scope_begin_and_body_begin(self, points):
        _, meta = register(points, "P")
        meta.add_definition(points.records("P")[0])
        definition = meta.definitions[0]
        text = points.source.text
        assert definition.scope_begin(definition.first_public) == text.index("    int x;")
        assert definition.body_begin == text.index("public:")
        assert definition.body_end == text.index("};")

    def test_copy_constructor(self, templated):
        _, meta = register(templated, "B", is_template=True)
        meta.add_definition(templated.records("B")[1])
        assert meta.definitions[0].copy_constructor.has_body


class TestRelevantRanges:
    """Tests for the ranges kept in the proxy header."""

    def test_namespace_scaffolding_is_kept(self, namespaced):
        _, meta = register(namespaced, "Q")
        meta.add_definition(namespaced.records("Q")[0])
        source = namespaced.source
        kept = [source.dump(r) for r in meta.relevant_ranges]
        assert kept[0] == "namespace ns {"
        assert kept[1].startswith("    struct Q {") and kept[1].endswith("};")
        assert kept[2] == "}\n"
        assert meta.bottom_most == source.text.index("\nstd::vector")

    def test_forward_declaration_is_kept(self, templated):
        _, meta = register(templated, "B", is_template=True)
        for record in templated.records("B")[1:]:
            meta.add_definition(record, record.is_partial_specialization)
        kept = [templated.source.dump(r) for r in meta.relevant_ranges]
        assert kept[0] == "template <typename T, int N>\nclass B;"
        assert len(kept) == 3
        assert meta.top_most == TEMPLATE_SOURCE.index("template")

    def test_describe_lists_everything(self, templated):
        _, meta = register(templated, "B", is_template=True)
        for record in templated.records("B")[1:]:
            meta.add_definition(record, record.is_partial_specialization)
        text = meta.describe()
        assert text.startswith("class B [templated, candidate]")
        assert "template parameters: <T, N>" in text
        assert "partial specialization #1" in text
        assert "arguments: <T, 2>" in text
        assert "protected const float x const" in text


class TestMetadataExtractor:
    """Tests for the per-translation-unit registry."""

    def test_register_is_idempotent(self, points):
        extractor, meta = register(points, "P")
        assert extractor.register_declaration("P", False) is meta
        assert extractor.get("P") is meta
        assert extractor.entries() == [meta]

    def test_unknown_name_reports_not_found(self, points):
        extractor = MetadataExtractor(points, DiagnosticsCollector())
        assert extractor.register_declaration("Missing", False) is None
        assert extractor.diagnostics.has(DiagnosticKind.NOT_FOUND)

    def test_add_definition_routes_by_name(self, points):
        extractor, meta = register(points, "P")
        assert extractor.add_definition(points.records("P")[0])
        assert extractor.candidates() == [meta]
