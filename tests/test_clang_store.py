"""
Tests for soaproxy.clang_store

These parse real C++ with libclang. A small container template stands in
for std::vector so no system headers are needed.
"""

import pytest

cindex = pytest.importorskip("clang.cindex")

try:
    cindex.Index.create()
except cindex.LibclangError as e:
    pytest.skip(f"libclang is not available: {e}", allow_module_level=True)

from soaproxy.api import SoaProxy  # noqa: E402
from soaproxy.clang_store import ClangDeclarationStore, open_store  # noqa: E402
from soaproxy.config import SoaProxyConfig  # noqa: E402
from soaproxy.errors import DeclarationStoreError  # noqa: E402
from soaproxy.interfaces import AccessKind, DeclarationStore, ParamKind, TagKind  # noqa: E402

SOURCE = """template <typename T> class Buffer { T* data; };

namespace geo {
    struct P {
    public:
        int x;
    private:
        float y;
    public:
        P(int x_, float y_): x(x_), y(y_) {}
    };
}

template <typename T, int N>
class B
{
public:
    T v;
    T w;
};

template <typename T>
class B<T, 2>
{
public:
    T v;
};

class Shape { public: virtual double area() const = 0; int id; };

Buffer<geo::P> points;
Buffer<B<double, 3>> bs;
Buffer<Shape*> shapes;
Buffer<Shape> more_shapes;
"""


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "sample.cpp"
    path.write_text(SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def store(source_file):
    return ClangDeclarationStore(str(source_file))


class TestRecords:
    """Tests for record handles built from libclang cursors."""

    def test_implements_protocol(self, store):
        assert isinstance(store, DeclarationStore)

    def test_struct_in_namespace(self, store):
        (record,) = store.records("P")
        text = store.source.text
        assert record.is_definition
        assert record.tag is TagKind.STRUCT
        assert store.source.dump(record.name_range) == "P"
        assert text[record.lbrace] == "{"
        assert text[record.rbrace] == "}"
        assert [ns.name for ns in record.namespaces] == ["geo"]
        assert [(f.name, f.access) for f in record.fields] == [
            ("x", AccessKind.PUBLIC),
            ("y", AccessKind.PRIVATE),
        ]
        assert all(f.is_fundamental for f in record.fields)
        assert store.source.dump(record.fields[0].range) == "int x"
        assert [spec.access for spec in record.access_specs] == [
            AccessKind.PUBLIC,
            AccessKind.PRIVATE,
            AccessKind.PUBLIC,
        ]
        (constructor,) = record.constructors
        assert constructor.has_body
        assert store.source.dump(constructor.range) == "P(int x_, float y_): x(x_), y(y_) {}"

    def test_template_and_partial_specialization(self, store):
        primary, specialization = store.records("B")
        assert primary.is_template and not primary.is_partial_specialization
        assert [(p.name, p.kind) for p in primary.template_params] == [
            ("T", ParamKind.TYPE),
            ("N", ParamKind.NON_TYPE),
        ]
        assert primary.fields[0].is_template_type_param
        assert specialization.is_partial_specialization
        assert specialization.specialization_args == ("T", "2")

    def test_inline_namespace_flag(self, tmp_path):
        path = tmp_path / "inline.cpp"
        path.write_text(
            "namespace ns { inline namespace v1 { struct D { int a; }; } }\n"
            "namespace __detail { struct E { int a; }; }\n",
            encoding="utf-8",
        )
        store = ClangDeclarationStore(str(path))
        (d_record,) = store.records("D")
        assert [(n.name, n.is_inline) for n in d_record.namespaces] == [
            ("ns", False),
            ("v1", True),
        ]
        (e_record,) = store.records("E")
        assert [(n.name, n.is_inline) for n in e_record.namespaces] == [("__detail", False)]

    def test_abstract_class(self, store):
        (shape,) = store.records("Shape")
        assert shape.is_abstract
        assert shape.is_polymorphic


class TestContainers:
    """Tests for container variable discovery."""

    def test_element_types(self, store):
        variables = store.container_variables(["Buffer"])
        assert [(v.name, v.element_type) for v in variables] == [
            ("points", "P"),
            ("bs", "B"),
            ("more_shapes", "Shape"),
        ]

    def test_untracked_container(self, store):
        assert store.container_variables(["std::vector"]) == []


class TestEndToEnd:
    """Tests for a full run through the facade."""

    def test_transform(self, source_file):
        config = SoaProxyConfig.from_dict({"discovery": {"containers": ["Buffer"]}})
        result = SoaProxy(config).transform(source_file)

        assert sorted(result.proxy_headers) == ["autogen_B_proxy.hpp", "autogen_P_proxy.hpp"]
        assert result.report_for("Shape").state == "rejected"
        main = result.main_file_text
        assert "    namespace proxy_internal { struct P_proxy; }\n    struct P {" in main
        assert "using P_proxy = geo::proxy_internal::P_proxy;" in main
        assert "P(const P_proxy& other): x(other.x), y(other.y) {}" in main
        assert '}\n#include "autogen_P_proxy.hpp"\n' in main

        header = result.proxy_headers["autogen_P_proxy.hpp"]
        assert "P_proxy(int* ptr, const size_t n, float y): x(ptr[0*n]), y(y) {}" in header
        assert "class B" not in header
        assert "B_proxy<T, 2>" in result.proxy_headers["autogen_B_proxy.hpp"]


class TestErrors:
    """Tests for unreadable inputs."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(DeclarationStoreError):
            open_store(str(tmp_path / "missing.cpp"))
